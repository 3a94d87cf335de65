"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines -- the
    append-only record every balance is derived from.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - entry_number is assigned only at posting and is unique per tenant
      (uq_journal_tenant_number).
    - A DRAFT entry owns its lines (cascade delete-orphan).  POSTED and VOID
      entries and their lines are immutable; see db/immutability.py.
    - Each line has exactly one non-zero side (CHECK constraint plus
      domain validation).

Audit relevance:
    posted_at/posted_by_id and voided_at/voided_by_id/void_reason record
    who moved the entry through its lifecycle.  A VOID entry keeps its lines
    byte-for-byte; its offset lives in the entry pointed to by
    reversed_by_entry_id.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import ExactNumeric, TenantScopedBase, UUIDString
from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.dtos import (
    EntryStatus,
    JournalEntryRecord,
    JournalLineRecord,
    LineSide,
)


class JournalEntry(TenantScopedBase):
    """
    A journal entry: the header of a balanced set of lines.

    Contract:
        Created as DRAFT with no entry_number.  ``post`` sets entry_number,
        posted_at and status=POSTED in one transaction.  ``void`` sets
        status=VOID and the void marker fields; nothing else ever changes
        after posting.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("tenant_id", "entry_number", name="uq_journal_tenant_number"),
        Index("idx_journal_entry_date", "entry_date"),
        Index("idx_journal_status", "status"),
    )

    # Assigned at posting time only
    entry_number: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[EntryStatus] = mapped_column(
        String(10),
        default=EntryStatus.DRAFT.value,
        nullable=False,
    )

    # Entry currency; all line amounts are in this currency
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    description: Mapped[str] = mapped_column(String(1000), nullable=False, default="")

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Originating document (e.g. "INVOICE", "VOID")
    source_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    source_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    reversal_of_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    reversed_by_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    posted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    voided_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    void_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_number",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id} status={self.status}>"

    @property
    def is_draft(self) -> bool:
        return self.status == EntryStatus.DRAFT

    @property
    def is_posted(self) -> bool:
        return self.status == EntryStatus.POSTED

    @property
    def is_void(self) -> bool:
        return self.status == EntryStatus.VOID

    def to_dto(self) -> JournalEntryRecord:
        return JournalEntryRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            entry_number=self.entry_number,
            entry_date=self.entry_date,
            status=EntryStatus(self.status),
            currency=self.currency,
            description=self.description,
            lines=tuple(line.to_dto() for line in self.lines),
            reference=self.reference,
            source_type=self.source_type,
            source_id=self.source_id,
            reversal_of_entry_id=self.reversal_of_entry_id,
            reversed_by_entry_id=self.reversed_by_entry_id,
            posted_at=self.posted_at,
            posted_by_id=self.posted_by_id,
            voided_at=self.voided_at,
            voided_by_id=self.voided_by_id,
            void_reason=self.void_reason,
        )


class JournalLine(TenantScopedBase):
    """
    One debit or credit against one account.

    ``debit_amount``/``credit_amount`` are in the entry currency.
    ``exchange_rate`` and ``base_currency_amount`` are filled at posting;
    they stay NULL while the entry is a draft.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        UniqueConstraint("journal_entry_id", "line_number", name="uq_line_entry_number"),
        CheckConstraint("debit_amount >= 0 AND credit_amount >= 0", name="ck_line_non_negative"),
        CheckConstraint(
            "(debit_amount = 0) <> (credit_amount = 0)",
            name="ck_line_one_side",
        ),
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_id"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    debit_amount: Mapped[Decimal] = mapped_column(ExactNumeric(38, 9), nullable=False, default=ZERO)

    credit_amount: Mapped[Decimal] = mapped_column(ExactNumeric(38, 9), nullable=False, default=ZERO)

    exchange_rate: Mapped[Decimal | None] = mapped_column(ExactNumeric(38, 18), nullable=True)

    base_currency_amount: Mapped[Decimal | None] = mapped_column(ExactNumeric(38, 9), nullable=True)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<JournalLine {self.line_number} {self.side.value} {self.entry_currency_amount}>"

    @property
    def side(self) -> LineSide:
        return LineSide.DEBIT if self.debit_amount > ZERO else LineSide.CREDIT

    @property
    def entry_currency_amount(self) -> Decimal:
        return self.debit_amount if self.debit_amount > ZERO else self.credit_amount

    def to_dto(self) -> JournalLineRecord:
        return JournalLineRecord(
            line_number=self.line_number,
            account_id=self.account_id,
            debit_amount=self.debit_amount,
            credit_amount=self.credit_amount,
            exchange_rate=self.exchange_rate,
            base_currency_amount=self.base_currency_amount,
            description=self.description,
        )
