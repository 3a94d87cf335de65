"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts -- the target of
    every journal line.
Architecture position: Kernel > Models.  May import from db/ and domain/dtos.

Invariants enforced:
    - (tenant_id, code) is unique (uq_account_tenant_code).
    - normal_balance is derived from account_type and stored alongside it.
    - account_type is frozen once posted lines reference the account
      (AccountRegistry, with an ORM listener in db/immutability.py).
    - parent_id forms an acyclic graph (AccountRegistry).
"""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TenantScopedBase, UUIDString
from ledger_kernel.domain.dtos import AccountInfo, AccountType, NormalBalance


class Account(TenantScopedBase):
    """
    Chart of accounts node.

    Contract:
        ``code`` is unique per tenant.  ``account_type`` is one of ASSET,
        LIABILITY, EQUITY, REVENUE, EXPENSE and ``normal_balance`` always
        equals ``NormalBalance.for_type(account_type)``.  Deactivation is
        soft; rows are only deleted when nothing references them.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_account_tenant_code"),
        Index("idx_account_type", "account_type"),
        Index("idx_account_parent", "parent_id"),
    )

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    normal_balance: Mapped[NormalBalance] = mapped_column(String(10), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Seeded accounts the tenant cannot delete
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

    def to_dto(self) -> AccountInfo:
        return AccountInfo(
            id=self.id,
            tenant_id=self.tenant_id,
            code=self.code,
            name=self.name,
            account_type=AccountType(self.account_type),
            normal_balance=NormalBalance(self.normal_balance),
            parent_id=self.parent_id,
            is_active=self.is_active,
            is_system=self.is_system,
            description=self.description,
        )
