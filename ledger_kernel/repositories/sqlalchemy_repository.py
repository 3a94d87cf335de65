"""
Module: ledger_kernel.repositories.sqlalchemy_repository
Responsibility: ``LedgerRepository`` over a SQLAlchemy Session bound to one
    tenant's schema (see db.engine.session_scope).
Architecture position: Kernel > Repositories.

Invariants enforced:
    - Every query filters on ``tenant_id`` in addition to the schema the
      session is routed to.
    - Rows loaded by primary key are checked against the bound tenant; a
      foreign row raises TenantMismatchError instead of being returned.
    - Balances are aggregated from journal lines at query time.  Nothing is
      stored.

Failure modes:
    - TenantMismatchError (integrity) when a row of another tenant is found
      in this tenant's schema.
"""

from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Iterator
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import AccountFilter, EntryFilter, EntryStatus, LineTotals
from ledger_kernel.domain.money import CurrencyPair
from ledger_kernel.exceptions import TenantMismatchError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.models.rates import ExchangeRate, VatRate
from ledger_kernel.repositories.base import LedgerRepository
from ledger_kernel.repositories.sequence import SequenceAllocator
from ledger_kernel.tenancy import TenantContext

logger = get_logger("repositories.sqlalchemy")

# Entries whose lines count towards balances; see DESIGN.md (D1)
_BALANCE_STATUSES = (EntryStatus.POSTED.value, EntryStatus.VOID.value)


class SqlAlchemyLedgerRepository(LedgerRepository):
    """
    Session-backed repository.

    Contract:
        Flushes, never commits.  The session must already be routed to
        ``tenant.schema_name``.
    """

    def __init__(self, session: Session, tenant: TenantContext):
        self.session = session
        self._tenant = tenant
        self._sequences = SequenceAllocator(session, tenant.tenant_id)

    @property
    def tenant(self) -> TenantContext:
        return self._tenant

    @contextmanager
    def atomic(self) -> Iterator[None]:
        with self.session.begin_nested():
            yield

    def flush(self) -> None:
        self.session.flush()

    def _stamp(self, row):
        if row.tenant_id is None:
            row.tenant_id = self._tenant.tenant_id
        self._check(row)
        return row

    def _check(self, row):
        if row is not None and row.tenant_id != self._tenant.tenant_id:
            logger.error(
                "tenant_mismatch",
                extra={
                    "entity_type": type(row).__name__,
                    "entity_id": str(row.id),
                    "row_tenant_id": str(row.tenant_id),
                },
            )
            raise TenantMismatchError(
                expected_tenant_id=str(self._tenant.tenant_id),
                actual_tenant_id=str(row.tenant_id),
                entity_type=type(row).__name__,
            )
        return row

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def add_account(self, account: Account) -> Account:
        self.session.add(self._stamp(account))
        self.session.flush()
        return account

    def get_account(self, account_id: UUID) -> Account | None:
        return self._check(self.session.get(Account, account_id))

    def get_account_by_code(self, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(
                Account.tenant_id == self._tenant.tenant_id,
                Account.code == code,
            )
        ).scalar_one_or_none()

    def get_accounts(self, account_ids: set[UUID]) -> dict[UUID, Account]:
        if not account_ids:
            return {}
        rows = self.session.execute(
            select(Account).where(
                Account.tenant_id == self._tenant.tenant_id,
                Account.id.in_(list(account_ids)),
            )
        ).scalars()
        return {row.id: row for row in rows}

    def list_accounts(self, account_filter: AccountFilter | None = None) -> list[Account]:
        query = select(Account).where(Account.tenant_id == self._tenant.tenant_id)
        f = account_filter or AccountFilter()
        if f.account_type is not None:
            query = query.where(Account.account_type == f.account_type.value)
        if f.is_active is not None:
            query = query.where(Account.is_active == f.is_active)
        if f.parent_id is not None:
            query = query.where(Account.parent_id == f.parent_id)
        if f.code_prefix:
            query = query.where(Account.code.startswith(f.code_prefix, autoescape=True))
        return list(self.session.execute(query.order_by(Account.code)).scalars())

    def child_accounts(self, account_id: UUID) -> list[Account]:
        return self.list_accounts(AccountFilter(parent_id=account_id))

    def _line_exists(self, account_id: UUID, statuses: tuple[str, ...] | None) -> bool:
        query = (
            select(JournalLine.id)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalLine.tenant_id == self._tenant.tenant_id,
                JournalLine.account_id == account_id,
            )
        )
        if statuses is not None:
            query = query.where(JournalEntry.status.in_(statuses))
        return self.session.execute(query.limit(1)).first() is not None

    def account_has_posted_lines(self, account_id: UUID) -> bool:
        return self._line_exists(account_id, _BALANCE_STATUSES)

    def account_has_lines(self, account_id: UUID) -> bool:
        return self._line_exists(account_id, None)

    def delete_account(self, account: Account) -> None:
        self._check(account)
        self.session.delete(account)
        self.session.flush()

    # -------------------------------------------------------------------------
    # Journal entries
    # -------------------------------------------------------------------------

    def add_entry(self, entry: JournalEntry) -> JournalEntry:
        self._stamp(entry)
        for line in entry.lines:
            self._stamp(line)
        self.session.add(entry)
        self.session.flush()
        return entry

    def get_entry(self, entry_id: UUID, for_update: bool = False) -> JournalEntry | None:
        entry = self.session.get(
            JournalEntry,
            entry_id,
            with_for_update=True if for_update else None,
        )
        return self._check(entry)

    def delete_entry(self, entry: JournalEntry) -> None:
        self._check(entry)
        self.session.delete(entry)
        self.session.flush()

    def list_entries(self, entry_filter: EntryFilter | None = None) -> list[JournalEntry]:
        query = select(JournalEntry).where(JournalEntry.tenant_id == self._tenant.tenant_id)
        f = entry_filter or EntryFilter()
        if f.status is not None:
            query = query.where(JournalEntry.status == f.status.value)
        if f.date_from is not None:
            query = query.where(JournalEntry.entry_date >= f.date_from)
        if f.date_to is not None:
            query = query.where(JournalEntry.entry_date <= f.date_to)
        if f.account_id is not None:
            query = query.where(
                JournalEntry.id.in_(
                    select(JournalLine.journal_entry_id).where(
                        JournalLine.account_id == f.account_id
                    )
                )
            )
        query = query.order_by(
            JournalEntry.entry_date,
            JournalEntry.entry_number,
            JournalEntry.created_at,
        )
        return list(self.session.execute(query).scalars())

    def line_totals(self, as_of: date, start: date | None = None) -> dict[UUID, LineTotals]:
        debit_sum = func.sum(
            case(
                (JournalLine.debit_amount > 0, JournalLine.base_currency_amount),
                else_=Decimal("0"),
            )
        ).label("debit_total")

        credit_sum = func.sum(
            case(
                (JournalLine.credit_amount > 0, JournalLine.base_currency_amount),
                else_=Decimal("0"),
            )
        ).label("credit_total")

        query = (
            select(JournalLine.account_id, debit_sum, credit_sum)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalLine.tenant_id == self._tenant.tenant_id,
                JournalEntry.status.in_(_BALANCE_STATUSES),
                JournalEntry.entry_date <= as_of,
            )
            .group_by(JournalLine.account_id)
        )
        if start is not None:
            query = query.where(JournalEntry.entry_date >= start)

        return {
            row.account_id: LineTotals(
                account_id=row.account_id,
                debit_total=row.debit_total or Decimal("0"),
                credit_total=row.credit_total or Decimal("0"),
            )
            for row in self.session.execute(query)
        }

    def next_entry_number(self) -> int:
        return self._sequences.next_value(SequenceAllocator.JOURNAL_ENTRY)

    # -------------------------------------------------------------------------
    # Rates
    # -------------------------------------------------------------------------

    def exchange_rate_windows(self, pair: CurrencyPair, rate_type: str) -> list[ExchangeRate]:
        return list(
            self.session.execute(
                select(ExchangeRate)
                .where(
                    ExchangeRate.tenant_id == self._tenant.tenant_id,
                    ExchangeRate.from_currency == pair.from_currency,
                    ExchangeRate.to_currency == pair.to_currency,
                    ExchangeRate.rate_type == rate_type,
                )
                .order_by(ExchangeRate.valid_from)
            ).scalars()
        )

    def add_exchange_rate(self, rate: ExchangeRate) -> ExchangeRate:
        self.session.add(self._stamp(rate))
        self.session.flush()
        return rate

    def vat_rate_windows(self, country_code: str, rate_type: str) -> list[VatRate]:
        return list(
            self.session.execute(
                select(VatRate)
                .where(
                    VatRate.tenant_id == self._tenant.tenant_id,
                    VatRate.country_code == country_code,
                    VatRate.rate_type == rate_type,
                )
                .order_by(VatRate.valid_from)
            ).scalars()
        )

    def add_vat_rate(self, rate: VatRate) -> VatRate:
        self.session.add(self._stamp(rate))
        self.session.flush()
        return rate

    # -------------------------------------------------------------------------
    # Periods
    # -------------------------------------------------------------------------

    def add_period(self, period: FiscalPeriod) -> FiscalPeriod:
        self.session.add(self._stamp(period))
        self.session.flush()
        return period

    def get_period_by_code(self, period_code: str, for_update: bool = False) -> FiscalPeriod | None:
        query = select(FiscalPeriod).where(
            FiscalPeriod.tenant_id == self._tenant.tenant_id,
            FiscalPeriod.period_code == period_code,
        )
        if for_update:
            query = query.with_for_update()
        return self.session.execute(query).scalar_one_or_none()

    def period_for_date(self, effective_date: date) -> FiscalPeriod | None:
        return self.session.execute(
            select(FiscalPeriod).where(
                FiscalPeriod.tenant_id == self._tenant.tenant_id,
                FiscalPeriod.start_date <= effective_date,
                FiscalPeriod.end_date >= effective_date,
            )
        ).scalar_one_or_none()

    def overlapping_periods(self, start_date: date, end_date: date) -> list[FiscalPeriod]:
        return list(
            self.session.execute(
                select(FiscalPeriod).where(
                    FiscalPeriod.tenant_id == self._tenant.tenant_id,
                    FiscalPeriod.start_date <= end_date,
                    FiscalPeriod.end_date >= start_date,
                )
            ).scalars()
        )

    def list_periods(self) -> list[FiscalPeriod]:
        return list(
            self.session.execute(
                select(FiscalPeriod)
                .where(FiscalPeriod.tenant_id == self._tenant.tenant_id)
                .order_by(FiscalPeriod.start_date)
            ).scalars()
        )
