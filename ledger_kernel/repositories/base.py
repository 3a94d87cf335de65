"""
Module: ledger_kernel.repositories.base
Responsibility: The persistence interface the ledger core is written
    against.  Services and selectors receive a ``LedgerRepository``; none of
    them reaches for a concrete implementation or its session.
Architecture position: Kernel > Repositories.  May import from models/,
    domain/ and tenancy.

Invariants enforced:
    - A repository is bound to exactly one ``TenantContext`` for its whole
      life.  Every read is filtered by that tenant; every row written is
      stamped with it.
    - Repositories flush but never commit.  ``atomic()`` scopes a savepoint
      so a failed multi-step operation leaves no partial writes behind.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from uuid import UUID

from ledger_kernel.domain.dtos import AccountFilter, EntryFilter, LineTotals
from ledger_kernel.domain.money import CurrencyPair
from ledger_kernel.models.account import Account
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.models.journal import JournalEntry
from ledger_kernel.models.rates import ExchangeRate, VatRate
from ledger_kernel.tenancy import TenantContext


class LedgerRepository(ABC):
    """Tenant-bound persistence operations for the ledger core."""

    @property
    @abstractmethod
    def tenant(self) -> TenantContext:
        """The tenant every operation is scoped to."""

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """All-or-nothing scope: writes inside it roll back together on error."""

    @abstractmethod
    def flush(self) -> None:
        ...

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    @abstractmethod
    def add_account(self, account: Account) -> Account:
        ...

    @abstractmethod
    def get_account(self, account_id: UUID) -> Account | None:
        ...

    @abstractmethod
    def get_account_by_code(self, code: str) -> Account | None:
        ...

    @abstractmethod
    def get_accounts(self, account_ids: set[UUID]) -> dict[UUID, Account]:
        """Accounts by id; unknown ids are simply absent from the result."""

    @abstractmethod
    def list_accounts(self, account_filter: AccountFilter | None = None) -> list[Account]:
        """Accounts matching ``account_filter``, ordered by code."""

    @abstractmethod
    def child_accounts(self, account_id: UUID) -> list[Account]:
        ...

    @abstractmethod
    def account_has_posted_lines(self, account_id: UUID) -> bool:
        """True if a POSTED or VOID entry has a line on the account."""

    @abstractmethod
    def account_has_lines(self, account_id: UUID) -> bool:
        """True if any entry, drafts included, has a line on the account."""

    @abstractmethod
    def delete_account(self, account: Account) -> None:
        ...

    # -------------------------------------------------------------------------
    # Journal entries
    # -------------------------------------------------------------------------

    @abstractmethod
    def add_entry(self, entry: JournalEntry) -> JournalEntry:
        ...

    @abstractmethod
    def get_entry(self, entry_id: UUID, for_update: bool = False) -> JournalEntry | None:
        """Load an entry; ``for_update`` takes a row lock (SELECT ... FOR UPDATE)."""

    @abstractmethod
    def delete_entry(self, entry: JournalEntry) -> None:
        ...

    @abstractmethod
    def list_entries(self, entry_filter: EntryFilter | None = None) -> list[JournalEntry]:
        """Entries matching ``entry_filter``, ordered by date then number."""

    @abstractmethod
    def line_totals(self, as_of: date, start: date | None = None) -> dict[UUID, LineTotals]:
        """
        Base-currency debit/credit totals per account.

        Covers lines of POSTED and VOID entries dated on or before
        ``as_of`` (and on or after ``start`` when given).
        """

    @abstractmethod
    def next_entry_number(self) -> int:
        """Allocate the next journal entry number from the locked counter."""

    # -------------------------------------------------------------------------
    # Rates
    # -------------------------------------------------------------------------

    @abstractmethod
    def exchange_rate_windows(self, pair: CurrencyPair, rate_type: str) -> list[ExchangeRate]:
        ...

    @abstractmethod
    def add_exchange_rate(self, rate: ExchangeRate) -> ExchangeRate:
        ...

    @abstractmethod
    def vat_rate_windows(self, country_code: str, rate_type: str) -> list[VatRate]:
        ...

    @abstractmethod
    def add_vat_rate(self, rate: VatRate) -> VatRate:
        ...

    # -------------------------------------------------------------------------
    # Periods
    # -------------------------------------------------------------------------

    @abstractmethod
    def add_period(self, period: FiscalPeriod) -> FiscalPeriod:
        ...

    @abstractmethod
    def get_period_by_code(self, period_code: str, for_update: bool = False) -> FiscalPeriod | None:
        ...

    @abstractmethod
    def period_for_date(self, effective_date: date) -> FiscalPeriod | None:
        ...

    @abstractmethod
    def overlapping_periods(self, start_date: date, end_date: date) -> list[FiscalPeriod]:
        ...

    @abstractmethod
    def list_periods(self) -> list[FiscalPeriod]:
        ...
