"""
Domain DTOs -- frozen data carriers crossing the service boundary.

Services and selectors return these instead of ORM instances so callers
never hold a live, lazily-loading row.  Everything here is immutable;
collections are tuples.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.db.types import ZERO, to_decimal

# =============================================================================
# Enums
# =============================================================================


class AccountType(str, Enum):
    """Classification of an account in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Side on which an account's balance is normally carried."""

    DEBIT = "debit"
    CREDIT = "credit"

    @classmethod
    def for_type(cls, account_type: AccountType | str) -> NormalBalance:
        if AccountType(account_type) in (AccountType.ASSET, AccountType.EXPENSE):
            return cls.DEBIT
        return cls.CREDIT


class EntryStatus(str, Enum):
    """Journal entry lifecycle.  DRAFT -> POSTED -> VOID; VOID is terminal."""

    DRAFT = "draft"
    POSTED = "posted"
    VOID = "void"


class LineSide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class PeriodStatus(str, Enum):
    """Accounting period status.  CLOSED never reopens."""

    OPEN = "open"
    CLOSED = "closed"


# Sentinel for "field not supplied" where None is a meaningful value.
class _Unset:
    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


def format_entry_number(entry_number: int, prefix: str = "JE-", width: int = 5) -> str:
    """Render an entry number for display, e.g. ``JE-00042``."""
    return f"{prefix}{entry_number:0{width}d}"


# =============================================================================
# Accounts
# =============================================================================


@dataclass(frozen=True)
class AccountInfo:
    id: UUID
    tenant_id: UUID
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    parent_id: UUID | None
    is_active: bool
    is_system: bool = False
    description: str | None = None

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT


@dataclass(frozen=True)
class AccountFilter:
    """Criteria for ``AccountRegistry.list_accounts``.  None means "any"."""

    account_type: AccountType | None = None
    is_active: bool | None = None
    parent_id: UUID | None = None
    code_prefix: str | None = None


# =============================================================================
# Journal entries
# =============================================================================


@dataclass(frozen=True)
class DraftLine:
    """Caller-supplied line of a draft entry, in the entry currency."""

    account_id: UUID
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    description: str | None = None

    @classmethod
    def debit(cls, account_id: UUID, amount: Decimal | str, description: str | None = None) -> DraftLine:
        return cls(account_id=account_id, debit_amount=to_decimal(amount), description=description)

    @classmethod
    def credit(cls, account_id: UUID, amount: Decimal | str, description: str | None = None) -> DraftLine:
        return cls(account_id=account_id, credit_amount=to_decimal(amount), description=description)


@dataclass(frozen=True)
class DraftEntryRequest:
    entry_date: date
    currency: str
    lines: tuple[DraftLine, ...]
    description: str = ""
    reference: str | None = None
    source_type: str | None = None
    source_id: UUID | None = None


@dataclass(frozen=True)
class JournalLineRecord:
    line_number: int
    account_id: UUID
    debit_amount: Decimal
    credit_amount: Decimal
    exchange_rate: Decimal | None
    base_currency_amount: Decimal | None
    description: str | None = None

    @property
    def side(self) -> LineSide:
        return LineSide.DEBIT if self.debit_amount > ZERO else LineSide.CREDIT

    @property
    def entry_currency_amount(self) -> Decimal:
        return self.debit_amount if self.debit_amount > ZERO else self.credit_amount

    @property
    def base_debit(self) -> Decimal:
        if self.side == LineSide.DEBIT and self.base_currency_amount is not None:
            return self.base_currency_amount
        return ZERO

    @property
    def base_credit(self) -> Decimal:
        if self.side == LineSide.CREDIT and self.base_currency_amount is not None:
            return self.base_currency_amount
        return ZERO


@dataclass(frozen=True)
class JournalEntryRecord:
    id: UUID
    tenant_id: UUID
    entry_number: int | None
    entry_date: date
    status: EntryStatus
    currency: str
    description: str
    lines: tuple[JournalLineRecord, ...]
    reference: str | None = None
    source_type: str | None = None
    source_id: UUID | None = None
    reversal_of_entry_id: UUID | None = None
    reversed_by_entry_id: UUID | None = None
    posted_at: datetime | None = None
    posted_by_id: UUID | None = None
    voided_at: datetime | None = None
    voided_by_id: UUID | None = None
    void_reason: str | None = None

    @property
    def display_number(self) -> str | None:
        if self.entry_number is None:
            return None
        return format_entry_number(self.entry_number)

    @property
    def total_base_debits(self) -> Decimal:
        return sum((line.base_debit for line in self.lines), ZERO)

    @property
    def total_base_credits(self) -> Decimal:
        return sum((line.base_credit for line in self.lines), ZERO)


@dataclass(frozen=True)
class EntryFilter:
    status: EntryStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    account_id: UUID | None = None


@dataclass(frozen=True)
class VoidResult:
    original: JournalEntryRecord
    reversal: JournalEntryRecord


# =============================================================================
# Rates
# =============================================================================


@dataclass(frozen=True)
class RateWindow:
    """A date-ranged rate record.  Window is ``[valid_from, valid_to)``."""

    id: UUID
    rate: Decimal
    valid_from: date
    valid_to: date | None
    created_at: datetime | None = None

    def contains(self, as_of: date) -> bool:
        if as_of < self.valid_from:
            return False
        return self.valid_to is None or as_of < self.valid_to


@dataclass(frozen=True)
class ResolvedRate:
    rate: Decimal
    rate_id: UUID | None
    valid_from: date | None
    valid_to: date | None

    @classmethod
    def identity(cls) -> ResolvedRate:
        return cls(rate=Decimal("1"), rate_id=None, valid_from=None, valid_to=None)


# =============================================================================
# Periods
# =============================================================================


@dataclass(frozen=True)
class FiscalPeriodInfo:
    id: UUID
    period_code: str
    name: str
    start_date: date
    end_date: date
    status: PeriodStatus
    closed_at: datetime | None = None
    closed_by_id: UUID | None = None

    @property
    def is_closed(self) -> bool:
        return self.status == PeriodStatus.CLOSED


# =============================================================================
# Balances
# =============================================================================


@dataclass(frozen=True)
class LineTotals:
    """Raw base-currency debit/credit totals for one account."""

    account_id: UUID
    debit_total: Decimal = ZERO
    credit_total: Decimal = ZERO


@dataclass(frozen=True)
class AccountBalance:
    """
    Balance of one account as of a date, in the tenant base currency.

    ``own_balance`` covers the account's own lines; ``balance`` adds every
    descendant.  Both are signed by this account's normal side, so a
    positive number is a "normal" balance.
    """

    account_id: UUID
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    as_of: date
    currency: str
    debit_total: Decimal
    credit_total: Decimal
    own_balance: Decimal
    balance: Decimal


@dataclass(frozen=True)
class TrialBalanceRow:
    account_id: UUID
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    parent_id: UUID | None
    debit_total: Decimal
    credit_total: Decimal
    own_balance: Decimal
    rollup_balance: Decimal

    @property
    def debit_balance(self) -> Decimal:
        net = self.debit_total - self.credit_total
        return net if net > ZERO else ZERO

    @property
    def credit_balance(self) -> Decimal:
        net = self.credit_total - self.debit_total
        return net if net > ZERO else ZERO


@dataclass(frozen=True)
class TrialBalance:
    tenant_id: UUID
    as_of: date
    currency: str
    rows: tuple[TrialBalanceRow, ...] = field(default_factory=tuple)
    total_debits: Decimal = ZERO
    total_credits: Decimal = ZERO

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits

    def row_for(self, account_id: UUID) -> TrialBalanceRow | None:
        for row in self.rows:
            if row.account_id == account_id:
                return row
        return None


@dataclass(frozen=True)
class AccountActivity:
    """Movement on one account within ``[start, end]`` (not cumulative)."""

    account_id: UUID
    code: str
    name: str
    account_type: AccountType
    start: date
    end: date
    debit_total: Decimal
    credit_total: Decimal
    net_activity: Decimal
