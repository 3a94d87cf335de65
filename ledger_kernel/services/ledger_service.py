"""
LedgerService -- transactional facade over the ledger kernel.

Responsibility:
    One method per ledger operation.  Each call resolves the tenant, opens
    a tenant-routed transaction, runs the kernel service or selector that
    owns the operation, commits, and returns frozen DTOs.

Architecture position:
    Kernel > Services -- the outermost kernel layer.  Owns the transaction
    boundary that every other service leaves to its caller.

Invariants enforced:
    - One call == one transaction.  A failure rolls back everything the
      call did; typed errors propagate unchanged.
    - The tenant comes only from the injected ``TenantSchemaRouter``.

Failure modes:
    - Whatever the underlying service raises (LedgerError subclasses).
    - KeyError from the router for an unknown tenant.
"""

from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Iterator
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.engine import session_scope
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountBalance,
    AccountInfo,
    DraftEntryRequest,
    EntryFilter,
    FiscalPeriodInfo,
    JournalEntryRecord,
    ResolvedRate,
    TrialBalance,
    VoidResult,
)
from ledger_kernel.domain.money import CurrencyPair
from ledger_kernel.repositories.sqlalchemy_repository import SqlAlchemyLedgerRepository
from ledger_kernel.selectors.balance_calculator import BalanceCalculator
from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.journal_entry_manager import JournalEntryManager
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.rate_resolver import ExchangeRateResolver
from ledger_kernel.tenancy import TenantContext, TenantSchemaRouter


class _Services:
    """The per-transaction service graph for one tenant."""

    def __init__(self, repository: SqlAlchemyLedgerRepository, clock: Clock, settings):
        self.repository = repository
        self.accounts = AccountRegistry(repository)
        self.rates = ExchangeRateResolver(repository)
        self.periods = PeriodService(
            repository,
            clock,
            require_open_period=getattr(settings, "require_open_period", True),
        )
        self.journal = JournalEntryManager(
            repository,
            rate_resolver=self.rates,
            period_service=self.periods,
            clock=clock,
            entry_number_prefix=getattr(settings, "entry_number_prefix", "JE-"),
            entry_number_width=getattr(settings, "entry_number_width", 5),
        )
        self.balances = BalanceCalculator(repository)


class LedgerService:
    """
    Per-call transactional entrypoint to the ledger.

    ``settings`` is any object with ``require_open_period``,
    ``entry_number_prefix`` and ``entry_number_width`` attributes (normally
    ``ledger_config.LedgerSettings``); missing attributes take the kernel
    defaults.
    """

    def __init__(
        self,
        router: TenantSchemaRouter,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
        settings=None,
    ):
        self._router = router
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._settings = settings

    def tenant(self, tenant_id: UUID) -> TenantContext:
        return self._router.resolve(tenant_id)

    @contextmanager
    def _services(self, tenant_id: UUID) -> Iterator[_Services]:
        tenant = self.tenant(tenant_id)
        with session_scope(tenant, self._session_factory) as session:
            repository = SqlAlchemyLedgerRepository(session, tenant)
            yield _Services(repository, self._clock, self._settings)

    # -------------------------------------------------------------------------
    # Journal
    # -------------------------------------------------------------------------

    def create_draft_entry(
        self, tenant_id: UUID, request: DraftEntryRequest, actor_id: UUID
    ) -> JournalEntryRecord:
        with self._services(tenant_id) as s:
            return s.journal.create_draft(request, actor_id)

    def post_entry(self, tenant_id: UUID, entry_id: UUID, actor_id: UUID) -> JournalEntryRecord:
        with self._services(tenant_id) as s:
            return s.journal.post(entry_id, actor_id)

    def void_entry(
        self, tenant_id: UUID, entry_id: UUID, reason: str, actor_id: UUID
    ) -> VoidResult:
        with self._services(tenant_id) as s:
            return s.journal.void(entry_id, reason, actor_id)

    def update_draft_entry(self, tenant_id: UUID, entry_id: UUID, actor_id: UUID, **changes) -> JournalEntryRecord:
        """Edit a DRAFT; ``changes`` are the keyword arguments of ``JournalEntryManager.update_draft``."""
        with self._services(tenant_id) as s:
            return s.journal.update_draft(entry_id, actor_id, **changes)

    def get_entry(self, tenant_id: UUID, entry_id: UUID) -> JournalEntryRecord:
        with self._services(tenant_id) as s:
            return s.journal.get_entry(entry_id)

    def list_entries(self, tenant_id: UUID, entry_filter: EntryFilter | None = None) -> list[JournalEntryRecord]:
        with self._services(tenant_id) as s:
            return s.journal.list_entries(entry_filter)

    # -------------------------------------------------------------------------
    # Balances
    # -------------------------------------------------------------------------

    def get_account_balance(self, tenant_id: UUID, account_id: UUID, as_of: date) -> AccountBalance:
        with self._services(tenant_id) as s:
            return s.balances.account_balance(account_id, as_of)

    def get_trial_balance(self, tenant_id: UUID, as_of: date) -> TrialBalance:
        with self._services(tenant_id) as s:
            return s.balances.trial_balance(as_of)

    # -------------------------------------------------------------------------
    # Reference data
    # -------------------------------------------------------------------------

    def create_account(
        self,
        tenant_id: UUID,
        code: str,
        name: str,
        account_type,
        actor_id: UUID,
        parent_id: UUID | None = None,
        description: str | None = None,
    ) -> AccountInfo:
        with self._services(tenant_id) as s:
            return s.accounts.create_account(
                code, name, account_type, actor_id,
                parent_id=parent_id, description=description,
            )

    def define_exchange_rate(
        self,
        tenant_id: UUID,
        pair: CurrencyPair,
        rate: Decimal | str,
        valid_from: date,
        actor_id: UUID,
        valid_to: date | None = None,
        close_open_window: bool = False,
    ) -> ResolvedRate:
        with self._services(tenant_id) as s:
            return s.rates.define_rate(
                pair, rate, valid_from, actor_id,
                valid_to=valid_to, close_open_window=close_open_window,
            )

    def open_period(
        self,
        tenant_id: UUID,
        period_code: str,
        name: str,
        start_date: date,
        end_date: date,
        actor_id: UUID,
    ) -> FiscalPeriodInfo:
        with self._services(tenant_id) as s:
            return s.periods.create_period(period_code, name, start_date, end_date, actor_id)

    def close_period(self, tenant_id: UUID, period_code: str, actor_id: UUID) -> FiscalPeriodInfo:
        with self._services(tenant_id) as s:
            return s.periods.close_period(period_code, actor_id)
