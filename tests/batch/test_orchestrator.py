"""
LedgerOrchestrator tests.

Settings drive the engine, the tenant router, entry numbering and the
scheduler interval.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_batch import BatchRunStatus
from ledger_batch.orchestrator import LedgerOrchestrator
from ledger_config import LedgerSettings, TenantDefinition
from ledger_kernel.db.engine import drop_tenant_schema, get_engine, reset_engine
from ledger_kernel.domain.dtos import AccountType, DraftEntryRequest, DraftLine
from ledger_kernel.services.account_registry import AccountRegistry

ACTOR_ID = uuid4()


@pytest.fixture
def settings(database_url):
    return LedgerSettings(
        database_url=database_url,
        entry_number_prefix="OR-",
        entry_number_width=4,
        scheduler_interval_seconds=15.0,
        tenants=(
            TenantDefinition(tenant_id=uuid4(), schema_name="tenant_orch_a", name="A"),
            TenantDefinition(tenant_id=uuid4(), schema_name="tenant_orch_b", base_currency="USD", name="B"),
        ),
    )


@pytest.fixture
def orchestrator(settings, deterministic_clock):
    orch = LedgerOrchestrator.from_settings(settings, clock=deterministic_clock, provision=True)
    yield orch
    for tenant in orch.router.all():
        drop_tenant_schema(tenant, get_engine())
    reset_engine()


class TestWiring:
    def test_router_from_settings(self, orchestrator, settings):
        contexts = orchestrator.router.all()
        assert [c.schema_name for c in contexts] == ["tenant_orch_a", "tenant_orch_b"]
        assert contexts[1].base_currency == "USD"
        assert orchestrator.router.resolve(settings.tenants[0].tenant_id) == contexts[0]

    def test_service_uses_configured_numbering(self, orchestrator, settings):
        tid = settings.tenants[0].tenant_id
        service = orchestrator.ledger_service()
        service.open_period(tid, "FY2024", "Fiscal Year 2024", date(2024, 1, 1), date(2024, 12, 31), ACTOR_ID)
        cash = service.create_account(tid, "1000", "Cash", AccountType.ASSET, ACTOR_ID)
        rent = service.create_account(tid, "6200", "Rent", AccountType.EXPENSE, ACTOR_ID)

        draft = service.create_draft_entry(
            tid,
            DraftEntryRequest(
                entry_date=date(2024, 2, 1),
                currency="EUR",
                description="February rent",
                lines=(DraftLine.debit(rent.id, "1200"), DraftLine.credit(cash.id, "1200")),
            ),
            ACTOR_ID,
        )
        service.post_entry(tid, draft.id, ACTOR_ID)
        result = service.void_entry(tid, draft.id, "duplicate", ACTOR_ID)

        assert result.reversal.reference == "OR-0001"
        assert service.get_trial_balance(tid, date(2024, 12, 31)).total_debits == Decimal("0")

    def test_runner_covers_configured_tenants(self, orchestrator):
        def job(repository):
            AccountRegistry(repository).create_account("1000", "Cash", AccountType.ASSET, ACTOR_ID)
            return repository.tenant.base_currency

        summary = orchestrator.create_runner().run(job, job_name="seed_cash")

        assert summary.status == BatchRunStatus.COMPLETED
        assert [r.result for r in summary.results] == ["EUR", "USD"]

    def test_scheduler_interval_from_settings(self, orchestrator):
        scheduler = orchestrator.create_scheduler(lambda repository: None, job_name="noop")
        assert scheduler._interval == 15.0
        assert not scheduler.is_running

        summary = scheduler.tick()
        assert len(summary.results) == 2
