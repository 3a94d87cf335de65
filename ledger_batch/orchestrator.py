"""
LedgerOrchestrator -- composition root for a running ledger process.

Contract:
    ``from_settings(settings)`` configures logging, initializes the engine,
    registers the immutability listeners and builds the tenant router from
    ``LedgerSettings``.  ``ledger_service()``, ``create_runner()`` and
    ``create_scheduler()`` hand out components that share the same session
    factory, router and clock.

Architecture: ledger_batch (top-level).  The kernel never imports
    ledger_config; settings reach it only through this module.

Invariants enforced:
    - One Clock for every component built here.
    - Tenants come only from the configured router.
"""

from __future__ import annotations

from ledger_config.schema import LedgerSettings
from ledger_kernel.db.engine import (
    get_session_factory,
    init_engine_from_url,
    provision_tenant_schema,
)
from ledger_kernel.db.immutability import register_immutability_listeners
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import configure_logging, get_logger
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.tenancy import StaticTenantRouter

from ledger_batch.runner import TenantBatchRunner, TenantJob
from ledger_batch.scheduler import TenantBatchScheduler

logger = get_logger("batch.orchestrator")


class LedgerOrchestrator:
    """Wires the ledger service and batch components from settings.

    Non-goals:
        - Does NOT start the scheduler -- caller decides.
        - Does NOT migrate existing schemas; ``provision_tenants`` only
          creates what is missing.
    """

    def __init__(self, settings: LedgerSettings, clock: Clock | None = None):
        self._settings = settings
        self._clock = clock or SystemClock()
        self._router = StaticTenantRouter(settings.tenant_contexts())
        self._engine = None

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_settings(
        cls,
        settings: LedgerSettings,
        clock: Clock | None = None,
        provision: bool = False,
    ) -> LedgerOrchestrator:
        """Create a fully wired orchestrator.

        Args:
            settings: Loaded settings (``ledger_config.get_active_settings()``).
            clock: Optional clock for deterministic testing.
            provision: Create each configured tenant's schema and tables.
        """
        configure_logging(level=settings.log_level)
        orchestrator = cls(settings, clock)
        orchestrator._engine = init_engine_from_url(settings.database_url)
        register_immutability_listeners()
        if provision:
            orchestrator.provision_tenants()

        logger.info(
            "orchestrator_ready",
            extra={
                "config_checksum": settings.checksum,
                "tenant_count": len(orchestrator.router.all()),
            },
        )
        return orchestrator

    def provision_tenants(self) -> None:
        for tenant in self._router.all():
            provision_tenant_schema(tenant, self._engine)

    # -------------------------------------------------------------------------
    # Components
    # -------------------------------------------------------------------------

    def ledger_service(self) -> LedgerService:
        return LedgerService(
            self._router,
            get_session_factory(),
            clock=self._clock,
            settings=self._settings,
        )

    def create_runner(self) -> TenantBatchRunner:
        return TenantBatchRunner(self._router.all, get_session_factory(), self._clock)

    def create_scheduler(self, job: TenantJob, job_name: str = "tenant_job") -> TenantBatchScheduler:
        """Scheduler for ``job`` at the configured interval."""
        return TenantBatchScheduler(
            self.create_runner(),
            job,
            job_name=job_name,
            interval_seconds=self._settings.scheduler_interval_seconds,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def settings(self) -> LedgerSettings:
        return self._settings

    @property
    def router(self) -> StaticTenantRouter:
        return self._router

    @property
    def clock(self) -> Clock:
        return self._clock
