"""
TenantBatchRunner -- run one job across every tenant.

Contract:
    ``run(job)`` calls ``job(repository)`` once per tenant with a
    ``LedgerRepository`` bound to that tenant, inside that tenant's own
    ``session_scope``.  A tenant whose job raises is rolled back and
    recorded as failed; the run continues with the next tenant.

Architecture: ledger_batch.  Uses ledger_kernel.db.engine for transactions
    and ledger_kernel.repositories for the tenant-bound repository.

Invariants enforced:
    - One tenant == one transaction.  No tenant sees another's session.
    - A failure in one tenant never aborts the others.
    - All timestamps from the injected Clock.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable

from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.engine import session_scope
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.exceptions import LedgerError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.repositories.base import LedgerRepository
from ledger_kernel.repositories.sqlalchemy_repository import SqlAlchemyLedgerRepository
from ledger_kernel.tenancy import TenantContext

from ledger_batch.types import BatchRunSummary, TenantRunResult

logger = get_logger("batch.runner")

TenantJob = Callable[[LedgerRepository], Any]


class TenantBatchRunner:
    """Runs a job per tenant and collects the per-tenant outcome.

    Non-goals:
        - No retries.  A failed tenant is reported, not re-run.
        - No parallelism.  Tenants run one after another.
    """

    def __init__(
        self,
        tenants: Iterable[TenantContext] | Callable[[], Iterable[TenantContext]],
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
    ):
        self._tenants = tenants
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def tenants(self) -> tuple[TenantContext, ...]:
        source = self._tenants() if callable(self._tenants) else self._tenants
        return tuple(source)

    def run(self, job: TenantJob, job_name: str = "tenant_job") -> BatchRunSummary:
        started_at = self._clock.now()
        tenants = self.tenants()
        logger.info("batch_run_started", extra={"job_name": job_name, "tenant_count": len(tenants)})

        results = [self._run_one(tenant, job, job_name) for tenant in tenants]

        summary = BatchRunSummary(
            job_name=job_name,
            started_at=started_at,
            completed_at=self._clock.now(),
            results=tuple(results),
        )
        logger.info(
            "batch_run_completed",
            extra={
                "job_name": job_name,
                "status": summary.status.value,
                "succeeded": len(summary.succeeded),
                "failed": len(summary.failed),
            },
        )
        return summary

    def _run_one(self, tenant: TenantContext, job: TenantJob, job_name: str) -> TenantRunResult:
        start = time.monotonic()
        with LogContext.bind(tenant_id=str(tenant.tenant_id)):
            try:
                with session_scope(tenant, self._session_factory) as session:
                    result = job(SqlAlchemyLedgerRepository(session, tenant))
            except Exception as exc:
                # Per-tenant isolation: record and move on
                logger.exception(
                    "batch_tenant_failed",
                    extra={"job_name": job_name, "schema": tenant.schema_name},
                )
                return TenantRunResult(
                    tenant_id=tenant.tenant_id,
                    schema_name=tenant.schema_name,
                    succeeded=False,
                    error_code=exc.code if isinstance(exc, LedgerError) else type(exc).__name__,
                    error_message=str(exc),
                    duration_ms=int((time.monotonic() - start) * 1000),
                )

        return TenantRunResult(
            tenant_id=tenant.tenant_id,
            schema_name=tenant.schema_name,
            succeeded=True,
            result=result,
            duration_ms=int((time.monotonic() - start) * 1000),
        )
