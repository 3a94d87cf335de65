"""
ledger_batch.types -- frozen result types for tenant batch runs.

No I/O.  Collections are tuples.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


class BatchRunStatus(str, Enum):
    """Outcome of one run across all tenants."""

    COMPLETED = "completed"  # Every tenant succeeded
    PARTIALLY_COMPLETED = "partially_completed"
    FAILED = "failed"  # No tenant succeeded


@dataclass(frozen=True)
class TenantRunResult:
    """Result of running a job for a single tenant."""

    tenant_id: UUID
    schema_name: str
    succeeded: bool
    result: Any = None
    error_code: str | None = None
    error_message: str | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class BatchRunSummary:
    job_name: str
    started_at: datetime
    completed_at: datetime
    results: tuple[TenantRunResult, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> tuple[TenantRunResult, ...]:
        return tuple(r for r in self.results if r.succeeded)

    @property
    def failed(self) -> tuple[TenantRunResult, ...]:
        return tuple(r for r in self.results if not r.succeeded)

    @property
    def status(self) -> BatchRunStatus:
        if not self.failed:
            return BatchRunStatus.COMPLETED
        if self.succeeded:
            return BatchRunStatus.PARTIALLY_COMPLETED
        return BatchRunStatus.FAILED

    def result_for(self, tenant_id: UUID) -> TenantRunResult | None:
        for result in self.results:
            if result.tenant_id == tenant_id:
                return result
        return None
