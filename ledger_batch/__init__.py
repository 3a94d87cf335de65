"""
ledger_batch -- per-tenant batch work over the ledger.

``TenantBatchRunner`` runs one job against every tenant, each in its own
transaction; ``TenantBatchScheduler`` repeats that on an interval in a
background thread.  ``LedgerOrchestrator`` builds both, and the ledger
service, from ``LedgerSettings``.
"""

from ledger_batch.orchestrator import LedgerOrchestrator
from ledger_batch.runner import TenantBatchRunner
from ledger_batch.scheduler import TenantBatchScheduler
from ledger_batch.types import BatchRunStatus, BatchRunSummary, TenantRunResult

__all__ = [
    "BatchRunStatus",
    "BatchRunSummary",
    "LedgerOrchestrator",
    "TenantBatchRunner",
    "TenantBatchScheduler",
    "TenantRunResult",
]
