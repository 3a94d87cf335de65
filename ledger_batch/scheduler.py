"""
TenantBatchScheduler -- in-process interval scheduler for tenant batch jobs.

Contract:
    Every ``interval_seconds`` the background thread calls ``tick()``, which
    runs the job across all tenants through ``TenantBatchRunner``.
    ``start()`` / ``stop()`` / ``is_running`` control the thread; there is
    no module-level scheduler state.

Invariants enforced:
    - At most one background thread per scheduler instance.
    - Graceful shutdown: ``stop()`` signals the loop and waits for the
      current tick to finish.
"""

from __future__ import annotations

import threading

from ledger_kernel.logging_config import get_logger

from ledger_batch.runner import TenantBatchRunner, TenantJob
from ledger_batch.types import BatchRunSummary

logger = get_logger("batch.scheduler")


class TenantBatchScheduler:
    """Polling scheduler that repeats one tenant job on an interval.

    Non-goals:
        - NOT a distributed scheduler (no leader election).
        - No calendar schedules; fixed interval only.
    """

    def __init__(
        self,
        runner: TenantBatchRunner,
        job: TenantJob,
        job_name: str = "tenant_job",
        interval_seconds: float = 60.0,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._runner = runner
        self._job = job
        self._job_name = job_name
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self.last_summary: BatchRunSummary | None = None
        self.tick_count = 0

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> BatchRunSummary:
        """Run the job once across all tenants (public for testing)."""
        with self._lock:
            summary = self._runner.run(self._job, self._job_name)
            self.last_summary = summary
            self.tick_count += 1
        return summary

    def start(self) -> None:
        """Start the background thread.  A no-op if already running."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name=f"ledger-batch-{self._job_name}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={"job_name": self._job_name, "interval_seconds": self._interval},
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the thread to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("scheduler_stopped", extra={"job_name": self._job_name})

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("scheduler_tick_failed", extra={"job_name": self._job_name})
            self._stop_event.wait(timeout=self._interval)
