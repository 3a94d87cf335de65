"""
PeriodService -- accounting period lifecycle and posting-date validation.

Responsibility:
    Creates and closes accounting periods and tells the journal whether a
    date may receive postings.

Architecture position:
    Kernel > Services -- imperative shell.  Called by JournalEntryManager on
    every post and void.

Invariants enforced:
    - Periods of one tenant never overlap (checked at creation).
    - OPEN -> CLOSED only.  Closed periods never reopen.
    - No posting into a CLOSED period.  With ``require_open_period`` a date
      no period covers is refused as well; without it, such dates are
      accepted.

Failure modes:
    - PeriodOverlapError, PeriodNotFoundError, ClosedPeriodError,
      PeriodAlreadyClosedError, InvalidStateError (reopen).
    Validation failures are logged at WARNING level.
"""

from datetime import date
from uuid import UUID

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import FiscalPeriodInfo, PeriodStatus
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    InvalidStateError,
    PeriodAlreadyClosedError,
    PeriodNotFoundError,
    PeriodOverlapError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.repositories.base import LedgerRepository
from ledger_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService[FiscalPeriod]):
    """
    Service for the accounting period lifecycle.

    Contract:
        Returns frozen ``FiscalPeriodInfo`` DTOs.  Lifecycle methods flush
        within the caller's transaction.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        clock: Clock | None = None,
        require_open_period: bool = True,
    ):
        super().__init__(repository)
        self._clock = clock or SystemClock()
        self.require_open_period = require_open_period

    def create_period(
        self,
        period_code: str,
        name: str,
        start_date: date,
        end_date: date,
        actor_id: UUID,
    ) -> FiscalPeriodInfo:
        """
        Create an OPEN period covering ``[start_date, end_date]`` inclusive.

        Raises:
            ValidationError: start_date after end_date, or blank code.
            PeriodOverlapError: Range overlaps an existing period.
        """
        if not (period_code or "").strip():
            raise ValidationError("Period code is required")
        if start_date > end_date:
            raise ValidationError(
                f"start_date ({start_date}) cannot be after end_date ({end_date})"
            )

        overlapping = self.repository.overlapping_periods(start_date, end_date)
        if overlapping:
            existing = overlapping[0]
            logger.warning(
                "period_overlap_rejected",
                extra={"period_code": period_code, "existing_period_code": existing.period_code},
            )
            raise PeriodOverlapError(
                new_period_code=period_code,
                existing_period_code=existing.period_code,
                overlap_start=str(max(start_date, existing.start_date)),
                overlap_end=str(min(end_date, existing.end_date)),
            )

        period = FiscalPeriod(
            tenant_id=self.tenant.tenant_id,
            period_code=period_code,
            name=name,
            start_date=start_date,
            end_date=end_date,
            status=PeriodStatus.OPEN.value,
            created_by_id=actor_id,
        )
        self.repository.add_period(period)

        logger.info(
            "period_created",
            extra={
                "period_code": period_code,
                "start_date": start_date,
                "end_date": end_date,
            },
        )
        return period.to_dto()

    def close_period(self, period_code: str, actor_id: UUID) -> FiscalPeriodInfo:
        """
        Close a period.  The row is locked so concurrent closes serialize.

        Raises:
            PeriodNotFoundError: Unknown code.
            PeriodAlreadyClosedError: Already closed.
        """
        period = self.repository.get_period_by_code(period_code, for_update=True)
        if period is None:
            raise PeriodNotFoundError(period_code)
        if period.is_closed:
            raise PeriodAlreadyClosedError(period_code)

        period.status = PeriodStatus.CLOSED.value
        period.closed_at = self._clock.now()
        period.closed_by_id = actor_id
        self.repository.flush()

        logger.info(
            "period_closed",
            extra={"period_code": period_code, "actor_id": str(actor_id)},
        )
        return period.to_dto()

    def reopen_period(self, period_code: str, actor_id: UUID) -> FiscalPeriodInfo:
        """
        Closed periods are final.  Always refused for a closed period; a
        no-op for one that is still open.
        """
        period = self.repository.get_period_by_code(period_code)
        if period is None:
            raise PeriodNotFoundError(period_code)
        if period.is_closed:
            logger.warning(
                "period_reopen_rejected",
                extra={"period_code": period_code, "actor_id": str(actor_id)},
            )
            raise InvalidStateError(
                period_code,
                PeriodStatus.CLOSED.value,
                "reopen",
                message=f"Period {period_code} is closed and cannot be reopened",
            )
        return period.to_dto()

    def get_period(self, period_code: str) -> FiscalPeriodInfo:
        period = self.repository.get_period_by_code(period_code)
        if period is None:
            raise PeriodNotFoundError(period_code)
        return period.to_dto()

    def get_period_for_date(self, effective_date: date) -> FiscalPeriodInfo | None:
        period = self.repository.period_for_date(effective_date)
        return period.to_dto() if period else None

    def list_periods(self) -> list[FiscalPeriodInfo]:
        return [p.to_dto() for p in self.repository.list_periods()]

    def is_date_open(self, effective_date: date) -> bool:
        period = self.repository.period_for_date(effective_date)
        if period is None:
            return not self.require_open_period
        return not period.is_closed

    def validate_open(self, effective_date: date) -> FiscalPeriodInfo | None:
        """
        Confirm ``effective_date`` may receive postings.

        Returns:
            The covering period, or None when no period covers the date and
            open periods are not required.

        Raises:
            ClosedPeriodError: The covering period is closed.
            PeriodNotFoundError: No period covers the date and
                ``require_open_period`` is set.
        """
        period = self.repository.period_for_date(effective_date)

        if period is None:
            if self.require_open_period:
                logger.warning(
                    "period_not_found",
                    extra={"effective_date": effective_date},
                )
                raise PeriodNotFoundError(f"date {effective_date.isoformat()}")
            return None

        if period.is_closed:
            logger.warning(
                "posting_to_closed_period_rejected",
                extra={"period_code": period.period_code, "effective_date": effective_date},
            )
            raise ClosedPeriodError(period.period_code, effective_date.isoformat())

        return period.to_dto()
