"""
Accounting period tests.

Verifies:
- Periods never overlap and codes are unique per tenant
- OPEN -> CLOSED only; closed periods never reopen
- Posting-date validation against periods
"""

from datetime import date

import pytest

from ledger_kernel.domain.dtos import PeriodStatus
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    InvalidStateError,
    PeriodAlreadyClosedError,
    PeriodNotFoundError,
    PeriodOverlapError,
    ValidationError,
)
from ledger_kernel.services.period_service import PeriodService


class TestPeriodCreation:
    def test_create(self, period_service, test_actor_id):
        period = period_service.create_period(
            "2024-01", "January 2024", date(2024, 1, 1), date(2024, 1, 31), test_actor_id
        )
        assert period.status == PeriodStatus.OPEN
        assert not period.is_closed

    def test_overlap_rejected(self, period_service, open_periods, test_actor_id):
        with pytest.raises(PeriodOverlapError) as exc_info:
            period_service.create_period(
                "2024-Q4", "Q4 2024", date(2024, 10, 1), date(2025, 1, 31), test_actor_id
            )
        assert exc_info.value.existing_period_code in {"FY2024", "FY2025"}

    def test_inverted_range_rejected(self, period_service, test_actor_id):
        with pytest.raises(ValidationError):
            period_service.create_period(
                "BAD", "Bad", date(2024, 2, 1), date(2024, 1, 1), test_actor_id
            )

    def test_single_day_period(self, period_service, test_actor_id):
        period = period_service.create_period(
            "ADJ", "Adjustments", date(2024, 12, 31), date(2024, 12, 31), test_actor_id
        )
        assert period_service.get_period_for_date(date(2024, 12, 31)).id == period.id

    def test_list_ordered_by_start(self, period_service, open_periods):
        assert [p.period_code for p in period_service.list_periods()] == ["FY2024", "FY2025"]


class TestPeriodClosing:
    def test_close(self, period_service, open_periods, deterministic_clock, test_actor_id):
        closed = period_service.close_period("FY2024", test_actor_id)
        assert closed.is_closed
        assert closed.closed_by_id == test_actor_id
        assert closed.closed_at == deterministic_clock.now()

    def test_close_twice(self, period_service, open_periods, test_actor_id):
        period_service.close_period("FY2024", test_actor_id)
        with pytest.raises(PeriodAlreadyClosedError):
            period_service.close_period("FY2024", test_actor_id)

    def test_close_unknown(self, period_service, test_actor_id):
        with pytest.raises(PeriodNotFoundError):
            period_service.close_period("NOPE", test_actor_id)

    def test_reopen_refused(self, period_service, open_periods, test_actor_id):
        period_service.close_period("FY2024", test_actor_id)
        with pytest.raises(InvalidStateError):
            period_service.reopen_period("FY2024", test_actor_id)
        assert period_service.get_period("FY2024").is_closed

    def test_reopen_open_period_is_noop(self, period_service, open_periods, test_actor_id):
        assert period_service.reopen_period("FY2025", test_actor_id).status == PeriodStatus.OPEN


class TestPostingDateValidation:
    def test_open_date(self, period_service, open_periods):
        assert period_service.validate_open(date(2024, 5, 5)).period_code == "FY2024"
        assert period_service.is_date_open(date(2024, 5, 5))

    def test_closed_date(self, period_service, open_periods, test_actor_id):
        period_service.close_period("FY2024", test_actor_id)
        assert not period_service.is_date_open(date(2024, 5, 5))
        with pytest.raises(ClosedPeriodError):
            period_service.validate_open(date(2024, 5, 5))

    def test_uncovered_date_required(self, period_service, open_periods):
        assert not period_service.is_date_open(date(2026, 1, 1))
        with pytest.raises(PeriodNotFoundError):
            period_service.validate_open(date(2026, 1, 1))

    def test_uncovered_date_optional(self, repository, deterministic_clock):
        lenient = PeriodService(repository, deterministic_clock, require_open_period=False)
        assert lenient.validate_open(date(2026, 1, 1)) is None
        assert lenient.is_date_open(date(2026, 1, 1))
