"""
Module: ledger_kernel.models.fiscal_period
Responsibility: ORM persistence for accounting periods -- controls which
    dates accept postings.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - No entry is posted (or voided) with a date inside a CLOSED period.
    - Periods never overlap within a tenant (PeriodService, at creation).
    - OPEN -> CLOSED only.  A closed period never reopens.

Failure modes:
    - ClosedPeriodError when posting into a closed period.
    - PeriodNotFoundError when no period covers the date and
      ``require_open_period`` is set.
    - PeriodAlreadyClosedError on a redundant close.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Date, DateTime, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TenantScopedBase, UUIDString
from ledger_kernel.domain.dtos import FiscalPeriodInfo, PeriodStatus


class FiscalPeriod(TenantScopedBase):
    """Accounting period with inclusive ``[start_date, end_date]`` bounds."""

    __tablename__ = "fiscal_periods"

    __table_args__ = (
        UniqueConstraint("tenant_id", "period_code", name="uq_period_tenant_code"),
        Index("idx_period_dates", "start_date", "end_date"),
    )

    # e.g. "2024-01", "2024-Q1", "FY2024"
    period_code: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[PeriodStatus] = mapped_column(
        String(10),
        default=PeriodStatus.OPEN.value,
        nullable=False,
    )

    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    closed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    def __repr__(self) -> str:
        return f"<FiscalPeriod {self.period_code} [{self.start_date}..{self.end_date}] {self.status}>"

    @property
    def is_closed(self) -> bool:
        return self.status == PeriodStatus.CLOSED

    def contains(self, effective_date: date) -> bool:
        return self.start_date <= effective_date <= self.end_date

    def to_dto(self) -> FiscalPeriodInfo:
        return FiscalPeriodInfo(
            id=self.id,
            period_code=self.period_code,
            name=self.name,
            start_date=self.start_date,
            end_date=self.end_date,
            status=PeriodStatus(self.status),
            closed_at=self.closed_at,
            closed_by_id=self.closed_by_id,
        )
