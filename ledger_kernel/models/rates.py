"""
Module: ledger_kernel.models.rates
Responsibility: ORM persistence for date-ranged rate records: currency
    exchange rates and VAT rates.
Architecture position: Kernel > Models.  May import from db/ and domain/.

Invariants enforced:
    - A window is ``[valid_from, valid_to)``; valid_to=None is open-ended.
    - Windows with the same key never overlap.  Checked by the resolvers at
      write time (domain/rate_windows.find_overlap); reads still tolerate
      overlapping legacy rows with a deterministic tie-break.
    - rate > 0 (CHECK constraint plus resolver validation).

Audit relevance:
    Posted journal lines copy the exchange rate they were priced at, so a
    later rate correction never rewrites history.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import CheckConstraint, Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import ExactNumeric, TenantScopedBase
from ledger_kernel.domain.dtos import RateWindow


class ExchangeRate(TenantScopedBase):
    """
    Directional conversion factor: ``from_amount * rate = to_amount``.

    Keyed by (from_currency, to_currency, rate_type).  The inverse pair is a
    separate row; nothing is triangulated.
    """

    __tablename__ = "exchange_rates"

    __table_args__ = (
        CheckConstraint("rate > 0", name="ck_exchange_rate_positive"),
        Index(
            "idx_rate_lookup",
            "tenant_id",
            "from_currency",
            "to_currency",
            "rate_type",
            "valid_from",
        ),
    )

    from_currency: Mapped[str] = mapped_column(String(3), nullable=False)

    to_currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # e.g. "spot", "average", "closing"
    rate_type: Mapped[str] = mapped_column(String(20), nullable=False, default="spot")

    rate: Mapped[Decimal] = mapped_column(ExactNumeric(38, 18), nullable=False)

    valid_from: Mapped[date] = mapped_column(Date, nullable=False)

    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Rate provider (e.g. "ECB", "manual")
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="manual")

    def __repr__(self) -> str:
        return (
            f"<ExchangeRate {self.from_currency}/{self.to_currency} = {self.rate} "
            f"[{self.valid_from}, {self.valid_to})>"
        )

    def to_window(self) -> RateWindow:
        return RateWindow(
            id=self.id,
            rate=self.rate,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            created_at=self.created_at,
        )


class VatRate(TenantScopedBase):
    """VAT percentage for a country and rate type (standard, reduced, ...)."""

    __tablename__ = "vat_rates"

    __table_args__ = (
        CheckConstraint("rate >= 0", name="ck_vat_rate_non_negative"),
        Index("idx_vat_lookup", "tenant_id", "country_code", "rate_type", "valid_from"),
    )

    # ISO 3166-1 alpha-2
    country_code: Mapped[str] = mapped_column(String(2), nullable=False)

    rate_type: Mapped[str] = mapped_column(String(20), nullable=False, default="standard")

    # Percentage, e.g. 21.000000000000000000
    rate: Mapped[Decimal] = mapped_column(ExactNumeric(38, 18), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    valid_from: Mapped[date] = mapped_column(Date, nullable=False)

    valid_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<VatRate {self.country_code}/{self.rate_type} = {self.rate}%>"

    def to_window(self) -> RateWindow:
        return RateWindow(
            id=self.id,
            rate=self.rate,
            valid_from=self.valid_from,
            valid_to=self.valid_to,
            created_at=self.created_at,
        )
