"""
Rate resolvers -- exchange rates and VAT rates by validity window.

Responsibility:
    ``ExchangeRateResolver`` answers "what is one unit of X worth in Y on
    date D" for the journal, and defines new rate windows.
    ``VatRateResolver`` does the same for (country, VAT rate type).

Architecture position:
    Kernel > Services.  Window arithmetic lives in domain/rate_windows.py;
    this module adds persistence and logging.

Invariants enforced:
    - Same-currency pairs resolve to exactly 1 without a lookup.
    - A missing window is NoRateError.  There is no default rate.
    - New windows never overlap an existing window of the same key.
      ``close_open_window=True`` ends a preceding open-ended window at the
      new window's start instead of rejecting it.
    - Overlapping legacy rows are still resolved deterministically
      (narrowest window, then latest valid_from, then latest created).

Failure modes:
    - NoRateError (integrity) -- logged at ERROR.
    - InvalidRateError, RateWindowOverlapError (validation).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.db.types import ZERO, to_decimal
from ledger_kernel.domain.dtos import RateWindow, ResolvedRate
from ledger_kernel.domain.money import CurrencyPair, Money
from ledger_kernel.domain.rate_windows import find_overlap, select_window, validate_window
from ledger_kernel.exceptions import InvalidRateError, NoRateError, RateWindowOverlapError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.rates import ExchangeRate, VatRate
from ledger_kernel.services.base import BaseService

logger = get_logger("services.rates")

DEFAULT_RATE_TYPE = "spot"
DEFAULT_VAT_RATE_TYPE = "standard"


def _resolved(window: RateWindow) -> ResolvedRate:
    return ResolvedRate(
        rate=window.rate,
        rate_id=window.id,
        valid_from=window.valid_from,
        valid_to=window.valid_to,
    )


def _prepare_window(rows, rate_key: str, valid_from: date, valid_to: date | None, close_open_window: bool):
    """
    Check a proposed window against existing rows; close an open one if asked.

    Returns the row that was closed, if any.
    """
    validate_window(valid_from, valid_to)

    closed = None
    if close_open_window:
        for row in rows:
            if row.valid_to is None and row.valid_from < valid_from:
                row.valid_to = valid_from
                closed = row
                break

    clash = find_overlap((row.to_window() for row in rows), valid_from, valid_to)
    if clash is not None:
        if closed is not None:
            closed.valid_to = None
        logger.warning(
            "rate_window_overlap",
            extra={"rate_key": rate_key, "existing_rate_id": str(clash.id)},
        )
        raise RateWindowOverlapError(
            rate_key,
            str(clash.id),
            valid_from.isoformat(),
            valid_to.isoformat() if valid_to else None,
        )
    return closed


class ExchangeRateResolver(BaseService[ExchangeRate]):
    """
    Exchange rates for one tenant.

    Contract:
        ``resolve`` returns a ``ResolvedRate`` or raises NoRateError.
        ``define_rate`` persists a new window and returns its resolution.
    """

    def define_rate(
        self,
        pair: CurrencyPair,
        rate: Decimal | str,
        valid_from: date,
        actor_id: UUID,
        valid_to: date | None = None,
        rate_type: str = DEFAULT_RATE_TYPE,
        source: str = "manual",
        close_open_window: bool = False,
    ) -> ResolvedRate:
        """
        Record ``rate`` for ``pair`` over ``[valid_from, valid_to)``.

        Raises:
            InvalidRateError: Non-positive rate, identity pair or empty window.
            RateWindowOverlapError: Window overlaps an existing one.
        """
        rate = to_decimal(rate)
        if rate <= ZERO:
            raise InvalidRateError(f"Exchange rate must be positive, got {rate}")
        if pair.is_identity:
            raise InvalidRateError(f"No rate can be defined for identity pair {pair}")

        rows = self.repository.exchange_rate_windows(pair, rate_type)
        rate_key = f"{pair}:{rate_type}"
        closed = _prepare_window(rows, rate_key, valid_from, valid_to, close_open_window)

        row = ExchangeRate(
            tenant_id=self.tenant.tenant_id,
            from_currency=pair.from_currency,
            to_currency=pair.to_currency,
            rate_type=rate_type,
            rate=rate,
            valid_from=valid_from,
            valid_to=valid_to,
            source=source,
            created_by_id=actor_id,
        )
        if closed is not None:
            closed.updated_by_id = actor_id
        self.repository.add_exchange_rate(row)

        logger.info(
            "exchange_rate_defined",
            extra={
                "rate_key": rate_key,
                "rate": rate,
                "valid_from": valid_from,
                "valid_to": valid_to,
                "closed_rate_id": str(closed.id) if closed else None,
            },
        )
        return ResolvedRate(rate=rate, rate_id=row.id, valid_from=valid_from, valid_to=valid_to)

    def list_rates(self, pair: CurrencyPair, rate_type: str = DEFAULT_RATE_TYPE) -> list[RateWindow]:
        return [row.to_window() for row in self.repository.exchange_rate_windows(pair, rate_type)]

    def resolve(
        self,
        pair: CurrencyPair,
        as_of: date,
        rate_type: str = DEFAULT_RATE_TYPE,
    ) -> ResolvedRate:
        """
        Rate in force for ``pair`` on ``as_of``.

        Raises:
            NoRateError: No window covers ``as_of``.
        """
        if pair.is_identity:
            return ResolvedRate.identity()

        windows = self.list_rates(pair, rate_type)
        window = select_window(windows, as_of)
        if window is None:
            rate_key = f"{pair}:{rate_type}"
            logger.error(
                "exchange_rate_missing",
                extra={"rate_key": rate_key, "as_of": as_of},
            )
            raise NoRateError(rate_key, as_of.isoformat())

        covering = sum(1 for w in windows if w.contains(as_of))
        if covering > 1:
            logger.warning(
                "exchange_rate_windows_overlap",
                extra={"pair": str(pair), "as_of": as_of, "candidates": covering},
            )
        return _resolved(window)

    def convert(
        self,
        amount: Decimal | str,
        pair: CurrencyPair,
        as_of: date,
        rate_type: str = DEFAULT_RATE_TYPE,
    ) -> Decimal:
        """``amount`` of ``pair.from_currency`` in ``pair.to_currency`` (9 dp)."""
        resolved = self.resolve(pair, as_of, rate_type)
        return Money(amount, pair.from_currency).convert(resolved.rate, pair.to_currency).amount


class VatRateResolver(BaseService[VatRate]):
    """VAT rates keyed by (country_code, rate_type), same window rules."""

    def define_rate(
        self,
        country_code: str,
        rate: Decimal | str,
        valid_from: date,
        actor_id: UUID,
        valid_to: date | None = None,
        rate_type: str = DEFAULT_VAT_RATE_TYPE,
        name: str = "",
        close_open_window: bool = False,
    ) -> ResolvedRate:
        rate = to_decimal(rate)
        if rate < ZERO:
            raise InvalidRateError(f"VAT rate cannot be negative, got {rate}")
        country_code = (country_code or "").upper().strip()
        if len(country_code) != 2 or not country_code.isalpha():
            raise InvalidRateError(f"Invalid country code: {country_code!r}")

        rows = self.repository.vat_rate_windows(country_code, rate_type)
        rate_key = f"{country_code}:{rate_type}"
        closed = _prepare_window(rows, rate_key, valid_from, valid_to, close_open_window)

        row = VatRate(
            tenant_id=self.tenant.tenant_id,
            country_code=country_code,
            rate_type=rate_type,
            rate=rate,
            name=name,
            valid_from=valid_from,
            valid_to=valid_to,
            created_by_id=actor_id,
        )
        if closed is not None:
            closed.updated_by_id = actor_id
        self.repository.add_vat_rate(row)

        logger.info(
            "vat_rate_defined",
            extra={"rate_key": rate_key, "rate": rate, "valid_from": valid_from, "valid_to": valid_to},
        )
        return ResolvedRate(rate=rate, rate_id=row.id, valid_from=valid_from, valid_to=valid_to)

    def resolve(
        self,
        country_code: str,
        as_of: date,
        rate_type: str = DEFAULT_VAT_RATE_TYPE,
    ) -> ResolvedRate:
        country_code = (country_code or "").upper().strip()
        windows = [row.to_window() for row in self.repository.vat_rate_windows(country_code, rate_type)]
        window = select_window(windows, as_of)
        if window is None:
            rate_key = f"{country_code}:{rate_type}"
            logger.error("vat_rate_missing", extra={"rate_key": rate_key, "as_of": as_of})
            raise NoRateError(rate_key, as_of.isoformat())
        return _resolved(window)
