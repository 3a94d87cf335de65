"""
Money -- Decimal-backed monetary values and currency pairs.

Responsibility:
    The Money/Decimal primitive every ledger computation is built on.
    ``Money`` pairs a Decimal amount with an ISO 4217 code and refuses to
    mix currencies; ``CurrencyPair`` names a conversion direction.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Amounts are Decimal; floats are rejected (``to_decimal``).
    - Currency codes are validated ISO 4217 codes.
    - Arithmetic across currencies raises ValueError; conversion is always
      explicit via ``Money.convert``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from ledger_kernel.db.types import (
    ZERO,
    quantize_amount,
    round_money,
    to_decimal,
    validate_currency,
)

# Minor-unit exponents that differ from the ISO default of 2.
_MINOR_UNITS: dict[str, int] = {
    "BHD": 3, "IQD": 3, "JOD": 3, "KWD": 3, "LYD": 3, "OMR": 3, "TND": 3,
    "BIF": 0, "CLP": 0, "DJF": 0, "GNF": 0, "ISK": 0, "JPY": 0, "KMF": 0,
    "KRW": 0, "PYG": 0, "RWF": 0, "UGX": 0, "VND": 0, "VUV": 0, "XAF": 0,
    "XOF": 0, "XPF": 0,
}


def minor_units(currency: str) -> int:
    """Number of decimal places conventionally displayed for ``currency``."""
    return _MINOR_UNITS.get(validate_currency(currency), 2)


@dataclass(frozen=True, slots=True)
class CurrencyPair:
    """Conversion direction: one unit of ``from_currency`` in ``to_currency``."""

    from_currency: str
    to_currency: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "from_currency", validate_currency(self.from_currency))
        object.__setattr__(self, "to_currency", validate_currency(self.to_currency))

    @property
    def is_identity(self) -> bool:
        return self.from_currency == self.to_currency

    def inverse(self) -> CurrencyPair:
        return CurrencyPair(self.to_currency, self.from_currency)

    def __str__(self) -> str:
        return f"{self.from_currency}/{self.to_currency}"


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Immutable, hashable.  ``amount`` is always Decimal, ``currency``
        always a validated ISO 4217 code.  Addition and subtraction require
        the same currency.  Does NOT auto-round.
    """

    amount: Decimal
    currency: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "currency", validate_currency(self.currency))

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str) -> Money:
        return cls(amount=to_decimal(amount), currency=currency)

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(amount=ZERO, currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == ZERO

    @property
    def is_positive(self) -> bool:
        return self.amount > ZERO

    @property
    def is_negative(self) -> bool:
        return self.amount < ZERO

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Round to the currency's minor units."""
        return Money(round_money(self.amount, minor_units(self.currency), rounding), self.currency)

    def convert(self, rate: Decimal, to_currency: str) -> Money:
        """Convert at ``rate`` (units of ``to_currency`` per unit of self).

        The product is fitted to stored precision, not to minor units, so
        that converting every line of an entry at one rate preserves the
        entry's balance exactly.
        """
        rate = to_decimal(rate)
        if rate <= ZERO:
            raise ValueError(f"Conversion rate must be positive, got {rate}")
        return Money(quantize_amount(self.amount * rate), to_currency)

    def _check_same_currency(self, other: Money, op: str) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {op} Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_same_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_same_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.amount, self.currency)

    def __abs__(self) -> Money:
        return Money(abs(self.amount), self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_same_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_same_currency(other, "compare")
        return self.amount <= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"
