"""
Module: ledger_kernel.db.types
Responsibility: Annotated column types and the decimal helpers every monetary
    computation in the ledger goes through.  Centralizes precision, rounding,
    and currency validation so that models, domain code, and services agree.
Architecture position: Kernel > DB.  May be imported by anything in the
    kernel.  Imports only db.base and ledger_kernel.exceptions.

Invariants enforced:
    - No floats.  ``to_decimal`` refuses ``float`` input outright; amounts
      enter the ledger as ``Decimal``, ``int`` or numeric strings.
    - ISO 4217 enforcement via ``validate_currency``.
    - ``MONEY_DECIMAL_PLACES`` is the stored precision of every amount
      column; ``quantize_amount`` is the single place values are fitted
      to that precision.

Failure modes:
    - InvalidCurrencyError on an unknown currency code.
    - TypeError on float input to ``to_decimal``.
    - decimal.InvalidOperation on a non-numeric string.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import String

from ledger_kernel.db.base import ExactNumeric
from ledger_kernel.exceptions import InvalidCurrencyError

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, ExactNumeric(38, 9)]

# Exchange / VAT rate: 38 digits total, 18 decimal places
Rate = Annotated[Decimal, ExactNumeric(38, 18)]

# ISO 4217 currency code (e.g., "USD", "EUR")
CurrencyCode = Annotated[str, String(3)]

ShortCode = Annotated[str, String(50)]

LongText = Annotated[str, String(4000)]


MONEY_DECIMAL_PLACES = 9
RATE_DECIMAL_PLACES = 18
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """Coerce an amount to Decimal, refusing binary floats."""
    if isinstance(value, bool):
        raise TypeError("bool is not a monetary amount")
    if isinstance(value, float):
        raise TypeError(f"float amounts are not accepted: {value!r}")
    if isinstance(value, Decimal):
        return value
    return Decimal(value)


def round_money(
    value: Decimal,
    decimal_places: int = 2,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """Round a monetary value to ``decimal_places`` using ``rounding``."""
    exponent = Decimal(1).scaleb(-decimal_places)
    return value.quantize(exponent, rounding=rounding)


def quantize_amount(value: Decimal) -> Decimal:
    """Fit a computed amount to the stored precision (9 dp)."""
    return round_money(value, MONEY_DECIMAL_PLACES)


# ISO 4217 Currency Codes
ISO_4217_CURRENCIES: frozenset[str] = frozenset({
    "USD", "EUR", "GBP", "JPY", "CHF", "CAD", "AUD", "NZD",
    "AED", "AFN", "ALL", "AMD", "ANG", "AOA", "ARS", "AWG", "AZN",
    "BAM", "BBD", "BDT", "BGN", "BHD", "BIF", "BMD", "BND", "BOB", "BRL", "BSD", "BTN", "BWP", "BYN", "BZD",
    "CDF", "CLP", "CNY", "COP", "CRC", "CUP", "CVE", "CZK",
    "DJF", "DKK", "DOP", "DZD",
    "EGP", "ERN", "ETB",
    "FJD", "FKP",
    "GEL", "GHS", "GIP", "GMD", "GNF", "GTQ", "GYD",
    "HKD", "HNL", "HTG", "HUF",
    "IDR", "ILS", "INR", "IQD", "IRR", "ISK",
    "JMD", "JOD",
    "KES", "KGS", "KHR", "KMF", "KPW", "KRW", "KWD", "KYD", "KZT",
    "LAK", "LBP", "LKR", "LRD", "LSL", "LYD",
    "MAD", "MDL", "MGA", "MKD", "MMK", "MNT", "MOP", "MRU", "MUR", "MVR", "MWK", "MXN", "MYR", "MZN",
    "NAD", "NGN", "NIO", "NOK", "NPR",
    "OMR",
    "PAB", "PEN", "PGK", "PHP", "PKR", "PLN", "PYG",
    "QAR",
    "RON", "RSD", "RUB", "RWF",
    "SAR", "SBD", "SCR", "SDG", "SEK", "SGD", "SHP", "SLE", "SOS", "SRD", "SSP", "STN", "SYP", "SZL",
    "THB", "TJS", "TMT", "TND", "TOP", "TRY", "TTD", "TWD", "TZS",
    "UAH", "UGX", "UYU", "UZS",
    "VES", "VND", "VUV",
    "WST",
    "XAF", "XCD", "XOF", "XPF",
    "YER",
    "ZAR", "ZMW", "ZWL",
})


def validate_currency(currency: str) -> str:
    """
    Validate and normalize an ISO 4217 currency code.

    Returns:
        The uppercase, trimmed code.

    Raises:
        InvalidCurrencyError: If the code is not a known ISO 4217 code.
    """
    if not currency or not isinstance(currency, str):
        raise InvalidCurrencyError(str(currency))

    normalized = currency.upper().strip()
    if normalized not in ISO_4217_CURRENCIES:
        raise InvalidCurrencyError(currency)
    return normalized


def is_valid_currency(currency: str) -> bool:
    try:
        validate_currency(currency)
        return True
    except InvalidCurrencyError:
        return False
