"""
Money value object and decimal helper tests.

Verifies:
- Floats never enter as amounts
- Cross-currency arithmetic is refused
- Conversion keeps stored precision; rounding uses currency minor units
"""

from decimal import Decimal

import pytest

from ledger_kernel.db.types import quantize_amount, round_money, to_decimal, validate_currency
from ledger_kernel.domain.money import CurrencyPair, Money, minor_units
from ledger_kernel.exceptions import InvalidCurrencyError


class TestToDecimal:
    def test_float_rejected(self):
        with pytest.raises(TypeError):
            to_decimal(0.1)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_decimal(True)

    def test_string_and_int_accepted(self):
        assert to_decimal("100.25") == Decimal("100.25")
        assert to_decimal(7) == Decimal("7")

    def test_quantize_amount_nine_places(self):
        assert quantize_amount(Decimal("1.0000000005")) == Decimal("1.000000001")
        assert str(quantize_amount(Decimal("92"))) == "92.000000000"

    def test_round_money_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("-2.345")) == Decimal("-2.35")


class TestCurrencyValidation:
    def test_lowercase_normalized(self):
        assert validate_currency(" usd ") == "USD"

    @pytest.mark.parametrize("code", ["", "US", "XYZ", None])
    def test_invalid_codes_rejected(self, code):
        with pytest.raises(InvalidCurrencyError):
            validate_currency(code)

    def test_minor_units(self):
        assert minor_units("EUR") == 2
        assert minor_units("JPY") == 0
        assert minor_units("KWD") == 3


class TestMoney:
    def test_same_currency_addition(self):
        total = Money.of("10.50", "EUR") + Money.of("4.50", "EUR")
        assert total == Money.of("15.00", "EUR")

    def test_cross_currency_addition_refused(self):
        with pytest.raises(ValueError, match="different currencies"):
            Money.of("1", "EUR") + Money.of("1", "USD")

    def test_cross_currency_comparison_refused(self):
        with pytest.raises(ValueError):
            Money.of("1", "EUR") < Money.of("2", "USD")

    def test_convert_keeps_stored_precision(self):
        converted = Money.of("100.00", "USD").convert(Decimal("0.923456789012"), "EUR")
        assert converted.currency == "EUR"
        assert converted.amount == Decimal("92.345678901")

    def test_convert_requires_positive_rate(self):
        with pytest.raises(ValueError):
            Money.of("1", "USD").convert(Decimal("0"), "EUR")

    def test_round_uses_minor_units(self):
        assert Money.of("1234.5", "JPY").round().amount == Decimal("1235")
        assert Money.of("1.23456", "EUR").round().amount == Decimal("1.23")

    def test_negation_and_abs(self):
        money = Money.of("5", "EUR")
        assert (-money).is_negative
        assert abs(-money) == money

    def test_zero(self):
        assert Money.zero("EUR").is_zero


class TestCurrencyPair:
    def test_identity(self):
        assert CurrencyPair("eur", "EUR").is_identity

    def test_inverse_and_str(self):
        pair = CurrencyPair("USD", "EUR")
        assert pair.inverse() == CurrencyPair("EUR", "USD")
        assert str(pair) == "USD/EUR"

    def test_invalid_currency(self):
        with pytest.raises(InvalidCurrencyError):
            CurrencyPair("USD", "???")
