"""
Posting arithmetic tests (pure, no database).

Verifies:
- Line shape rules: one non-zero, non-negative side per line
- Pricing at a rate and the exact balance check
- Reversal lines mirror the originals
- Normal-side signing
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import DraftLine, LineSide, NormalBalance
from ledger_kernel.domain.posting import (
    ensure_balanced,
    price_lines,
    reverse_lines,
    signed_balance,
    validate_line_shapes,
)
from ledger_kernel.exceptions import InvalidLineError, UnbalancedEntryError

CASH = uuid4()
SUPPLIES = uuid4()


class TestLineShapes:
    def test_empty_entry_rejected(self):
        with pytest.raises(InvalidLineError):
            validate_line_shapes([])

    def test_both_sides_rejected(self):
        line = DraftLine(CASH, Decimal("1"), Decimal("1"))
        with pytest.raises(InvalidLineError) as exc_info:
            validate_line_shapes([line])
        assert exc_info.value.line_number == 1

    def test_zero_line_rejected(self):
        with pytest.raises(InvalidLineError):
            validate_line_shapes([DraftLine.debit(CASH, "10"), DraftLine(SUPPLIES)])

    def test_negative_rejected(self):
        with pytest.raises(InvalidLineError) as exc_info:
            validate_line_shapes([DraftLine.debit(CASH, "10"), DraftLine.credit(SUPPLIES, "-10")])
        assert exc_info.value.line_number == 2

    def test_single_sided_lines_accepted(self):
        validate_line_shapes([DraftLine.debit(SUPPLIES, "100"), DraftLine.credit(CASH, "100")])


class TestPricingAndBalance:
    def test_identity_rate(self):
        priced = price_lines(
            [DraftLine.debit(SUPPLIES, "100.00"), DraftLine.credit(CASH, "100.00")],
            Decimal("1"),
        )
        assert [p.base_currency_amount for p in priced] == [Decimal("100.00"), Decimal("100.00")]
        assert ensure_balanced(priced, "EUR") == Decimal("100")

    def test_foreign_rate(self):
        priced = price_lines(
            [DraftLine.debit(SUPPLIES, "100"), DraftLine.credit(CASH, "100")],
            Decimal("0.92"),
        )
        assert priced[0].exchange_rate == Decimal("0.92")
        assert priced[0].base_debit == Decimal("92")
        assert priced[1].base_credit == Decimal("92")

    def test_unbalanced_rejected(self):
        priced = price_lines(
            [DraftLine.debit(SUPPLIES, "100.00"), DraftLine.credit(CASH, "99.99")],
            Decimal("1"),
        )
        with pytest.raises(UnbalancedEntryError) as exc_info:
            ensure_balanced(priced, "EUR")
        assert exc_info.value.currency == "EUR"
        assert Decimal(exc_info.value.debits) == Decimal("100.00")
        assert Decimal(exc_info.value.credits) == Decimal("99.99")

    def test_no_tolerance(self):
        priced = price_lines(
            [DraftLine.debit(SUPPLIES, "100.000000001"), DraftLine.credit(CASH, "100")],
            Decimal("1"),
        )
        with pytest.raises(UnbalancedEntryError):
            ensure_balanced(priced, "EUR")

    def test_line_numbers_assigned_in_order(self):
        priced = price_lines(
            [DraftLine.debit(SUPPLIES, "1"), DraftLine.debit(SUPPLIES, "1"), DraftLine.credit(CASH, "2")],
            Decimal("1"),
        )
        assert [p.line_number for p in priced] == [1, 2, 3]

    def test_rounding_residual_absorbed_by_short_side(self):
        lines = [
            DraftLine.debit(SUPPLIES, "33.33"),
            DraftLine.debit(SUPPLIES, "33.33"),
            DraftLine.debit(SUPPLIES, "33.34"),
            DraftLine.credit(CASH, "100.00"),
        ]
        priced = price_lines(lines, Decimal("0.9234567891"))

        assert ensure_balanced(priced, "EUR") == Decimal("92.345678911")
        assert [p.base_currency_amount for p in priced[:3]] == [
            Decimal("30.778814781"),
            Decimal("30.778814781"),
            Decimal("30.788049349"),
        ]
        assert priced[3].base_currency_amount == Decimal("92.345678911")

    def test_residual_goes_to_largest_line(self):
        lines = [
            DraftLine.debit(SUPPLIES, "40.00"),
            DraftLine.debit(SUPPLIES, "60.00"),
            DraftLine.credit(CASH, "33.33"),
            DraftLine.credit(CASH, "33.34"),
            DraftLine.credit(CASH, "33.33"),
        ]
        priced = price_lines(lines, Decimal("0.9234567891"))

        assert ensure_balanced(priced, "EUR") == Decimal("92.345678911")
        assert priced[0].base_currency_amount == Decimal("36.938271564")
        assert priced[1].base_currency_amount == Decimal("55.407407347")


class TestReverseLines:
    def test_sides_swapped_amounts_kept(self):
        priced = price_lines(
            [DraftLine.debit(SUPPLIES, "100"), DraftLine.credit(CASH, "100")],
            Decimal("0.92"),
        )
        reversed_lines = reverse_lines(priced)

        assert reversed_lines[0].account_id == SUPPLIES
        assert reversed_lines[0].side == LineSide.CREDIT
        assert reversed_lines[0].credit_amount == Decimal("100")
        assert reversed_lines[0].exchange_rate == Decimal("0.92")
        assert reversed_lines[0].base_currency_amount == priced[0].base_currency_amount
        assert reversed_lines[1].side == LineSide.DEBIT
        assert ensure_balanced(reversed_lines, "EUR") == Decimal("92")

    def test_ordered_by_line_number(self):
        priced = price_lines(
            [DraftLine.debit(SUPPLIES, "5"), DraftLine.credit(CASH, "5")],
            Decimal("1"),
        )
        assert [ln.line_number for ln in reverse_lines(reversed(priced))] == [1, 2]


class TestSignedBalance:
    def test_debit_normal(self):
        assert signed_balance(NormalBalance.DEBIT, Decimal("100"), Decimal("30")) == Decimal("70")

    def test_credit_normal(self):
        assert signed_balance(NormalBalance.CREDIT, Decimal("100"), Decimal("30")) == Decimal("-70")

    def test_normal_side_for_types(self):
        assert NormalBalance.for_type("asset") == NormalBalance.DEBIT
        assert NormalBalance.for_type("expense") == NormalBalance.DEBIT
        assert NormalBalance.for_type("liability") == NormalBalance.CREDIT
        assert NormalBalance.for_type("equity") == NormalBalance.CREDIT
        assert NormalBalance.for_type("revenue") == NormalBalance.CREDIT
