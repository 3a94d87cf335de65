"""
Property-based tests for the pure ledger arithmetic.

Properties:
- A balanced draft priced at identity rate passes the exact balance check
- A balanced draft priced at any rate still balances in base currency
- Reversal lines swap base debit and credit totals and net every account to zero
- Normal-side signing is antisymmetric
- Rate window overlap is symmetric; selection covers the date and ignores
  input order
"""

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.dtos import DraftLine, NormalBalance, RateWindow
from ledger_kernel.domain.posting import (
    ensure_balanced,
    price_lines,
    reverse_lines,
    signed_balance,
    validate_line_shapes,
)
from ledger_kernel.domain.rate_windows import select_window, windows_overlap

ACCOUNTS = [uuid4() for _ in range(4)]

amounts = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("999999999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
rates = st.decimals(
    min_value=Decimal("0.000001"),
    max_value=Decimal("1000"),
    places=6,
    allow_nan=False,
    allow_infinity=False,
)
fine_rates = st.decimals(
    min_value=Decimal("0.0001"),
    max_value=Decimal("1000"),
    places=10,
    allow_nan=False,
    allow_infinity=False,
)
days = st.dates(min_value=date(2020, 1, 1), max_value=date(2030, 12, 31))


@st.composite
def balanced_drafts(draw):
    """Debit lines drawn freely; one credit line per account balances them."""
    debits = draw(st.lists(st.tuples(st.sampled_from(ACCOUNTS), amounts), min_size=1, max_size=8))
    total = sum((amount for _, amount in debits), ZERO)
    credit_account = draw(st.sampled_from(ACCOUNTS))
    lines = [DraftLine.debit(account, amount) for account, amount in debits]
    lines.append(DraftLine.credit(credit_account, total))
    return lines


@st.composite
def windows(draw):
    valid_from = draw(days)
    open_ended = draw(st.booleans())
    valid_to = None if open_ended else valid_from + timedelta(days=draw(st.integers(1, 800)))
    return valid_from, valid_to


@st.composite
def window_sets(draw):
    spans = draw(st.lists(windows(), min_size=1, max_size=6))
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    # Distinct created_at so every window has a distinct selection key
    return [
        RateWindow(
            id=uuid4(),
            rate=Decimal(index + 1),
            valid_from=valid_from,
            valid_to=valid_to,
            created_at=base + timedelta(minutes=index),
        )
        for index, (valid_from, valid_to) in enumerate(spans)
    ]


class TestPostingProperties:
    @given(lines=balanced_drafts())
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_balanced_draft_at_identity_rate(self, lines):
        validate_line_shapes(lines)
        priced = price_lines(lines, Decimal("1"))
        total = ensure_balanced(priced, "EUR")
        assert total == sum((line.debit_amount for line in lines), ZERO)

    @given(lines=balanced_drafts(), rate=st.one_of(rates, fine_rates))
    @settings(max_examples=300, suppress_health_check=[HealthCheck.too_slow])
    def test_balanced_draft_at_any_rate(self, lines, rate):
        priced = price_lines(lines, rate)
        total = ensure_balanced(priced, "EUR")

        assert sum((line.base_credit for line in priced), ZERO) == total
        # Quantizing moves each line by at most half a unit of the 9th place
        exact = sum((line.debit_amount for line in lines), ZERO) * rate
        assert abs(total - exact) < Decimal("0.000000001") * len(lines)

    @given(lines=balanced_drafts(), rate=rates)
    @settings(max_examples=200)
    def test_reversal_mirrors_base_totals(self, lines, rate):
        priced = price_lines(lines, rate)
        reversed_ = reverse_lines(priced)

        assert sum((l.base_debit for l in reversed_), ZERO) == sum((l.base_credit for l in priced), ZERO)
        assert sum((l.base_credit for l in reversed_), ZERO) == sum((l.base_debit for l in priced), ZERO)

        net = defaultdict(lambda: ZERO)
        for line in priced + reversed_:
            net[line.account_id] += line.base_debit - line.base_credit
        assert all(value == ZERO for value in net.values())

    @given(debit=amounts, credit=amounts)
    def test_signing_antisymmetric(self, debit, credit):
        assert signed_balance(NormalBalance.DEBIT, debit, credit) == -signed_balance(
            NormalBalance.CREDIT, debit, credit
        )


class TestRateWindowProperties:
    @given(a=windows(), b=windows())
    def test_overlap_symmetric(self, a, b):
        assert windows_overlap(*a, *b) == windows_overlap(*b, *a)

    @given(a=windows(), b=windows(), as_of=days)
    def test_shared_day_implies_overlap(self, a, b, as_of):
        def covers(span):
            return span[0] <= as_of and (span[1] is None or as_of < span[1])

        if covers(a) and covers(b):
            assert windows_overlap(*a, *b)

    @given(candidates=window_sets(), as_of=days, data=st.data())
    @settings(max_examples=200)
    def test_selection_covers_date_and_ignores_order(self, candidates, as_of, data):
        chosen = select_window(candidates, as_of)
        shuffled = data.draw(st.permutations(candidates))

        assert select_window(shuffled, as_of) is chosen
        if chosen is None:
            assert not any(w.contains(as_of) for w in candidates)
        else:
            assert chosen.contains(as_of)
