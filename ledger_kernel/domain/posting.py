"""
Posting arithmetic -- pure functions behind the journal state machine.

Responsibility:
    Line-shape validation, base-currency pricing, the exact balance check,
    reversal line construction and normal-side signing.  The Journal Entry
    Manager and Balance Calculator call these; nothing here touches a
    session or a clock.

Invariants enforced:
    - Exactly one of debit/credit is non-zero per line; neither is negative.
    - Sum of base debits == sum of base credits, by Decimal equality.  No
      tolerance.
    - A reversal line has the same account, amounts, rate and base amount
      as the original, with sides swapped.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol, Sequence
from uuid import UUID

from ledger_kernel.db.types import ZERO, quantize_amount, to_decimal
from ledger_kernel.domain.dtos import JournalLineRecord, NormalBalance
from ledger_kernel.exceptions import InvalidLineError, UnbalancedEntryError


class LineAmounts(Protocol):
    account_id: UUID
    debit_amount: Decimal
    credit_amount: Decimal
    description: str | None


def validate_line_shapes(lines: Sequence[LineAmounts]) -> None:
    """Reject empty line sets and malformed individual lines."""
    if not lines:
        raise InvalidLineError("journal entry must have at least one line")

    for number, line in enumerate(lines, start=1):
        debit = to_decimal(line.debit_amount)
        credit = to_decimal(line.credit_amount)
        if debit < ZERO or credit < ZERO:
            raise InvalidLineError("amounts cannot be negative", number)
        if debit > ZERO and credit > ZERO:
            raise InvalidLineError("line cannot have both debit and credit amounts", number)
        if debit == ZERO and credit == ZERO:
            raise InvalidLineError("line must have a non-zero debit or credit", number)


def price_lines(lines: Sequence[LineAmounts], rate: Decimal) -> tuple[JournalLineRecord, ...]:
    """
    Attach ``rate`` and the base-currency amount to every line.

    Each base amount is quantized to the stored precision.  When the exact
    products balance but the quantized ones do not, the rounding residual
    is added to the largest line on the short side so the stored base
    amounts still balance.  Lines whose exact products do not balance are
    priced as-is and left for ``ensure_balanced`` to reject.
    """
    exact = []
    for line in lines:
        amount = line.debit_amount if line.debit_amount > ZERO else line.credit_amount
        exact.append(amount * rate)

    base_amounts = [quantize_amount(value) for value in exact]

    exact_debits = sum((v for v, ln in zip(exact, lines) if ln.debit_amount > ZERO), ZERO)
    exact_credits = sum((v for v, ln in zip(exact, lines) if ln.debit_amount <= ZERO), ZERO)
    if exact_debits == exact_credits:
        _absorb_residual(lines, base_amounts)

    return tuple(
        JournalLineRecord(
            line_number=number,
            account_id=line.account_id,
            debit_amount=line.debit_amount,
            credit_amount=line.credit_amount,
            exchange_rate=rate,
            base_currency_amount=base,
            description=line.description,
        )
        for number, (line, base) in enumerate(zip(lines, base_amounts), start=1)
    )


def _absorb_residual(lines: Sequence[LineAmounts], base_amounts: list[Decimal]) -> None:
    debit_indexes = [i for i, ln in enumerate(lines) if ln.debit_amount > ZERO]
    credit_indexes = [i for i, ln in enumerate(lines) if ln.debit_amount <= ZERO]
    residual = sum((base_amounts[i] for i in debit_indexes), ZERO) - sum(
        (base_amounts[i] for i in credit_indexes), ZERO
    )
    if residual == ZERO:
        return

    short_side = credit_indexes if residual > ZERO else debit_indexes
    if not short_side:
        return
    # First of equal-sized lines wins
    target = max(short_side, key=lambda i: (base_amounts[i], -i))
    base_amounts[target] += abs(residual)


def ensure_balanced(lines: Iterable[JournalLineRecord], base_currency: str) -> Decimal:
    """
    Verify base debits equal base credits exactly.

    Returns:
        The (equal) base total.

    Raises:
        UnbalancedEntryError: totals differ.
        InvalidLineError: totals are zero.
    """
    debits = ZERO
    credits = ZERO
    for line in lines:
        debits += line.base_debit
        credits += line.base_credit

    if debits != credits:
        raise UnbalancedEntryError(str(debits), str(credits), base_currency)
    if debits == ZERO:
        raise InvalidLineError("journal entry cannot have zero amounts")
    return debits


def reverse_lines(lines: Iterable[JournalLineRecord]) -> tuple[JournalLineRecord, ...]:
    """Mirror each line onto the opposite side, keeping every amount."""
    return tuple(
        JournalLineRecord(
            line_number=line.line_number,
            account_id=line.account_id,
            debit_amount=line.credit_amount,
            credit_amount=line.debit_amount,
            exchange_rate=line.exchange_rate,
            base_currency_amount=line.base_currency_amount,
            description="Reversal",
        )
        for line in sorted(lines, key=lambda ln: ln.line_number)
    )


def signed_balance(normal_balance: NormalBalance, debit_total: Decimal, credit_total: Decimal) -> Decimal:
    """Net of debit and credit totals, positive on the normal side."""
    if NormalBalance(normal_balance) == NormalBalance.DEBIT:
        return debit_total - credit_total
    return credit_total - debit_total
