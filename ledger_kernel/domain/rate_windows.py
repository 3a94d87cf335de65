"""
Date-ranged rate windows -- pure selection and overlap logic.

Shared by exchange-rate and VAT-rate resolution.  A window covers the
half-open interval ``[valid_from, valid_to)``; ``valid_to=None`` is
open-ended.

Write-time rule: windows with the same key must not overlap
(``find_overlap``).  Read-time rule: if legacy or imported data does
overlap, ``select_window`` still picks deterministically: the narrowest
window, then the latest ``valid_from``, then the most recently created.
"""

from __future__ import annotations

import math
from datetime import date
from typing import Iterable

from ledger_kernel.domain.dtos import RateWindow
from ledger_kernel.exceptions import InvalidRateError


def validate_window(valid_from: date, valid_to: date | None) -> None:
    if valid_to is not None and valid_to <= valid_from:
        raise InvalidRateError(
            f"valid_to ({valid_to}) must be after valid_from ({valid_from})"
        )


def windows_overlap(
    a_from: date,
    a_to: date | None,
    b_from: date,
    b_to: date | None,
) -> bool:
    """True if ``[a_from, a_to)`` and ``[b_from, b_to)`` share any day."""
    a_reaches_b = a_to is None or a_to > b_from
    b_reaches_a = b_to is None or b_to > a_from
    return a_reaches_b and b_reaches_a


def find_overlap(
    existing: Iterable[RateWindow],
    valid_from: date,
    valid_to: date | None,
) -> RateWindow | None:
    """First existing window that overlaps the proposed one, if any."""
    for window in sorted(existing, key=lambda w: w.valid_from):
        if windows_overlap(window.valid_from, window.valid_to, valid_from, valid_to):
            return window
    return None


def _specificity(window: RateWindow) -> tuple[float, int, float]:
    width = (
        math.inf
        if window.valid_to is None
        else float((window.valid_to - window.valid_from).days)
    )
    created = window.created_at.timestamp() if window.created_at else 0.0
    return (width, -window.valid_from.toordinal(), -created)


def select_window(candidates: Iterable[RateWindow], as_of: date) -> RateWindow | None:
    """The window covering ``as_of``, or None."""
    matching = [w for w in candidates if w.contains(as_of)]
    if not matching:
        return None
    return min(matching, key=_specificity)
