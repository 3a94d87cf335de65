"""Read-only selectors."""

from ledger_kernel.selectors.balance_calculator import BalanceCalculator

__all__ = ["BalanceCalculator"]
