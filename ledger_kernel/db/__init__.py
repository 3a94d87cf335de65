"""Database layer - base classes, column types, engine and listeners."""

from ledger_kernel.db.base import UUID, Base, ExactNumeric, TenantScopedBase, TrackedBase, UUIDString
from ledger_kernel.db.types import CurrencyCode, Money, Rate

__all__ = [
    "Base",
    "TrackedBase",
    "TenantScopedBase",
    "UUIDString",
    "ExactNumeric",
    "UUID",
    "Money",
    "Rate",
    "CurrencyCode",
]
