"""Kernel services: write-side operations over one tenant's ledger."""

from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.journal_entry_manager import JournalEntryManager
from ledger_kernel.services.ledger_service import LedgerService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.rate_resolver import ExchangeRateResolver, VatRateResolver

__all__ = [
    "AccountRegistry",
    "ExchangeRateResolver",
    "JournalEntryManager",
    "LedgerService",
    "PeriodService",
    "VatRateResolver",
]
