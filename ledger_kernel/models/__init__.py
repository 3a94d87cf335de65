"""
ORM models.  Importing this package registers every table on
``Base.metadata``.
"""

from ledger_kernel.models.account import Account
from ledger_kernel.models.fiscal_period import FiscalPeriod
from ledger_kernel.models.journal import JournalEntry, JournalLine
from ledger_kernel.models.rates import ExchangeRate, VatRate
from ledger_kernel.models.sequence import SequenceCounter

__all__ = [
    "Account",
    "JournalEntry",
    "JournalLine",
    "ExchangeRate",
    "VatRate",
    "FiscalPeriod",
    "SequenceCounter",
]
