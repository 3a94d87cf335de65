"""
Ledger Kernel

The transactional core of a multi-tenant double-entry ledger:
- Chart of accounts with an acyclic hierarchy
- Journal entry lifecycle (draft -> posted -> void with reversal)
- Date-effective exchange-rate and VAT-rate resolution
- Balances and trial balance derived from posted lines only
- Schema-per-tenant isolation through an explicit TenantContext
"""

__version__ = "0.1.0"
