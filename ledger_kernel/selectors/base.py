"""
Module: ledger_kernel.selectors.base
Responsibility: Base class for read-only query selectors -- the "Q" side
    of the ledger.
Architecture position: Kernel > Selectors.  May import from repositories/,
    domain/ and models/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only: selectors never add, delete or flush.
    - Selectors return frozen DTOs, not ORM instances.
    - Every figure is derived from journal lines at query time; there are
      no stored balances.
"""

from abc import ABC

from ledger_kernel.repositories.base import LedgerRepository
from ledger_kernel.tenancy import TenantContext


class BaseSelector(ABC):
    """Abstract base class for all selectors."""

    def __init__(self, repository: LedgerRepository):
        self.repository = repository

    @property
    def tenant(self) -> TenantContext:
        return self.repository.tenant
