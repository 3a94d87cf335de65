"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and transaction contract for every write-side
    service.  Services receive a ``LedgerRepository`` already bound to one
    tenant and persist through it with flushes only.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Services never commit or roll back.  The caller (LedgerService,
      batch runner, test harness) owns the transaction; multi-step
      operations use ``repository.atomic()`` so they are all-or-nothing.
    - ``self.tenant`` is the repository's tenant; services never accept a
      tenant of their own.
"""

from abc import ABC
from typing import Generic, TypeVar

from ledger_kernel.db.base import Base
from ledger_kernel.repositories.base import LedgerRepository
from ledger_kernel.tenancy import TenantContext

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide read-side aggregation; that belongs in
          ``ledger_kernel/selectors/``.
    """

    def __init__(self, repository: LedgerRepository):
        self.repository = repository

    @property
    def tenant(self) -> TenantContext:
        return self.repository.tenant
