"""
Tenant context -- the explicit isolation value threaded through the ledger.

Responsibility:
    Every repository, service, selector and session in the ledger is bound
    to exactly one ``TenantContext``.  The context carries the tenant id,
    the physical schema (namespace) that holds the tenant's tables, and the
    tenant's base (reporting) currency.

Architecture position:
    Kernel -- leaf module.  Imported by db/, repositories/, services/ and
    selectors/.  Imports only the exception hierarchy.

Invariants enforced:
    - Schema names are validated once, at construction.  Nothing in the
      kernel formats a schema name from a tenant id by string convention;
      the external ``TenantSchemaRouter`` is the only source.
    - The ledger core never resolves a tenant itself.  Callers pass a
      resolved ``TenantContext``.

Failure modes:
    - ValueError on an invalid schema name.
    - InvalidCurrencyError on an invalid base currency.
    - KeyError from ``StaticTenantRouter.resolve`` for an unknown tenant.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Protocol
from uuid import UUID

from ledger_kernel.db.types import validate_currency

_SCHEMA_NAME_RE = re.compile(r"[a-z_][a-z0-9_]{0,62}")


@dataclass(frozen=True, slots=True)
class TenantContext:
    """Resolved tenant identity and storage namespace.

    Contract:
        Immutable and hashable.  ``schema_name`` is a safe SQL identifier
        (lowercase letters, digits, underscore; max 63 chars).
    """

    tenant_id: UUID
    schema_name: str
    base_currency: str = "EUR"

    def __post_init__(self) -> None:
        if not isinstance(self.tenant_id, UUID):
            object.__setattr__(self, "tenant_id", UUID(str(self.tenant_id)))
        if not _SCHEMA_NAME_RE.fullmatch(self.schema_name or ""):
            raise ValueError(f"Invalid tenant schema name: {self.schema_name!r}")
        object.__setattr__(self, "base_currency", validate_currency(self.base_currency))

    def __str__(self) -> str:
        return f"{self.tenant_id}@{self.schema_name}"


class TenantSchemaRouter(Protocol):
    """External collaborator that maps a tenant id to its context."""

    def resolve(self, tenant_id: UUID) -> TenantContext:
        ...


class StaticTenantRouter:
    """Router backed by a fixed set of tenant contexts (e.g. from config)."""

    def __init__(self, tenants: Iterable[TenantContext]):
        self._tenants: dict[UUID, TenantContext] = {}
        for tenant in tenants:
            if tenant.tenant_id in self._tenants:
                raise ValueError(f"Duplicate tenant id: {tenant.tenant_id}")
            self._tenants[tenant.tenant_id] = tenant

    def resolve(self, tenant_id: UUID) -> TenantContext:
        try:
            return self._tenants[tenant_id]
        except KeyError:
            raise KeyError(f"Unknown tenant: {tenant_id}") from None

    def all(self) -> tuple[TenantContext, ...]:
        return tuple(self._tenants.values())
