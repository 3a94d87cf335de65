"""
LedgerSettings schema.

Frozen, typed view of the YAML settings file.  The loader parses YAML into
these types; nothing else in the system reads the file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID

from ledger_kernel.tenancy import TenantContext


@dataclass(frozen=True)
class TenantDefinition:
    """One tenant as configured: id, storage schema and base currency."""

    tenant_id: UUID
    schema_name: str
    base_currency: str = "EUR"
    name: str = ""

    def to_context(self) -> TenantContext:
        return TenantContext(
            tenant_id=self.tenant_id,
            schema_name=self.schema_name,
            base_currency=self.base_currency,
        )


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings for the ledger, its services and the batch scheduler."""

    database_url: str
    default_base_currency: str = "EUR"
    require_open_period: bool = True
    entry_number_prefix: str = "JE-"
    entry_number_width: int = 5
    log_level: str = "INFO"
    scheduler_interval_seconds: float = 60.0
    tenants: tuple[TenantDefinition, ...] = field(default_factory=tuple)
    checksum: str = ""

    def tenant_contexts(self) -> tuple[TenantContext, ...]:
        return tuple(t.to_context() for t in self.tenants)
