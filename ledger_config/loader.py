"""
Settings loader (``ledger_config.loader``).

Responsibility
--------------
Reads the YAML settings file and parses it into a frozen
``LedgerSettings``.  Called only by ``ledger_config.get_active_settings``.

Invariants enforced
-------------------
* Every value is validated here; no silent defaults for malformed input.
* ``compute_checksum`` gives a deterministic SHA-256 over the parsed
  document so a running process can report which settings it is using.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from ledger_config.schema import LedgerSettings, TenantDefinition
from ledger_kernel.db.types import is_valid_currency
from ledger_kernel.tenancy import TenantContext

_LOG_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_tenant(data: dict[str, Any], default_currency: str) -> TenantDefinition:
    try:
        tenant_id = UUID(str(data["tenant_id"]))
    except KeyError:
        raise ValueError("tenant entry is missing 'tenant_id'") from None
    except ValueError:
        raise ValueError(f"invalid tenant_id: {data['tenant_id']!r}") from None

    if "schema_name" not in data:
        raise ValueError(f"tenant {tenant_id} is missing 'schema_name'")

    definition = TenantDefinition(
        tenant_id=tenant_id,
        schema_name=str(data["schema_name"]),
        base_currency=str(data.get("base_currency", default_currency)).upper(),
        name=str(data.get("name", "")),
    )
    # TenantContext validates the schema name and currency
    TenantContext(definition.tenant_id, definition.schema_name, definition.base_currency)
    return definition


def parse_settings(data: dict[str, Any]) -> LedgerSettings:
    """
    Build ``LedgerSettings`` from a parsed YAML mapping.

    Raises:
        ValueError: missing database URL, bad currency, bad log level,
            non-positive interval or width, duplicate tenants.
    """
    ledger = data.get("ledger", {}) or {}
    scheduler = data.get("scheduler", {}) or {}
    logging_section = data.get("logging", {}) or {}

    database_url = (data.get("database", {}) or {}).get("url")
    if not database_url:
        raise ValueError("database.url is required")

    default_currency = str(ledger.get("default_base_currency", "EUR")).upper()
    if not is_valid_currency(default_currency):
        raise ValueError(f"invalid default_base_currency: {default_currency!r}")

    width = int(ledger.get("entry_number_width", 5))
    if width < 1:
        raise ValueError("ledger.entry_number_width must be positive")

    log_level = str(logging_section.get("level", "INFO")).upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"invalid logging.level: {log_level!r}")

    interval = float(scheduler.get("interval_seconds", 60))
    if interval <= 0:
        raise ValueError("scheduler.interval_seconds must be positive")

    tenants = tuple(
        parse_tenant(t, default_currency) for t in data.get("tenants", []) or []
    )
    seen_ids = [t.tenant_id for t in tenants]
    seen_schemas = [t.schema_name for t in tenants]
    if len(set(seen_ids)) != len(seen_ids) or len(set(seen_schemas)) != len(seen_schemas):
        raise ValueError("tenant ids and schema names must be unique")

    return LedgerSettings(
        database_url=str(database_url),
        default_base_currency=default_currency,
        require_open_period=bool(ledger.get("require_open_period", True)),
        entry_number_prefix=str(ledger.get("entry_number_prefix", "JE-")),
        entry_number_width=width,
        log_level=log_level,
        scheduler_interval_seconds=interval,
        tenants=tenants,
        checksum=compute_checksum(data),
    )
