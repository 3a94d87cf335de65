"""
ledger_config -- single public entrypoint for ledger settings.

Responsibility:
    ``get_active_settings()`` is the only way runtime code obtains
    configuration.  No other component reads settings files or
    environment variables.

Architecture position:
    Configuration -- sits above ``ledger_kernel``.  The kernel never imports
    from ``ledger_config``; callers pass the values it needs explicitly.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- invalid values.
    - ``yaml.YAMLError`` -- malformed YAML.

Audit relevance:
    Every successful call logs a ``LEDGER_CONFIG_TRACE`` entry with the
    source path and checksum of the settings in force.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ledger_config.loader import load_yaml_file, parse_settings
from ledger_config.schema import LedgerSettings, TenantDefinition

_logger = logging.getLogger("ledger_kernel.config")

_DEFAULT_SETTINGS_FILE = Path(__file__).parent / "sets" / "default.yaml"

CONFIG_ENV_VAR = "LEDGER_CONFIG"
DATABASE_URL_ENV_VAR = "LEDGER_DATABASE_URL"


def get_active_settings(path: Path | str | None = None) -> LedgerSettings:
    """The ONLY public configuration entrypoint.

    Resolution order for the file: ``path``, then ``$LEDGER_CONFIG``, then
    the packaged ``sets/default.yaml``.  ``$LEDGER_DATABASE_URL``, when set,
    replaces ``database.url``.
    """
    source = Path(path or os.environ.get(CONFIG_ENV_VAR) or _DEFAULT_SETTINGS_FILE)
    if not source.is_file():
        raise FileNotFoundError(f"Ledger settings file not found: {source}")

    data = load_yaml_file(source)
    override = os.environ.get(DATABASE_URL_ENV_VAR)
    if override:
        data.setdefault("database", {})
        data["database"] = {**(data["database"] or {}), "url": override}

    settings = parse_settings(data)

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "source": str(source),
            "checksum": settings.checksum,
            "tenant_count": len(settings.tenants),
            "require_open_period": settings.require_open_period,
        },
    )
    return settings


__all__ = ["get_active_settings", "LedgerSettings", "TenantDefinition"]
