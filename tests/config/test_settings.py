"""
Settings loading tests.

Covers the packaged default set, environment overrides, validation of
every section and the trace log emitted on load.
"""

from uuid import UUID

import pytest
import yaml

from ledger_config import (
    CONFIG_ENV_VAR,
    DATABASE_URL_ENV_VAR,
    LedgerSettings,
    TenantDefinition,
    get_active_settings,
)
from ledger_config.loader import compute_checksum, parse_settings
from ledger_kernel.exceptions import InvalidCurrencyError
from ledger_kernel.tenancy import TenantContext

DEMO_TENANT_ID = UUID("00000000-0000-4000-8000-000000000001")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.delenv(DATABASE_URL_ENV_VAR, raising=False)


@pytest.fixture
def write_settings(tmp_path):
    """Factory: dump a mapping to a YAML file and return its path."""

    def _write(data, name="settings.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data))
        return path

    return _write


def _minimal(**sections):
    data = {"database": {"url": "sqlite://"}}
    data.update(sections)
    return data


class TestDefaultSettings:
    def test_packaged_defaults(self):
        settings = get_active_settings()

        assert isinstance(settings, LedgerSettings)
        assert settings.database_url == "sqlite://"
        assert settings.default_base_currency == "EUR"
        assert settings.require_open_period is True
        assert settings.entry_number_prefix == "JE-"
        assert settings.entry_number_width == 5
        assert settings.scheduler_interval_seconds == 60.0

    def test_demo_tenant(self):
        settings = get_active_settings()
        assert settings.tenants == (
            TenantDefinition(
                tenant_id=DEMO_TENANT_ID,
                schema_name="tenant_demo",
                base_currency="EUR",
                name="Demo GmbH",
            ),
        )
        assert settings.tenant_contexts() == (TenantContext(DEMO_TENANT_ID, "tenant_demo", "EUR"),)

    def test_checksum_stable(self):
        assert get_active_settings().checksum == get_active_settings().checksum
        assert len(get_active_settings().checksum) == 64

    def test_trace_logged(self, captured_logs):
        settings = get_active_settings()
        trace = next(r for r in captured_logs() if r["message"] == "LEDGER_CONFIG_TRACE")
        assert trace["checksum"] == settings.checksum
        assert trace["tenant_count"] == 1


class TestEnvironment:
    def test_config_env_var(self, monkeypatch, write_settings):
        path = write_settings(_minimal(ledger={"entry_number_prefix": "GL-"}))
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert get_active_settings().entry_number_prefix == "GL-"

    def test_explicit_path_beats_env(self, monkeypatch, write_settings):
        env_path = write_settings(_minimal(ledger={"entry_number_prefix": "ENV-"}), "env.yaml")
        arg_path = write_settings(_minimal(ledger={"entry_number_prefix": "ARG-"}), "arg.yaml")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(env_path))
        assert get_active_settings(arg_path).entry_number_prefix == "ARG-"

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv(DATABASE_URL_ENV_VAR, "postgresql://ledger@localhost/ledger")
        assert get_active_settings().database_url == "postgresql://ledger@localhost/ledger"

    def test_database_url_override_fills_missing_section(self, monkeypatch, write_settings):
        path = write_settings({"ledger": {"require_open_period": False}})
        monkeypatch.setenv(DATABASE_URL_ENV_VAR, "sqlite://")
        settings = get_active_settings(path)
        assert settings.database_url == "sqlite://"
        assert settings.require_open_period is False

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_settings(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("database: [unclosed")
        with pytest.raises(yaml.YAMLError):
            get_active_settings(path)

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="mapping"):
            get_active_settings(path)


class TestValidation:
    def test_database_url_required(self):
        with pytest.raises(ValueError, match="database.url"):
            parse_settings({})

    @pytest.mark.parametrize(
        "sections",
        [
            {"ledger": {"default_base_currency": "EURO"}},
            {"ledger": {"entry_number_width": 0}},
            {"logging": {"level": "VERBOSE"}},
            {"scheduler": {"interval_seconds": 0}},
        ],
    )
    def test_invalid_values(self, sections):
        with pytest.raises(ValueError):
            parse_settings(_minimal(**sections))

    def test_log_level_case_insensitive(self):
        assert parse_settings(_minimal(logging={"level": "debug"})).log_level == "DEBUG"

    def test_tenant_inherits_default_currency(self):
        settings = parse_settings(
            _minimal(
                ledger={"default_base_currency": "usd"},
                tenants=[{"tenant_id": str(DEMO_TENANT_ID), "schema_name": "acme"}],
            )
        )
        assert settings.default_base_currency == "USD"
        assert settings.tenants[0].base_currency == "USD"

    @pytest.mark.parametrize(
        "tenant",
        [
            {"schema_name": "acme"},
            {"tenant_id": "not-a-uuid", "schema_name": "acme"},
            {"tenant_id": str(DEMO_TENANT_ID)},
            {"tenant_id": str(DEMO_TENANT_ID), "schema_name": "Acme Corp"},
        ],
    )
    def test_invalid_tenant(self, tenant):
        with pytest.raises(ValueError):
            parse_settings(_minimal(tenants=[tenant]))

    def test_invalid_tenant_currency(self):
        with pytest.raises(InvalidCurrencyError):
            parse_settings(
                _minimal(
                    tenants=[
                        {"tenant_id": str(DEMO_TENANT_ID), "schema_name": "acme", "base_currency": "XX"}
                    ]
                )
            )

    def test_duplicate_schema_rejected(self):
        tenants = [
            {"tenant_id": "00000000-0000-4000-8000-000000000001", "schema_name": "acme"},
            {"tenant_id": "00000000-0000-4000-8000-000000000002", "schema_name": "acme"},
        ]
        with pytest.raises(ValueError, match="unique"):
            parse_settings(_minimal(tenants=tenants))

    def test_checksum_ignores_key_order(self):
        a = {"database": {"url": "sqlite://"}, "ledger": {"entry_number_width": 6}}
        b = {"ledger": {"entry_number_width": 6}, "database": {"url": "sqlite://"}}
        assert compute_checksum(a) == compute_checksum(b)
        assert compute_checksum(a) != compute_checksum(_minimal())
