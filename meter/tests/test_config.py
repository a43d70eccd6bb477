"""
Unit tests for poller configuration (MeterSettings).

Tests verify:
- Config loads from environment variables with correct defaults.
- MODBUS_HOST is required.
- Numeric constraints are enforced (port, unit id, function code, timeout,
  offset, delay).
- DEVICE_ID defaults to MODBUS_UNIT_ID when not set.
- ``.env`` and ``settings.toml`` are read, with environment variables
  taking priority.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

from pathlib import Path

import pytest
from meter.src.codec import encode_read_request
from meter.src.config import MAX_REGISTER_OFFSET, MeterSettings
from meter.src.registers import ALL_GROUPS
from pydantic import ValidationError


class TestMeterSettingsLoadsFromEnv:
    """Config loads all values from environment variables."""

    def test_loads_all_env_vars(self, env_vars_full: dict[str, str]) -> None:
        """All env vars are read and assigned correctly."""
        settings = MeterSettings()

        assert settings.modbus_host == env_vars_full["MODBUS_HOST"]
        assert settings.modbus_port == 5020
        assert settings.modbus_unit_id == 7
        assert settings.modbus_function_code == 4
        assert settings.modbus_timeout_s == 1.5
        assert settings.register_offset == 1
        assert settings.inter_request_delay_ms == 0
        assert settings.device_id == 42
        assert settings.database_url == env_vars_full["DATABASE_URL"]
        assert settings.log_level == "DEBUG"
        assert settings.cross_check_rel_tol == 0.01

    def test_defaults_applied_when_optional_vars_missing(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Optional variables use default values when not set."""
        monkeypatch.setenv("MODBUS_HOST", "10.0.0.5")
        settings = MeterSettings()

        assert settings.modbus_port == 502
        assert settings.modbus_unit_id == 1
        assert settings.modbus_function_code == 3
        assert settings.modbus_timeout_s == 3.0
        assert settings.register_offset == 0
        assert settings.inter_request_delay_ms == 20
        assert settings.database_url == ""
        assert settings.log_level == "INFO"
        assert settings.cross_check_rel_tol == 1e-3

    def test_missing_modbus_host_raises(self) -> None:
        """MODBUS_HOST is required."""
        with pytest.raises(ValidationError) as exc_info:
            MeterSettings()
        assert "modbus_host" in str(exc_info.value).lower()


class TestDeviceIdDefault:
    """DEVICE_ID falls back to the unit id."""

    def test_defaults_to_unit_id(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODBUS_HOST", "10.0.0.5")
        monkeypatch.setenv("MODBUS_UNIT_ID", "12")
        assert MeterSettings().device_id == 12

    def test_explicit_device_id_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODBUS_HOST", "10.0.0.5")
        monkeypatch.setenv("MODBUS_UNIT_ID", "12")
        monkeypatch.setenv("DEVICE_ID", "3")
        assert MeterSettings().device_id == 3


class TestMeterSettingsValidation:
    """Out-of-range values are rejected."""

    @pytest.mark.parametrize(
        ("var", "value"),
        [
            ("MODBUS_PORT", "0"),
            ("MODBUS_PORT", "65536"),
            ("MODBUS_UNIT_ID", "248"),
            ("MODBUS_UNIT_ID", "-1"),
            ("MODBUS_FUNCTION_CODE", "6"),
            ("MODBUS_TIMEOUT_S", "0"),
            ("REGISTER_OFFSET", "-1"),
            ("REGISTER_OFFSET", "65000"),
            ("INTER_REQUEST_DELAY_MS", "-5"),
            ("DATABASE_URL", "mysql://user@host/db"),
            ("LOG_LEVEL", "chatty"),
        ],
    )
    def test_invalid_value_raises(
        self, monkeypatch: pytest.MonkeyPatch, var: str, value: str
    ) -> None:
        monkeypatch.setenv("MODBUS_HOST", "10.0.0.5")
        monkeypatch.setenv(var, value)
        with pytest.raises(ValidationError) as exc_info:
            MeterSettings()
        assert var.lower() in str(exc_info.value).lower()

    def test_largest_register_offset_still_encodes(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """The maximum offset keeps every shifted group read encodable."""
        monkeypatch.setenv("MODBUS_HOST", "10.0.0.5")
        monkeypatch.setenv("REGISTER_OFFSET", str(MAX_REGISTER_OFFSET))
        settings = MeterSettings()
        for group in ALL_GROUPS:
            encode_read_request(1, group.start_address + settings.register_offset, group.count)

    def test_register_offset_one_past_limit_rejected(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("MODBUS_HOST", "10.0.0.5")
        monkeypatch.setenv("REGISTER_OFFSET", str(MAX_REGISTER_OFFSET + 1))
        with pytest.raises(ValidationError, match="REGISTER_OFFSET"):
            MeterSettings()

    def test_plain_postgresql_url_accepted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MODBUS_HOST", "10.0.0.5")
        monkeypatch.setenv("DATABASE_URL", "postgresql://meter@localhost/energy")
        assert MeterSettings().database_url.startswith("postgresql://")


class TestSettingsFiles:
    """``.env`` and ``settings.toml`` in the working directory."""

    def test_reads_settings_toml(self, tmp_path: Path) -> None:
        (tmp_path / "settings.toml").write_text(
            'modbus_host = "meter-gw.lan"\nmodbus_port = 1502\n'
        )
        settings = MeterSettings()
        assert settings.modbus_host == "meter-gw.lan"
        assert settings.modbus_port == 1502

    def test_reads_dotenv(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("MODBUS_HOST=from-dotenv\nMODBUS_UNIT_ID=9\n")
        settings = MeterSettings()
        assert settings.modbus_host == "from-dotenv"
        assert settings.device_id == 9

    def test_environment_overrides_files(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "settings.toml").write_text('modbus_host = "from-toml"\n')
        (tmp_path / ".env").write_text("MODBUS_HOST=from-dotenv\n")
        monkeypatch.setenv("MODBUS_HOST", "from-env")
        assert MeterSettings().modbus_host == "from-env"

    def test_dotenv_overrides_toml(self, tmp_path: Path) -> None:
        (tmp_path / "settings.toml").write_text('modbus_host = "from-toml"\n')
        (tmp_path / ".env").write_text("MODBUS_HOST=from-dotenv\n")
        assert MeterSettings().modbus_host == "from-dotenv"
