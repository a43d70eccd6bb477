"""
Poller configuration loaded from environment variables and a settings file.

Uses Pydantic BaseSettings for automatic loading and validation.  Sources in
priority order: constructor arguments, environment variables, ``.env``, then
``settings.toml`` in the working directory.  No hardcoded IPs or
credentials.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Bound register_offset so shifted reads stay below 65536

TODO:
- None
"""

from __future__ import annotations

import logging

from pydantic import field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from meter.src.codec import SUPPORTED_FUNCTION_CODES
from meter.src.registers import ALL_GROUPS

MAX_REGISTER_OFFSET: int = 0x10000 - max(g.start_address + g.count for g in ALL_GROUPS)
"""Largest offset that keeps the last register group inside the address space."""


class MeterSettings(BaseSettings):
    """Configuration for one poll of the power meter.

    Attributes:
        modbus_host: Gateway IP address / hostname on the local LAN.
        modbus_port: Gateway Modbus TCP port (default 502).
        modbus_unit_id: Modbus unit / slave ID of the meter (default 1).
        modbus_function_code: 3 for holding registers (default) or 4 for
            input registers.
        modbus_timeout_s: Seconds allowed for connecting and for each
            request/response exchange.
        register_offset: Added to every register map address; set to 1 for
            gateways that number registers from one.  At most
            :data:`MAX_REGISTER_OFFSET`.
        inter_request_delay_ms: Milliseconds to wait between group reads
            within one poll.
        device_id: Identifier stored with every row.  Defaults to
            modbus_unit_id when not set.
        database_url: SQLAlchemy URL of the TimescaleDB database
            (``postgresql+asyncpg://...``).  Only needed when writing.
        log_level: Standard logging level name.
        cross_check_rel_tol: Relative tolerance between a channel's
            fixed-point value and its float rendition before a warning is
            logged.
    """

    modbus_host: str
    modbus_port: int = 502
    modbus_unit_id: int = 1
    modbus_function_code: int = 3
    modbus_timeout_s: float = 3.0
    register_offset: int = 0
    inter_request_delay_ms: int = 20
    device_id: int | None = None
    database_url: str = ""
    log_level: str = "INFO"
    cross_check_rel_tol: float = 1e-3

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        toml_file="settings.toml",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Add ``settings.toml`` as the lowest-priority source."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
        )

    @model_validator(mode="after")
    def _default_device_id(self) -> MeterSettings:
        """Default device_id to modbus_unit_id when not explicitly set."""
        if self.device_id is None:
            self.device_id = self.modbus_unit_id
        return self

    @field_validator("modbus_port")
    @classmethod
    def modbus_port_must_be_valid(cls, v: int) -> int:
        """Validate Modbus TCP port is in valid range."""
        if v < 1 or v > 65535:
            raise ValueError("MODBUS_PORT must be between 1 and 65535")
        return v

    @field_validator("modbus_unit_id")
    @classmethod
    def modbus_unit_id_must_be_valid(cls, v: int) -> int:
        """Validate Modbus unit ID is in valid range (0-247)."""
        if v < 0 or v > 247:
            raise ValueError("MODBUS_UNIT_ID must be between 0 and 247")
        return v

    @field_validator("modbus_function_code")
    @classmethod
    def function_code_must_be_read(cls, v: int) -> int:
        """Only the two read-registers functions are supported."""
        if v not in SUPPORTED_FUNCTION_CODES:
            raise ValueError("MODBUS_FUNCTION_CODE must be 3 (holding) or 4 (input)")
        return v

    @field_validator("modbus_timeout_s")
    @classmethod
    def timeout_must_be_positive(cls, v: float) -> float:
        """An unbounded or zero wait is not allowed."""
        if v <= 0:
            raise ValueError("MODBUS_TIMEOUT_S must be > 0")
        return v

    @field_validator("register_offset")
    @classmethod
    def register_offset_must_fit_address_space(cls, v: int) -> int:
        """Every shifted group read must stay within addresses 0-65535."""
        if v < 0 or v > MAX_REGISTER_OFFSET:
            raise ValueError(f"REGISTER_OFFSET must be between 0 and {MAX_REGISTER_OFFSET}")
        return v

    @field_validator("inter_request_delay_ms")
    @classmethod
    def inter_request_delay_must_be_non_negative(cls, v: int) -> int:
        """Validate inter-request delay is non-negative."""
        if v < 0:
            raise ValueError("INTER_REQUEST_DELAY_MS must be >= 0")
        return v

    @field_validator("database_url")
    @classmethod
    def database_url_must_be_postgres(cls, v: str) -> str:
        """Rows go to TimescaleDB, so only PostgreSQL URLs are accepted."""
        if v and not v.startswith("postgresql"):
            raise ValueError("DATABASE_URL must be a postgresql:// or postgresql+asyncpg:// URL")
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        """Normalise and validate the logging level name."""
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL '{v}' is not a logging level name")
        return level
