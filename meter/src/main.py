"""
Entry point: one poll of the power meter, one row in TimescaleDB.

Loads settings, polls the meter once via :func:`~meter.src.poller.poll_once`,
and writes the snapshot through the ingestion service.  Intended to be run
periodically by an external scheduler (cron, systemd timer); each run is one
attempt and exits.

Exit codes:
- 0: snapshot decoded and stored (or printed with ``--dry-run``).
- 1: configuration, poll or database error; the error kind is logged.

Structured JSON logging is used for all events.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import ValidationError
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from meter.src.config import MeterSettings
from meter.src.db.ingestion import write_snapshot
from meter.src.db.session import create_engine, create_session_factory
from meter.src.errors import PollError
from meter.src.poller import poll_once

if TYPE_CHECKING:
    from meter.src.models import MeasurementSnapshot

logger = logging.getLogger(__name__)

EXIT_OK: int = 0
EXIT_FAILURE: int = 1


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry)


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on stderr at ``level``."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def _masked_url(url: str) -> str:
    """Render a database URL with its password hidden."""
    if not url:
        return "unset"
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "unparseable"


def log_config_summary(settings: MeterSettings) -> None:
    """Log a config summary at startup, with the database password masked."""
    logger.info(
        "Meter poll starting with config: "
        "modbus_host=%s, modbus_port=%s, modbus_unit_id=%s, "
        "modbus_function_code=%s, modbus_timeout_s=%s, register_offset=%s, "
        "inter_request_delay_ms=%s, device_id=%s, database_url=%s",
        settings.modbus_host,
        settings.modbus_port,
        settings.modbus_unit_id,
        settings.modbus_function_code,
        settings.modbus_timeout_s,
        settings.register_offset,
        settings.inter_request_delay_ms,
        settings.device_id,
        _masked_url(settings.database_url),
    )


# ---------------------------------------------------------------------------
# Poll and persist
# ---------------------------------------------------------------------------


async def store(settings: MeterSettings, snapshot: MeasurementSnapshot) -> None:
    """Write ``snapshot`` to the database named by ``settings.database_url``."""
    engine = create_engine(settings.database_url)
    try:
        session_factory = create_session_factory(engine)
        async with session_factory() as db:
            await write_snapshot(db, snapshot)
    finally:
        await engine.dispose()


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="meter-poll",
        description="Poll the power meter once and store the snapshot.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the snapshot as JSON instead of writing it to the database",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override LOG_LEVEL from the settings (e.g. DEBUG)",
    )
    return parser.parse_args(argv)


async def async_main(argv: list[str] | None = None) -> int:
    """Async entrypoint: load config, poll once, store.

    Returns:
        The process exit code.
    """
    args = _parse_args(argv)
    configure_logging(args.log_level or "INFO")

    try:
        settings = MeterSettings()
    except ValidationError as err:
        logger.error("Invalid configuration: %s", err)
        return EXIT_FAILURE

    if args.log_level is None:
        logging.getLogger().setLevel(settings.log_level)
    log_config_summary(settings)

    if not args.dry_run and not settings.database_url:
        logger.error("DATABASE_URL is required unless --dry-run is given")
        return EXIT_FAILURE

    try:
        snapshot = await poll_once(settings)
    except PollError as err:
        logger.error("Poll failed (%s): %s", err.kind, err)
        return EXIT_FAILURE

    if args.dry_run:
        print(snapshot.model_dump_json(indent=2))
        return EXIT_OK

    try:
        await store(settings, snapshot)
    except (SQLAlchemyError, OSError):
        logger.error("Database write failed", exc_info=True)
        return EXIT_FAILURE

    return EXIT_OK


def main() -> None:
    """Synchronous entrypoint for the ``meter-poll`` console script."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
