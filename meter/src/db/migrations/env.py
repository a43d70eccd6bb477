"""
Alembic environment for the ``energy`` hypertable.

Migrations run online through the same async engine factory the poller uses
(:func:`meter.src.db.session.create_engine`), so a plain ``postgresql://``
URL is switched to asyncpg here as well.  The URL comes from, in order:
``alembic -x database_url=...``, the ``DATABASE_URL`` environment variable,
then ``sqlalchemy.url`` in alembic.ini.

TimescaleDB creates chunk tables in its own schemas; autogenerate only
compares objects in the default schema.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import asyncio
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection

from meter.src.db.models import Base
from meter.src.db.session import create_engine

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def resolve_database_url() -> str:
    """Return the migration target URL.

    Raises:
        RuntimeError: If no source provides a URL.
    """
    url = (
        context.get_x_argument(as_dictionary=True).get("database_url")
        or os.environ.get("DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
    )
    if not url:
        raise RuntimeError(
            "Set DATABASE_URL or pass -x database_url=... to run migrations"
        )
    return url


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    """Skip reflected objects outside the default schema (Timescale internals)."""
    if type_ == "table" and reflected and getattr(obj, "schema", None):
        return False
    return True


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting."""
    context.configure(
        url=resolve_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_object=include_object,
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        include_object=include_object,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Apply migrations over one connection of a throwaway async engine."""
    engine = create_engine(resolve_database_url())
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
