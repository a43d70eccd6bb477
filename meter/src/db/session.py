"""
Async database engine and session factory.

Uses SQLAlchemy 2.x async engine with asyncpg driver for PostgreSQL.  The
poller is a one-shot process, so the engine is created per run and disposed
by the caller; no connection pool is kept between runs.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Args:
        database_url: ``postgresql+asyncpg://`` URL.  A plain
            ``postgresql://`` URL is switched to the asyncpg driver.

    Returns:
        AsyncEngine: Engine without pooling, suited to a single insert.

    Raises:
        RuntimeError: If ``database_url`` is empty.
    """
    if not database_url:
        raise RuntimeError("DATABASE_URL is required to write snapshots")
    if database_url.startswith("postgresql://"):
        database_url = "postgresql+asyncpg://" + database_url.removeprefix("postgresql://")
    return create_async_engine(database_url, echo=False, poolclass=pool.NullPool)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to ``engine``.

    Returns:
        async_sessionmaker: Factory for creating AsyncSession instances.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
