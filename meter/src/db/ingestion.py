"""
Ingestion service writing one meter snapshot per poll.

Inserts the snapshot's row into the ``energy`` hypertable and commits.
A failed poll never reaches this module, so no placeholder rows exist.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import logging

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from meter.src.db.models import EnergyReading
from meter.src.models import MeasurementSnapshot

logger = logging.getLogger(__name__)


async def write_snapshot(db: AsyncSession, snapshot: MeasurementSnapshot) -> int:
    """Insert one snapshot row and commit.

    Args:
        db: Async SQLAlchemy session.
        snapshot: The decoded snapshot to persist.

    Returns:
        int: Number of rows inserted (1 on success).
    """
    row = snapshot.to_row()
    result = await db.execute(insert(EnergyReading).values(**row))
    await db.commit()

    inserted = result.rowcount
    logger.info(
        "Stored snapshot for device %s (db_timestamp=%s)",
        snapshot.device_id,
        row.get("db_timestamp", "now()"),
    )
    return inserted
