"""
Initial schema: create the energy table as a TimescaleDB hypertable.

Enables the TimescaleDB extension, creates the energy table with one column
per snapshot attribute and composite primary key (device_id, db_timestamp),
then converts it to a hypertable partitioned on db_timestamp with a 1-day
chunk interval.

Revision ID: 001
Revises: None
Create Date: 2026-10-18

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_CHANNELS = ("c1", "c4", "x3")


def _channel_columns(name: str) -> list[sa.Column]:
    return [
        sa.Column(f"{name}_exp", sa.Integer(), nullable=True),
        sa.Column(f"{name}_mantissa", sa.Integer(), nullable=True),
        sa.Column(f"{name}_val", sa.REAL(), nullable=True),
        sa.Column(f"{name}_x10", sa.REAL(), nullable=True),
        sa.Column(f"{name}_float", sa.REAL(), nullable=True),
    ]


def upgrade() -> None:
    """Create TimescaleDB extension and the energy hypertable."""
    op.execute("CREATE EXTENSION IF NOT EXISTS timescaledb")

    op.create_table(
        "energy",
        sa.Column("device_id", sa.Integer(), nullable=False),
        sa.Column(
            "db_timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("device_timestamp", sa.Integer(), nullable=True),
        sa.Column("frequency", sa.REAL(), nullable=True),
        sa.Column("u1", sa.REAL(), nullable=True),
        sa.Column("i1", sa.REAL(), nullable=True),
        sa.Column("pt", sa.REAL(), nullable=True),
        sa.Column("qt", sa.REAL(), nullable=True),
        sa.Column("st", sa.REAL(), nullable=True),
        sa.Column("pft", sa.Integer(), nullable=True),
        sa.Column("int_temp", sa.REAL(), nullable=True),
        sa.Column("u1_thd", sa.REAL(), nullable=True),
        sa.Column("i1_thd", sa.REAL(), nullable=True),
        *(col for name in _CHANNELS for col in _channel_columns(name)),
        sa.PrimaryKeyConstraint("device_id", "db_timestamp"),
    )

    op.execute(
        "SELECT create_hypertable("
        "'energy', 'db_timestamp', "
        "chunk_time_interval => INTERVAL '1 day', "
        "if_not_exists => TRUE"
        ")"
    )


def downgrade() -> None:
    """Drop the energy table.

    Note: Does not drop the timescaledb extension as other tables may use it.
    """
    op.drop_table("energy")
