"""
SQLAlchemy ORM models for the meter database.

Defines the EnergyReading model, one row per poll, stored in the ``energy``
TimescaleDB hypertable.  Column names follow the long-standing ``energy``
table layout; :meth:`MeasurementSnapshot.to_row` produces exactly these keys.
Composite primary key (device_id, db_timestamp).

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

import datetime

from sqlalchemy import REAL, DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all meter ORM models."""

    pass


class EnergyReading(Base):
    """One decoded meter snapshot.

    Attributes:
        device_id: Meter identifier from the settings.
        db_timestamp: Poll time in UTC; defaults to now() on insert.
        device_timestamp: Meter run-time counter.
        frequency: Line frequency in Hz.
        u1: Phase L1 voltage in V.
        i1: Phase L1 current in A.
        pt: Total active power in W.
        qt: Total reactive power in var.
        st: Total apparent power in VA.
        pft: Power factor, meter-native integer.
        int_temp: Internal temperature in C.
        u1_thd: Phase L1 voltage THD in percent.
        i1_thd: Phase L1 current THD in percent.
        c1_*, c4_*, x3_*: exponent, mantissa, value, x10 and float facets of
            each channel.
    """

    __tablename__ = "energy"

    device_id: Mapped[int] = mapped_column(Integer, primary_key=True, nullable=False)
    db_timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        primary_key=True,
        nullable=False,
        server_default=func.now(),
    )
    device_timestamp: Mapped[int | None] = mapped_column(Integer)
    frequency: Mapped[float | None] = mapped_column(REAL)
    u1: Mapped[float | None] = mapped_column(REAL)
    i1: Mapped[float | None] = mapped_column(REAL)
    pt: Mapped[float | None] = mapped_column(REAL)
    qt: Mapped[float | None] = mapped_column(REAL)
    st: Mapped[float | None] = mapped_column(REAL)
    pft: Mapped[int | None] = mapped_column(Integer)
    int_temp: Mapped[float | None] = mapped_column(REAL)
    u1_thd: Mapped[float | None] = mapped_column(REAL)
    i1_thd: Mapped[float | None] = mapped_column(REAL)

    c1_exp: Mapped[int | None] = mapped_column(Integer)
    c1_mantissa: Mapped[int | None] = mapped_column(Integer)
    c1_val: Mapped[float | None] = mapped_column(REAL)
    c1_x10: Mapped[float | None] = mapped_column(REAL)
    c1_float: Mapped[float | None] = mapped_column(REAL)

    c4_exp: Mapped[int | None] = mapped_column(Integer)
    c4_mantissa: Mapped[int | None] = mapped_column(Integer)
    c4_val: Mapped[float | None] = mapped_column(REAL)
    c4_x10: Mapped[float | None] = mapped_column(REAL)
    c4_float: Mapped[float | None] = mapped_column(REAL)

    x3_exp: Mapped[int | None] = mapped_column(Integer)
    x3_mantissa: Mapped[int | None] = mapped_column(Integer)
    x3_val: Mapped[float | None] = mapped_column(REAL)
    x3_x10: Mapped[float | None] = mapped_column(REAL)
    x3_float: Mapped[float | None] = mapped_column(REAL)

    def __repr__(self) -> str:
        """Return string representation of the EnergyReading."""
        return (
            f"EnergyReading(device_id={self.device_id!r}, "
            f"db_timestamp={self.db_timestamp!r}, pt={self.pt!r})"
        )
