"""
Pydantic models for one decoded meter snapshot.

Defines the MeasurementSnapshot model that represents a single poll of the
meter after raw Modbus register values have been converted to engineering
units, and the HarmonicChannel model for the meter's exponent/mantissa
channels.

Both models are frozen: a snapshot is built once per poll and never
mutated.  ``to_row`` flattens a snapshot onto the columns of the ``energy``
table one-to-one.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: x10_agrees and x10_divergence

TODO:
- None
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

DEFAULT_REL_TOL: float = 1e-3
"""Relative tolerance for value/float_value agreement."""

DEFAULT_ABS_TOL: float = 1e-3
"""Absolute tolerance for value/float_value agreement near zero."""

X10_RESOLUTION: float = 0.1
"""Step of the tenths register; value/x10_value differences below it are rounding."""


class HarmonicChannel(BaseModel):
    """One exponent/mantissa channel with its independent cross-check facets.

    Attributes:
        exponent: Signed decade exponent register.
        mantissa: Signed mantissa register.
        value: ``mantissa * 10 ** exponent``.
        x10_value: The same quantity from the meter's tenths register.
        float_value: The same quantity from the IEEE-754 register pair.
    """

    model_config = ConfigDict(frozen=True)

    exponent: int
    mantissa: int
    value: float
    x10_value: float
    float_value: float

    @property
    def divergence(self) -> float:
        """Absolute difference between the fixed-point and float facets."""
        return abs(self.value - self.float_value)

    def agrees(
        self,
        rel_tol: float = DEFAULT_REL_TOL,
        abs_tol: float = DEFAULT_ABS_TOL,
    ) -> bool:
        """Return True when ``value`` and ``float_value`` match within tolerance."""
        return math.isclose(self.value, self.float_value, rel_tol=rel_tol, abs_tol=abs_tol)

    @property
    def x10_divergence(self) -> float:
        """Absolute difference between the fixed-point and tenths facets."""
        return abs(self.value - self.x10_value)

    def x10_agrees(self, rel_tol: float = DEFAULT_REL_TOL) -> bool:
        """Return True when ``value`` and ``x10_value`` match within tolerance.

        The tenths register drops everything below 0.1, so differences up to
        :data:`X10_RESOLUTION` always agree.
        """
        return math.isclose(self.value, self.x10_value, rel_tol=rel_tol, abs_tol=X10_RESOLUTION)


class MeasurementSnapshot(BaseModel):
    """A single decoded set of simultaneous meter readings.

    The device_id and db_timestamp are injected by the caller (not derived
    from register data), keeping the decoder a pure function.

    Attributes:
        device_id: Meter identifier from the settings.
        db_timestamp: Wall-clock time of the poll, attached by the poller.
        device_timestamp: Meter run-time counter.
        frequency: Line frequency in Hz.
        voltage_l1: Phase L1 voltage in V.
        current_l1: Phase L1 current in A.
        active_power_total: Total active power in W.
        reactive_power_total: Total reactive power in var.
        apparent_power_total: Total apparent power in VA.
        power_factor_total: Power factor in the meter's native integer
            encoding (four implied decimals, negative = export).
        internal_temperature: Meter internal temperature in C.
        voltage_l1_thd: Phase L1 voltage THD in percent.
        current_l1_thd: Phase L1 current THD in percent.
        c1: Import active energy channel.
        c4: Export reactive energy channel.
        x3: Total absolute apparent energy channel.
    """

    model_config = ConfigDict(frozen=True)

    device_id: int
    db_timestamp: datetime | None = None
    device_timestamp: int
    frequency: float
    voltage_l1: float
    current_l1: float
    active_power_total: float
    reactive_power_total: float
    apparent_power_total: float
    power_factor_total: int
    internal_temperature: float
    voltage_l1_thd: float
    current_l1_thd: float
    c1: HarmonicChannel
    c4: HarmonicChannel
    x3: HarmonicChannel

    @property
    def channels(self) -> dict[str, HarmonicChannel]:
        """Exponent/mantissa channels keyed by name."""
        return {"c1": self.c1, "c4": self.c4, "x3": self.x3}

    def to_row(self) -> dict[str, Any]:
        """Flatten into a dict keyed by ``energy`` table column names."""
        row: dict[str, Any] = {
            "device_id": self.device_id,
            "device_timestamp": self.device_timestamp,
            "frequency": self.frequency,
            "u1": self.voltage_l1,
            "i1": self.current_l1,
            "pt": self.active_power_total,
            "qt": self.reactive_power_total,
            "st": self.apparent_power_total,
            "pft": self.power_factor_total,
            "int_temp": self.internal_temperature,
            "u1_thd": self.voltage_l1_thd,
            "i1_thd": self.current_l1_thd,
        }
        # Omitted so the column's server default now() applies.
        if self.db_timestamp is not None:
            row["db_timestamp"] = self.db_timestamp
        for name, channel in self.channels.items():
            row[f"{name}_exp"] = channel.exponent
            row[f"{name}_mantissa"] = channel.mantissa
            row[f"{name}_val"] = channel.value
            row[f"{name}_x10"] = channel.x10_value
            row[f"{name}_float"] = channel.float_value
        return row
