"""
Pure decoder that converts register frames into a MeasurementSnapshot.

Takes the frames read by the poller (one per register group), looks up every
register of the map in whichever frame covers its address, applies the 7M.24
type conversion, scaling, sentinel and range validation, then builds the
exponent/mantissa channels and returns a frozen MeasurementSnapshot.

This is a pure function: no I/O, no clock.  The device_id and db_timestamp
are accepted as parameters so they can be injected by the caller.  Decoding
is all-or-nothing: the first unusable register raises a DecodeError and no
partial snapshot is produced.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Warn when the x10 facet drifts from the channel value

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import datetime

from meter.src.codec import RegisterFrame
from meter.src.datatypes import combine_exponent_mantissa, convert, raw_pattern
from meter.src.errors import (
    InvalidFloatEncoding,
    MissingRegister,
    OutOfRange,
    UnavailableField,
)
from meter.src.models import DEFAULT_REL_TOL, HarmonicChannel, MeasurementSnapshot
from meter.src.registers import ALL_REGISTERS, CHANNELS, ChannelDef, RegisterDef

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Mapping from MeasurementSnapshot field names to register names.
# ---------------------------------------------------------------------------

_FIELD_MAP: dict[str, str] = {
    "device_timestamp": "run_time",
    "frequency": "frequency",
    "voltage_l1": "voltage_l1",
    "current_l1": "current_l1",
    "active_power_total": "active_power_total",
    "reactive_power_total": "reactive_power_total",
    "apparent_power_total": "apparent_power_total",
    "power_factor_total": "power_factor_total",
    "internal_temperature": "internal_temperature",
    "voltage_l1_thd": "voltage_l1_thd",
    "current_l1_thd": "current_l1_thd",
}
"""Maps MeasurementSnapshot field name -> register name in ALL_REGISTERS."""


# ---------------------------------------------------------------------------
# Core: extract a single register value from the frames
# ---------------------------------------------------------------------------


def _read_words(reg_def: RegisterDef, frames: Sequence[RegisterFrame]) -> list[int]:
    for frame in frames:
        if frame.covers(reg_def.address, reg_def.word_count):
            return frame.read(reg_def.address, reg_def.word_count)
    raise MissingRegister(reg_def.name, reg_def.address)


def extract_value(reg_def: RegisterDef, frames: Sequence[RegisterFrame]) -> float:
    """Extract, type-convert, scale and validate a single register value.

    Integer types with a scale of 1 stay ``int``; everything else is a float.

    Raises:
        MissingRegister: No frame covers the register.
        UnavailableField: The raw words equal the register's sentinel.
        InvalidFloatEncoding: An F32 register decodes to NaN or infinity.
        OutOfRange: The scaled value falls outside ``valid_range``.
    """
    words = _read_words(reg_def, frames)

    if reg_def.sentinel is not None and raw_pattern(words) == reg_def.sentinel:
        raise UnavailableField(reg_def.name, reg_def.sentinel)

    converted = convert(reg_def.reg_type, words)
    if isinstance(converted, float) and not math.isfinite(converted):
        raise InvalidFloatEncoding(reg_def.name, words)

    scaled = converted if reg_def.scale == 1 else converted * reg_def.scale

    if reg_def.valid_range is not None:
        lo, hi = reg_def.valid_range
        if not (lo <= scaled <= hi):
            raise OutOfRange(reg_def.name, scaled, reg_def.valid_range)

    logger.debug(
        "Register '%s' (address=%d) is %s => %s %s",
        reg_def.name,
        reg_def.address,
        [f"{w:04X}" for w in words],
        scaled,
        reg_def.unit,
    )
    return scaled


def decode_channel(
    channel: ChannelDef,
    frames: Sequence[RegisterFrame],
    *,
    rel_tol: float = DEFAULT_REL_TOL,
) -> HarmonicChannel:
    """Decode the exponent, mantissa, x10 and float facets of one channel.

    Disagreement between the fixed-point value and the float or x10 facet is
    logged as a warning and kept in the result; it is not an error.
    """
    exponent = int(extract_value(ALL_REGISTERS[channel.exponent], frames))
    mantissa = int(extract_value(ALL_REGISTERS[channel.mantissa], frames))
    x10_value = float(extract_value(ALL_REGISTERS[channel.x10], frames))
    float_value = float(extract_value(ALL_REGISTERS[channel.float_value], frames))

    result = HarmonicChannel(
        exponent=exponent,
        mantissa=mantissa,
        value=combine_exponent_mantissa(exponent, mantissa),
        x10_value=x10_value,
        float_value=float_value,
    )
    if not result.agrees(rel_tol=rel_tol):
        logger.warning(
            "Channel '%s': value %.6g (mantissa=%d, exponent=%d) disagrees with "
            "float value %.6g by %.6g",
            channel.name,
            result.value,
            mantissa,
            exponent,
            float_value,
            result.divergence,
        )
    if not result.x10_agrees(rel_tol=rel_tol):
        logger.warning(
            "Channel '%s': value %.6g (mantissa=%d, exponent=%d) disagrees with "
            "x10 value %.6g by %.6g",
            channel.name,
            result.value,
            mantissa,
            exponent,
            x10_value,
            result.x10_divergence,
        )
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode(
    frames: RegisterFrame | Sequence[RegisterFrame],
    *,
    device_id: int,
    db_timestamp: datetime | None = None,
    rel_tol: float = DEFAULT_REL_TOL,
) -> MeasurementSnapshot:
    """Convert register frames into a validated MeasurementSnapshot.

    This is a **pure function**: it performs no I/O, has no side effects,
    and does not access the system clock.

    Args:
        frames: One frame or the frames of every register group, as read
            by the poller.  Each register is taken from the frame covering
            its address.
        device_id: Meter identifier to embed in the snapshot.
        db_timestamp: Poll timestamp to embed in the snapshot.
        rel_tol: Relative tolerance for the channel cross-check warning.

    Returns:
        A frozen :class:`MeasurementSnapshot`.

    Raises:
        DecodeError: If any mapped register is missing, unavailable,
            non-finite or out of range.
    """
    if isinstance(frames, RegisterFrame):
        frames = [frames]

    fields: dict[str, float] = {}
    for field_name, reg_name in _FIELD_MAP.items():
        fields[field_name] = extract_value(ALL_REGISTERS[reg_name], frames)

    channels = {
        channel.name: decode_channel(channel, frames, rel_tol=rel_tol)
        for channel in CHANNELS
    }

    return MeasurementSnapshot(
        device_id=device_id,
        db_timestamp=db_timestamp,
        **fields,
        **channels,
    )
