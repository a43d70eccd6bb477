"""
Power meter Modbus register map -- single source of truth.

Defines every register address, 7M.24 data type, scaling factor, unit,
valid value range and "not available" sentinel for the meter, plus the
exponent/mantissa channels assembled from them.

Registers are organised into contiguous groups for efficient batched reads.
Each group covers a contiguous Modbus address range of at most 125 words so
the poller can issue one read request per group.

Addresses are zero-based protocol addresses as sent on the wire.  Gateways
that number registers from one are handled by ``register_offset`` in the
settings, not here.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Frequency accepts 0 Hz (dead line)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass, field

from meter.src.datatypes import WORD_COUNTS

# ---------------------------------------------------------------------------
# Data definitions
# ---------------------------------------------------------------------------

S16_NOT_AVAILABLE: int = 0x8000
"""Raw pattern of a one-word signed register the meter cannot supply."""

S32_NOT_AVAILABLE: int = 0x80000000
"""Raw pattern of a two-word signed register the meter cannot supply."""


@dataclass(frozen=True, slots=True)
class RegisterDef:
    """Definition of a single Modbus register.

    Attributes:
        address: Modbus register start address.
        name: Unique human-readable identifier used as dict key.
        reg_type: Data type -- one of the keys of
            :data:`~meter.src.datatypes.WORD_COUNTS`.
        unit: Engineering unit string (e.g. ``"V"``, ``"Hz"``, ``"%"``).
        scale: Multiplicative scaling factor applied to the converted
            value.  For example 0.01 means the raw value is in hundredths.
        valid_range: Optional ``(min, max)`` tuple for the *scaled* value.
            ``None`` when no range check is applicable.
        description: Free-text description of the register.
        sentinel: Optional raw pattern (words concatenated high first) the
            meter uses for "value not available".
        word_count: Number of 16-bit Modbus words this register occupies,
            derived from *reg_type*.
    """

    address: int
    name: str
    reg_type: str
    unit: str
    scale: float = 1.0
    valid_range: tuple[float, float] | None = None
    description: str = ""
    sentinel: int | None = None
    word_count: int = field(default=0, repr=False)

    def __post_init__(self) -> None:  # noqa: D105
        wc = WORD_COUNTS.get(self.reg_type)
        if wc is None:
            msg = f"Register '{self.name}': unsupported type '{self.reg_type}'"
            raise ValueError(msg)
        # frozen=True requires object.__setattr__
        object.__setattr__(self, "word_count", wc)


@dataclass(frozen=True, slots=True)
class RegisterGroup:
    """A contiguous range of Modbus registers that can be read in one call.

    Attributes:
        group_name: Human-readable group identifier (e.g. ``"measurements"``).
        start_address: First Modbus register address in the batch.
        count: Total number of 16-bit words to read.
        registers: Ordered list of :class:`RegisterDef` within this range.
    """

    group_name: str
    start_address: int
    count: int
    registers: list[RegisterDef]


@dataclass(frozen=True, slots=True)
class ChannelDef:
    """The four registers that describe one exponent/mantissa channel.

    Attributes:
        name: Channel identifier, also the column prefix (e.g. ``"c1"``).
        exponent: Register name of the signed decade exponent.
        mantissa: Register name of the signed mantissa.
        x10: Register name of the same quantity in tenths.
        float_value: Register name of the IEEE-754 rendition.
        description: What the channel measures.
    """

    name: str
    exponent: str
    mantissa: str
    x10: str
    float_value: str
    description: str = ""


# ---------------------------------------------------------------------------
# Instantaneous measurements group (addresses 103-188)
# ---------------------------------------------------------------------------

_MEASUREMENT_REGISTERS: list[RegisterDef] = [
    RegisterDef(
        address=103,
        name="run_time",
        reg_type="S32",
        unit="",
        description="Meter run-time counter, stored as the device timestamp",
    ),
    RegisterDef(
        address=105,
        name="frequency",
        reg_type="T5",
        unit="Hz",
        valid_range=(0, 70),
        description="Line frequency; 0 on a dead line with an auxiliary-powered meter",
    ),
    RegisterDef(
        address=107,
        name="voltage_l1",
        reg_type="T5",
        unit="V",
        valid_range=(0, 1000),
        description="Phase L1 voltage",
    ),
    RegisterDef(
        address=126,
        name="current_l1",
        reg_type="T5",
        unit="A",
        valid_range=(0, 10000),
        description="Phase L1 current",
    ),
    RegisterDef(
        address=140,
        name="active_power_total",
        reg_type="T6",
        unit="W",
        description="Total active power. Positive = import, negative = export.",
    ),
    RegisterDef(
        address=148,
        name="reactive_power_total",
        reg_type="T6",
        unit="var",
        description="Total reactive power",
    ),
    RegisterDef(
        address=156,
        name="apparent_power_total",
        reg_type="T5",
        unit="VA",
        description="Total apparent power",
    ),
    RegisterDef(
        address=164,
        name="power_factor_total",
        reg_type="T7",
        unit="",
        valid_range=(-10000, 10000),
        description="Total power factor, four implied decimals",
    ),
    RegisterDef(
        address=181,
        name="internal_temperature",
        reg_type="S16",
        unit="C",
        scale=0.01,
        valid_range=(-40, 125),
        description="Meter internal temperature",
    ),
    RegisterDef(
        address=182,
        name="voltage_l1_thd",
        reg_type="S16",
        unit="%",
        scale=0.01,
        valid_range=(0, 100),
        description="Phase L1 voltage total harmonic distortion",
    ),
    RegisterDef(
        address=188,
        name="current_l1_thd",
        reg_type="S16",
        unit="%",
        scale=0.01,
        valid_range=(0, 1000),
        description="Phase L1 current total harmonic distortion",
    ),
]

MEASUREMENT_GROUP = RegisterGroup(
    group_name="measurements",
    start_address=103,
    count=86,  # 103..188 inclusive = 86 words
    registers=_MEASUREMENT_REGISTERS,
)

# ---------------------------------------------------------------------------
# Exponent / mantissa / x10 group (addresses 401-475)
# ---------------------------------------------------------------------------


def _exponent(address: int, channel: str) -> RegisterDef:
    return RegisterDef(
        address=address,
        name=f"{channel}_exponent",
        reg_type="S16",
        unit="",
        valid_range=(-10, 10),
        description=f"Channel {channel} decade exponent",
        sentinel=S16_NOT_AVAILABLE,
    )


def _mantissa(address: int, channel: str) -> RegisterDef:
    return RegisterDef(
        address=address,
        name=f"{channel}_mantissa",
        reg_type="S32",
        unit="",
        description=f"Channel {channel} mantissa",
        sentinel=S32_NOT_AVAILABLE,
    )


def _x10(address: int, channel: str) -> RegisterDef:
    return RegisterDef(
        address=address,
        name=f"{channel}_x10",
        reg_type="S32",
        unit="",
        scale=0.1,
        description=f"Channel {channel} value in tenths",
        sentinel=S32_NOT_AVAILABLE,
    )


def _float(address: int, channel: str) -> RegisterDef:
    return RegisterDef(
        address=address,
        name=f"{channel}_float",
        reg_type="F32",
        unit="",
        description=f"Channel {channel} value as IEEE-754 float",
    )


_COUNTER_REGISTERS: list[RegisterDef] = [
    _exponent(401, "c1"),
    _exponent(404, "c4"),
    _mantissa(406, "c1"),
    _mantissa(412, "c4"),
    _mantissa(418, "x3"),
    _exponent(448, "x3"),
    _x10(462, "c1"),
    _x10(468, "c4"),
    _x10(474, "x3"),
]

COUNTER_GROUP = RegisterGroup(
    group_name="counters",
    start_address=401,
    count=75,  # 401..475 inclusive = 75 words
    registers=_COUNTER_REGISTERS,
)

# ---------------------------------------------------------------------------
# IEEE-754 counter groups (addresses 2638-2645 and 2764-2765)
# Too far apart for one read: 2638..2765 would be 128 words.
# ---------------------------------------------------------------------------

COUNTER_FLOAT_GROUP = RegisterGroup(
    group_name="counter_floats",
    start_address=2638,
    count=8,  # 2638..2645 inclusive = 8 words
    registers=[_float(2638, "c1"), _float(2644, "c4")],
)

APPARENT_FLOAT_GROUP = RegisterGroup(
    group_name="apparent_float",
    start_address=2764,
    count=2,  # F32 = 2 words
    registers=[_float(2764, "x3")],
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

ALL_GROUPS: list[RegisterGroup] = [
    MEASUREMENT_GROUP,
    COUNTER_GROUP,
    COUNTER_FLOAT_GROUP,
    APPARENT_FLOAT_GROUP,
]
"""All register groups in read order."""

ALL_REGISTERS: dict[str, RegisterDef] = {
    reg.name: reg for group in ALL_GROUPS for reg in group.registers
}
"""Flat lookup of every register by name."""

CHANNELS: list[ChannelDef] = [
    ChannelDef(
        name=name,
        exponent=f"{name}_exponent",
        mantissa=f"{name}_mantissa",
        x10=f"{name}_x10",
        float_value=f"{name}_float",
        description=description,
    )
    for name, description in (
        ("c1", "Import active energy (MID certified)"),
        ("c4", "Export reactive energy (MID certified)"),
        ("x3", "Total absolute apparent energy (not certified)"),
    )
]
"""Exponent/mantissa channels in snapshot order."""
