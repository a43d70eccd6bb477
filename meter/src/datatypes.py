"""
Conversions for the meter's 7M.24 Modbus register data types.

Every function takes raw unsigned 16-bit words in register order (high word
first for two-word types) and returns a Python number.  No scaling beyond
what the type itself encodes is applied here; per-register scale factors
live in the register map.

Type reference (manufacturer naming in brackets):

- ``U16`` [T1]: unsigned 16-bit.
- ``S16`` [T2, T17]: signed 16-bit, T17 with two implied decimals.
- ``U32``: unsigned 32-bit.
- ``S32`` [T3]: signed 32-bit.
- ``T5``: bits 31..24 signed decade exponent, bits 23..0 unsigned value.
- ``T6``: bits 31..24 signed decade exponent, bits 23..0 signed value.
- ``T7``: power factor; bits 31..24 import/export sign (00/FF),
  bits 23..16 inductive/capacitive sign (00/FF), bits 15..0 unsigned
  value with four implied decimals.
- ``F32``: IEEE-754 binary32.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Sequence


def convert_u16(raw: int) -> int:
    """Interpret a raw value as unsigned 16-bit (no conversion needed)."""
    return raw & 0xFFFF


def convert_s16(raw: int) -> int:
    """Interpret a raw 16-bit value as signed (two's complement)."""
    val = raw & 0xFFFF
    if val >= 0x8000:
        val -= 0x10000
    return val


def convert_u32(hi: int, lo: int) -> int:
    """Assemble two U16 registers (high word first) into unsigned 32-bit."""
    return ((hi & 0xFFFF) << 16) | (lo & 0xFFFF)


def convert_s32(hi: int, lo: int) -> int:
    """Assemble two U16 registers (high word first) into signed 32-bit."""
    val = convert_u32(hi, lo)
    if val >= 0x80000000:
        val -= 0x100000000
    return val


def _decade_exponent(hi: int) -> int:
    exp = (hi >> 8) & 0xFF
    return exp - 0x100 if exp >= 0x80 else exp


def convert_t5(hi: int, lo: int) -> float:
    """Unsigned 24-bit value scaled by a signed decade exponent.

    Example: ``FD01 E240`` is 123456 * 10**-3 = 123.456.
    """
    value = ((hi & 0xFF) << 16) | (lo & 0xFFFF)
    return value * 10.0 ** _decade_exponent(hi)


def convert_t6(hi: int, lo: int) -> float:
    """Signed 24-bit value scaled by a signed decade exponent.

    Example: ``FDFE 1DC0`` is -123456 * 10**-3 = -123.456.
    """
    value = ((hi & 0xFF) << 16) | (lo & 0xFFFF)
    if value >= 0x800000:
        value -= 0x1000000
    return value * 10.0 ** _decade_exponent(hi)


def convert_t7(hi: int, lo: int) -> int:
    """Power factor in the meter's native integer encoding.

    The import/export byte gives the sign; the inductive/capacitive byte is
    not carried.  ``0000 266E`` is 9838 (0.9838 import), ``FF00 266E`` is
    -9838 (0.9838 export).
    """
    sign = -1 if (hi >> 8) & 0xFF == 0xFF else 1
    return sign * (lo & 0xFFFF)


def convert_f32(hi: int, lo: int) -> float:
    """Reinterpret two registers (high word first) as an IEEE-754 binary32.

    Example: ``42F6 E666`` is 123.45.  NaN and infinity are returned as-is;
    rejecting them is the caller's decision.
    """
    (value,) = struct.unpack(">f", struct.pack(">HH", hi & 0xFFFF, lo & 0xFFFF))
    return value


def combine_exponent_mantissa(exponent: int, mantissa: int) -> float:
    """Combine a decimal exponent and mantissa: ``mantissa * 10 ** exponent``.

    This is the meter's fixed-point rule for its exponent/mantissa channels;
    IEEE-754 semantics do not apply to either register.
    """
    return mantissa * 10.0**exponent


# ---------------------------------------------------------------------------
# Dispatch table used by the decoder
# ---------------------------------------------------------------------------

_ONE_WORD: dict[str, Callable[[int], int]] = {
    "U16": convert_u16,
    "S16": convert_s16,
}

_TWO_WORD: dict[str, Callable[[int, int], float]] = {
    "U32": convert_u32,
    "S32": convert_s32,
    "T5": convert_t5,
    "T6": convert_t6,
    "T7": convert_t7,
    "F32": convert_f32,
}

WORD_COUNTS: dict[str, int] = {
    **{name: 1 for name in _ONE_WORD},
    **{name: 2 for name in _TWO_WORD},
}
"""Number of 16-bit registers occupied by each supported type."""


def raw_pattern(words: Sequence[int]) -> int:
    """Concatenate words (high first) into one unsigned integer."""
    value = 0
    for word in words:
        value = (value << 16) | (word & 0xFFFF)
    return value


def convert(reg_type: str, words: Sequence[int]) -> float:
    """Convert ``words`` according to ``reg_type``.

    Raises:
        ValueError: Unknown type or wrong number of words.
    """
    expected = WORD_COUNTS.get(reg_type)
    if expected is None:
        raise ValueError(f"Unsupported register type '{reg_type}'")
    if len(words) != expected:
        raise ValueError(
            f"Type '{reg_type}' needs {expected} words, got {len(words)}"
        )
    if expected == 1:
        return _ONE_WORD[reg_type](words[0])
    return _TWO_WORD[reg_type](words[0], words[1])
