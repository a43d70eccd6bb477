"""
Modbus TCP frame codec for read-registers requests and responses.

Pure functions only: no sockets, no clock, no logging.  Builds the request
ADU (7-byte MBAP header followed by the PDU) and validates a response ADU
into a :class:`RegisterFrame` of 16-bit words.

Request ADU layout (big-endian)::

    transaction id (2) | protocol id = 0 (2) | length = 6 (2) | unit id (1)
    function code (1)  | start address (2)   | word count (2)

Response ADU layout::

    transaction id (2) | protocol id (2) | length (2) | unit id (1)
    function code (1)  | byte count (1)  | byte count bytes of register data

An exception response sets bit 7 of the function code and carries a single
exception code byte instead of the byte count.

CHANGELOG:
- 2026-10-18: Initial creation
- 2026-10-18: Gateway-side helpers moved to the test fixtures

TODO:
- None
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from meter.src.errors import (
    ExceptionResponse,
    FunctionCodeMismatch,
    HeaderMismatch,
    LengthMismatch,
    RequestTooLarge,
    Truncated,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

READ_HOLDING_REGISTERS: int = 0x03
READ_INPUT_REGISTERS: int = 0x04
SUPPORTED_FUNCTION_CODES: frozenset[int] = frozenset(
    {READ_HOLDING_REGISTERS, READ_INPUT_REGISTERS}
)

MAX_READ_WORDS: int = 125
"""Maximum number of registers in one read request (Modbus application protocol limit)."""

MBAP_HEADER_SIZE: int = 7
"""Transaction id, protocol id, length and unit id."""

MAX_MBAP_LENGTH: int = 254
"""Largest legal value of the MBAP length field (unit id + 253-byte PDU)."""

_MIN_MBAP_LENGTH: int = 3
_EXCEPTION_BIT: int = 0x80

_MBAP = struct.Struct(">HHHB")
_READ_REQUEST = struct.Struct(">HHHBBHH")


# ---------------------------------------------------------------------------
# Register frame
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RegisterFrame:
    """Contiguous block of 16-bit register words read in one request.

    Attributes:
        base_address: Register address of ``words[0]``.
        words: Raw unsigned 16-bit register values in address order.
    """

    base_address: int
    words: tuple[int, ...]

    def __len__(self) -> int:
        return len(self.words)

    @property
    def end_address(self) -> int:
        """Address one past the last register in the frame."""
        return self.base_address + len(self.words)

    def covers(self, address: int, count: int = 1) -> bool:
        """Return True when ``count`` words starting at ``address`` are in the frame."""
        return self.base_address <= address and address + count <= self.end_address

    def read(self, address: int, count: int = 1) -> list[int]:
        """Return ``count`` words starting at the absolute register ``address``.

        Raises:
            IndexError: If any requested word lies outside the frame.
        """
        if not self.covers(address, count):
            raise IndexError(
                f"Registers {address}..{address + count - 1} outside frame "
                f"{self.base_address}..{self.end_address - 1}"
            )
        offset = address - self.base_address
        return list(self.words[offset : offset + count])


# ---------------------------------------------------------------------------
# Client side
# ---------------------------------------------------------------------------


def _check_function_code(function_code: int) -> None:
    if function_code not in SUPPORTED_FUNCTION_CODES:
        raise ValueError(
            f"Unsupported read function code 0x{function_code:02X} "
            "(expected 0x03 or 0x04)"
        )


def encode_read_request(
    unit_id: int,
    start_address: int,
    word_count: int,
    *,
    transaction_id: int = 1,
    function_code: int = READ_HOLDING_REGISTERS,
) -> bytes:
    """Build a read-registers request ADU.

    Args:
        unit_id: Modbus unit / slave identifier (0-255).
        start_address: First register address (0-65535, zero-based).
        word_count: Number of registers to read (1-125).
        transaction_id: MBAP transaction identifier echoed by the server.
        function_code: 0x03 (holding) or 0x04 (input registers).

    Returns:
        The 12-byte request ADU.

    Raises:
        RequestTooLarge: If ``word_count`` exceeds :data:`MAX_READ_WORDS`.
        ValueError: If any other argument is out of its field range.
    """
    if word_count > MAX_READ_WORDS:
        raise RequestTooLarge(word_count, MAX_READ_WORDS)
    if word_count < 1:
        raise ValueError(f"word_count must be >= 1, got {word_count}")
    if not 0 <= unit_id <= 0xFF:
        raise ValueError(f"unit_id must be between 0 and 255, got {unit_id}")
    if not 0 <= start_address <= 0xFFFF:
        raise ValueError(f"start_address must be between 0 and 65535, got {start_address}")
    if start_address + word_count > 0x10000:
        raise ValueError("Register range runs past address 65535")
    if not 0 <= transaction_id <= 0xFFFF:
        raise ValueError(f"transaction_id must be between 0 and 65535, got {transaction_id}")
    _check_function_code(function_code)

    return _READ_REQUEST.pack(
        transaction_id,
        0,
        6,
        unit_id,
        function_code,
        start_address,
        word_count,
    )


def adu_length(buffer: bytes | bytearray) -> int | None:
    """Return the total ADU length announced by a partially received buffer.

    Used by the transport to detect the frame boundary while accumulating
    partial reads.

    Returns:
        Total frame length in bytes, or ``None`` while fewer than the six
        bytes needed to read the MBAP length field are buffered.

    Raises:
        LengthMismatch: If the MBAP length field cannot describe a valid frame.
    """
    if len(buffer) < 6:
        return None
    (length,) = struct.unpack_from(">H", buffer, 4)
    if not _MIN_MBAP_LENGTH <= length <= MAX_MBAP_LENGTH:
        raise LengthMismatch(f"MBAP length field {length} is not a valid frame length")
    return 6 + length


def decode_response(
    data: bytes,
    expected_word_count: int,
    *,
    unit_id: int | None = None,
    transaction_id: int | None = None,
    function_code: int = READ_HOLDING_REGISTERS,
    base_address: int = 0,
) -> RegisterFrame:
    """Validate a read-registers response ADU and unwrap its words.

    The frame is either accepted whole or rejected; it is never padded,
    truncated or otherwise best-effort parsed.

    Args:
        data: Complete response ADU as received from the gateway.
        expected_word_count: Word count of the request being answered.
        unit_id: Expected unit id, or ``None`` to skip the check.
        transaction_id: Expected transaction id, or ``None`` to skip the check.
        function_code: Function code of the request.
        base_address: Register address to attach to the returned frame.

    Returns:
        A :class:`RegisterFrame` holding exactly ``expected_word_count`` words.

    Raises:
        Truncated: Buffer too short to hold a response header.
        HeaderMismatch: Protocol id, transaction id or unit id disagree.
        ExceptionResponse: The device returned a Modbus exception.
        FunctionCodeMismatch: The response answers a different function.
        LengthMismatch: Byte count, payload size or MBAP length disagree.
    """
    if len(data) < MBAP_HEADER_SIZE + 2:
        raise Truncated(
            f"Response of {len(data)} bytes is shorter than the "
            f"{MBAP_HEADER_SIZE + 2}-byte minimum"
        )

    resp_tid, protocol_id, length, resp_unit = _MBAP.unpack_from(data, 0)
    if protocol_id != 0:
        raise HeaderMismatch(f"Protocol id {protocol_id} is not Modbus (0)")
    if transaction_id is not None and resp_tid != transaction_id:
        raise HeaderMismatch(
            f"Transaction id {resp_tid} does not match request {transaction_id}"
        )
    if unit_id is not None and resp_unit != unit_id:
        raise HeaderMismatch(f"Unit id {resp_unit} does not match request {unit_id}")

    resp_fc = data[MBAP_HEADER_SIZE]
    if resp_fc & _EXCEPTION_BIT:
        raise ExceptionResponse(data[MBAP_HEADER_SIZE + 1], resp_fc & 0x7F)
    if resp_fc != function_code:
        raise FunctionCodeMismatch(
            f"Response function code 0x{resp_fc:02X} does not match "
            f"request 0x{function_code:02X}"
        )

    byte_count = data[MBAP_HEADER_SIZE + 1]
    if byte_count != 2 * expected_word_count:
        raise LengthMismatch(
            f"Byte count {byte_count} does not match {expected_word_count} "
            "requested registers"
        )
    payload = data[MBAP_HEADER_SIZE + 2 :]
    if len(payload) != byte_count:
        raise LengthMismatch(
            f"Byte count {byte_count} declared but {len(payload)} payload bytes received"
        )
    if length != len(data) - 6:
        raise LengthMismatch(
            f"MBAP length {length} does not match {len(data) - 6} bytes after the header"
        )

    words = struct.unpack(f">{expected_word_count}H", payload)
    return RegisterFrame(base_address=base_address, words=tuple(words))
