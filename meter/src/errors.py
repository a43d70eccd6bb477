"""
Error taxonomy for a single meter poll.

Every failure of the read/decode pipeline surfaces to the caller of
``poll_once`` as a subclass of :class:`PollError`.  Three families exist:

- :class:`IoError`: the TCP session to the gateway failed.
- :class:`ProtocolError`: the gateway answered with a frame that is not a
  valid response to the request.
- :class:`DecodeError`: the frame was valid but a register did not hold a
  usable value.

Each class carries a stable ``kind`` string used in the process exit
diagnostic.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

# Modbus exception codes as listed in the Modbus Application Protocol v1.1b3.
EXCEPTION_CODE_NAMES: dict[int, str] = {
    0x01: "illegal function",
    0x02: "illegal data address",
    0x03: "illegal data value",
    0x04: "server device failure",
    0x05: "acknowledge",
    0x06: "server device busy",
    0x08: "memory parity error",
    0x0A: "gateway path unavailable",
    0x0B: "gateway target device failed to respond",
}


class PollError(Exception):
    """Base class for every error raised by the poll pipeline."""

    kind = "poll_error"


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class IoError(PollError):
    """The TCP session to the gateway failed."""

    kind = "io_error"


class ConnectFailed(IoError):
    """Connection refused, host unreachable or name resolution failed."""

    kind = "connect_failed"


class IoTimeout(IoError):
    """No complete response arrived within the configured timeout."""

    kind = "timeout"


class ShortWrite(IoError):
    """The request could not be written completely to the socket."""

    kind = "short_write"


class ConnectionClosed(IoError):
    """The gateway closed the connection before a full frame arrived."""

    kind = "connection_closed"


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProtocolError(PollError):
    """The response frame is not a valid answer to the request."""

    kind = "protocol_error"


class RequestTooLarge(ProtocolError):
    """The requested word count exceeds the per-request protocol maximum."""

    kind = "request_too_large"

    def __init__(self, word_count: int, maximum: int) -> None:
        super().__init__(
            f"Cannot read {word_count} registers in one request (maximum {maximum})"
        )
        self.word_count = word_count
        self.maximum = maximum


class ExceptionResponse(ProtocolError):
    """The device answered with a Modbus exception response."""

    kind = "exception_response"

    def __init__(self, code: int, function_code: int) -> None:
        name = EXCEPTION_CODE_NAMES.get(code, "unknown exception")
        super().__init__(
            f"Modbus exception 0x{code:02X} ({name}) for function 0x{function_code:02X}"
        )
        self.code = code
        self.function_code = function_code


class FunctionCodeMismatch(ProtocolError):
    """The response echoes a different function code than requested."""

    kind = "function_code_mismatch"


class HeaderMismatch(ProtocolError):
    """The MBAP header does not belong to the request that was sent."""

    kind = "header_mismatch"


class LengthMismatch(ProtocolError):
    """Declared and actual lengths of the response disagree."""

    kind = "length_mismatch"


class Truncated(ProtocolError):
    """The buffer is too short to hold even a response header."""

    kind = "truncated"


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


class DecodeError(PollError):
    """A register inside a valid frame does not hold a usable value."""

    kind = "decode_error"

    def __init__(self, message: str, *, register: str) -> None:
        super().__init__(message)
        self.register = register


class UnavailableField(DecodeError):
    """The register holds the meter's "not available" sentinel pattern."""

    kind = "unavailable_field"

    def __init__(self, register: str, raw: int) -> None:
        super().__init__(
            f"Register '{register}' reports not available (raw 0x{raw:X})",
            register=register,
        )
        self.raw = raw


class InvalidFloatEncoding(DecodeError):
    """A float register pair decodes to NaN or infinity."""

    kind = "invalid_float_encoding"

    def __init__(self, register: str, words: list[int]) -> None:
        hex_words = " ".join(f"{w:04X}" for w in words)
        super().__init__(
            f"Register '{register}' holds a non-finite float ({hex_words})",
            register=register,
        )
        self.words = words


class OutOfRange(DecodeError):
    """A decoded value lies outside the meter's documented physical range."""

    kind = "out_of_range"

    def __init__(
        self, register: str, value: float, valid_range: tuple[float, float]
    ) -> None:
        lo, hi = valid_range
        super().__init__(
            f"Register '{register}' value {value:.6g} outside valid range ({lo}, {hi})",
            register=register,
        )
        self.value = value
        self.valid_range = valid_range


class MissingRegister(DecodeError):
    """No frame covers the addresses of a mapped register."""

    kind = "missing_register"

    def __init__(self, register: str, address: int) -> None:
        super().__init__(
            f"Register '{register}' at address {address} not covered by any frame",
            register=register,
        )
        self.address = address
