"""
Single-shot Modbus TCP poll of the power meter.

Connects to the gateway, reads every register group defined in registers.py
over one TCP session with a configurable inter-request delay, decodes the
frames into a MeasurementSnapshot and stamps it with the wall-clock time.

- One attempt per call: no retry and no backoff; the external scheduler
  re-invokes the process on failure.
- Every error propagates to the caller as a PollError.
- The session is closed on every exit path.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from meter.src.codec import RegisterFrame, decode_response, encode_read_request
from meter.src.decoder import decode
from meter.src.registers import ALL_GROUPS
from meter.src.transport import connect

if TYPE_CHECKING:
    from meter.src.config import MeterSettings
    from meter.src.models import MeasurementSnapshot
    from meter.src.registers import RegisterGroup
    from meter.src.transport import Session

logger = logging.getLogger(__name__)


async def read_frames(
    session: Session,
    *,
    unit_id: int,
    function_code: int = 0x03,
    register_offset: int = 0,
    inter_request_delay_ms: int = 0,
    groups: list[RegisterGroup] | None = None,
) -> list[RegisterFrame]:
    """Read every register group over an open session.

    Each group is one request.  Transaction ids count up from 1 within the
    session.  The returned frames carry the register map addresses, so a
    non-zero ``register_offset`` only affects what goes on the wire.

    Args:
        session: An open transport session.
        unit_id: Modbus unit id of the meter.
        function_code: 0x03 (holding) or 0x04 (input registers).
        register_offset: Added to each group's start address on the wire.
        inter_request_delay_ms: Milliseconds to wait between group reads.
        groups: Groups to read, defaults to
            :data:`~meter.src.registers.ALL_GROUPS`.

    Returns:
        One :class:`RegisterFrame` per group, in group order.

    Raises:
        IoError: The exchange with the gateway failed.
        ProtocolError: A response did not validate.
    """
    if groups is None:
        groups = ALL_GROUPS
    delay_s = inter_request_delay_ms / 1000.0
    frames: list[RegisterFrame] = []

    for idx, group in enumerate(groups):
        # Inter-request delay between groups (not before the first read)
        if idx > 0 and delay_s > 0:
            await asyncio.sleep(delay_s)

        transaction_id = idx + 1
        request = encode_read_request(
            unit_id,
            group.start_address + register_offset,
            group.count,
            transaction_id=transaction_id,
            function_code=function_code,
        )
        response = await session.request(request)
        frame = decode_response(
            response,
            group.count,
            unit_id=unit_id,
            transaction_id=transaction_id,
            function_code=function_code,
            base_address=group.start_address,
        )
        logger.debug(
            "Read group '%s' (address=%d, count=%d): %s",
            group.group_name,
            group.start_address + register_offset,
            group.count,
            response.hex(" "),
        )
        frames.append(frame)

    return frames


async def poll_once(settings: MeterSettings) -> MeasurementSnapshot:
    """Execute one poll cycle and return the decoded snapshot.

    Sequence: connect, read all groups, decode, attach ``db_timestamp``,
    close.  Decoding is all-or-nothing; the first error is raised and no
    snapshot is returned.

    Args:
        settings: Loaded poller settings.

    Returns:
        The :class:`MeasurementSnapshot` of this poll.

    Raises:
        PollError: Any IoError, ProtocolError or DecodeError.
    """
    session = await connect(
        settings.modbus_host,
        settings.modbus_port,
        timeout=settings.modbus_timeout_s,
    )
    try:
        frames = await read_frames(
            session,
            unit_id=settings.modbus_unit_id,
            function_code=settings.modbus_function_code,
            register_offset=settings.register_offset,
            inter_request_delay_ms=settings.inter_request_delay_ms,
        )
        snapshot = decode(
            frames,
            device_id=settings.device_id,
            db_timestamp=datetime.now(tz=UTC),
            rel_tol=settings.cross_check_rel_tol,
        )
    finally:
        await session.close()

    logger.info(
        "Poll success: device=%s frequency=%.3f Hz active_power=%.1f W",
        snapshot.device_id,
        snapshot.frequency,
        snapshot.active_power_total,
    )
    return snapshot
