"""
TCP transport session to the Modbus gateway.

One :class:`Session` wraps one asyncio stream pair.  ``request`` writes a
complete request ADU and then accumulates partial reads until the MBAP length
field says a full frame has arrived, bounded by the session timeout.

There is no retry or reconnect here: each process run is one attempt and the
external scheduler re-invokes on failure.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging

from meter.src.codec import adu_length
from meter.src.errors import ConnectFailed, ConnectionClosed, IoTimeout, ShortWrite

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE: int = 512
"""Bytes requested per stream read; a full read ADU is at most 260 bytes."""

CLOSE_TIMEOUT_S: float = 2.0
"""Upper bound on waiting for the socket to finish closing."""


class Session:
    """An open TCP connection to the gateway.

    Created by :func:`connect`.  Usable as an async context manager so the
    socket is closed on every exit path::

        async with await connect(host, 502, timeout=3.0) as session:
            raw = await session.request(adu)

    Args:
        reader: Stream reader of the open connection.
        writer: Stream writer of the open connection.
        host: Gateway host, for diagnostics.
        port: Gateway port, for diagnostics.
        timeout: Seconds allowed for one request/response exchange.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        *,
        host: str,
        port: int,
        timeout: float,
    ) -> None:
        self._reader = reader
        self._writer: asyncio.StreamWriter | None = writer
        self._host = host
        self._port = port
        self._timeout = timeout

    @property
    def closed(self) -> bool:
        """True once :meth:`close` has run."""
        return self._writer is None

    async def request(self, adu: bytes) -> bytes:
        """Send one request ADU and return exactly one response ADU.

        Raises:
            ShortWrite: Writing the request failed.
            IoTimeout: No complete frame within the session timeout.
            ConnectionClosed: The gateway closed the stream mid-frame.
            LengthMismatch: The response header announces an impossible length.
        """
        if self._writer is None:
            raise ConnectionClosed(f"Session to {self._host}:{self._port} is closed")

        try:
            self._writer.write(adu)
            await asyncio.wait_for(self._writer.drain(), timeout=self._timeout)
        except TimeoutError as err:
            raise IoTimeout(
                f"Timed out after {self._timeout}s writing request to "
                f"{self._host}:{self._port}"
            ) from err
        except OSError as err:
            raise ShortWrite(
                f"Failed to write {len(adu)}-byte request to "
                f"{self._host}:{self._port}: {err}"
            ) from err

        try:
            return await asyncio.wait_for(self._read_frame(), timeout=self._timeout)
        except TimeoutError as err:
            raise IoTimeout(
                f"No complete response from {self._host}:{self._port} "
                f"within {self._timeout}s"
            ) from err

    async def _read_frame(self) -> bytes:
        """Accumulate reads until one complete ADU is buffered."""
        buffer = bytearray()
        while True:
            needed = adu_length(buffer)
            if needed is not None and len(buffer) >= needed:
                if len(buffer) > needed:
                    logger.debug(
                        "Discarding %d bytes received past the frame boundary",
                        len(buffer) - needed,
                    )
                return bytes(buffer[:needed])

            try:
                chunk = await self._reader.read(READ_CHUNK_SIZE)
            except OSError as err:
                raise ConnectionClosed(
                    f"Connection to {self._host}:{self._port} failed while reading: {err}"
                ) from err
            if not chunk:
                raise ConnectionClosed(
                    f"Gateway {self._host}:{self._port} closed the connection after "
                    f"{len(buffer)} bytes of an incomplete frame"
                )
            buffer.extend(chunk)

    async def close(self) -> None:
        """Close the connection.  Safe to call more than once."""
        writer, self._writer = self._writer, None
        if writer is None:
            return
        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=CLOSE_TIMEOUT_S)
        except TimeoutError:
            logger.warning(
                "Timeout waiting for connection close to %s:%d",
                self._host,
                self._port,
            )
        except OSError:
            logger.debug(
                "Error while closing connection to %s:%d",
                self._host,
                self._port,
                exc_info=True,
            )

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


async def connect(host: str, port: int, timeout: float) -> Session:
    """Open one TCP connection to the gateway.

    Args:
        host: Gateway IP address or hostname.
        port: Gateway Modbus TCP port.
        timeout: Seconds allowed for the TCP handshake, reused as the
            per-request timeout of the returned session.

    Raises:
        ConnectFailed: Connection refused, unreachable or unresolvable.
        IoTimeout: The handshake did not complete within ``timeout``.
    """
    try:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port),
            timeout=timeout,
        )
    except TimeoutError as err:
        raise IoTimeout(f"Timed out after {timeout}s connecting to {host}:{port}") from err
    except OSError as err:
        raise ConnectFailed(f"Failed to connect to {host}:{port}: {err}") from err

    logger.debug("Connected to gateway %s:%d", host, port)
    return Session(reader, writer, host=host, port=port, timeout=timeout)
