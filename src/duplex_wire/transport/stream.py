"""Stream transport - newline-delimited JSON frames over asyncio streams.

Works over any StreamReader/StreamWriter pair: TCP sockets, Unix
sockets, subprocess pipes.

Wire format (one frame per line):
    {"event": "request", "payload": {...}}\\n
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from ..errors import FrameError
from ..protocol.frames import Frame
from .base import EventHandlers

logger = logging.getLogger(__name__)


class StreamTransport(EventHandlers):
    """Transport over an asyncio StreamReader/StreamWriter pair."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        super().__init__()
        self._reader = reader
        self._writer = writer
        self._closed = False
        self._write_lock = asyncio.Lock()

    @classmethod
    async def open_connection(cls, host: str, port: int) -> StreamTransport:
        """Connect over TCP."""
        reader, writer = await asyncio.open_connection(host, port)
        logger.info(f"Connected to {host}:{port}")
        return cls(reader, writer)

    @property
    def closed(self) -> bool:
        return self._closed

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Write one frame line.

        Raises:
            ConnectionError: If the transport is closed
        """
        if self._closed:
            raise ConnectionError("Stream transport closed")
        line = Frame(event, payload).to_json() + "\n"
        async with self._write_lock:
            self._writer.write(line.encode("utf-8"))
            await self._writer.drain()

    async def run(self) -> None:
        """Read frame lines and dispatch them until EOF."""
        reason = "eof"
        try:
            while not self._closed:
                try:
                    line = await self._reader.readline()
                except ValueError as e:
                    # Over-long line; the reader has already discarded it
                    logger.warning(f"Skipping stream line over the reader limit: {e}")
                    continue
                if not line:
                    break

                try:
                    line_str = line.decode("utf-8").strip()
                except UnicodeDecodeError as e:
                    logger.warning(f"Skipping undecodable stream line: {e}")
                    continue
                if not line_str:
                    continue

                try:
                    frame = Frame.from_json(line_str)
                except FrameError as e:
                    logger.warning(f"Invalid stream frame: {e}")
                    continue
                await self.dispatch(frame.event, frame.payload)
        except (ConnectionError, asyncio.IncompleteReadError) as e:
            reason = f"connection lost: {e}"
        except Exception as e:
            logger.exception(f"Stream read loop error: {e}")
            reason = f"read error: {e}"
        finally:
            await self.close(reason)

    def start(self) -> asyncio.Task[None]:
        """Run the read loop as a background task."""
        return asyncio.get_running_loop().create_task(self.run())

    async def close(self, reason: str = "closed") -> None:
        """Close the writer and fire ``disconnect``."""
        if not self._closed:
            self._closed = True
            self._writer.close()
            with contextlib.suppress(ConnectionError):
                await self._writer.wait_closed()
        await self.dispatch_disconnect(reason)
