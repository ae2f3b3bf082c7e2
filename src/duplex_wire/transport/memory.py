"""In-process transport.

Two linked MemoryTransports behave like the two ends of a socket:
whatever one emits, the other receives on a later event loop turn.
Payloads are JSON round-tripped so only wire-safe data crosses.

    left, right = MemoryTransport.pair()
    a = Endpoint(left)
    b = Endpoint(right)

No I/O - useful for tests and for wiring components inside one process.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from .base import EventHandlers

logger = logging.getLogger(__name__)


class MemoryTransport(EventHandlers):
    """One end of an in-process duplex channel."""

    def __init__(self, name: str = "memory") -> None:
        super().__init__()
        self.name = name
        self.peer: MemoryTransport | None = None
        self._closed = False
        self._emitted: list[tuple[str, dict[str, Any]]] = []
        self._tasks: set[asyncio.Task[None]] = set()

    @classmethod
    def pair(cls, left: str = "left", right: str = "right") -> tuple[MemoryTransport, MemoryTransport]:
        """Create two transports linked to each other."""
        a, b = cls(left), cls(right)
        a.peer, b.peer = b, a
        return a, b

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def emitted(self) -> list[tuple[str, dict[str, Any]]]:
        """All (event, payload) pairs emitted through this end."""
        return self._emitted.copy()

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Deliver an event to the peer.

        Dropped silently when there is no open peer.

        Raises:
            ConnectionError: If this end is closed
        """
        if self._closed:
            raise ConnectionError(f"Transport {self.name} is closed")

        wire = json.loads(json.dumps(payload))
        self._emitted.append((event, wire))

        peer = self.peer
        if peer is None or peer.closed:
            logger.debug(f"{self.name}: no open peer, dropped {event!r}")
            return
        peer._schedule(peer.dispatch(event, wire))

    def inject(self, event: str, payload: dict[str, Any]) -> asyncio.Task[None]:
        """Deliver an event to this end as if the peer had sent it."""
        return self._schedule(self.dispatch(event, payload))

    async def close(self) -> None:
        """Close both ends; each fires ``disconnect`` once."""
        if self._closed:
            return
        self._closed = True
        logger.debug(f"{self.name}: closed")

        await self.dispatch_disconnect("closed")

        peer = self.peer
        if peer is not None and not peer.closed:
            peer._schedule(peer.close())

    async def drain(self) -> None:
        """Wait until every delivery scheduled on this end has run."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _schedule(self, coro: Any) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
