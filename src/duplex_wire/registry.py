"""Registry of live endpoints.

A registry is owned by whatever composes endpoints (a server hub, a test,
an application). Endpoints add themselves on construction and remove
themselves on destroy. The registry is only used for broadcast fan-out,
never to address a single peer.

Membership changes are guarded by a threading.Lock. Broadcast schedules
every send on the calling loop, so all endpoints in one registry must be
bound to that loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .endpoint import Endpoint

logger = logging.getLogger(__name__)


class Registry:
    """Mapping of endpoint id to live Endpoint."""

    def __init__(self) -> None:
        self._endpoints: dict[str, Endpoint] = {}
        self._lock = threading.Lock()
        self._broadcasts: set[asyncio.Task[Any]] = set()

    def add(self, endpoint: Endpoint) -> None:
        """Register an endpoint under its id (replaces any same-id entry)."""
        with self._lock:
            if endpoint.id in self._endpoints:
                logger.warning(f"Endpoint id collision in registry: {endpoint.id}")
            self._endpoints[endpoint.id] = endpoint

    def remove(self, endpoint_id: str) -> bool:
        """Unregister an endpoint.

        Returns:
            True if it was registered, False otherwise
        """
        with self._lock:
            return self._endpoints.pop(endpoint_id, None) is not None

    def get(self, endpoint_id: str) -> Endpoint | None:
        with self._lock:
            return self._endpoints.get(endpoint_id)

    def snapshot(self) -> list[Endpoint]:
        """Copy of the registered endpoints."""
        with self._lock:
            return list(self._endpoints.values())

    def __contains__(self, endpoint_id: object) -> bool:
        with self._lock:
            return endpoint_id in self._endpoints

    def __len__(self) -> int:
        with self._lock:
            return len(self._endpoints)

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(self.snapshot())

    def broadcast(self, signal: str, data: Any = None) -> int:
        """Send ``signal`` to every registered endpoint.

        Each send runs as its own task and is not awaited; outcomes
        (replies, timeouts, remote errors) are discarded. Must be called
        from a running event loop.

        Returns:
            Number of endpoints the signal was sent through
        """
        endpoints = self.snapshot()
        loop = asyncio.get_running_loop()
        for endpoint in endpoints:
            task = loop.create_task(endpoint.send(signal, data))
            self._broadcasts.add(task)
            task.add_done_callback(self._reap)
        logger.debug(f"Broadcast {signal!r} to {len(endpoints)} endpoint(s)")
        return len(endpoints)

    def _reap(self, task: asyncio.Task[Any]) -> None:
        self._broadcasts.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug(f"Broadcast send finished with {type(exc).__name__}: {exc}")

    async def close_all(self) -> int:
        """Destroy every registered endpoint.

        Returns:
            Number of endpoints destroyed
        """
        endpoints = self.snapshot()
        for endpoint in endpoints:
            await endpoint.destroy()
        return len(endpoints)
