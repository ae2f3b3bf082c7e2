"""Transport abstraction.

An endpoint only needs three things from a transport: emit a named event
with a payload, subscribe a handler to a named event, and (optionally)
close. Events an endpoint subscribes to:

- ``request``: an inbound request envelope
- ``response``: an inbound response envelope
- ``disconnect``: the connection is gone, for whatever reason
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], Any]

DISCONNECT = "disconnect"
REQUEST = "request"
RESPONSE = "response"


@runtime_checkable
class Transport(Protocol):
    """Protocol every transport plugged into an Endpoint satisfies.

    ``close()`` is optional; endpoints check for it before calling. It may
    be a plain method or a coroutine.
    """

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Send a named event to the other side."""
        ...

    def on(self, event: str, handler: EventHandler) -> None:
        """Register a handler for a named inbound event."""
        ...


class EventHandlers:
    """Handler table and dispatch shared by the bundled transports.

    Handlers may be plain callables or return awaitables; ``dispatch``
    awaits them in registration order. A failing handler is logged and
    does not stop the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._disconnected = False

    def on(self, event: str, handler: EventHandler) -> None:
        """Register a handler for a named inbound event."""
        self._handlers.setdefault(event, []).append(handler)

    def off(self, event: str, handler: EventHandler | None = None) -> None:
        """Remove one handler, or all handlers for ``event``."""
        if handler is None:
            self._handlers.pop(event, None)
            return
        handlers = self._handlers.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    async def dispatch(self, event: str, payload: dict[str, Any]) -> None:
        """Deliver an inbound event to its handlers."""
        handlers = list(self._handlers.get(event, []))
        if not handlers:
            logger.debug(f"No handler for transport event {event!r}")
            return

        for handler in handlers:
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Error in handler for transport event {event!r}")

    async def dispatch_disconnect(self, reason: str) -> None:
        """Fire ``disconnect`` the first time the connection goes away."""
        if self._disconnected:
            return
        self._disconnected = True
        logger.debug(f"{self.__class__.__name__} disconnected: {reason}")
        await self.dispatch(DISCONNECT, {"reason": reason})
