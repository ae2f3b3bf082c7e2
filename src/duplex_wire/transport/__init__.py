"""Transports an Endpoint can run over.

- MemoryTransport: in-process linked pair (tests, embedding)
- WebSocketServerTransport / WebSocketClientTransport: JSON frames over WebSocket
- StreamTransport: newline-delimited JSON frames over asyncio streams (TCP, pipes)

Any object with ``async emit(event, payload)`` and ``on(event, handler)``
works; ``close()`` is optional.
"""

from .base import DISCONNECT, REQUEST, RESPONSE, EventHandler, EventHandlers, Transport
from .memory import MemoryTransport
from .stream import StreamTransport
from .websocket import WebSocketClientTransport, WebSocketServerTransport

__all__ = [
    "Transport",
    "EventHandler",
    "EventHandlers",
    "DISCONNECT",
    "REQUEST",
    "RESPONSE",
    "MemoryTransport",
    "StreamTransport",
    "WebSocketClientTransport",
    "WebSocketServerTransport",
]
