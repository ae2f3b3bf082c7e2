"""WireHub - server-side composition of endpoints.

The hub owns one Registry and a table of server signal handlers. Every
connection it accepts becomes an Endpoint loaded with those handlers and
registered in the hub's registry, so ``hub.broadcast()`` reaches every
connected peer.

    hub = WireHub()
    hub.on("echo", lambda data: data)
    app = create_app(hub)          # WebSocket clients
    await hub.serve_tcp(host, port)  # newline-JSON TCP clients
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from starlette.websockets import WebSocket

from .config import WireSettings, get_settings
from .endpoint import Endpoint
from .protocol.envelopes import now_ms
from .registry import Registry
from .signals import SignalHandler
from .transport.base import Transport
from .transport.stream import StreamTransport
from .transport.websocket import WebSocketServerTransport

logger = logging.getLogger(__name__)

PING_SIGNAL = "ping"


class WireHub:
    """Accepts connections and keeps their endpoints in one registry."""

    def __init__(self, settings: WireSettings | None = None) -> None:
        self.settings = settings or get_settings()
        self.registry = Registry()
        self._handlers: dict[str, SignalHandler] = {}

    @property
    def endpoint_count(self) -> int:
        return len(self.registry)

    def on(self, signal: str, handler: SignalHandler) -> None:
        """Register a signal handler on current and future endpoints."""
        self._handlers[signal] = handler
        for endpoint in self.registry:
            endpoint.on(signal, handler)

    def attach(self, transport: Transport) -> Endpoint:
        """Wrap a connected transport in an Endpoint owned by this hub."""
        endpoint = Endpoint(transport, registry=self.registry, settings=self.settings)
        endpoint.on(PING_SIGNAL, _pong(endpoint))
        for signal, handler in self._handlers.items():
            endpoint.on(signal, handler)
        logger.info(f"Endpoint {endpoint.id} attached ({self.endpoint_count} connected)")
        return endpoint

    def broadcast(self, signal: str, data: Any = None) -> int:
        """Send ``signal`` to every connected peer (fire-and-forget)."""
        return self.registry.broadcast(signal, data)

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Serve one WebSocket connection until it ends."""
        transport = WebSocketServerTransport(websocket)
        await transport.accept()
        endpoint = self.attach(transport)
        try:
            await transport.run()
        finally:
            await endpoint.destroy()
            logger.info(f"Endpoint {endpoint.id} detached ({self.endpoint_count} connected)")

    async def handle_stream(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """Serve one stream connection until it ends."""
        transport = StreamTransport(reader, writer)
        endpoint = self.attach(transport)
        try:
            await transport.run()
        finally:
            await endpoint.destroy()
            logger.info(f"Endpoint {endpoint.id} detached ({self.endpoint_count} connected)")

    async def serve_tcp(self, host: str, port: int) -> asyncio.Server:
        """Start accepting newline-JSON connections over TCP."""
        server = await asyncio.start_server(self.handle_stream, host, port)
        logger.info(f"Listening for stream connections on {host}:{port}")
        return server

    async def close(self) -> None:
        """Destroy every attached endpoint."""
        count = await self.registry.close_all()
        logger.info(f"Hub closed ({count} endpoint(s) destroyed)")


def _pong(endpoint: Endpoint) -> SignalHandler:
    def handler(data: Any) -> dict[str, Any]:
        return {"pong": True, "endpoint": endpoint.id, "timestamp": now_ms()}

    return handler
