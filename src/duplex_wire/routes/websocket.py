"""WebSocket endpoint - one duplex-wire Endpoint per connection."""

from __future__ import annotations

import logging

from starlette.routing import WebSocketRoute
from starlette.websockets import WebSocket

logger = logging.getLogger(__name__)


async def wire_endpoint(websocket: WebSocket) -> None:
    """Attach the connection to the application's hub.

    Clients exchange ``{"event", "payload"}`` frames carrying request and
    response envelopes; either side may send requests.
    """
    hub = websocket.app.state.hub
    client = websocket.client
    logger.info(f"WebSocket connection from {client.host if client else 'unknown'}")
    await hub.handle_websocket(websocket)


def websocket_routes(path: str = "/wire") -> list[WebSocketRoute]:
    """Route definitions for the wire endpoint at ``path``."""
    return [WebSocketRoute(path, wire_endpoint)]
