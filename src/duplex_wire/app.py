"""duplex-wire server application.

Creates the Starlette ASGI application:
- /health - Health check with connected endpoint count
- /wire   - WebSocket route, one Endpoint per connection (path configurable)

All connections share the hub's registry, so a broadcast from any of them
(or from ``hub.broadcast``) reaches every connected peer.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import BaseRoute

from .config import WireSettings, get_settings
from .hub import WireHub
from .routes import health_routes, websocket_routes

logger = logging.getLogger(__name__)


def create_app(hub: WireHub | None = None, settings: WireSettings | None = None) -> Starlette:
    """Create the duplex-wire application.

    Args:
        hub: Hub owning the connections; a new one if omitted
        settings: Settings (websocket path, timeouts); from env if omitted

    Returns:
        Configured Starlette application with the hub at ``app.state.hub``
    """
    settings = settings or (hub.settings if hub else get_settings())
    hub = hub or WireHub(settings)

    routes: list[BaseRoute] = []
    routes.extend(health_routes)
    routes.extend(websocket_routes(settings.path))

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        logger.info(f"duplex-wire ready (websocket path {settings.path})")
        yield
        await hub.close()

    # CORS middleware for local development
    middleware = [
        Middleware(
            CORSMiddleware,
            allow_origins=["http://localhost:*", "http://127.0.0.1:*"],
            allow_methods=["*"],
            allow_headers=["*"],
        ),
    ]

    app = Starlette(routes=routes, middleware=middleware, lifespan=lifespan)
    app.state.hub = hub
    return app
