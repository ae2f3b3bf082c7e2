"""Health check endpoint."""

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    hub = request.app.state.hub
    return JSONResponse({"status": "ok", "endpoints": hub.endpoint_count})


health_routes = [
    Route("/health", health_check, methods=["GET"]),
]
