"""duplex-wire CLI.

Usage:
    duplex-wire serve                          # WebSocket server on 127.0.0.1:4097/wire
    duplex-wire serve --port 8080 --tcp-port 9000
    duplex-wire send ws://localhost:4097/wire ping
    duplex-wire send tcp://localhost:9000 echo '{"n": 1}' --timeout-ms 2000
    duplex-wire health --url http://localhost:4097
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import sys
from typing import Any
from urllib.parse import urlsplit

import click
import httpx

from .config import WireSettings, get_settings
from .endpoint import Endpoint
from .errors import RemoteError, RequestTimeoutError, WireError
from .transport.stream import StreamTransport
from .transport.websocket import WebSocketClientTransport

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (default: DUPLEX_WIRE_LOG_LEVEL or INFO)",
)
@click.pass_context
def main(ctx: click.Context, log_level: str | None) -> None:
    """duplex-wire - request/response over duplex event transports."""
    try:
        settings = get_settings()
    except ValueError as e:
        raise click.UsageError(str(e)) from e

    if log_level:
        settings = dataclasses.replace(settings, log_level=log_level.upper())

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT, stream=sys.stderr)
    ctx.obj = settings


# =============================================================================
# Server
# =============================================================================


@main.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="WebSocket/HTTP port")
@click.option("--path", default=None, help="WebSocket route path")
@click.option("--tcp-port", default=None, type=int, help="Also accept newline-JSON TCP clients")
@click.option("--timeout-ms", default=None, type=click.IntRange(min=1), help="Request timeout")
@click.pass_obj
def serve(
    settings: WireSettings,
    host: str | None,
    port: int | None,
    path: str | None,
    tcp_port: int | None,
    timeout_ms: int | None,
) -> None:
    """Run the duplex-wire server."""
    from .app import create_app

    overrides: dict[str, Any] = {}
    if host:
        overrides["host"] = host
    if port:
        overrides["port"] = port
    if path:
        overrides["path"] = path
    if timeout_ms:
        overrides["timeout"] = timeout_ms / 1000.0
    settings = dataclasses.replace(settings, **overrides)

    app = create_app(settings=settings)

    click.echo(
        f"Starting duplex-wire on ws://{settings.host}:{settings.port}{settings.path}", err=True
    )
    if tcp_port:
        click.echo(f"  stream clients: tcp://{settings.host}:{tcp_port}", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    try:
        asyncio.run(_serve(app, settings, tcp_port))
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)


async def _serve(app: Any, settings: WireSettings, tcp_port: int | None) -> None:
    import uvicorn

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)

    tcp_server = None
    if tcp_port:
        tcp_server = await app.state.hub.serve_tcp(settings.host, tcp_port)

    try:
        await server.serve()
    finally:
        if tcp_server is not None:
            tcp_server.close()
            await tcp_server.wait_closed()


# =============================================================================
# Client
# =============================================================================


@main.command()
@click.argument("url")
@click.argument("signal")
@click.argument("data", required=False)
@click.option("--timeout-ms", default=None, type=click.IntRange(min=1), help="Request timeout")
@click.pass_obj
def send(
    settings: WireSettings,
    url: str,
    signal: str,
    data: str | None,
    timeout_ms: int | None,
) -> None:
    """Send one request and print the response.

    URL is ws://, wss://, http(s):// (WebSocket) or tcp://host:port (stream).
    DATA is a JSON document.
    """
    payload: Any = None
    if data is not None:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"not valid JSON: {e}", param_hint="DATA") from e

    timeout = timeout_ms / 1000.0 if timeout_ms else settings.timeout

    try:
        result = asyncio.run(_send_once(url, signal, payload, timeout, settings))
    except RemoteError as e:
        click.echo(f"Remote error: {json.dumps(e.error)}", err=True)
        sys.exit(1)
    except RequestTimeoutError as e:
        click.echo(f"Timed out after {e.elapsed:.3f}s waiting for {signal!r}", err=True)
        sys.exit(1)
    except (WireError, OSError) as e:
        click.echo(f"Cannot reach {url}: {e}", err=True)
        sys.exit(1)

    click.echo(json.dumps(result, indent=2))


async def open_transport(url: str) -> WebSocketClientTransport | StreamTransport:
    """Connect a client transport for ``url``.

    Raises:
        click.BadParameter: For unsupported URL schemes
    """
    parts = urlsplit(url)
    if parts.scheme in ("ws", "wss", "http", "https"):
        ws_transport = WebSocketClientTransport(url)
        await ws_transport.connect()
        return ws_transport
    if parts.scheme == "tcp":
        if not parts.hostname or not parts.port:
            raise click.BadParameter("tcp URLs need host and port", param_hint="URL")
        stream_transport = await StreamTransport.open_connection(parts.hostname, parts.port)
        stream_transport.start()
        return stream_transport
    raise click.BadParameter(f"unsupported scheme {parts.scheme!r}", param_hint="URL")


async def _send_once(
    url: str, signal: str, data: Any, timeout: float, settings: WireSettings
) -> Any:
    transport = await open_transport(url)
    endpoint = Endpoint(transport, timeout=timeout, settings=settings)
    try:
        return await endpoint.send(signal, data)
    finally:
        await endpoint.destroy()


# =============================================================================
# Health
# =============================================================================


@main.command()
@click.option("--url", default=None, help="Server URL (default: from settings)")
@click.pass_obj
def health(settings: WireSettings, url: str | None) -> None:
    """Check server health."""
    base_url = url or f"http://{settings.host}:{settings.port}"

    async def fetch() -> httpx.Response:
        async with httpx.AsyncClient(timeout=settings.timeout) as client:
            return await client.get(f"{base_url}/health")

    try:
        response = asyncio.run(fetch())
    except httpx.ConnectError:
        click.echo(f"Cannot connect to server at {base_url}", err=True)
        sys.exit(1)
    except httpx.TimeoutException:
        click.echo(f"No answer from {base_url} within {settings.timeout:g}s", err=True)
        sys.exit(1)

    if response.status_code != 200:
        click.echo(f"Server returned {response.status_code}", err=True)
        sys.exit(1)
    status = response.json()
    click.echo(f"Server is healthy: {status.get('endpoints', '?')} endpoint(s) connected")


if __name__ == "__main__":
    main()
