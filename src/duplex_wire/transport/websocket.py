"""WebSocket transports.

Every transport event travels as one text frame:

    {"event": "request", "payload": {"tid": "...", "signal": "ping", "data": {...}}}

Server side wraps a Starlette WebSocket; client side uses the
``websockets`` library.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from ..errors import FrameError
from ..protocol.frames import Frame
from .base import EventHandlers

logger = logging.getLogger(__name__)


class WebSocketServerTransport(EventHandlers):
    """Server-side transport for one accepted WebSocket connection.

    Usage:
        transport = WebSocketServerTransport(websocket)
        await transport.accept()
        endpoint = Endpoint(transport, registry=registry)
        await transport.run()  # returns when the client goes away
    """

    def __init__(self, websocket: WebSocket):
        super().__init__()
        self._websocket = websocket
        self._connected = False
        self._send_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """Check if the WebSocket is connected."""
        return self._connected and self._websocket.client_state == WebSocketState.CONNECTED

    async def accept(self) -> None:
        """Accept the WebSocket connection."""
        await self._websocket.accept()
        self._connected = True

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Send one event frame to the client.

        Raises:
            ConnectionError: If the socket is not connected
        """
        if not self.is_connected:
            raise ConnectionError("WebSocket not connected")
        async with self._send_lock:
            await self._websocket.send_text(Frame(event, payload).to_json())

    async def run(self) -> None:
        """Read frames and dispatch them until the connection ends."""
        reason = "closed"
        try:
            while self.is_connected:
                data = await self._websocket.receive_text()
                try:
                    frame = Frame.from_json(data)
                except FrameError as e:
                    logger.warning(f"Invalid WebSocket frame: {e}")
                    continue
                await self.dispatch(frame.event, frame.payload)
        except WebSocketDisconnect as e:
            reason = f"client disconnected ({e.code})"
        except Exception as e:
            logger.exception(f"WebSocket receive error: {e}")
            reason = f"receive error: {e}"
        finally:
            self._connected = False
            await self.dispatch_disconnect(reason)

    async def close(self) -> None:
        """Close the WebSocket connection."""
        was_connected = self.is_connected
        self._connected = False
        if was_connected:
            with contextlib.suppress(RuntimeError):
                await self._websocket.close()
        await self.dispatch_disconnect("closed by server")


class WebSocketClientTransport(EventHandlers):
    """Client-side transport connecting to a duplex-wire WebSocket server.

    Usage:
        async with WebSocketClientTransport("ws://localhost:4097/wire") as transport:
            endpoint = Endpoint(transport)
            print(await endpoint.send("ping"))
    """

    def __init__(self, url: str, *, open_timeout: float = 10.0):
        super().__init__()
        self.url = url.replace("http://", "ws://").replace("https://", "wss://")
        self.open_timeout = open_timeout
        self._websocket: Any = None  # websockets ClientConnection
        self._connected = False
        self._receive_task: asyncio.Task[None] | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Connect to the WebSocket server and start reading frames.

        Raises:
            ConnectionError: If the URL is invalid or the handshake fails
        """
        try:
            import websockets
        except ImportError as e:
            raise ImportError(
                "websockets package required for WebSocket client. "
                "Install with: pip install websockets"
            ) from e

        try:
            self._websocket = await websockets.connect(
                self.url,
                open_timeout=self.open_timeout,
                ping_interval=30,
                ping_timeout=10,
            )
        except websockets.exceptions.WebSocketException as e:
            raise ConnectionError(f"WebSocket handshake with {self.url} failed: {e}") from e
        self._connected = True
        self._receive_task = asyncio.create_task(self._receive_loop())
        logger.info(f"Connected to {self.url}")

    async def emit(self, event: str, payload: dict[str, Any]) -> None:
        """Send one event frame to the server.

        Raises:
            ConnectionError: If not connected
        """
        if not self._connected or not self._websocket:
            raise ConnectionError("Not connected")
        await self._websocket.send(Frame(event, payload).to_json())

    async def close(self) -> None:
        """Disconnect from the WebSocket server."""
        self._connected = False

        task = self._receive_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._receive_task = None

        if self._websocket:
            await self._websocket.close()
        await self.dispatch_disconnect("closed by client")

    async def _receive_loop(self) -> None:
        """Background task dispatching inbound frames."""
        reason = "server closed connection"
        try:
            async for data in self._websocket:
                try:
                    frame = Frame.from_json(data)
                except FrameError as e:
                    logger.warning(f"Invalid frame from server: {e}")
                    continue
                await self.dispatch(frame.event, frame.payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception(f"WebSocket receive loop error: {e}")
            reason = f"receive error: {e}"
        finally:
            self._connected = False
            await self.dispatch_disconnect(reason)

    async def __aenter__(self) -> WebSocketClientTransport:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
