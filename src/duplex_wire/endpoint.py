"""Endpoint - request/response correlation over a duplex transport.

One Endpoint wraps one transport connection. It turns the transport's
fire-and-forget ``emit`` into awaitable requests:

    a = Endpoint(transport_a, registry=registry)
    b = Endpoint(transport_b, registry=registry)

    b.on("ping", lambda data: {"n": data["n"] + 1})
    assert await a.send("ping", {"n": 1}) == {"n": 2}

Outbound requests are tracked in a pending table keyed by transfer id.
Each entry is claimed exactly once, by the first of: matching response,
timeout, destroy, or cancellation of the awaiting caller. Later claims
for the same transfer id find nothing and do nothing.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from .config import WireSettings, get_settings
from .errors import EndpointClosedError, RemoteError, RequestTimeoutError, SignalError
from .ids import random_string, transfer_id
from .protocol.envelopes import RequestEnvelope, ResponseEnvelope
from .registry import Registry
from .signals import Err, Ok, SignalHandler
from .transport.base import DISCONNECT, REQUEST, RESPONSE, Transport

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    """An outbound request waiting for its response."""

    request: RequestEnvelope
    future: asyncio.Future[Any]
    timer: asyncio.TimerHandle
    created_at: float

    def elapsed(self) -> float:
        return self.future.get_loop().time() - self.created_at


class Endpoint:
    """One side of a duplex wire connection.

    Args:
        transport: Established transport (emit/on, optionally close)
        registry: Registry used for broadcast; a private one if omitted
        timeout: Default request timeout in seconds
        endpoint_id: Explicit id; generated if omitted
        settings: Settings for defaults; ``get_settings()`` if omitted
    """

    def __init__(
        self,
        transport: Transport,
        *,
        registry: Registry | None = None,
        timeout: float | None = None,
        endpoint_id: str | None = None,
        settings: WireSettings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._id_length = settings.id_length
        self._id = endpoint_id or random_string(self._id_length)
        self._timeout = settings.timeout if timeout is None else timeout
        if self._timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self._timeout}")

        self.transport = transport
        self.registry = registry if registry is not None else Registry()

        self._pending: dict[str, PendingRequest] = {}
        self._listeners: dict[str, SignalHandler] = {}
        self._handler_tasks: set[asyncio.Task[None]] = set()
        self._closed = False

        transport.on(DISCONNECT, self._on_disconnect)
        transport.on(REQUEST, self._on_request)
        transport.on(RESPONSE, self._on_response)

        self.registry.add(self)
        logger.debug(f"Endpoint {self._id} created")

    @property
    def id(self) -> str:
        return self._id

    @property
    def timeout(self) -> float:
        """Default request timeout in seconds."""
        return self._timeout

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        """Number of requests awaiting a response."""
        return len(self._pending)

    def is_pending(self, tid: str) -> bool:
        return tid in self._pending

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Endpoint {self._id} {state} pending={len(self._pending)}>"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def on(self, signal: str, handler: SignalHandler) -> None:
        """Register the handler for ``signal``, replacing any previous one."""
        if signal in self._listeners:
            logger.debug(f"Endpoint {self._id}: replacing handler for {signal!r}")
        self._listeners[signal] = handler

    def off(self, signal: str) -> None:
        """Remove the handler for ``signal`` if there is one."""
        self._listeners.pop(signal, None)

    async def send(self, signal: str, data: Any = None, *, timeout: float | None = None) -> Any:
        """Send a request to the peer and wait for its answer.

        Args:
            signal: Name of the peer's signal handler
            data: JSON-serializable payload
            timeout: Seconds to wait; the endpoint default if omitted

        Returns:
            The ``data`` of the peer's success response

        Raises:
            RemoteError: The peer rejected the request
            RequestTimeoutError: No response within the timeout
            EndpointClosedError: The endpoint is or became destroyed
        """
        if self._closed:
            raise EndpointClosedError(self._id)

        wait = self._timeout if timeout is None else timeout
        if wait <= 0:
            raise ValueError(f"timeout must be positive, got {wait}")

        loop = asyncio.get_running_loop()
        request = RequestEnvelope(tid=transfer_id(self._id_length), signal=signal, data=data)
        tid = request.tid

        # Registered before emitting so an immediate response finds its entry
        self._pending[tid] = PendingRequest(
            request=request,
            future=loop.create_future(),
            timer=loop.call_later(wait, self._expire, tid),
            created_at=loop.time(),
        )
        future = self._pending[tid].future

        try:
            await self.transport.emit(REQUEST, request.to_wire())
            logger.debug(f"Endpoint {self._id}: sent {signal!r} as {tid}")
            return await future
        finally:
            self._claim(tid)

    def broadcast(self, signal: str, data: Any = None) -> int:
        """Send ``signal`` through every endpoint in this endpoint's registry.

        Fire-and-forget: replies are not collected.

        Returns:
            Number of endpoints reached
        """
        return self.registry.broadcast(signal, data)

    async def destroy(self) -> None:
        """Tear the endpoint down. Safe to call more than once.

        Pending requests fail with EndpointClosedError, running handlers are
        cancelled, the transport is closed and the endpoint leaves its
        registry.
        """
        if self._closed:
            return
        self._closed = True

        pending = list(self._pending.values())
        self._pending.clear()
        for entry in pending:
            entry.timer.cancel()
            if not entry.future.done():
                entry.future.set_exception(
                    EndpointClosedError(self._id, "Endpoint destroyed with request pending")
                )

        current = asyncio.current_task()
        for task in list(self._handler_tasks):
            if task is not current:
                task.cancel()

        try:
            close = getattr(self.transport, "close", None)
            if callable(close):
                result = close()
                if inspect.isawaitable(result):
                    await result
        finally:
            self.registry.remove(self._id)
            logger.info(
                f"Endpoint {self._id} destroyed ({len(pending)} pending request(s) failed)"
            )

    async def __aenter__(self) -> Endpoint:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.destroy()

    # ------------------------------------------------------------------
    # Pending table
    # ------------------------------------------------------------------

    def _claim(self, tid: str) -> PendingRequest | None:
        """Remove and return the entry for ``tid``; None if already claimed."""
        entry = self._pending.pop(tid, None)
        if entry is not None:
            entry.timer.cancel()
        return entry

    def _expire(self, tid: str) -> None:
        entry = self._claim(tid)
        if entry is None:
            return

        elapsed = entry.elapsed()
        signal = entry.request.signal
        logger.warning(f"Endpoint {self._id}: request {tid} ({signal!r}) timed out")
        if not entry.future.done():
            entry.future.set_exception(RequestTimeoutError(tid, signal, elapsed))

    # ------------------------------------------------------------------
    # Transport events
    # ------------------------------------------------------------------

    async def _on_disconnect(self, payload: dict[str, Any] | None = None) -> None:
        logger.info(f"Endpoint {self._id}: transport disconnected")
        await self.destroy()

    def _on_response(self, payload: dict[str, Any]) -> None:
        try:
            response = ResponseEnvelope.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Endpoint {self._id}: dropping malformed response: {e}")
            return

        entry = self._claim(response.tid)
        if entry is None:
            logger.debug(f"Endpoint {self._id}: ignoring response for unknown {response.tid}")
            return

        if entry.future.done():
            return
        if response.is_error:
            entry.future.set_exception(RemoteError(response.error, response.tid))
        else:
            entry.future.set_result(response.data)

    def _on_request(self, payload: dict[str, Any]) -> None:
        if self._closed:
            return

        try:
            request = RequestEnvelope.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"Endpoint {self._id}: dropping malformed request: {e}")
            return

        handler = self._listeners.get(request.signal)
        if handler is None:
            logger.debug(f"Endpoint {self._id}: no handler for {request.signal!r}, dropped")
            return

        task = asyncio.get_running_loop().create_task(self._answer(handler, request))
        self._handler_tasks.add(task)
        task.add_done_callback(self._handler_tasks.discard)

    async def _answer(self, handler: SignalHandler, request: RequestEnvelope) -> None:
        """Run a signal handler and emit exactly one response for it."""
        try:
            result = handler(request.data)
            if inspect.isawaitable(result):
                result = await result
        except SignalError as e:
            response = ResponseEnvelope.failure(request.tid, e.error)
        except Exception as e:
            logger.exception(f"Endpoint {self._id}: handler for {request.signal!r} failed")
            response = ResponseEnvelope.failure(request.tid, _describe(e))
        else:
            if isinstance(result, Err):
                response = ResponseEnvelope.failure(request.tid, result.error)
            elif isinstance(result, Ok):
                response = ResponseEnvelope.success(request.tid, result.value)
            else:
                response = ResponseEnvelope.success(request.tid, result)

        if self._closed:
            logger.debug(f"Endpoint {self._id}: closed before answering {request.tid}")
            return

        try:
            wire = response.to_wire()
        except Exception as e:
            logger.exception(f"Endpoint {self._id}: cannot serialize answer to {request.tid}")
            wire = ResponseEnvelope.failure(request.tid, _describe(e)).to_wire()

        try:
            await self.transport.emit(RESPONSE, wire)
        except Exception:
            logger.exception(f"Endpoint {self._id}: failed to emit response for {request.tid}")


def _describe(exc: BaseException) -> dict[str, str]:
    return {"type": type(exc).__name__, "message": str(exc)}
