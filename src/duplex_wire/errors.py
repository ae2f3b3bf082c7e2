"""Exceptions raised by endpoints and transports."""

from __future__ import annotations

from typing import Any


class WireError(Exception):
    """Base class for all duplex-wire errors."""

    pass


class RequestTimeoutError(WireError, TimeoutError):
    """No response arrived for a request within its timeout."""

    def __init__(self, transfer_id: str, signal: str, elapsed: float) -> None:
        self.transfer_id = transfer_id
        self.signal = signal
        self.elapsed = elapsed
        super().__init__(
            f"Request {transfer_id} ({signal!r}) timed out after {elapsed:.3f}s"
        )


class RemoteError(WireError):
    """The peer's signal handler rejected the request.

    ``error`` carries the value the peer sent, unchanged.
    """

    def __init__(self, error: Any, transfer_id: str | None = None) -> None:
        self.error = error
        self.transfer_id = transfer_id
        super().__init__(f"Remote error: {error!r}")


class EndpointClosedError(WireError, ConnectionError):
    """The endpoint was destroyed before the request completed."""

    def __init__(self, endpoint_id: str, message: str = "Endpoint closed") -> None:
        self.endpoint_id = endpoint_id
        super().__init__(f"{message}: {endpoint_id}")


class SignalError(WireError):
    """Raised inside a signal handler to reject the request with ``error``."""

    def __init__(self, error: Any) -> None:
        self.error = error
        super().__init__(f"Signal rejected: {error!r}")


class FrameError(WireError, ValueError):
    """A frame could not be decoded."""

    pass
