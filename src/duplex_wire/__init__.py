"""duplex-wire - request/response correlation over duplex event transports.

Public API:
- Endpoint: one side of a connection (send, on, broadcast, destroy)
- Registry: live endpoints reachable by broadcast
- WireHub / create_app: server-side composition over WebSocket and TCP
- Ok, Err, SignalError: how signal handlers answer
- Transports: MemoryTransport, WebSocketClientTransport,
  WebSocketServerTransport, StreamTransport
"""

from .config import WireSettings, get_settings
from .endpoint import Endpoint, PendingRequest
from .errors import (
    EndpointClosedError,
    FrameError,
    RemoteError,
    RequestTimeoutError,
    SignalError,
    WireError,
)
from .hub import WireHub
from .ids import random_string, transfer_id
from .protocol import Frame, RequestEnvelope, ResponseEnvelope
from .registry import Registry
from .signals import Err, Ok, SignalHandler
from .transport import (
    MemoryTransport,
    StreamTransport,
    Transport,
    WebSocketClientTransport,
    WebSocketServerTransport,
)

__all__ = [
    # Core
    "Endpoint",
    "PendingRequest",
    "Registry",
    "WireHub",
    # Handler results
    "Ok",
    "Err",
    "SignalHandler",
    # Errors
    "WireError",
    "RequestTimeoutError",
    "RemoteError",
    "EndpointClosedError",
    "SignalError",
    "FrameError",
    # Wire types
    "RequestEnvelope",
    "ResponseEnvelope",
    "Frame",
    # Transports
    "Transport",
    "MemoryTransport",
    "StreamTransport",
    "WebSocketClientTransport",
    "WebSocketServerTransport",
    # Utilities
    "WireSettings",
    "get_settings",
    "random_string",
    "transfer_id",
]

__version__ = "0.1.0"
