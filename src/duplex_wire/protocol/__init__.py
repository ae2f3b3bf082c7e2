"""Wire-level message types.

- Envelopes: request/response bodies correlated by transfer id (``tid``)
- Frames: the ``{"event", "payload"}`` wrapper used on byte and text streams
"""

from .envelopes import RequestEnvelope, ResponseEnvelope, now_ms
from .frames import Frame

__all__ = [
    "RequestEnvelope",
    "ResponseEnvelope",
    "Frame",
    "now_ms",
]
