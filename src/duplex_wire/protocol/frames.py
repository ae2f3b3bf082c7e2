"""Framing for stream and websocket transports.

Every transport event travels as one JSON object:

    {"event": "request", "payload": {"tid": "...", "signal": "ping", ...}}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from ..errors import FrameError


@dataclass
class Frame:
    """One named transport event and its payload."""

    event: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Serialize to JSON."""
        return json.dumps({"event": self.event, "payload": self.payload})

    @classmethod
    def from_json(cls, data: str | bytes) -> Frame:
        """Deserialize from JSON.

        Raises:
            FrameError: If the data is not a JSON object with a string ``event``
        """
        try:
            parsed = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise FrameError(f"Invalid JSON frame: {e}") from e

        if not isinstance(parsed, dict):
            raise FrameError(f"Frame must be a JSON object, got {type(parsed).__name__}")

        event = parsed.get("event")
        if not isinstance(event, str) or not event:
            raise FrameError("Frame is missing 'event'")

        payload = parsed.get("payload") or {}
        if not isinstance(payload, dict):
            raise FrameError("Frame 'payload' must be an object")

        return cls(event=event, payload=payload)
