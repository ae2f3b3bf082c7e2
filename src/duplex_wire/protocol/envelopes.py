"""Wire envelopes.

Request:
    {"tid": "1-k3j9...", "timestamp": 1717000000000, "signal": "ping", "data": {...}}

Response (success):
    {"tid": "1-k3j9...", "data": {...}}

Response (failure):
    {"tid": "1-k3j9...", "error": "..."}

``data`` and ``error`` never appear together on a response. A response
carrying an ``error`` key is a failure even when the value is null.
"""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class RequestEnvelope(BaseModel):
    """Outbound request for a named signal."""

    model_config = ConfigDict(extra="ignore")

    tid: str
    timestamp: int = Field(default_factory=now_ms)
    signal: str
    data: Any = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible wire dict."""
        return self.model_dump(mode="json")


class ResponseEnvelope(BaseModel):
    """Answer to a request, correlated by ``tid``."""

    model_config = ConfigDict(extra="ignore")

    tid: str
    data: Any = None
    error: Any = None

    @model_validator(mode="after")
    def _data_xor_error(self) -> ResponseEnvelope:
        if {"data", "error"} <= self.model_fields_set:
            raise ValueError("response carries both 'data' and 'error'")
        return self

    @property
    def is_error(self) -> bool:
        """True when the peer rejected the request."""
        return "error" in self.model_fields_set

    @classmethod
    def success(cls, tid: str, data: Any) -> ResponseEnvelope:
        return cls(tid=tid, data=data)

    @classmethod
    def failure(cls, tid: str, error: Any) -> ResponseEnvelope:
        return cls(tid=tid, error=error)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible wire dict.

        Only one of ``data``/``error`` is emitted.
        """
        if self.is_error:
            return {"tid": self.tid, "error": self.model_dump(mode="json")["error"]}
        return {"tid": self.tid, "data": self.model_dump(mode="json")["data"]}
