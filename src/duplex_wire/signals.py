"""Signal handler results.

A signal handler receives the request ``data`` and answers by returning.
Returning a plain value (or ``Ok(value)``) resolves the caller's request;
returning ``Err(error)`` or raising ``SignalError(error)`` rejects it.

    async def lookup(data):
        user = await db.get(data["id"])
        if user is None:
            return Err({"code": "not_found"})
        return {"name": user.name}

    endpoint.on("user.lookup", lookup)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Ok:
    """Successful handler outcome."""

    value: Any = None


@dataclass(frozen=True)
class Err:
    """Failed handler outcome; ``error`` is sent to the caller unchanged."""

    error: Any = None


Result = Union[Ok, Err]

SignalHandler = Callable[[Any], Union[Any, Awaitable[Any]]]
