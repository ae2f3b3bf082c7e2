"""Random identifier generation.

Endpoint ids and transfer ids are short random strings. No uniqueness
check is performed against anything; collisions are improbable, not
impossible. ``transfer_id()`` prefixes a per-process counter so ids handed
out by one process never repeat.
"""

from __future__ import annotations

import itertools
import random
import threading

DEFAULT_LENGTH = 16
DEFAULT_CHARSET = "0123456789abcdefghijklmnopqrstuvwxyz"

_counter = itertools.count(1)
_counter_lock = threading.Lock()


def random_string(length: int = DEFAULT_LENGTH, charset: str = DEFAULT_CHARSET) -> str:
    """Return ``length`` characters drawn uniformly from ``charset``.

    Duplicate characters in ``charset`` are allowed and weight the draw.

    Raises:
        ValueError: If length is not positive or charset is empty
    """
    if length <= 0:
        raise ValueError(f"length must be positive, got {length}")
    if not charset:
        raise ValueError("charset must not be empty")
    return "".join(random.choice(charset) for _ in range(length))


def _base36(value: int) -> str:
    out = ""
    while True:
        value, rem = divmod(value, 36)
        out = DEFAULT_CHARSET[rem] + out
        if not value:
            return out


def transfer_id(length: int = DEFAULT_LENGTH) -> str:
    """Return a request correlation id: ``<counter>-<random suffix>``."""
    with _counter_lock:
        seq = next(_counter)
    return f"{_base36(seq)}-{random_string(length)}"
