"""Runtime settings.

Defaults can be overridden through environment variables:

    DUPLEX_WIRE_TIMEOUT_MS   request timeout in milliseconds (7500)
    DUPLEX_WIRE_ID_LENGTH    length of generated ids (16)
    DUPLEX_WIRE_HOST         bind host for ``duplex-wire serve``
    DUPLEX_WIRE_PORT         bind port for ``duplex-wire serve``
    DUPLEX_WIRE_PATH         websocket route path
    DUPLEX_WIRE_LOG_LEVEL    logging level name
"""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_TIMEOUT_MS = 7500


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class WireSettings:
    """Settings shared by endpoints, the server app and the CLI."""

    # Request timeout in seconds
    timeout: float = DEFAULT_TIMEOUT_MS / 1000.0

    # Identifier generation
    id_length: int = 16

    # Server settings
    host: str = "127.0.0.1"
    port: int = 4097
    path: str = "/wire"

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> WireSettings:
        """Build settings from defaults plus DUPLEX_WIRE_* overrides."""
        timeout_ms = _env_int("DUPLEX_WIRE_TIMEOUT_MS", DEFAULT_TIMEOUT_MS)
        if timeout_ms <= 0:
            raise ValueError(f"DUPLEX_WIRE_TIMEOUT_MS must be positive, got {timeout_ms}")
        return cls(
            timeout=timeout_ms / 1000.0,
            id_length=_env_int("DUPLEX_WIRE_ID_LENGTH", 16),
            host=os.getenv("DUPLEX_WIRE_HOST", "127.0.0.1"),
            port=_env_int("DUPLEX_WIRE_PORT", 4097),
            path=os.getenv("DUPLEX_WIRE_PATH", "/wire"),
            log_level=os.getenv("DUPLEX_WIRE_LOG_LEVEL", "INFO").upper(),
        )


_settings: WireSettings | None = None


def get_settings() -> WireSettings:
    """Get or create the settings singleton."""
    global _settings
    if _settings is None:
        _settings = WireSettings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    global _settings
    _settings = None
