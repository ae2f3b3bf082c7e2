"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from duplex_wire.config import WireSettings, reset_settings
from duplex_wire.endpoint import Endpoint
from duplex_wire.registry import Registry
from duplex_wire.transport.memory import MemoryTransport


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from DUPLEX_WIRE_* variables and the settings cache."""
    for name in (
        "DUPLEX_WIRE_TIMEOUT_MS",
        "DUPLEX_WIRE_ID_LENGTH",
        "DUPLEX_WIRE_HOST",
        "DUPLEX_WIRE_PORT",
        "DUPLEX_WIRE_PATH",
        "DUPLEX_WIRE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> WireSettings:
    """Settings with a short timeout so failing tests fail fast."""
    return WireSettings(timeout=1.0)


@pytest.fixture
def registry() -> Registry:
    return Registry()


@pytest.fixture
def transports() -> tuple[MemoryTransport, MemoryTransport]:
    return MemoryTransport.pair()


@pytest.fixture
def endpoints(
    transports: tuple[MemoryTransport, MemoryTransport],
    settings: WireSettings,
) -> tuple[Endpoint, Endpoint]:
    """Two endpoints wired to each other, each in its own registry."""
    left, right = transports
    a = Endpoint(left, settings=settings, endpoint_id="endpoint-a")
    b = Endpoint(right, settings=settings, endpoint_id="endpoint-b")
    return a, b
