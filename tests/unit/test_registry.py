"""Unit tests for Registry and broadcast fan-out."""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor

import pytest

from duplex_wire.config import WireSettings
from duplex_wire.endpoint import Endpoint
from duplex_wire.registry import Registry
from duplex_wire.transport.memory import MemoryTransport


class Peer:
    """A client endpoint in a shared registry plus the server endpoint it talks to."""

    def __init__(self, registry: Registry, settings: WireSettings, received: list) -> None:
        left, right = MemoryTransport.pair()
        self.transport = left
        self.endpoint = Endpoint(left, registry=registry, settings=settings)
        self.remote = Endpoint(right, settings=settings)
        self.remote.on("notice", lambda data: received.append((self.remote.id, data)))


async def _wait_for_count(items: list, count: int) -> None:
    async def poll() -> None:
        while len(items) < count:
            await asyncio.sleep(0.001)

    await asyncio.wait_for(poll(), 1.0)


class TestRegistryMembership:
    """Tests for add/remove/lookup."""

    def test_starts_empty(self, registry: Registry) -> None:
        assert len(registry) == 0
        assert registry.snapshot() == []

    def test_add_and_remove(self, registry: Registry, settings: WireSettings) -> None:
        """Endpoints register on construction and can be removed once."""
        left, _ = MemoryTransport.pair()
        endpoint = Endpoint(left, registry=registry, settings=settings)

        assert len(registry) == 1
        assert list(registry) == [endpoint]

        assert registry.remove(endpoint.id) is True
        assert registry.remove(endpoint.id) is False
        assert registry.get(endpoint.id) is None

    def test_same_id_replaces(self, registry: Registry, settings: WireSettings) -> None:
        """A colliding id replaces the earlier entry."""
        left, right = MemoryTransport.pair()
        first = Endpoint(left, registry=registry, settings=settings, endpoint_id="same")
        second = Endpoint(right, registry=registry, settings=settings, endpoint_id="same")

        assert len(registry) == 1
        assert registry.get("same") is second

    def test_membership_from_threads(self, registry: Registry, settings: WireSettings) -> None:
        """Endpoints built on worker threads all land in the shared registry."""

        def build(index: int) -> str:
            left, _ = MemoryTransport.pair()
            return Endpoint(left, registry=registry, settings=settings).id

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(build, range(64)))

        assert len(registry) == 64
        assert all(endpoint_id in registry for endpoint_id in ids)

        with ThreadPoolExecutor(max_workers=8) as pool:
            removed = list(pool.map(registry.remove, ids))

        assert all(removed)
        assert len(registry) == 0
        assert registry.get("same") is not first


class TestBroadcast:
    """Tests for fire-and-forget broadcast."""

    @pytest.mark.asyncio
    async def test_reaches_every_endpoint(self, registry: Registry, settings: WireSettings) -> None:
        """N registered endpoints -> N independent sends with distinct tids."""
        received: list = []
        peers = [Peer(registry, settings, received) for _ in range(3)]

        count = peers[0].endpoint.broadcast("notice", {"msg": "hi"})

        assert count == 3
        await _wait_for_count(received, 3)
        assert sorted(remote_id for remote_id, _ in received) == sorted(
            p.remote.id for p in peers
        )
        assert all(data == {"msg": "hi"} for _, data in received)

        tids = [p.transport.emitted[0][1]["tid"] for p in peers]
        assert len(set(tids)) == 3

    @pytest.mark.asyncio
    async def test_destroyed_endpoint_not_reached(
        self, registry: Registry, settings: WireSettings
    ) -> None:
        """After destroy, a broadcast skips the endpoint."""
        received: list = []
        peers = [Peer(registry, settings, received) for _ in range(3)]

        await peers[1].endpoint.destroy()
        count = registry.broadcast("notice", 1)

        assert count == 2
        await _wait_for_count(received, 2)
        await asyncio.sleep(0.01)
        assert peers[1].remote.id not in [remote_id for remote_id, _ in received]

    @pytest.mark.asyncio
    async def test_failures_are_discarded(self, registry: Registry) -> None:
        """Timeouts of broadcast sends never surface."""
        left, _ = MemoryTransport.pair()
        endpoint = Endpoint(left, registry=registry, settings=WireSettings(timeout=0.02))

        assert endpoint.broadcast("nobody-listens") == 1
        await asyncio.sleep(0.05)

        assert endpoint.pending_count == 0

    @pytest.mark.asyncio
    async def test_empty_registry(self, registry: Registry) -> None:
        assert registry.broadcast("anything") == 0


class TestCloseAll:
    """Tests for registry teardown."""

    @pytest.mark.asyncio
    async def test_close_all_destroys_endpoints(
        self, registry: Registry, settings: WireSettings
    ) -> None:
        received: list = []
        peers = [Peer(registry, settings, received) for _ in range(2)]

        assert await registry.close_all() == 2

        assert len(registry) == 0
        assert all(p.endpoint.closed for p in peers)
