from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from aisview.config import AisViewConfig
from aisview.state.events import ClientEvent, ClientEventKind
from aisview.state.store import TargetStore

_CLOSE = object()


class FakeConnection:
    """In-memory FeedConnection; the test pushes server payloads with ``feed``."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.sent: list[str] = []
        self.closed = False
        self.close_code: int | None = None
        self.close_reason = ""
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()

    @property
    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(item) for item in self.sent]

    def feed(self, payload: str | dict[str, Any]) -> None:
        self._inbox.put_nowait(payload if isinstance(payload, str) else json.dumps(payload))

    def drop(self, code: int = 1006, reason: str = "") -> None:
        """Simulate the server closing the connection."""
        self._inbox.put_nowait((_CLOSE, code, reason))

    def fail(self, exc: BaseException) -> None:
        self._inbox.put_nowait(exc)

    async def send_str(self, data: str) -> None:
        self.sent.append(data)

    async def receive(self) -> str | None:
        item = await self._inbox.get()
        if isinstance(item, tuple) and item[0] is _CLOSE:
            _marker, self.close_code, self.close_reason = item
            return None
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._inbox.put_nowait((_CLOSE, 1000, ""))


class FakeConnector:
    """Connector double recording every connection it opens."""

    def __init__(self) -> None:
        self.connections: list[FakeConnection] = []
        self.attempts = 0
        self.failures: list[BaseException] = []
        self.fail_always: BaseException | None = None
        self.gate: asyncio.Event | None = None

    def hold(self) -> asyncio.Event:
        """Make connect() block until the returned event is set."""
        self.gate = asyncio.Event()
        return self.gate

    async def connect(self, url: str) -> FakeConnection:
        self.attempts += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_always is not None:
            raise self.fail_always
        if self.failures:
            raise self.failures.pop(0)
        connection = FakeConnection(url)
        self.connections.append(connection)
        return connection

    async def connection(self, index: int, timeout: float = 1.0) -> FakeConnection:
        """Wait until the connection with *index* has been opened."""

        async def _wait() -> FakeConnection:
            while len(self.connections) <= index:
                await asyncio.sleep(0.001)
            return self.connections[index]

        return await asyncio.wait_for(_wait(), timeout)

    @property
    def open_connections(self) -> list[FakeConnection]:
        return [conn for conn in self.connections if not conn.closed]


class EventRecorder:
    def __init__(self) -> None:
        self.events: list[ClientEvent] = []
        self._waiters: list[tuple[ClientEventKind, asyncio.Future[ClientEvent]]] = []

    def __call__(self, event: ClientEvent) -> None:
        self.events.append(event)
        for kind, waiter in list(self._waiters):
            if kind is event.kind and not waiter.done():
                waiter.set_result(event)

    def kinds(self) -> list[ClientEventKind]:
        return [event.kind for event in self.events]

    async def wait_for(self, kind: ClientEventKind, timeout: float = 1.0) -> ClientEvent:
        waiter: asyncio.Future[ClientEvent] = asyncio.get_running_loop().create_future()
        self._waiters.append((kind, waiter))
        try:
            return await asyncio.wait_for(waiter, timeout)
        finally:
            self._waiters.remove((kind, waiter))


async def wait_for_snapshot(store: TargetStore, timeout: float = 1.0) -> None:
    """Wait until the store receives its next snapshot."""
    updated = asyncio.Event()
    remove = store.add_listener(lambda _snapshot: updated.set())
    try:
        await asyncio.wait_for(updated.wait(), timeout)
    finally:
        remove()


def feature_collection(*features: dict[str, Any]) -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


def vessel(mmsi: int, lon: float, lat: float, heading: Any = None, **properties: Any) -> dict[str, Any]:
    props: dict[str, Any] = {"mmsi": mmsi, **properties}
    if heading is not None:
        props["heading"] = heading
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
        "properties": props,
    }


@pytest.fixture
def config() -> AisViewConfig:
    return AisViewConfig(
        url="ws://feed.test/ais",
        connect_timeout=0.5,
        reconnect_initial_delay=0.01,
        reconnect_max_delay=0.05,
        reconnect_max_attempts=3,
        heartbeat=None,
    )


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def store() -> TargetStore:
    return TargetStore()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()
