from __future__ import annotations

from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from twentyq.engine import SessionEngine
from twentyq.session_store import SessionRegistry


class FakeTransport:
    """Reachability predicate backed by a plain set of connection ids."""

    def __init__(self) -> None:
        self.reachable: set[str] = set()

    def connect(self, *connection_ids: str) -> None:
        self.reachable.update(connection_ids)

    def drop(self, connection_id: str) -> None:
        self.reachable.discard(connection_id)

    def is_reachable(self, connection_id: str) -> bool:
        return connection_id in self.reachable


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def registry(clock: FakeClock) -> SessionRegistry:
    return SessionRegistry(clock=clock)


@pytest.fixture()
def engine(registry: SessionRegistry, transport: FakeTransport, clock: FakeClock) -> SessionEngine:
    return SessionEngine(registry=registry, transport=transport, clock=clock)


@pytest.fixture()
def client_and_engine() -> Generator[tuple[TestClient, SessionEngine], None, None]:
    """FastAPI TestClient wired to a fresh engine, so socket tests never share sessions."""

    from twentyq.api.deps import get_engine
    from twentyq.main import app
    from twentyq.websocket_hub import hub

    fresh = SessionEngine(registry=SessionRegistry(), transport=hub)

    app.dependency_overrides[get_engine] = lambda: fresh
    with TestClient(app) as c:
        yield c, fresh
    app.dependency_overrides.clear()
