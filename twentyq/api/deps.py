from __future__ import annotations

from twentyq.engine import SessionEngine
from twentyq.session_store import SessionRegistry
from twentyq.websocket_hub import hub

_ENGINE: SessionEngine | None = None


def get_engine() -> SessionEngine:
    """Process-wide engine; built on first use, never persisted.

    Tests swap it out via `app.dependency_overrides[get_engine]`.
    """

    global _ENGINE
    if _ENGINE is None:
        _ENGINE = SessionEngine(registry=SessionRegistry(), transport=hub)
    return _ENGINE
