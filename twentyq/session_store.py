from __future__ import annotations

import logging
import random
import string
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from twentyq.api.models import GameStatus, Session

logger = logging.getLogger(__name__)

ID_ALPHABET = string.ascii_uppercase + string.digits
ID_LENGTH = 5


def _now() -> datetime:
    return datetime.now(tz=UTC)


class SessionRegistry:
    """In-memory session table keyed by session id.

    Also tracks which live session each connection is attached to. A connection
    is attached to at most one session; removing a session detaches both seats.
    """

    def __init__(self, *, rng: random.Random | None = None, clock: Callable[[], datetime] = _now) -> None:
        self._sessions: dict[str, Session] = {}
        self._attached: dict[str, str] = {}
        self._rng = rng if rng is not None else random.SystemRandom()
        self._clock = clock

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def _new_session_id(self) -> str:
        while True:
            candidate = "".join(self._rng.choice(ID_ALPHABET) for _ in range(ID_LENGTH))
            if candidate not in self._sessions:
                return candidate

    def create(self, *, secret_word: str, owner_connection: str) -> str:
        session_id = self._new_session_id()
        self._sessions[session_id] = Session(
            session_id=session_id,
            setter_connection=owner_connection,
            secret_word=secret_word,
            created_at=self._clock(),
        )
        self.attach(owner_connection, session_id)
        logger.info("session %s created (%d live)", session_id, len(self._sessions))
        return session_id

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            raise ValueError("Game not found")
        return session

    def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        self._release(session)
        logger.info("session %s removed (%d live)", session_id, len(self._sessions))

    def release(self, session_id: str) -> None:
        """Detach both participants but keep the session in the table."""

        session = self._sessions.get(session_id)
        if session is not None:
            self._release(session)

    def _release(self, session: Session) -> None:
        for connection_id in session.participants():
            if self._attached.get(connection_id) == session.session_id:
                del self._attached[connection_id]

    def attach(self, connection_id: str, session_id: str) -> None:
        if session_id not in self._sessions:
            raise ValueError("Game not found")
        self._attached[connection_id] = session_id

    def detach(self, connection_id: str) -> None:
        self._attached.pop(connection_id, None)

    def session_for(self, connection_id: str) -> Session | None:
        session_id = self._attached.get(connection_id)
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def evict_finished(self, *, ttl_sec: float) -> list[str]:
        """Drop sessions that finished at least `ttl_sec` seconds ago."""

        cutoff = self._clock() - timedelta(seconds=ttl_sec)
        expired = [
            s.session_id
            for s in self._sessions.values()
            if s.status == GameStatus.finished and s.finished_at is not None and s.finished_at <= cutoff
        ]
        for session_id in expired:
            self.remove(session_id)
        return expired
