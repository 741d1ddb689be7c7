from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol, Union

from twentyq.api.models import (
    AskQuestionMessage,
    CreateGameMessage,
    EndGameMessage,
    GameStatus,
    JoinGameMessage,
    Player,
    SendAnswerMessage,
    Session,
    TranscriptEntry,
)
from twentyq.fsm import SessionFSM
from twentyq.projection import (
    error_message,
    game_created_message,
    game_update_message,
    opponent_disconnected_message,
)
from twentyq.session_store import SessionRegistry

logger = logging.getLogger(__name__)

GAME_FULL = "This game is already full."
GAME_NOT_FOUND = "Game not found."
GAME_FINISHED = "This game has already finished."
OPPONENT_DISCONNECTED = "Your opponent has disconnected. You win!"


def _now() -> datetime:
    return datetime.now(tz=UTC)


class Reachability(Protocol):
    def is_reachable(self, connection_id: str) -> bool:  # pragma: no cover
        ...


class Outcome(StrEnum):
    applied = "applied"
    # Visible refusal: exactly one error delivery back to the sender.
    rejected = "rejected"
    # Stale or out-of-turn event: no mutation, no reply.
    ignored = "ignored"


@dataclass(frozen=True, slots=True)
class Delivery:
    connection_id: str
    message: dict[str, Any]


@dataclass(frozen=True, slots=True)
class EventResult:
    outcome: Outcome
    deliveries: list[Delivery] = field(default_factory=list)
    session_id: str | None = None


@dataclass(frozen=True, slots=True)
class ConnectionClosed:
    """Transport-side event: the sender's socket is gone."""


InboundEvent = Union[
    CreateGameMessage,
    JoinGameMessage,
    AskQuestionMessage,
    SendAnswerMessage,
    EndGameMessage,
    ConnectionClosed,
]

def _ignored() -> EventResult:
    return EventResult(outcome=Outcome.ignored)


class SessionEngine:
    """Applies inbound events to sessions and decides what goes out to whom.

    `dispatch` never awaits: each event is applied to completion before the
    caller gets the deliveries back. Sending them is the transport's job.
    """

    def __init__(
        self,
        *,
        registry: SessionRegistry,
        transport: Reachability,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.registry = registry
        self._transport = transport
        self._clock = clock

    def dispatch(self, connection_id: str, event: InboundEvent) -> EventResult:
        if isinstance(event, CreateGameMessage):
            return self._create(connection_id, event)
        if isinstance(event, JoinGameMessage):
            return self._join(connection_id, event)
        if isinstance(event, AskQuestionMessage):
            return self._ask(connection_id, event)
        if isinstance(event, SendAnswerMessage):
            return self._answer(connection_id, event)
        if isinstance(event, EndGameMessage):
            return self._end(connection_id, event)
        if isinstance(event, ConnectionClosed):
            return self._closed(connection_id)
        raise ValueError(f"Unknown event: {type(event).__name__}")

    def evict_finished(self, *, ttl_sec: float) -> list[str]:
        return self.registry.evict_finished(ttl_sec=ttl_sec)

    def _broadcast(self, session: Session, message: dict[str, Any]) -> list[Delivery]:
        return [
            Delivery(connection_id=c, message=message)
            for c in session.participants()
            if self._transport.is_reachable(c)
        ]

    def _reject(self, connection_id: str, reason: str, session_id: str | None = None) -> EventResult:
        return EventResult(
            outcome=Outcome.rejected,
            deliveries=[Delivery(connection_id=connection_id, message=error_message(reason))],
            session_id=session_id,
        )

    def _finish(self, session: Session, fsm: SessionFSM, *, winner: Player, reason: str) -> None:
        fsm.sync_to_model()
        session.winner = winner
        session.finished_at = self._clock()
        # Both seats are free to create or join another game right away.
        self.registry.release(session.session_id)
        logger.info("session %s finished (%s), winner=%s", session.session_id, reason, winner.name)

    def _create(self, connection_id: str, event: CreateGameMessage) -> EventResult:
        if self.registry.session_for(connection_id) is not None:
            return _ignored()

        session_id = self.registry.create(
            secret_word=event.payload.secret_word,
            owner_connection=connection_id,
        )
        session = self.registry.require(session_id)
        return EventResult(
            outcome=Outcome.applied,
            deliveries=[Delivery(connection_id=connection_id, message=game_created_message(session))],
            session_id=session_id,
        )

    def _join(self, connection_id: str, event: JoinGameMessage) -> EventResult:
        if self.registry.session_for(connection_id) is not None:
            return _ignored()

        session_id = event.payload.game_id.upper()
        session = self.registry.get(session_id)
        if session is None:
            return self._reject(connection_id, GAME_NOT_FOUND)
        if session.status == GameStatus.finished:
            return self._reject(connection_id, GAME_FINISHED, session_id)

        previous = session.guesser_connection
        if previous is not None and self._transport.is_reachable(previous):
            return self._reject(connection_id, GAME_FULL, session_id)

        fsm = SessionFSM(session)
        fsm.send("join")

        if previous is not None:
            self.registry.detach(previous)
        session.guesser_connection = connection_id
        self.registry.attach(connection_id, session_id)
        fsm.sync_to_model()
        logger.info("session %s joined%s", session_id, " (guesser replaced)" if previous else "")

        return EventResult(
            outcome=Outcome.applied,
            deliveries=self._broadcast(session, game_update_message(session)),
            session_id=session_id,
        )

    def _ask(self, connection_id: str, event: AskQuestionMessage) -> EventResult:
        session = self.registry.session_for(connection_id)
        if session is None or session.guesser_connection != connection_id:
            return _ignored()

        fsm = SessionFSM(session)
        if fsm.current_state != fsm.guesser_turn:
            return _ignored()

        question = event.payload.question
        session.last_question = question
        session.messages.append(TranscriptEntry(type="question", text=question))
        fsm.send("ask")
        fsm.sync_to_model()

        return EventResult(
            outcome=Outcome.applied,
            deliveries=self._broadcast(session, game_update_message(session)),
            session_id=session.session_id,
        )

    def _answer(self, connection_id: str, event: SendAnswerMessage) -> EventResult:
        session = self.registry.session_for(connection_id)
        if session is None or session.setter_connection != connection_id:
            return _ignored()

        fsm = SessionFSM(session)
        if fsm.current_state != fsm.setter_turn:
            return _ignored()

        session.guesses_left = max(0, session.guesses_left - 1)
        session.messages.append(
            TranscriptEntry(type="answer", text=f"{session.last_question}\n> {event.payload.answer}")
        )
        fsm.send("answer")
        if fsm.current_state == fsm.finished:
            self._finish(session, fsm, winner=Player.setter, reason="out of guesses")
        else:
            fsm.sync_to_model()

        return EventResult(
            outcome=Outcome.applied,
            deliveries=self._broadcast(session, game_update_message(session)),
            session_id=session.session_id,
        )

    def _end(self, connection_id: str, event: EndGameMessage) -> EventResult:
        session = self.registry.session_for(connection_id)
        if session is None or session.status == GameStatus.finished:
            return _ignored()

        fsm = SessionFSM(session)
        fsm.send("end")
        self._finish(session, fsm, winner=event.payload.winner, reason="ended by player")

        return EventResult(
            outcome=Outcome.applied,
            deliveries=self._broadcast(session, game_update_message(session)),
            session_id=session.session_id,
        )

    def _closed(self, connection_id: str) -> EventResult:
        # Finished sessions have already released their seats, so only live games land here.
        session = self.registry.session_for(connection_id)
        self.registry.detach(connection_id)
        if session is None:
            return _ignored()

        leaver_is_setter = connection_id == session.setter_connection
        other = session.other_party(connection_id)
        fsm = SessionFSM(session)
        fsm.send("end")
        self._finish(
            session,
            fsm,
            winner=Player.guesser if leaver_is_setter else Player.setter,
            reason="disconnect",
        )

        deliveries: list[Delivery] = []
        if other is not None and self._transport.is_reachable(other):
            deliveries.append(
                Delivery(
                    connection_id=other,
                    message=opponent_disconnected_message(session, OPPONENT_DISCONNECTED),
                )
            )

        self.registry.remove(session.session_id)
        return EventResult(outcome=Outcome.applied, deliveries=deliveries, session_id=session.session_id)
