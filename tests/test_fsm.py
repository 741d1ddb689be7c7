from __future__ import annotations

from datetime import UTC, datetime

import pytest
from statemachine.exceptions import TransitionNotAllowed

from twentyq.api.models import GameStatus, Player, Session
from twentyq.fsm import SessionFSM


def _session(**overrides: object) -> Session:
    data: dict[str, object] = {
        "session_id": "ABCDE",
        "setter_connection": "s",
        "secret_word": "PYTHON",
        "created_at": datetime(2025, 1, 1, tzinfo=UTC),
    }
    data.update(overrides)
    return Session.model_validate(data)


def test_fsm_starts_from_session_state() -> None:
    assert SessionFSM(_session()).current_state.id == "waiting"
    assert (
        SessionFSM(_session(status=GameStatus.active, current_player=Player.guesser)).current_state.id
        == "guesser_turn"
    )
    assert (
        SessionFSM(_session(status=GameStatus.active, current_player=Player.setter)).current_state.id
        == "setter_turn"
    )


def test_join_moves_waiting_to_guesser_turn() -> None:
    session = _session()
    fsm = SessionFSM(session)

    fsm.send("join")
    fsm.sync_to_model()

    assert session.status == GameStatus.active
    assert session.current_player == Player.guesser


def test_ask_not_allowed_while_waiting() -> None:
    fsm = SessionFSM(_session())
    with pytest.raises(TransitionNotAllowed):
        fsm.send("ask")


def test_answer_not_allowed_on_guessers_turn() -> None:
    fsm = SessionFSM(_session(status=GameStatus.active, current_player=Player.guesser))
    with pytest.raises(TransitionNotAllowed):
        fsm.send("answer")


def test_answer_returns_turn_while_guesses_remain() -> None:
    session = _session(status=GameStatus.active, current_player=Player.setter, guesses_left=5)
    fsm = SessionFSM(session)

    fsm.send("answer")
    fsm.sync_to_model()

    assert session.current_player == Player.guesser
    assert session.status == GameStatus.active


def test_answer_finishes_when_out_of_guesses() -> None:
    session = _session(status=GameStatus.active, current_player=Player.setter, guesses_left=0)
    fsm = SessionFSM(session)

    fsm.send("answer")
    fsm.sync_to_model()

    assert fsm.current_state == fsm.finished
    assert session.status == GameStatus.finished


def test_finished_is_terminal() -> None:
    session = _session(status=GameStatus.active, current_player=Player.guesser)
    fsm = SessionFSM(session)
    fsm.send("end")

    for event in ("join", "ask", "answer", "end"):
        with pytest.raises(TransitionNotAllowed):
            fsm.send(event)
