from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from twentyq.api.models import (
    ErrorPayload,
    GameCreatedPayload,
    GameStateView,
    GameStatus,
    OpponentDisconnectedPayload,
    ServerMessageType,
    Session,
)


def project_session(session: Session) -> GameStateView:
    """Client-facing view of a session.

    The secret word is only copied over once the session is finished. Every
    outbound message that carries game state must be built from this function.
    """

    fields: dict[str, Any] = {
        "guesses_left": session.guesses_left,
        "current_player": session.current_player,
        "messages": list(session.messages),
        "last_question": session.last_question,
        "status": session.status,
        "winner": session.winner,
    }
    if session.status == GameStatus.finished:
        fields["secret_word"] = session.secret_word
    return GameStateView(**fields)


def server_message(type_: ServerMessageType, payload: BaseModel) -> dict[str, Any]:
    # exclude_unset keeps an unrevealed secretWord off the wire entirely (not even as null).
    return {"type": type_, "payload": payload.model_dump(mode="json", by_alias=True, exclude_unset=True)}


def game_created_message(session: Session) -> dict[str, Any]:
    return server_message(
        "gameCreated",
        GameCreatedPayload(game_id=session.session_id, game_state=project_session(session)),
    )


def game_update_message(session: Session) -> dict[str, Any]:
    return server_message("gameUpdate", project_session(session))


def error_message(message: str) -> dict[str, Any]:
    return server_message("error", ErrorPayload(message=message))


def opponent_disconnected_message(session: Session, message: str) -> dict[str, Any]:
    return server_message(
        "opponentDisconnected",
        OpponentDisconnectedPayload(message=message, game_state=project_session(session)),
    )
