from __future__ import annotations

from datetime import datetime
from enum import IntEnum, StrEnum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

GUESS_BUDGET = 20


class GameStatus(StrEnum):
    waiting = "waiting"
    active = "active"
    finished = "finished"


class Player(IntEnum):
    """Participant seat. The numeric values are what clients see on the wire."""

    setter = 1
    guesser = 2


class TranscriptEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["question", "answer"]
    text: str


class Session(BaseModel):
    """Authoritative server-side record for one game room.

    Never sent to clients directly; see `twentyq.projection.project_session`.
    """

    session_id: str
    setter_connection: str
    guesser_connection: str | None = None

    secret_word: str

    guesses_left: int = Field(default=GUESS_BUDGET, ge=0)
    current_player: Player = Player.setter
    messages: list[TranscriptEntry] = Field(default_factory=list)

    # Most recent question; prefixed onto the matching answer entry.
    last_question: str = ""

    status: GameStatus = GameStatus.waiting
    winner: Player | None = None

    created_at: datetime
    finished_at: datetime | None = None

    def participants(self) -> list[str]:
        return [c for c in (self.setter_connection, self.guesser_connection) if c is not None]

    def other_party(self, connection_id: str) -> str | None:
        if connection_id == self.setter_connection:
            return self.guesser_connection
        if connection_id == self.guesser_connection:
            return self.setter_connection
        return None


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GameStateView(_WireModel):
    # Left unset (and therefore omitted on the wire) unless the game is finished.
    secret_word: str | None = None

    guesses_left: int
    current_player: Player
    messages: list[TranscriptEntry]
    last_question: str
    status: GameStatus
    winner: Player | None


class GameCreatedPayload(_WireModel):
    game_id: str
    game_state: GameStateView


class ErrorPayload(_WireModel):
    message: str


class OpponentDisconnectedPayload(_WireModel):
    message: str
    game_state: GameStateView


ServerMessageType = Literal["gameCreated", "gameUpdate", "error", "opponentDisconnected"]


# Inbound messages.


class _InboundPayload(_WireModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class CreateGamePayload(_InboundPayload):
    secret_word: str = Field(..., min_length=1, max_length=64)


class JoinGamePayload(_InboundPayload):
    game_id: str = Field(..., min_length=1, max_length=16)


class AskQuestionPayload(_InboundPayload):
    question: str = Field(..., min_length=1, max_length=500)


class SendAnswerPayload(_InboundPayload):
    answer: str = Field(..., min_length=1, max_length=500)


class EndGamePayload(_InboundPayload):
    winner: Player


class CreateGameMessage(BaseModel):
    type: Literal["createGame"]
    payload: CreateGamePayload


class JoinGameMessage(BaseModel):
    type: Literal["joinGame"]
    payload: JoinGamePayload


class AskQuestionMessage(BaseModel):
    type: Literal["askQuestion"]
    payload: AskQuestionPayload


class SendAnswerMessage(BaseModel):
    type: Literal["sendAnswer"]
    payload: SendAnswerPayload


class EndGameMessage(BaseModel):
    type: Literal["endGame"]
    payload: EndGamePayload


ClientMessage = Annotated[
    Union[CreateGameMessage, JoinGameMessage, AskQuestionMessage, SendAnswerMessage, EndGameMessage],
    Field(discriminator="type"),
]

_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


def parse_client_message(raw: str | bytes) -> ClientMessage:
    """Parse one inbound frame.

    Raises `UnicodeDecodeError` for binary frames that are not UTF-8 and
    `pydantic.ValidationError` for anything else malformed.
    """

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return _client_message_adapter.validate_json(raw)


def describe_validation_error(err: ValidationError) -> str:
    first = err.errors()[0] if err.errors() else None
    if first is None:
        return "Invalid message."
    loc = ".".join(str(part) for part in first.get("loc", ()))
    if loc:
        return f"Invalid message: {loc}: {first.get('msg')}"
    return f"Invalid message: {first.get('msg')}"
