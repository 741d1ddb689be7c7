from __future__ import annotations

from statemachine import State, StateMachine

from twentyq.api.models import GameStatus, Player, Session


def _state_value_for(session: Session) -> str:
    if session.status == GameStatus.active:
        return "guesser_turn" if session.current_player == Player.guesser else "setter_turn"
    return session.status.value


class SessionFSM(StateMachine):
    """FSM wrapper around a Session.

    - waiting -> guesser_turn on join
    - guesser_turn <-> setter_turn on ask / answer
    - any live state -> finished on end; setter_turn -> finished on the last answer

    Mutations are applied by the engine; the FSM only guards transitions and
    writes status/turn back onto the model.
    """

    waiting = State("waiting", value="waiting", initial=True)
    guesser_turn = State("guesser_turn", value="guesser_turn")
    setter_turn = State("setter_turn", value="setter_turn")
    finished = State("finished", value="finished", final=True)

    # A join on a live room means the previous guesser dropped; the turn goes back to the guesser.
    join = waiting.to(guesser_turn) | guesser_turn.to(guesser_turn) | setter_turn.to(guesser_turn)
    ask = guesser_turn.to(setter_turn)
    answer = setter_turn.to(finished, cond="out_of_guesses") | setter_turn.to(guesser_turn)
    end = waiting.to(finished) | guesser_turn.to(finished) | setter_turn.to(finished)

    def __init__(self, session: Session):
        self.session = session
        super().__init__(start_value=_state_value_for(session))

    def out_of_guesses(self) -> bool:
        return self.session.guesses_left <= 0

    def sync_to_model(self) -> None:
        current = self.current_state
        if current == self.guesser_turn:
            self.session.status = GameStatus.active
            self.session.current_player = Player.guesser
        elif current == self.setter_turn:
            self.session.status = GameStatus.active
            self.session.current_player = Player.setter
        else:
            self.session.status = GameStatus(str(current.value))
