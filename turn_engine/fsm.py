from __future__ import annotations

from statemachine import State, StateMachine

from turn_engine.core.session import GameSession, TurnPhase


class TurnFSM(StateMachine):
    """FSM wrapper around one GameSession's turn.

    awaiting action -> action resolved -> event resolved -> termination checked -> (awaiting action | ended).
    The turn controller does the work; the FSM only guards the order of the steps.
    """

    awaiting_action = State(TurnPhase.awaiting_action.value, value=TurnPhase.awaiting_action.value, initial=True)
    action_resolved = State(TurnPhase.action_resolved.value, value=TurnPhase.action_resolved.value)
    event_resolved = State(TurnPhase.event_resolved.value, value=TurnPhase.event_resolved.value)
    termination_checked = State(TurnPhase.termination_checked.value, value=TurnPhase.termination_checked.value)
    ended = State(TurnPhase.ended.value, value=TurnPhase.ended.value, final=True)

    resolve_action = awaiting_action.to(action_resolved)
    resolve_event = action_resolved.to(event_resolved)
    check_termination = event_resolved.to(termination_checked)
    next_turn = termination_checked.to(awaiting_action)
    finish = termination_checked.to(ended)

    def __init__(self, session: GameSession):
        self.session = session
        super().__init__(start_value=session.phase.value)

    def sync_phase_to_model(self) -> None:
        self.session.phase = TurnPhase(str(self.current_state.value))
