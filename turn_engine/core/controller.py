from __future__ import annotations

import logging

from turn_engine.core.actions import RejectedAction
from turn_engine.core.config import GameConfig
from turn_engine.core.events import run_effect
from turn_engine.core.rng import Rng
from turn_engine.core.session import GameSession, HistoryEntry, SessionStatus, TurnResult
from turn_engine.core.termination import Outcome
from turn_engine.fsm import TurnFSM
from turn_engine.turn_processing.validators import ValidationContext, default_pipeline

logger = logging.getLogger(__name__)


class TurnController:
    """Runs one full turn: action -> upkeep -> event roll -> termination check.

    A rejected action leaves the session exactly as it was. If an effect raises, the
    ledger and RNG are rolled back before the exception propagates.
    """

    def __init__(self, config: GameConfig):
        self.config = config
        self.pipeline = default_pipeline(config.actions)

    def _rejected(self, session: GameSession, rejection: RejectedAction) -> TurnResult:
        logger.debug(
            "session=%s action=%s rejected: %s (%s)",
            session.session_id,
            rejection.action_id,
            rejection.reason.value,
            rejection.message,
        )
        return TurnResult(
            action_id=rejection.action_id,
            turn_number=session.turn_number,
            status=session.status,
            rejection=rejection,
            ended_by=session.ended_by,
        )

    def submit(self, session: GameSession, action_id: str) -> TurnResult:
        ctx = ValidationContext(session_id=str(session.session_id), action_id=action_id)
        rejection = self.pipeline.validate(ctx=ctx, session=session)
        if rejection is not None:
            return self._rejected(session, rejection)

        ledger_before = session.ledger.snapshot()
        rng_before = session.rng.get_state()
        try:
            return self._run_turn(session, action_id)
        except Exception:
            session.ledger.restore(ledger_before)
            session.rng = Rng.from_state(rng_before, seed=session.rng.seed)
            raise

    def _run_turn(self, session: GameSession, action_id: str) -> TurnResult:
        ledger = session.ledger
        fsm = TurnFSM(session)

        outcome = self.config.actions.invoke(action_id, ledger, session.rng)
        if outcome.rejection is not None:
            return self._rejected(session, outcome.rejection)
        fsm.resolve_action()

        facts = list(outcome.facts)
        turn_number = session.turn_number + 1

        facts.extend(run_effect(self.config.upkeep, ledger, session.rng))
        facts.extend(c.fact() for c in ledger.drain_clamps())

        table = self.config.event_tables.select(
            ledger=ledger,
            action_table=self.config.actions.get(action_id).event_table,
        )
        event = table.roll(session.rng) if table is not None else None
        if event is not None:
            facts.extend(run_effect(event.effect, ledger, session.rng))
            facts.extend(c.fact() for c in ledger.drain_clamps())
        fsm.resolve_event()

        rule = self.config.termination.evaluate(ledger, turn_number)
        fsm.check_termination()
        if rule is None:
            fsm.next_turn()
        else:
            if rule.message:
                facts.append(rule.message)
            session.status = SessionStatus.won if rule.kind == Outcome.win else SessionStatus.lost
            session.ended_by = rule.id
            fsm.finish()

        session.turn_number = turn_number
        fsm.sync_phase_to_model()

        event_id = event.id if event is not None else None
        session.history.append(
            HistoryEntry(turn_number=turn_number, action_id=action_id, event_id=event_id, facts=tuple(facts))
        )

        logger.info(
            "session=%s turn=%d action=%s event=%s status=%s",
            session.session_id,
            turn_number,
            action_id,
            event_id,
            session.status.value,
        )
        return TurnResult(
            action_id=action_id,
            turn_number=turn_number,
            status=session.status,
            facts=tuple(facts),
            event_id=event_id,
            ended_by=session.ended_by,
        )
