from __future__ import annotations

import random
from uuid import UUID, uuid4

from turn_engine.core.config import GameConfig
from turn_engine.core.controller import TurnController
from turn_engine.core.rng import Rng
from turn_engine.core.session import GameSession, HistoryEntry, SessionView, TurnResult


def new_seed() -> int:
    return random.SystemRandom().randint(1, 2**31 - 1)


class TurnEngine:
    """In-process entry point for a presentation layer (CLI, HTTP routes, tests).

    One engine per game. The engine holds no session state: every call takes the
    session it acts on, so any number of sessions can be driven side by side.
    """

    def __init__(self, config: GameConfig):
        self.config = config
        self.controller = TurnController(config)

    def create_session(self, *, seed: int | None = None, session_id: UUID | None = None) -> GameSession:
        seed = new_seed() if seed is None else seed
        return GameSession(
            session_id=session_id or uuid4(),
            game_id=self.config.game_id,
            seed=seed,
            ledger=self.config.new_ledger(),
            rng=Rng(seed),
        )

    def get_status(self, session: GameSession) -> SessionView:
        return SessionView(
            session_id=session.session_id,
            game_id=session.game_id,
            turn_number=session.turn_number,
            ledger=session.ledger.snapshot(),
            status=session.status,
            phase=session.phase,
            ended_by=session.ended_by,
        )

    def list_available_actions(self, session: GameSession) -> list[str]:
        if not session.is_running:
            return []
        return self.config.actions.available(session.ledger)

    def submit_action(self, session: GameSession, action_id: str) -> TurnResult:
        return self.controller.submit(session, action_id)

    def history(self, session: GameSession) -> list[HistoryEntry]:
        return list(session.history)
