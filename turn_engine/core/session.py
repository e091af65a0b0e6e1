from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from uuid import UUID

from turn_engine.core.actions import RejectedAction
from turn_engine.core.ledger import Number, ResourceLedger
from turn_engine.core.rng import Rng


class SessionStatus(StrEnum):
    running = "running"
    won = "won"
    lost = "lost"


class TurnPhase(StrEnum):
    awaiting_action = "awaiting_action"
    action_resolved = "action_resolved"
    event_resolved = "event_resolved"
    termination_checked = "termination_checked"
    ended = "ended"


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    turn_number: int
    action_id: str
    event_id: str | None
    facts: tuple[str, ...]


@dataclass(slots=True)
class GameSession:
    """One isolated play-through: its own ledger and its own RNG.

    Mutated once per accepted turn by the turn controller; frozen once status leaves running.
    """

    session_id: UUID
    game_id: str
    seed: int
    ledger: ResourceLedger
    rng: Rng
    turn_number: int = 0
    history: list[HistoryEntry] = field(default_factory=list)
    status: SessionStatus = SessionStatus.running
    phase: TurnPhase = TurnPhase.awaiting_action
    ended_by: str | None = None

    @property
    def is_running(self) -> bool:
        return self.status == SessionStatus.running


@dataclass(frozen=True, slots=True)
class SessionView:
    """Read-only projection for display."""

    session_id: UUID
    game_id: str
    turn_number: int
    ledger: dict[str, Number]
    status: SessionStatus
    phase: TurnPhase
    ended_by: str | None = None


@dataclass(frozen=True, slots=True)
class TurnResult:
    action_id: str
    turn_number: int
    status: SessionStatus
    facts: tuple[str, ...] = ()
    event_id: str | None = None
    rejection: RejectedAction | None = None
    ended_by: str | None = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None
