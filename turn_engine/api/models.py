from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from turn_engine.core.actions import RejectionReason
from turn_engine.core.session import SessionStatus, TurnPhase


class SessionCreateRequest(BaseModel):
    game_id: str = Field(..., min_length=1)
    # Fixed seeds make a session replayable; omitted => random.
    seed: int | None = Field(None, ge=0)


class SubmitActionRequest(BaseModel):
    action_id: str = Field(..., min_length=1)


class RngState(BaseModel):
    version: int
    internal: list[int]
    gauss_next: float | None = None


class HistoryRecord(BaseModel):
    turn_number: int
    action_id: str
    event_id: str | None = None
    facts: list[str] = Field(default_factory=list)


class SessionRecord(BaseModel):
    """Persisted session (one Redis key per session)."""

    session_id: UUID
    game_id: str
    created_at: datetime
    last_updated_at: datetime

    # For reproducibility/debugging.
    seed: int

    turn_number: int = 0
    phase: TurnPhase = TurnPhase.awaiting_action
    status: SessionStatus = SessionStatus.running
    ended_by: str | None = None

    ledger: dict[str, int | float]
    history: list[HistoryRecord] = Field(default_factory=list)

    # Generator position after the last completed turn.
    rng_state: RngState


class SessionStatusResponse(BaseModel):
    session_id: UUID
    game_id: str
    turn_number: int
    ledger: dict[str, int | float]
    status: SessionStatus
    phase: TurnPhase
    ended_by: str | None = None

    @classmethod
    def from_record(cls, record: SessionRecord) -> "SessionStatusResponse":
        return cls(
            session_id=record.session_id,
            game_id=record.game_id,
            turn_number=record.turn_number,
            ledger=dict(record.ledger),
            status=record.status,
            phase=record.phase,
            ended_by=record.ended_by,
        )


class SessionListResponse(BaseModel):
    sessions: list[SessionStatusResponse]


class AvailableActionsResponse(BaseModel):
    session_id: UUID
    actions: list[str]


class RejectionModel(BaseModel):
    reason: RejectionReason
    message: str


class TurnResultResponse(BaseModel):
    session_id: UUID
    accepted: bool
    action_id: str
    turn_number: int
    status: SessionStatus
    event_id: str | None = None
    facts: list[str] = Field(default_factory=list)
    ended_by: str | None = None
    rejection: RejectionModel | None = None


class HistoryResponse(BaseModel):
    session_id: UUID
    history: list[HistoryRecord]


class ResourceSummary(BaseModel):
    name: str
    initial: int | float
    min: int | float | None = None
    max: int | float | None = None


class ActionSummary(BaseModel):
    id: str
    description: str = ""
    cost: dict[str, int | float] = Field(default_factory=dict)


class GameSummary(BaseModel):
    game_id: str
    title: str
    description: str = ""
    resources: list[ResourceSummary]
    actions: list[ActionSummary]


class GameListResponse(BaseModel):
    games: list[GameSummary]
