from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4

import redis

from turn_engine.api.models import HistoryRecord, RngState, SessionRecord
from turn_engine.catalog.singleton import get_catalog
from turn_engine.core.config import GameConfig
from turn_engine.core.engine import TurnEngine
from turn_engine.core.errors import SessionNotFoundError
from turn_engine.core.rng import Rng
from turn_engine.core.session import GameSession, HistoryEntry, TurnResult
from turn_engine.lock import session_lock
from turn_engine.streams import SessionFeed, publish_many, publish_to_feed

logger = logging.getLogger(__name__)

SESSIONS_SET_KEY = "turn_engine:sessions"
SESSION_KEY_PREFIX = "turn_engine:session:"  # + {uuid}


@dataclass(frozen=True, slots=True)
class SubmitResult:
    record: SessionRecord
    result: TurnResult
    feed_entry_ids: list[str]


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _session_key(session_id: UUID) -> str:
    return f"{SESSION_KEY_PREFIX}{session_id}"


def engine_for(game_id: str) -> TurnEngine:
    return TurnEngine(get_catalog().require(game_id))


def record_from_session(session: GameSession, *, created_at: datetime) -> SessionRecord:
    return SessionRecord(
        session_id=session.session_id,
        game_id=session.game_id,
        created_at=created_at,
        last_updated_at=_now(),
        seed=session.seed,
        turn_number=session.turn_number,
        phase=session.phase,
        status=session.status,
        ended_by=session.ended_by,
        ledger=session.ledger.snapshot(),
        history=[
            HistoryRecord(turn_number=h.turn_number, action_id=h.action_id, event_id=h.event_id, facts=list(h.facts))
            for h in session.history
        ],
        rng_state=RngState.model_validate(session.rng.get_state()),
    )


def session_from_record(record: SessionRecord, config: GameConfig) -> GameSession:
    return GameSession(
        session_id=record.session_id,
        game_id=record.game_id,
        seed=record.seed,
        ledger=config.new_ledger(record.ledger),
        rng=Rng.from_state(record.rng_state.model_dump(), seed=record.seed),
        turn_number=record.turn_number,
        history=[
            HistoryEntry(turn_number=h.turn_number, action_id=h.action_id, event_id=h.event_id, facts=tuple(h.facts))
            for h in record.history
        ],
        status=record.status,
        phase=record.phase,
        ended_by=record.ended_by,
    )


def save_session(*, r: redis.Redis, record: SessionRecord) -> None:
    r.set(_session_key(record.session_id), record.model_dump_json())


def get_session(*, r: redis.Redis, session_id: UUID) -> SessionRecord | None:
    raw = r.get(_session_key(session_id))
    if not raw:
        return None
    return SessionRecord.model_validate_json(raw)


def require_session(*, r: redis.Redis, session_id: UUID) -> SessionRecord:
    record = get_session(r=r, session_id=session_id)
    if record is None:
        raise SessionNotFoundError(f"Session not found: {session_id}")
    return record


def create_session(*, r: redis.Redis, game_id: str, seed: int | None = None) -> SessionRecord:
    engine = engine_for(game_id)
    session = engine.create_session(seed=seed, session_id=uuid4())
    record = record_from_session(session, created_at=_now())

    save_session(r=r, record=record)
    r.sadd(SESSIONS_SET_KEY, str(record.session_id))

    publish_to_feed(
        r=r,
        feed=SessionFeed(session_id=str(record.session_id)),
        fields={
            "type": "session_created",
            "session_id": str(record.session_id),
            "game_id": game_id,
            "seed": str(record.seed),
            "ts": record.created_at.isoformat(),
        },
    )
    logger.info("created session=%s game=%s seed=%d", record.session_id, game_id, record.seed)
    return record


def list_sessions(*, r: redis.Redis, game_id: str | None = None) -> list[SessionRecord]:
    out: list[SessionRecord] = []
    for sid in sorted(r.smembers(SESSIONS_SET_KEY)):
        try:
            session_id = UUID(sid)
        except ValueError:
            continue
        record = get_session(r=r, session_id=session_id)
        if record is not None and (game_id is None or record.game_id == game_id):
            out.append(record)
    out.sort(key=lambda s: s.created_at, reverse=True)
    return out


def available_actions(*, r: redis.Redis, session_id: UUID) -> list[str]:
    record = require_session(r=r, session_id=session_id)
    engine = engine_for(record.game_id)
    return engine.list_available_actions(session_from_record(record, engine.config))


def _feed_entries_for_turn(*, record: SessionRecord, result: TurnResult) -> list[tuple[str, dict[str, str]]]:
    key = SessionFeed(session_id=str(record.session_id)).key
    ts = record.last_updated_at.isoformat()
    entries = [
        (
            key,
            {
                "type": "turn_resolved",
                "session_id": str(record.session_id),
                "turn_number": str(result.turn_number),
                "action_id": result.action_id,
                "event_id": result.event_id or "",
                "facts": "\n".join(result.facts),
                "ts": ts,
            },
        )
    ]
    if result.ended_by is not None:
        entries.append(
            (
                key,
                {
                    "type": "session_ended",
                    "session_id": str(record.session_id),
                    "status": result.status.value,
                    "ended_by": result.ended_by,
                    "ts": ts,
                },
            )
        )
    return entries


def submit_action(*, r: redis.Redis, session_id: UUID, action_id: str) -> SubmitResult:
    """Run one turn for a persisted session.

    Load, turn and save all happen under the session lock, and the record is
    written only once the whole turn has completed. Rejected actions write nothing.
    """

    with session_lock(r=r, session_id=str(session_id)):
        record = require_session(r=r, session_id=session_id)
        engine = engine_for(record.game_id)
        session = session_from_record(record, engine.config)

        result = engine.submit_action(session, action_id)
        if not result.accepted:
            return SubmitResult(record=record, result=result, feed_entry_ids=[])

        record = record_from_session(session, created_at=record.created_at)
        save_session(r=r, record=record)

        ids = publish_many(r=r, entries=_feed_entries_for_turn(record=record, result=result))
        return SubmitResult(record=record, result=result, feed_entry_ids=ids)
