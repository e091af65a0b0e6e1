from __future__ import annotations

from uuid import uuid4

import fakeredis
import pytest

from turn_engine.catalog.singleton import get_catalog
from turn_engine.core.actions import RejectionReason
from turn_engine.core.engine import TurnEngine
from turn_engine.core.errors import InvalidActionError, SessionBusyError, SessionNotFoundError
from turn_engine.lock import session_lock
from turn_engine.session_store import (
    SESSIONS_SET_KEY,
    available_actions,
    create_session,
    get_session,
    list_sessions,
    submit_action,
)
from turn_engine.streams import SessionFeed, read_feed

MOVES = ["launch", "scavenge", "scavenge", "dock", "patch", "launch", "scavenge", "dock"]


def test_persisted_session_replays_like_an_in_memory_one(fake_redis: fakeredis.FakeRedis) -> None:
    record = create_session(r=fake_redis, game_id="outpost", seed=2024)

    engine = TurnEngine(get_catalog().require("outpost"))
    in_memory = engine.create_session(seed=2024)

    for action_id in MOVES:
        persisted = submit_action(r=fake_redis, session_id=record.session_id, action_id=action_id).result
        expected = engine.submit_action(in_memory, action_id)
        assert (persisted.accepted, persisted.event_id, persisted.facts) == (
            expected.accepted,
            expected.event_id,
            expected.facts,
        )
        if not in_memory.is_running:
            break

    stored = get_session(r=fake_redis, session_id=record.session_id)
    assert stored is not None
    assert stored.ledger == in_memory.ledger.snapshot()
    assert stored.turn_number == in_memory.turn_number
    assert [h.action_id for h in stored.history] == [h.action_id for h in in_memory.history]


def test_create_session_registers_and_publishes(fake_redis: fakeredis.FakeRedis) -> None:
    record = create_session(r=fake_redis, game_id="fuel_run", seed=5)

    assert str(record.session_id) in fake_redis.smembers(SESSIONS_SET_KEY)
    assert record.ledger == {"fuel": 10}

    entries = read_feed(r=fake_redis, feed=SessionFeed(session_id=str(record.session_id)))
    assert len(entries) == 1
    _, fields = entries[0]
    assert fields["type"] == "session_created"
    assert fields["game_id"] == "fuel_run"
    assert fields["seed"] == "5"


def test_rejected_action_writes_nothing(fake_redis: fakeredis.FakeRedis) -> None:
    record = create_session(r=fake_redis, game_id="fuel_run", seed=5)
    sid = record.session_id

    submit_action(r=fake_redis, session_id=sid, action_id="move")
    submit_action(r=fake_redis, session_id=sid, action_id="move")
    before = get_session(r=fake_redis, session_id=sid)

    rejected = submit_action(r=fake_redis, session_id=sid, action_id="move")
    assert rejected.result.rejection is not None
    assert rejected.result.rejection.reason == RejectionReason.insufficient_resources
    assert rejected.feed_entry_ids == []
    assert get_session(r=fake_redis, session_id=sid) == before
    assert available_actions(r=fake_redis, session_id=sid) == []

    feed = read_feed(r=fake_redis, feed=SessionFeed(session_id=str(sid)))
    assert [f["type"] for _, f in feed] == ["session_created", "turn_resolved", "turn_resolved"]


def test_unknown_action_and_unknown_session(fake_redis: fakeredis.FakeRedis) -> None:
    record = create_session(r=fake_redis, game_id="fuel_run", seed=5)

    with pytest.raises(InvalidActionError):
        submit_action(r=fake_redis, session_id=record.session_id, action_id="fly")

    # The lock is released even when the turn raises.
    assert submit_action(r=fake_redis, session_id=record.session_id, action_id="move").result.accepted

    with pytest.raises(SessionNotFoundError):
        submit_action(r=fake_redis, session_id=uuid4(), action_id="move")


def test_session_end_is_published(fake_redis: fakeredis.FakeRedis) -> None:
    record = create_session(r=fake_redis, game_id="outpost", seed=8)
    sid = record.session_id

    submit_action(r=fake_redis, session_id=sid, action_id="launch")
    while True:
        submitted = submit_action(r=fake_redis, session_id=sid, action_id="scavenge")
        if submitted.result.ended_by is not None:
            break

    assert len(submitted.feed_entry_ids) == 2
    _, last = read_feed(r=fake_redis, feed=SessionFeed(session_id=str(sid)), count=1000)[-1]
    assert last["type"] == "session_ended"
    assert last["status"] == "lost"

    after = submit_action(r=fake_redis, session_id=sid, action_id="scavenge").result
    assert after.rejection is not None
    assert after.rejection.reason == RejectionReason.session_ended


def test_list_sessions_filters_by_game(fake_redis: fakeredis.FakeRedis) -> None:
    a = create_session(r=fake_redis, game_id="fuel_run", seed=1)
    b = create_session(r=fake_redis, game_id="outpost", seed=1)

    assert {s.session_id for s in list_sessions(r=fake_redis)} == {a.session_id, b.session_id}
    assert [s.session_id for s in list_sessions(r=fake_redis, game_id="outpost")] == [b.session_id]


def test_session_lock_is_exclusive(fake_redis: fakeredis.FakeRedis) -> None:
    record = create_session(r=fake_redis, game_id="fuel_run", seed=5)
    sid = str(record.session_id)

    with session_lock(r=fake_redis, session_id=sid):
        with pytest.raises(SessionBusyError):
            submit_action(r=fake_redis, session_id=record.session_id, action_id="move")

    assert fake_redis.get(f"lock:session:{sid}") is None
    assert submit_action(r=fake_redis, session_id=record.session_id, action_id="move").result.accepted


def test_lock_release_keeps_a_lock_taken_over_by_someone_else(fake_redis: fakeredis.FakeRedis) -> None:
    key = "lock:session:abc"
    with session_lock(r=fake_redis, session_id="abc"):
        fake_redis.set(key, "someone-else")
    assert fake_redis.get(key) == "someone-else"


def test_lock_release_is_a_single_server_side_step(fake_redis: fakeredis.FakeRedis, monkeypatch: pytest.MonkeyPatch) -> None:
    key = "lock:session:abc"
    with session_lock(r=fake_redis, session_id="abc"):
        assert fake_redis.get(key) is not None

        def _client_side_call(*args, **kwargs):
            raise AssertionError("release must not touch the key from the client")

        monkeypatch.setattr(fake_redis, "get", _client_side_call)
        monkeypatch.setattr(fake_redis, "delete", _client_side_call)

    monkeypatch.undo()
    assert fake_redis.get(key) is None
