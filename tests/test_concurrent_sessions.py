from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from turn_engine.catalog.singleton import get_catalog
from turn_engine.core.engine import TurnEngine

MOVES = ["launch", "scavenge", "scavenge", "scavenge", "dock", "patch", "patch", "launch", "scavenge", "dock"] * 3


def _play(engine: TurnEngine, seed: int) -> list[tuple]:
    session = engine.create_session(seed=seed)
    out: list[tuple] = []
    for action_id in MOVES:
        result = engine.submit_action(session, action_id)
        out.append((result.accepted, result.turn_number, result.event_id, result.facts))
    out.append(tuple(sorted(session.ledger.snapshot().items())))
    return out


def test_sessions_share_config_but_not_state() -> None:
    engine = TurnEngine(get_catalog().require("outpost"))
    seeds = list(range(16))

    serial = [_play(engine, s) for s in seeds]
    with ThreadPoolExecutor(max_workers=8) as pool:
        parallel = list(pool.map(lambda s: _play(engine, s), seeds))

    assert parallel == serial


def test_one_session_does_not_disturb_another() -> None:
    engine = TurnEngine(get_catalog().require("outpost"))
    a = engine.create_session(seed=1)
    b = engine.create_session(seed=1)

    engine.submit_action(a, "launch")
    engine.submit_action(a, "scavenge")

    assert b.turn_number == 0
    assert b.ledger.snapshot() == engine.config.new_ledger().snapshot()
    assert b.rng.get_state() != a.rng.get_state()
