"""Play a game definition in the terminal, in-process (no Redis, no HTTP).

Usage:
    uv run python scripts/play.py starship_salvage [--seed 123]

Type an action id at the prompt, `status` to see the ledger, or `quit`.
Rejected or unknown actions just re-prompt; they never cost a turn.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from turn_engine.catalog.registry import load_game_catalog
from turn_engine.core.engine import TurnEngine
from turn_engine.core.errors import InvalidActionError


def _print_status(engine: TurnEngine, session) -> None:  # type: ignore[no-untyped-def]
    view = engine.get_status(session)
    ledger = " | ".join(f"{k}: {v}" for k, v in view.ledger.items())
    print(f"-- turn {view.turn_number} -- {ledger}")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("game_id")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    catalog = load_game_catalog(root=Path(__file__).resolve().parents[1])
    engine = TurnEngine(catalog.require(args.game_id))
    session = engine.create_session(seed=args.seed)

    print(engine.config.title or engine.config.game_id)
    if engine.config.description:
        print(engine.config.description)
    print(f"(seed {session.seed})")

    while session.is_running:
        _print_status(engine, session)
        print("Actions: " + ", ".join(engine.list_available_actions(session)))
        choice = input("> ").strip()
        if choice == "quit":
            return
        if choice == "status":
            continue

        try:
            result = engine.submit_action(session, choice)
        except InvalidActionError as e:
            print(e)
            continue

        if result.rejection is not None:
            print(result.rejection.message)
            continue
        for fact in result.facts:
            print(f"  {fact}")

    _print_status(engine, session)
    print(f"Game over: {session.status.value}.")


if __name__ == "__main__":
    main()
