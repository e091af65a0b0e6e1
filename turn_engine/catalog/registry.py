from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from turn_engine.core.actions import Action, ActionRegistry, Precondition
from turn_engine.core.config import GameConfig
from turn_engine.core.errors import ConfigurationError, GameNotFoundError
from turn_engine.core.events import Effect, Event, EventTable, EventTables, LedgerPredicate, TableRule
from turn_engine.core.ledger import Comparator, ResourceLedger, ResourceSpec
from turn_engine.core.rng import Rng
from turn_engine.core.termination import Outcome, TerminationEvaluator, TerminationRule

logger = logging.getLogger(__name__)

Num = int | float


class _Def(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ConditionDef(_Def):
    resource: str
    op: Comparator
    value: Num
    message: str | None = None


class EffectStepDef(_Def):
    """One ledger mutation. Exactly one of delta / between / fraction / set_to is given."""

    resource: str
    delta: Num | None = None
    between: tuple[int, int] | None = None
    fraction: float | None = None
    set_to: Num | None = None
    chance: float = Field(1.0, ge=0.0, le=1.0)
    when: tuple[ConditionDef, ...] = ()
    text: str | None = None
    miss_text: str | None = None

    @field_validator("text", "miss_text")
    @classmethod
    def _template_renders(cls, v: str | None) -> str | None:
        if v is not None:
            try:
                v.format(resource="", amount=0, value=0)
            except (KeyError, IndexError, ValueError) as e:
                raise ValueError(f"bad text template {v!r}: {e}") from e
        return v

    @model_validator(mode="after")
    def _exactly_one_mode(self) -> "EffectStepDef":
        given = [m for m in ("delta", "between", "fraction", "set_to") if getattr(self, m) is not None]
        if len(given) != 1:
            raise ValueError(f"effect on '{self.resource}' needs exactly one of delta/between/fraction/set_to, got {given}")
        if self.between is not None and self.between[0] > self.between[1]:
            raise ValueError(f"effect on '{self.resource}': empty range {list(self.between)}")
        return self


class ResourceDef(_Def):
    name: str = Field(..., min_length=1)
    initial: Num
    min: Num | None = None
    max: Num | None = None


class ActionDef(_Def):
    id: str = Field(..., min_length=1)
    description: str = ""
    cost: dict[str, Num] = Field(default_factory=dict)
    requires: tuple[ConditionDef, ...] = ()
    text: str | None = None
    effects: tuple[EffectStepDef, ...] = ()
    event_table: str | None = None


class EventDef(_Def):
    id: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0.0)
    text: str | None = None
    effects: tuple[EffectStepDef, ...] = ()


class EventTableDef(_Def):
    id: str = Field(..., min_length=1)
    events: tuple[EventDef, ...] = ()


class TableRuleDef(_Def):
    table: str
    when: tuple[ConditionDef, ...] = Field(..., min_length=1)


class TerminationDef(_Def):
    id: str = Field(..., min_length=1)
    kind: Outcome
    when: tuple[ConditionDef, ...] = ()
    turn_at_least: int | None = Field(None, ge=1)
    message: str = ""

    @model_validator(mode="after")
    def _has_trigger(self) -> "TerminationDef":
        if not self.when and self.turn_at_least is None:
            raise ValueError(f"termination rule '{self.id}' needs `when` conditions or `turn_at_least`")
        return self


class GameDefinition(_Def):
    """Declarative game, as stored in `games/<id>.json`."""

    id: str = Field(..., min_length=1)
    title: str = ""
    description: str = ""
    resources: tuple[ResourceDef, ...] = Field(..., min_length=1)
    upkeep: tuple[EffectStepDef, ...] = ()
    actions: tuple[ActionDef, ...] = Field(..., min_length=1)
    event_tables: tuple[EventTableDef, ...] = ()
    default_event_table: str | None = None
    event_table_rules: tuple[TableRuleDef, ...] = ()
    termination: tuple[TerminationDef, ...] = ()


def _holds(cond: ConditionDef, ledger: ResourceLedger) -> bool:
    return ledger.meets(cond.resource, cond.value, cond.op)


def _all_hold(conds: tuple[ConditionDef, ...]) -> LedgerPredicate:
    return lambda ledger: all(_holds(c, ledger) for c in conds)


def _run_step(step: EffectStepDef, ledger: ResourceLedger, rng: Rng) -> str | None:
    if not all(_holds(c, ledger) for c in step.when):
        return None

    current = ledger.get(step.resource)
    if step.chance < 1.0 and not rng.chance(step.chance):
        if step.miss_text is None:
            return None
        return step.miss_text.format(resource=step.resource, amount=0, value=current)

    if step.set_to is not None:
        change = ledger.set(step.resource, step.set_to)
        amount: Num = abs(change.value - current)
    else:
        if step.between is not None:
            delta: Num = rng.next_int(*step.between)
        elif step.fraction is not None:
            delta = int(current * step.fraction)
        else:
            delta = step.delta  # type: ignore[assignment]
        change = ledger.apply(step.resource, delta)
        amount = abs(delta)

    if step.text is None:
        return None
    return step.text.format(resource=step.resource, amount=amount, value=change.value)


def _compile_effect(text: str | None, steps: tuple[EffectStepDef, ...]) -> Effect | None:
    if text is None and not steps:
        return None

    # `steps` is a tuple of frozen models; the effect closes over nothing mutable.
    def effect(ledger: ResourceLedger, rng: Rng) -> list[str]:
        facts = [text] if text else []
        for step in steps:
            fact = _run_step(step, ledger, rng)
            if fact:
                facts.append(fact)
        return facts

    return effect


def _check_resources(defn: GameDefinition) -> None:
    known = {r.name for r in defn.resources}

    def conds(where: str, items: Iterable[ConditionDef]) -> None:
        for c in items:
            if c.resource not in known:
                raise ConfigurationError(f"{where}: unknown resource '{c.resource}'")

    def steps(where: str, items: Iterable[EffectStepDef]) -> None:
        for s in items:
            if s.resource not in known:
                raise ConfigurationError(f"{where}: unknown resource '{s.resource}'")
            conds(where, s.when)

    for a in defn.actions:
        conds(f"action '{a.id}'", a.requires)
        steps(f"action '{a.id}'", a.effects)
    steps("upkeep", defn.upkeep)
    for t in defn.event_tables:
        for e in t.events:
            steps(f"event '{t.id}/{e.id}'", e.effects)
    for rule in defn.event_table_rules:
        conds(f"event table rule '{rule.table}'", rule.when)
    for term in defn.termination:
        conds(f"termination rule '{term.id}'", term.when)


def _termination_predicate(term: TerminationDef):
    when = _all_hold(term.when)
    at_least = term.turn_at_least
    return lambda ledger, turn: (at_least is None or turn >= at_least) and when(ledger)


def compile_definition(defn: GameDefinition) -> GameConfig:
    """Turn a validated definition into a read-only GameConfig, checking every cross-reference."""

    _check_resources(defn)

    resources = tuple(ResourceSpec(name=r.name, initial=r.initial, minimum=r.min, maximum=r.max) for r in defn.resources)

    actions = [
        Action(
            id=a.id,
            description=a.description,
            preconditions=tuple(
                Precondition(
                    check=_all_hold((c,)),
                    message=c.message or f"requires {c.resource} {c.op.value} {c.value}",
                )
                for c in a.requires
            ),
            cost=a.cost,
            effect=_compile_effect(a.text, a.effects),
            event_table=a.event_table,
        )
        for a in defn.actions
    ]

    tables = EventTables.of(
        *(
            EventTable(
                id=t.id,
                events=tuple(Event(id=e.id, weight=e.weight, effect=_compile_effect(e.text, e.effects)) for e in t.events),
            )
            for t in defn.event_tables
        ),
        default=defn.default_event_table,
        rules=[TableRule(table=r.table, when=_all_hold(r.when)) for r in defn.event_table_rules],
    )

    termination = TerminationEvaluator(
        TerminationRule(id=t.id, kind=t.kind, predicate=_termination_predicate(t), message=t.message)
        for t in defn.termination
    )

    return GameConfig(
        game_id=defn.id,
        title=defn.title,
        description=defn.description,
        resources=resources,
        actions=ActionRegistry(actions, resources=[r.name for r in resources]),
        event_tables=tables,
        termination=termination,
        upkeep=_compile_effect(None, defn.upkeep),
    )


@dataclass(frozen=True, slots=True)
class GameCatalog:
    """Compiled games keyed by id. Read-only and shared across sessions."""

    games: Mapping[str, GameConfig]

    @staticmethod
    def of(configs: Iterable[GameConfig]) -> "GameCatalog":
        by_id: dict[str, GameConfig] = {}
        for cfg in configs:
            if cfg.game_id in by_id:
                raise ConfigurationError(f"Duplicate game id: {cfg.game_id}")
            by_id[cfg.game_id] = cfg
        return GameCatalog(games=MappingProxyType(by_id))

    def ids(self) -> list[str]:
        return sorted(self.games)

    def require(self, game_id: str) -> GameConfig:
        cfg = self.games.get(game_id)
        if cfg is None:
            raise GameNotFoundError(f"Unknown game: {game_id}")
        return cfg


def parse_definition(raw: str | bytes, *, source: str = "<string>") -> GameDefinition:
    try:
        return GameDefinition.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid game definition {source}: {e}") from e


def load_game_definition(path: Path) -> GameDefinition:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigurationError(f"Game definition not found: {path}") from e
    return parse_definition(raw, source=str(path))


def _fallback_game() -> GameConfig:
    """Tiny built-in game for tests/CI, used when no definitions can be loaded."""

    defn = GameDefinition.model_validate(
        {
            "id": "courier",
            "title": "Courier",
            "description": "Deliver parcels before the tank runs dry.",
            "resources": [
                {"name": "fuel", "initial": 10, "min": 0, "max": 10},
                {"name": "deliveries", "initial": 0, "min": 0},
            ],
            "actions": [
                {"id": "deliver", "cost": {"fuel": 3}, "effects": [{"resource": "deliveries", "delta": 1}]},
                {"id": "refuel", "requires": [{"resource": "fuel", "op": "<", "value": 10}], "effects": [{"resource": "fuel", "delta": 4}]},
            ],
            "termination": [
                {"id": "delivered", "kind": "win", "when": [{"resource": "deliveries", "op": ">=", "value": 3}]},
                {"id": "out_of_time", "kind": "loss", "turn_at_least": 12},
            ],
        }
    )
    return compile_definition(defn)


def load_game_catalog(*, root: Path) -> GameCatalog:
    games_dir = root / "games"

    # Default behavior: fall back to a tiny built-in game when definitions are missing or broken.
    # You can force strict behavior by setting TURN_ENGINE_STRICT_GAMES=1.
    strict = os.getenv("TURN_ENGINE_STRICT_GAMES", "").strip().lower() in {"1", "true", "yes"}

    try:
        paths = sorted(games_dir.glob("*.json"))
        if not paths:
            raise ConfigurationError(f"No game definitions in {games_dir}")
        return GameCatalog.of(compile_definition(load_game_definition(p)) for p in paths)
    except ConfigurationError:
        if strict:
            raise
        logger.warning("Falling back to the built-in game; could not load definitions from %s", games_dir, exc_info=True)
        return GameCatalog.of([_fallback_game()])
