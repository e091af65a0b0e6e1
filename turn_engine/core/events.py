from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from turn_engine.core.errors import ConfigurationError
from turn_engine.core.ledger import ResourceLedger
from turn_engine.core.rng import Rng

# Effects receive everything they may touch explicitly; they must not close over mutable state.
Effect = Callable[[ResourceLedger, Rng], Iterable[str] | None]
LedgerPredicate = Callable[[ResourceLedger], bool]


def run_effect(effect: Effect | None, ledger: ResourceLedger, rng: Rng) -> tuple[str, ...]:
    if effect is None:
        return ()
    return tuple(effect(ledger, rng) or ())


@dataclass(frozen=True, slots=True)
class Event:
    """A weighted random occurrence. An event without an effect is a quiet turn."""

    id: str
    weight: float
    effect: Effect | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ConfigurationError("Event id is required")
        if self.weight < 0:
            raise ConfigurationError(f"Event '{self.id}' has a negative weight: {self.weight}")


@dataclass(frozen=True, slots=True)
class EventTable:
    """Weighted pool of events applicable in one context.

    Selection probability of event i is weight_i / sum(weights). Traversal follows
    declaration order, so ties are stable.
    """

    id: str
    events: tuple[Event, ...]
    total_weight: float = field(init=False)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for ev in self.events:
            if ev.id in seen:
                raise ConfigurationError(f"Duplicate event id '{ev.id}' in table '{self.id}'")
            seen.add(ev.id)

        total = float(sum(ev.weight for ev in self.events))
        if self.events and total <= 0:
            raise ConfigurationError(f"Event table '{self.id}' has no positive weight")
        object.__setattr__(self, "total_weight", total)

    def roll(self, rng: Rng) -> Event | None:
        if not self.events:
            return None

        r = rng.next_float() * self.total_weight
        cumulative = 0.0
        for ev in self.events:
            cumulative += ev.weight
            if cumulative > r:
                return ev

        # Float accumulation can leave r a hair above the final sum.
        return next(ev for ev in reversed(self.events) if ev.weight > 0)


@dataclass(frozen=True, slots=True)
class TableRule:
    """Use `table` whenever `when` holds for the post-action ledger."""

    table: str
    when: LedgerPredicate


@dataclass(frozen=True, slots=True)
class EventTables:
    """Named event tables plus the policy choosing one for a turn.

    Order of precedence: the first matching context rule, then the played action's
    own table, then the default table. No table means no event this turn.
    """

    tables: Mapping[str, EventTable]
    default: str | None = None
    rules: tuple[TableRule, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", MappingProxyType(dict(self.tables)))
        for name, table in self.tables.items():
            if name != table.id:
                raise ConfigurationError(f"Event table registered as '{name}' but named '{table.id}'")
        if self.default is not None:
            self.require(self.default)
        for rule in self.rules:
            self.require(rule.table)

    @staticmethod
    def of(*tables: EventTable, default: str | None = None, rules: Iterable[TableRule] = ()) -> "EventTables":
        by_id: dict[str, EventTable] = {}
        for t in tables:
            if t.id in by_id:
                raise ConfigurationError(f"Duplicate event table: {t.id}")
            by_id[t.id] = t
        return EventTables(tables=by_id, default=default, rules=tuple(rules))

    def require(self, name: str) -> EventTable:
        table = self.tables.get(name)
        if table is None:
            raise ConfigurationError(f"Unknown event table: {name}")
        return table

    def select(self, *, ledger: ResourceLedger, action_table: str | None = None) -> EventTable | None:
        for rule in self.rules:
            if rule.when(ledger):
                return self.tables[rule.table]
        if action_table is not None:
            return self.tables[action_table]
        if self.default is not None:
            return self.tables[self.default]
        return None
