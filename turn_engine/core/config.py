from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from turn_engine.core.actions import ActionRegistry
from turn_engine.core.errors import ConfigurationError
from turn_engine.core.events import Effect, EventTables
from turn_engine.core.ledger import Number, ResourceLedger, ResourceSpec
from turn_engine.core.termination import TerminationEvaluator


@dataclass(frozen=True, slots=True)
class GameConfig:
    """Everything one game is played with. Read-only after construction and shared by all sessions.

    Cross-references (action costs, action tables) are checked here so a broken game
    fails before any session exists. `upkeep` is the per-turn effect applied after
    every accepted action (consumption, decay, conditional penalties).
    """

    game_id: str
    resources: tuple[ResourceSpec, ...]
    actions: ActionRegistry
    event_tables: EventTables = field(default_factory=lambda: EventTables(tables={}))
    termination: TerminationEvaluator = field(default_factory=TerminationEvaluator)
    upkeep: Effect | None = None
    title: str = ""
    description: str = ""

    def __post_init__(self) -> None:
        if not self.game_id:
            raise ConfigurationError("game_id is required")
        object.__setattr__(self, "resources", tuple(self.resources))

        names = {r.name for r in self.resources}
        if len(names) != len(self.resources):
            raise ConfigurationError(f"Game '{self.game_id}' declares a resource twice")

        for action in self.actions:
            unknown = sorted(set(action.cost) - names)
            if unknown:
                raise ConfigurationError(f"Action '{action.id}' costs unknown resource(s): {','.join(unknown)}")
            if action.event_table is not None:
                self.event_tables.require(action.event_table)

    def new_ledger(self, values: Mapping[str, Number] | None = None) -> ResourceLedger:
        return ResourceLedger(self.resources, values)
