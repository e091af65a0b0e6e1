from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

from turn_engine.core.errors import ConfigurationError, InvalidActionError
from turn_engine.core.events import Effect, LedgerPredicate, run_effect
from turn_engine.core.ledger import Comparator, Number, ResourceLedger
from turn_engine.core.rng import Rng


class RejectionReason(StrEnum):
    precondition_failed = "precondition_failed"
    insufficient_resources = "insufficient_resources"
    session_ended = "session_ended"


@dataclass(frozen=True, slots=True)
class RejectedAction:
    """Expected, recoverable refusal. The ledger is unchanged and no turn is consumed."""

    action_id: str
    reason: RejectionReason
    message: str


@dataclass(frozen=True, slots=True)
class Precondition:
    check: LedgerPredicate
    message: str = "Precondition failed"


def requires(resource: str, comparator: Comparator | str, threshold: Number, message: str | None = None) -> Precondition:
    """Precondition over a single resource, e.g. `requires("hull", "<", 100)`."""

    op = Comparator(comparator)
    return Precondition(
        check=lambda ledger: ledger.meets(resource, threshold, op),
        message=message or f"requires {resource} {op.value} {threshold}",
    )


@dataclass(frozen=True, slots=True)
class Action:
    id: str
    description: str = ""
    preconditions: tuple[Precondition, ...] = ()
    cost: Mapping[str, Number] = field(default_factory=dict)
    effect: Effect | None = None
    event_table: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ConfigurationError("Action id is required")
        object.__setattr__(self, "preconditions", tuple(self.preconditions))
        object.__setattr__(self, "cost", MappingProxyType(dict(self.cost)))


@dataclass(frozen=True, slots=True)
class ActionOutcome:
    action_id: str
    facts: tuple[str, ...] = ()
    rejection: RejectedAction | None = None

    @property
    def accepted(self) -> bool:
        return self.rejection is None


class ActionRegistry:
    """Read-only set of player-invocable actions, in declaration order."""

    def __init__(self, actions: Iterable[Action], *, resources: Iterable[str]):
        known = set(resources)
        by_id: dict[str, Action] = {}
        for action in actions:
            if action.id in by_id:
                raise ConfigurationError(f"Duplicate action id: {action.id}")
            unknown = sorted(set(action.cost) - known)
            if unknown:
                raise ConfigurationError(f"Action '{action.id}' costs unknown resource(s): {','.join(unknown)}")
            by_id[action.id] = action
        self._by_id = MappingProxyType(by_id)

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._by_id

    def __iter__(self):
        return iter(self._by_id.values())

    def ids(self) -> list[str]:
        return list(self._by_id)

    def get(self, action_id: str) -> Action:
        action = self._by_id.get(action_id)
        if action is None:
            raise InvalidActionError(action_id)
        return action

    def check(self, action_id: str, ledger: ResourceLedger) -> RejectedAction | None:
        action = self.get(action_id)
        for pre in action.preconditions:
            if not pre.check(ledger):
                return RejectedAction(action_id, RejectionReason.precondition_failed, pre.message)
        if not ledger.can_afford(action.cost):
            short = [name for name, amount in action.cost.items() if not ledger.can_afford({name: amount})]
            return RejectedAction(
                action_id,
                RejectionReason.insufficient_resources,
                f"Not enough {', '.join(short)}",
            )
        return None

    def available(self, ledger: ResourceLedger) -> list[str]:
        return [a.id for a in self._by_id.values() if self.check(a.id, ledger) is None]

    def invoke(self, action_id: str, ledger: ResourceLedger, rng: Rng) -> ActionOutcome:
        rejection = self.check(action_id, ledger)
        if rejection is not None:
            return ActionOutcome(action_id=action_id, rejection=rejection)

        action = self._by_id[action_id]
        for name, amount in action.cost.items():
            ledger.apply(name, -amount)

        facts = list(run_effect(action.effect, ledger, rng))
        facts.extend(c.fact() for c in ledger.drain_clamps())
        return ActionOutcome(action_id=action_id, facts=tuple(facts))
