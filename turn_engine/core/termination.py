from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum

from turn_engine.core.errors import ConfigurationError
from turn_engine.core.ledger import ResourceLedger


class Outcome(StrEnum):
    win = "win"
    loss = "loss"


TerminationPredicate = Callable[[ResourceLedger, int], bool]


@dataclass(frozen=True, slots=True)
class TerminationRule:
    id: str
    kind: Outcome
    predicate: TerminationPredicate
    message: str = ""


class TerminationEvaluator:
    """Ordered win/loss rules; the first matching rule ends the session.

    Declaring loss rules before win rules (or the reverse) is an explicit per-game choice.
    """

    def __init__(self, rules: Iterable[TerminationRule] = ()):
        self.rules = tuple(rules)
        seen: set[str] = set()
        for rule in self.rules:
            if rule.id in seen:
                raise ConfigurationError(f"Duplicate termination rule id: {rule.id}")
            seen.add(rule.id)

    def evaluate(self, ledger: ResourceLedger, turn_number: int) -> TerminationRule | None:
        return next((rule for rule in self.rules if rule.predicate(ledger, turn_number)), None)
