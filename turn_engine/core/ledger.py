from __future__ import annotations

import operator
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType

from turn_engine.core.errors import ConfigurationError

Number = int | float


class Comparator(StrEnum):
    lt = "<"
    le = "<="
    eq = "=="
    ne = "!="
    ge = ">="
    gt = ">"


_COMPARE: dict[Comparator, Callable[[Number, Number], bool]] = {
    Comparator.lt: operator.lt,
    Comparator.le: operator.le,
    Comparator.eq: operator.eq,
    Comparator.ne: operator.ne,
    Comparator.ge: operator.ge,
    Comparator.gt: operator.gt,
}


@dataclass(frozen=True, slots=True)
class ResourceSpec:
    name: str
    initial: Number
    minimum: Number | None = None
    maximum: Number | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Resource name is required")
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            raise ConfigurationError(f"Resource '{self.name}': min {self.minimum} > max {self.maximum}")
        if self.clamp(self.initial) != self.initial:
            raise ConfigurationError(f"Resource '{self.name}': initial value {self.initial} is out of bounds")

    def clamp(self, value: Number) -> Number:
        if self.minimum is not None and value < self.minimum:
            return self.minimum
        if self.maximum is not None and value > self.maximum:
            return self.maximum
        return value


@dataclass(frozen=True, slots=True)
class ClampedMutation:
    """A mutation that ran into a resource bound. Narration only, never an error."""

    name: str
    requested: Number
    value: Number
    hit_minimum: bool

    def fact(self) -> str:
        return f"{self.name} depleted" if self.hit_minimum else f"{self.name} at maximum"


@dataclass(frozen=True, slots=True)
class LedgerChange:
    name: str
    value: Number
    requested: Number
    clamped: bool


class ResourceLedger:
    """Named numeric counters with clamped bounds.

    Every stored value lies within its declared bounds after any mutation.
    """

    def __init__(self, specs: Iterable[ResourceSpec], values: Mapping[str, Number] | None = None):
        by_name: dict[str, ResourceSpec] = {}
        for spec in specs:
            if spec.name in by_name:
                raise ConfigurationError(f"Duplicate resource: {spec.name}")
            by_name[spec.name] = spec
        self._specs = MappingProxyType(by_name)
        self._values: dict[str, Number] = {name: spec.initial for name, spec in by_name.items()}
        self._clamps: list[ClampedMutation] = []

        for name, value in (values or {}).items():
            self._values[name] = self._spec(name).clamp(value)

    def _spec(self, name: str) -> ResourceSpec:
        spec = self._specs.get(name)
        if spec is None:
            raise ConfigurationError(f"Unknown resource: {name}")
        return spec

    def get(self, name: str) -> Number:
        self._spec(name)
        return self._values[name]

    def set(self, name: str, value: Number) -> LedgerChange:
        spec = self._spec(name)
        stored = spec.clamp(value)
        self._values[name] = stored
        clamped = stored != value
        if clamped:
            self._clamps.append(
                ClampedMutation(name=name, requested=value, value=stored, hit_minimum=value < stored)
            )
        return LedgerChange(name=name, value=stored, requested=value, clamped=clamped)

    def apply(self, name: str, delta: Number) -> LedgerChange:
        return self.set(name, self.get(name) + delta)

    def meets(self, name: str, threshold: Number, comparator: Comparator | str = Comparator.ge) -> bool:
        return _COMPARE[Comparator(comparator)](self.get(name), threshold)

    def can_afford(self, cost: Mapping[str, Number]) -> bool:
        """Whether deducting `cost` keeps every resource at or above its minimum."""

        for name, amount in cost.items():
            spec = self._spec(name)
            if amount > 0 and spec.minimum is not None and self._values[name] - amount < spec.minimum:
                return False
        return True

    def drain_clamps(self) -> list[ClampedMutation]:
        out, self._clamps = self._clamps, []
        return out

    def snapshot(self) -> dict[str, Number]:
        return dict(self._values)

    def restore(self, snapshot: Mapping[str, Number]) -> None:
        """Roll back to a snapshot taken from this ledger."""

        self._values = dict(snapshot)
        self._clamps.clear()
