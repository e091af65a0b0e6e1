from __future__ import annotations

import random
from typing import Any


class Rng:
    """Seedable random source owned by exactly one session.

    Backed by `random.Random` (Mersenne Twister), so a given seed yields the same
    sequence on every platform.
    """

    def __init__(self, seed: int | str | None = None):
        self.seed = seed
        self._random = random.Random(seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_int(self, lo: int, hi: int) -> int:
        if lo > hi:
            raise ValueError(f"next_int range is empty: [{lo}, {hi}]")
        return self._random.randint(lo, hi)

    def chance(self, probability: float) -> bool:
        return self.next_float() < probability

    def get_state(self) -> dict[str, Any]:
        """JSON-safe snapshot of the generator position."""

        version, internal, gauss_next = self._random.getstate()
        return {"version": version, "internal": list(internal), "gauss_next": gauss_next}

    @classmethod
    def from_state(cls, state: dict[str, Any], *, seed: int | str | None = None) -> "Rng":
        rng = cls(seed)
        rng._random.setstate((state["version"], tuple(state["internal"]), state.get("gauss_next")))
        return rng
