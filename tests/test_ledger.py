from __future__ import annotations

import pytest

from turn_engine.core.errors import ConfigurationError
from turn_engine.core.ledger import Comparator, ResourceLedger, ResourceSpec


def _ledger() -> ResourceLedger:
    return ResourceLedger(
        [
            ResourceSpec("fuel", 10, minimum=0, maximum=10),
            ResourceSpec("credits", 0, minimum=0),
            ResourceSpec("reputation", 0),
        ]
    )


def test_apply_clamps_and_reports() -> None:
    ledger = _ledger()

    change = ledger.apply("fuel", -4)
    assert (change.value, change.clamped) == (6, False)

    change = ledger.apply("fuel", -20)
    assert change.value == 0
    assert change.requested == -14
    assert change.clamped is True
    assert ledger.get("fuel") == 0

    clamps = ledger.drain_clamps()
    assert [c.fact() for c in clamps] == ["fuel depleted"]
    assert ledger.drain_clamps() == []


def test_set_above_max_is_clamped() -> None:
    ledger = _ledger()
    change = ledger.set("fuel", 99)
    assert change.value == 10
    assert [c.fact() for c in ledger.drain_clamps()] == ["fuel at maximum"]


def test_unbounded_resource_never_clamps() -> None:
    ledger = _ledger()
    ledger.apply("reputation", -1_000)
    ledger.apply("credits", 1_000_000)
    assert ledger.get("reputation") == -1_000
    assert ledger.get("credits") == 1_000_000
    assert ledger.drain_clamps() == []


def test_unknown_resource_is_a_configuration_error() -> None:
    ledger = _ledger()
    with pytest.raises(ConfigurationError):
        ledger.apply("oxygen", 1)
    with pytest.raises(ConfigurationError):
        ledger.get("oxygen")
    with pytest.raises(ConfigurationError):
        ResourceLedger([ResourceSpec("fuel", 1)], values={"oxygen": 3})


@pytest.mark.parametrize(
    ("comparator", "threshold", "expected"),
    [
        (Comparator.ge, 10, True),
        (Comparator.gt, 10, False),
        ("<", 11, True),
        ("<=", 9, False),
        ("==", 10, True),
        ("!=", 10, False),
    ],
)
def test_meets(comparator: Comparator | str, threshold: int, expected: bool) -> None:
    assert _ledger().meets("fuel", threshold, comparator) is expected


def test_can_afford_respects_minimum_only_for_positive_costs() -> None:
    ledger = _ledger()
    assert ledger.can_afford({"fuel": 10})
    assert not ledger.can_afford({"fuel": 11})
    assert ledger.can_afford({"fuel": -5})
    assert ledger.can_afford({"reputation": 500})


@pytest.mark.parametrize(
    "spec_kwargs",
    [
        {"name": "fuel", "initial": 5, "minimum": 10, "maximum": 0},
        {"name": "fuel", "initial": 11, "minimum": 0, "maximum": 10},
        {"name": "", "initial": 0},
    ],
)
def test_bad_resource_spec(spec_kwargs: dict) -> None:
    with pytest.raises(ConfigurationError):
        ResourceSpec(**spec_kwargs)


def test_duplicate_resource_rejected() -> None:
    with pytest.raises(ConfigurationError):
        ResourceLedger([ResourceSpec("fuel", 1), ResourceSpec("fuel", 2)])


def test_restore_and_snapshot_are_copies() -> None:
    ledger = _ledger()
    snap = ledger.snapshot()
    ledger.apply("fuel", -3)
    snap["fuel"] = 1234
    assert ledger.get("fuel") == 7

    ledger.restore({"fuel": 10, "credits": 0, "reputation": 0})
    assert ledger.get("fuel") == 10


def test_initial_values_are_clamped_on_load() -> None:
    ledger = ResourceLedger([ResourceSpec("fuel", 10, minimum=0, maximum=10)], values={"fuel": 50})
    assert ledger.get("fuel") == 10
