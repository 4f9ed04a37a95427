import asyncio
import random

import pytest

from sixball.errors import KindMismatchError, RetrieveError, SymbolError
from sixball.models import TrayId
from sixball.rng import ScriptedSource
from sixball.tray import Tray, TrayStore
from sixball.values import Numeric


def test_capacity_evicts_oldest_first():
    tray = Tray(capacity=2, rng=random.Random(1))
    for command in ("1d6", "2d6", "3d6"):
        tray.process(command)

    assert len(tray) == 2
    assert [roll.command for roll in tray.rolls()] == ["2d6", "3d6"]
    assert tray.latest().command == "3d6"


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        Tray(capacity=0)


def test_math_is_calculated_and_not_stored():
    tray = Tray()
    assert tray.process("2 + 3 * 2") == "`2 + 3 * 2`: **8**"
    assert tray.process("1/0") == "`1/0`: **inf**"
    assert len(tray) == 0


def test_compact_result():
    tray = Tray(rng=ScriptedSource([3, 4]))
    assert tray.process("2d6", comment="attack") == "`2d6` (attack): **7** ([3, 4])"


def test_compact_result_for_successes_and_arithmetic():
    tray = Tray(rng=ScriptedSource([8, 2, 5]))
    assert tray.process("2d10t8 + 1d6") == "`2d10t8 + 1d6`: **6** ([8, 2] = 1 success(es), [5])"


def test_genesys_roll():
    tray = Tray(rng=ScriptedSource([2]))
    assert tray.process_genesys("a1") == "`a1`: **1 success** (ability: [success])"
    assert tray.latest().kind == "genesys"


def test_failed_roll_stores_nothing():
    tray = Tray(rng=ScriptedSource([1] * 10))
    with pytest.raises(SymbolError):
        tray.process("3d6 x")
    with pytest.raises(KindMismatchError):
        tray.process("2d6 & 1d6t3")
    assert len(tray) == 0


def test_reroll_latest_replaces_in_place():
    tray = Tray(rng=ScriptedSource([3, 4, 6, 6]))
    tray.process("2d6", comment="damage", roller="sam")

    roll = tray.reroll_latest()

    assert roll.result == Numeric(12)
    assert roll.comment == "damage"
    assert roll.roller == "sam"
    assert tray.rolls() == (roll,)


def test_reroll_latest_genesys():
    tray = Tray(rng=ScriptedSource([2, 8]))
    tray.process_genesys("a1")
    assert str(tray.reroll_latest().result) == "2 advantages"


def test_empty_tray():
    tray = Tray()
    with pytest.raises(RetrieveError):
        tray.latest()
    with pytest.raises(RetrieveError) as exc:
        tray.reroll_latest()
    assert str(exc.value).startswith("[RETRIEVE_ERROR]")
    assert tray.rolls() == ()


def test_breakdown():
    tray = Tray(rng=ScriptedSource([3, 1, 4, 1]))
    tray.process("4d6kh3", comment="str")
    breakdown = tray.latest().breakdown()

    assert breakdown.title == "4d6kh3 (str)"
    assert breakdown.total == "8"
    assert breakdown.to_dict()["fields"] == [
        {"name": "Rolled 4d6", "value": "4d6 -> **9**: [3, 1, 4, 1]"},
        {"name": "Keep highest 3 di(c)e", "value": "Keep 3 highest -> **8**: [1, 3, 4]"},
    ]
    assert breakdown.render().splitlines()[-1] == "Total: 8"


def test_tray_ids():
    assert TrayId.private("42") != TrayId.guild("42")
    assert str(TrayId.guild("42")) == "guild:42"


def test_store_creates_one_tray_per_conversation():
    store = TrayStore(lambda: Tray(capacity=3))
    first = store.get_or_create(TrayId.guild("a"))

    assert store.get_or_create(TrayId.guild("a")) is first
    assert store.get_or_create(TrayId.private("a")) is not first
    assert len(store) == 2
    assert TrayId.guild("a") in store


def test_with_tray_serializes_work_per_tray():
    store = TrayStore(lambda: Tray(capacity=100, rng=random.Random(3)))
    tray_id = TrayId.guild("table")

    async def main():
        results = await asyncio.gather(
            *(store.with_tray(tray_id, lambda tray: tray.process("1d20")) for _ in range(25))
        )
        other = await store.with_tray(TrayId.private("dm"), lambda tray: len(tray))
        return results, other

    results, other = asyncio.run(main())

    assert len(results) == 25
    assert len(store.get_or_create(tray_id)) == 25
    assert other == 0
