import asyncio

import pytest

from sixball.dice import (
    calc_from_text,
    genroll_from_text,
    latest_breakdown,
    past_rolls,
    reroll_latest,
    roll_from_text,
    split_comment,
)
from sixball.errors import DiceError, RetrieveError, UnparseableInputError
from sixball.models import TrayId
from sixball.rng import ScriptedSource
from sixball.tray import Tray, TrayStore


TABLE = TrayId.guild("table")


def scripted_store(faces):
    rng = ScriptedSource(faces)
    return TrayStore(lambda: Tray(rng=rng))


@pytest.mark.parametrize(
    ("text", "separator", "expected"),
    [
        ("4d6kh3 # strength", None, ("4d6kh3", "strength")),
        ("1d20", None, ("1d20", "")),
        ("1d20 # to hit # again", None, ("1d20", "to hit # again")),
        ("1d20 ; stealth", ";", ("1d20", "stealth")),
    ],
)
def test_split_comment(text, separator, expected):
    assert split_comment(text, separator) == expected


@pytest.mark.parametrize("text", ["", "   ", "# just a comment"])
def test_split_comment_needs_a_command(text):
    with pytest.raises(UnparseableInputError) as exc:
        split_comment(text)
    assert str(exc.value).startswith("[UNPARSEABLE_INPUT]")


def test_roll_from_text():
    store = scripted_store([3, 4])
    out = asyncio.run(roll_from_text(store, TABLE, "2d6 + 1 # damage", roller="sam"))

    assert len(out["request_id"]) == 32
    assert out["timestamp"].endswith("Z")
    assert out["input"] == "2d6 + 1 # damage"
    assert out["command"] == "2d6 + 1"
    assert out["comment"] == "damage"
    assert out["result"] == "`2d6 + 1` (damage): **8** ([3, 4])"
    assert out["total"] == "8"
    assert "breakdown" not in out


def test_roll_from_text_verbose():
    store = scripted_store([5])
    out = asyncio.run(roll_from_text(store, TABLE, "1d6", verbose=True))

    assert out["breakdown"] == {
        "title": "1d6",
        "fields": [{"name": "Rolled 1d6", "value": "1d6 -> **5**: [5]"}],
        "total": "5",
    }


def test_math_only_roll_is_not_kept():
    store = scripted_store([])
    out = asyncio.run(roll_from_text(store, TABLE, "2*3"))

    assert out["result"] == "`2*3`: **6**"
    assert "total" not in out
    with pytest.raises(RetrieveError):
        asyncio.run(reroll_latest(store, TABLE))


def test_genroll_from_text():
    store = scripted_store([12, 12])
    out = asyncio.run(genroll_from_text(store, TABLE, "p1 c1 # perception"))

    assert out["kind"] == "genesys"
    assert out["total"] == "1 triumph, 1 despair"


def test_history_handlers():
    store = scripted_store([2, 6, 3])

    async def main():
        await roll_from_text(store, TABLE, "1d6 # first")
        await roll_from_text(store, TABLE, "1d6 # second")
        rerolled = await reroll_latest(store, TABLE)
        breakdown = await latest_breakdown(store, TABLE)
        history = await past_rolls(store, TABLE)
        return rerolled, breakdown, history

    rerolled, breakdown, history = asyncio.run(main())

    assert rerolled["result"] == "`1d6` (second): **3** ([3])"
    assert breakdown["breakdown"]["title"] == "1d6 (second)"
    assert [roll["comment"] for roll in history["rolls"]] == ["first", "second"]
    assert history["result"].splitlines()[-1] == "`1d6` (second): **3** ([3])"


def test_conversations_are_separate():
    store = scripted_store([4])
    asyncio.run(roll_from_text(store, TABLE, "1d6"))

    out = asyncio.run(past_rolls(store, TrayId.private("table")))
    assert out["rolls"] == []
    assert out["result"] == "No rolls yet."


@pytest.mark.parametrize(("text", "total"), [("(3 + 4) * 2", "14"), ("1/0", "inf"), ("2^-1", "0.5")])
def test_calc_from_text(text, total):
    out = calc_from_text(text)
    assert out["total"] == total
    assert out["result"] == f"`{text}`: **{total}**"


@pytest.mark.parametrize("text", ["", "3d6", "1 +"])
def test_calc_rejections(text):
    with pytest.raises(DiceError):
        calc_from_text(text)
