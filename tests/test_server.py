import asyncio

import pytest

from sixball import server


def test_calc_tool():
    assert server.calc("2^10")["total"] == "1024"


def test_dice_errors_become_value_errors():
    with pytest.raises(ValueError) as exc:
        asyncio.run(server.roll("3d6 x", conversation_id="server-test"))
    assert str(exc.value).startswith("[SYMBOL_ERROR]")


def test_breakdown_on_an_empty_conversation():
    with pytest.raises(ValueError) as exc:
        asyncio.run(server.breakdown(conversation_id="server-test-empty", private=True))
    assert str(exc.value).startswith("[RETRIEVE_ERROR]")


def test_roll_tool_keeps_history():
    asyncio.run(server.roll("1d4 # smoke", conversation_id="server-test-history"))
    out = asyncio.run(server.pastrolls(conversation_id="server-test-history"))
    assert [roll["comment"] for roll in out["rolls"]] == ["smoke"]
