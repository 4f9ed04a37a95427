import math

import pytest

from sixball.errors import KindMismatchError
from sixball.genesys import Symbol
from sixball.values import Numeric, Successes, SymbolTally, add


def test_add_same_kinds():
    assert add(Numeric(2), Numeric(3.5)) == Numeric(5.5)
    assert add(Successes(2), Successes(-3)) == Successes(-1)
    assert add(
        SymbolTally({Symbol.SUCCESS: 1}),
        SymbolTally({Symbol.SUCCESS: 1, Symbol.THREAT: 2}),
    ) == SymbolTally({Symbol.SUCCESS: 2, Symbol.THREAT: 2})


@pytest.mark.parametrize(
    ("left", "right"),
    [
        (Successes(1), SymbolTally({Symbol.SUCCESS: 1})),
        (Numeric(1), Successes(1)),
        (SymbolTally(), Numeric(0)),
    ],
)
def test_add_never_coerces(left, right):
    with pytest.raises(KindMismatchError) as exc:
        add(left, right)
    assert str(exc.value).startswith("[KIND_MISMATCH]")


def test_tally_drops_zero_counts():
    assert SymbolTally({Symbol.SUCCESS: 0}) == SymbolTally()
    assert hash(SymbolTally({Symbol.SUCCESS: 0})) == hash(SymbolTally())


def test_tally_has_no_number():
    with pytest.raises(KindMismatchError):
        SymbolTally().to_number()


@pytest.mark.parametrize(
    ("counts", "text"),
    [
        ({}, "Wash"),
        ({Symbol.SUCCESS: 1, Symbol.FAILURE: 1}, "Wash"),
        ({Symbol.FAILURE: 2, Symbol.ADVANTAGE: 1}, "2 failures, 1 advantage"),
        ({Symbol.DESPAIR: 1, Symbol.THREAT: 3}, "1 failure, 3 threats, 1 despair"),
    ],
)
def test_tally_str(counts, text):
    assert str(SymbolTally(counts)) == text


def test_str():
    assert str(Numeric(4.0)) == "4"
    assert str(Numeric(2.5)) == "2.5"
    assert str(Numeric(math.inf)) == "inf"
    assert str(Successes(3)) == "3 success(es)"
