import pytest

from sixball.errors import (
    ArgumentError,
    DiceError,
    KindMismatchError,
    MalformedExpressionError,
    MissingPoolError,
    NumericParseError,
    SymbolError,
)
from sixball.parser import parse
from sixball.rng import ScriptedSource
from sixball.tokens import Dice, Explode, Keep, MathOp, Merge, Target
from sixball.values import Numeric, Successes


@pytest.mark.parametrize(
    ("text", "faces", "expected"),
    [
        ("3d6+2", [1, 2, 3], 8),
        ("d20", [17], 17),
        ("D20 + 1", [17], 18),
        ("4d6kh3", [3, 1, 4, 1], 8),
        ("4d6kl1", [3, 1, 4, 1], 1),
        ("2d6*2+1", [3, 4], 15),
        ("1+2d6", [1, 1], 3),
        ("(1+1)d6", [2, 5], 7),
        ("2d[4,6]", [1, 2, 3, 4], 10),
        ("[1,2]d6", [1, 2, 3], 6),
        ("(2d6&1d4)kh2", [3, 5, 2], 8),
        ("2d6&1d4kh1", [3, 5, 2], 10),
        ("4d6e6", [6, 1, 1, 1, 4], 13),
        ("2d6ro1cmin3", [1, 6, 1], 9),
        ("-d4", [3], -3),
        ("2d6^2", [1, 2], 9),
    ],
)
def test_numeric_rolls(text, faces, expected):
    rng = ScriptedSource(faces)
    parsed = parse(text, rng)

    assert parsed.value() == Numeric(expected)
    assert rng.remaining == 0


def test_operations_in_reduction_order():
    parsed = parse("4d6kh3e6", ScriptedSource([3, 1, 4, 1]))

    assert [type(op) for op in parsed.operations] == [Dice, Keep, Explode]
    assert parsed.terms == (parsed.root,)


def test_terms_are_the_leaves_of_arithmetic():
    parsed = parse("2d6t4 + 1d6 - 1", ScriptedSource([4, 2, 6]))

    assert isinstance(parsed.root, MathOp)
    assert [type(term) for term in parsed.terms] == [Target, Dice]
    assert parsed.value() == Numeric(6)


def test_success_counts():
    parsed = parse("5d10t8b1", ScriptedSource([1, 8, 10, 3, 9]))
    assert parsed.value() == Successes(2)


def test_target_array():
    parsed = parse("3d10t[1, 2]", ScriptedSource([9, 10, 1]))
    assert parsed.value() == Successes(3)


def test_merge_is_recorded():
    parsed = parse("1d6 & 1d8", ScriptedSource([2, 7]))
    assert isinstance(parsed.root, Merge)
    assert parsed.root.pool().results() == (2, 7)


def test_recursive_explosion_is_bounded():
    rng = ScriptedSource([1] * 6)
    parsed = parse("1d1er1", rng, limit=5)

    assert parsed.value() == Numeric(6)
    assert len(parsed.root.generations) == 6


@pytest.mark.parametrize(
    ("text", "error", "fragment"),
    [
        ("", MalformedExpressionError, ""),
        ("3kh2", MissingPoolError, "'kh' at position 1"),
        ("3d6kh", MalformedExpressionError, "'kh' at position 3"),
        ("(3d6", MalformedExpressionError, "'('"),
        ("3d6)", MalformedExpressionError, "')'"),
        ("2d6 3d6", MalformedExpressionError, "'3'"),
        ("3d6 x", SymbolError, "'x'"),
        ("2d6kh[1,2]", ArgumentError, ""),
        ("2d6kh(1d4)", ArgumentError, "'kh' at position 3"),
        ("[1,2]", ArgumentError, ""),
        ("0d6", ArgumentError, ""),
        ("1d256", NumericParseError, "256"),
        ("2.5d6", NumericParseError, "2.5"),
        ("2d8ga + 1", KindMismatchError, ""),
        ("3d6t4 & 2d6", KindMismatchError, ""),
        ("2d6ga", ArgumentError, ""),
    ],
)
def test_rejections(text, error, fragment):
    with pytest.raises(error) as exc:
        parse(text, ScriptedSource([1] * 8))
    assert isinstance(exc.value, DiceError)
    assert fragment in str(exc.value)


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("2d6 & 3", "'&' at position 4 needs dice on its right. Example: '2d6&1d8'."),
        ("3 & 2d6", "'&' at position 2 needs dice on its left. Example: '2d6&1d8'."),
        ("3e6", "'e' at position 1 needs dice on its left. Example: '4d6e1'."),
        ("(3)ga", "'ga' at position 3 needs dice on its left. Example: '2d8ga'."),
    ],
)
def test_missing_pool_names_the_side(text, message):
    with pytest.raises(MissingPoolError) as exc:
        parse(text, ScriptedSource([1, 1]))
    assert str(exc.value) == f"[MISSING_POOL] {message}"
