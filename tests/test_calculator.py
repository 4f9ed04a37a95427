import math

import pytest

from sixball.calculator import evaluate, to_postfix
from sixball.errors import MalformedExpressionError, MathError, SymbolError
from sixball.lexer import MATH_RE, tokenize


def test_regression_case():
    assert evaluate("3+4*2/(1-5)^2^3") == 3.0001220703125


@pytest.mark.parametrize(
    ("expression", "expected"),
    [
        ("2+3*4", 14),
        ("(2+3)*4", 20),
        ("10-4-3", 3),
        ("16/4/2", 2),
        ("2^3^2", 512),
        ("-2^2", -4),
        ("2*-3", -6),
        ("--3", 3),
        ("+3", 3),
        ("0.5*4", 2),
        ("4^0.5", 2),
        ("2^-1", 0.5),
    ],
)
def test_precedence_and_associativity(expression, expected):
    assert evaluate(expression) == expected


def test_postfix_order():
    postfix = to_postfix(tokenize("3+4*2", MATH_RE))
    assert [lexeme.text for lexeme in postfix] == ["3", "4", "2", "*", "+"]


@pytest.mark.parametrize(("expression", "expected"), [("1/0", math.inf), ("-1/0", -math.inf)])
def test_division_by_zero_follows_ieee(expression, expected):
    assert evaluate(expression) == expected


def test_zero_over_zero_is_nan():
    assert math.isnan(evaluate("0/0"))


@pytest.mark.parametrize("expression", ["", "(1+2", "1+2)", "1 2", "*3", "1+", "2(3)"])
def test_malformed(expression):
    with pytest.raises(MalformedExpressionError) as exc:
        evaluate(expression)
    assert isinstance(exc.value, MathError)
    assert str(exc.value).startswith("[MALFORMED_EXPRESSION]")


def test_dice_are_not_math():
    with pytest.raises(SymbolError):
        evaluate("3d6")


def test_power_edge_cases():
    assert math.isnan(evaluate("(-8)^0.5"))
    assert evaluate("0^-1") == math.inf
    assert evaluate("10^400") == math.inf
    assert evaluate("(0-10)^401") == -math.inf
    assert evaluate("(0-10)^400") == math.inf
    assert evaluate("(-0)^(0-1)") == -math.inf
    assert evaluate("(-0)^(0-2)") == math.inf
