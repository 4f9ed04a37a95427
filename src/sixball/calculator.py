"""Arithmetic: infix text -> postfix (shunting-yard) -> stack evaluation.

The shunting-yard here is shared with the dice parser, which extends the
precedence table with the dice operators.
"""

from __future__ import annotations

import logging
import math
import operator
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from .errors import MalformedExpressionError, SymbolError
from .lexer import MATH_RE, Lexeme, tokenize


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperatorSpec:
    precedence: int
    right_assoc: bool = False
    # "binary", "prefix" (unary minus) or "postfix" (no argument)
    arity: str = "binary"


def _divide(left: float, right: float) -> float:
    try:
        return left / right
    except ZeroDivisionError:
        if left == 0 or left != left:
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)


def _infinite_power(left: float, right: float) -> float:
    # Odd integer exponents keep the sign of the base.
    if float(right).is_integer() and int(right) % 2 == 1:
        return math.copysign(math.inf, left)
    return math.inf


def _power(left: float, right: float) -> float:
    try:
        result = left ** right
    except (ZeroDivisionError, OverflowError):
        return _infinite_power(left, right)
    if isinstance(result, complex):
        return math.nan
    return result


BINARY: dict[str, Callable[[float, float], float]] = {
    "plus": operator.add,
    "minus": operator.sub,
    "star": operator.mul,
    "slash": _divide,
    "caret": _power,
}

SYMBOLS = {"plus": "+", "minus": "-", "star": "*", "slash": "/", "caret": "^", "neg": "-"}

OPERATORS: dict[str, OperatorSpec] = {
    "plus": OperatorSpec(1),
    "minus": OperatorSpec(1),
    "star": OperatorSpec(2),
    "slash": OperatorSpec(2),
    "neg": OperatorSpec(3, right_assoc=True, arity="prefix"),
    "caret": OperatorSpec(4, right_assoc=True),
}


def apply_operator(kind: str, left: float, right: float) -> float:
    return BINARY[kind](left, right)


def format_number(value: float) -> str:
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return str(value)


def _expects_operand(previous: Lexeme | None, table: Mapping[str, OperatorSpec]) -> bool:
    if previous is None or previous.kind == "lparen":
        return True
    spec = table.get(previous.kind)
    return spec is not None and spec.arity != "postfix"


def to_postfix(
    lexemes: list[Lexeme],
    table: Mapping[str, OperatorSpec] = OPERATORS,
    implicit_operands: Mapping[str, str] | None = None,
) -> list[Lexeme]:
    """Reorder infix lexemes into postfix order.

    A minus where an operand is expected becomes the prefix "neg" operator.
    implicit_operands maps operator kinds that may start an operand (like the
    dice "d") to the literal inserted before them, so "d20" reads as "1d20".
    """
    output: list[Lexeme] = []
    stack: list[Lexeme] = []
    previous: Lexeme | None = None

    for lexeme in lexemes:
        expecting = _expects_operand(previous, table)
        kind = lexeme.kind

        if kind == "minus" and expecting:
            lexeme = Lexeme("neg", lexeme.text, lexeme.position)
            kind = "neg"
        elif kind == "plus" and expecting:
            # Unary plus changes nothing.
            previous = Lexeme("lparen", "", lexeme.position)
            continue

        if kind == "lparen":
            if not expecting:
                raise MalformedExpressionError(f"Missing operator before '(' at position {lexeme.position}.")
            stack.append(lexeme)
        elif kind == "rparen":
            while stack and stack[-1].kind != "lparen":
                output.append(stack.pop())
            if not stack:
                raise MalformedExpressionError(f"Unbalanced ')' at position {lexeme.position}.")
            stack.pop()
        elif kind in table:
            spec = table[kind]
            if spec.arity == "prefix":
                stack.append(lexeme)
            else:
                if expecting:
                    if implicit_operands and kind in implicit_operands:
                        output.append(Lexeme("number", implicit_operands[kind], lexeme.position))
                    else:
                        raise MalformedExpressionError(
                            f"'{lexeme.text}' at position {lexeme.position} is missing its left operand."
                        )
                while stack and stack[-1].kind != "lparen":
                    top = table[stack[-1].kind]
                    if top.precedence > spec.precedence or (
                        top.precedence == spec.precedence and not spec.right_assoc
                    ):
                        output.append(stack.pop())
                    else:
                        break
                if spec.arity == "postfix":
                    output.append(lexeme)
                else:
                    stack.append(lexeme)
        else:
            if not expecting:
                raise MalformedExpressionError(
                    f"Missing operator before '{lexeme.text}' at position {lexeme.position}."
                )
            output.append(lexeme)
        previous = lexeme

    if previous is not None and previous.kind != "lparen" and _expects_operand(previous, table):
        raise MalformedExpressionError(
            f"'{previous.text}' at position {previous.position} is missing its right operand."
        )

    while stack:
        top = stack.pop()
        if top.kind == "lparen":
            raise MalformedExpressionError(f"Unbalanced '(' at position {top.position}.")
        output.append(top)
    return output


def resolve_rpn(postfix: list[Lexeme]) -> float:
    stack: list[float] = []
    for lexeme in postfix:
        if lexeme.kind == "number":
            stack.append(float(lexeme.text))
        elif lexeme.kind == "neg":
            if not stack:
                raise MalformedExpressionError(f"'-' at position {lexeme.position} has nothing to negate.")
            stack.append(-stack.pop())
        elif lexeme.kind in BINARY:
            if len(stack) < 2:
                raise MalformedExpressionError(
                    f"'{lexeme.text}' at position {lexeme.position} is missing an operand."
                )
            right = stack.pop()
            left = stack.pop()
            stack.append(apply_operator(lexeme.kind, left, right))
        else:
            raise SymbolError(lexeme.text, lexeme.position)

    if len(stack) != 1:
        raise MalformedExpressionError("That expression doesn't work out to a single number.")
    return stack[0]


def evaluate(expression: str) -> float:
    """Evaluate an arithmetic expression.

    Division by zero follows IEEE-754 and gives inf or nan instead of failing.
    """
    lexemes = tokenize(expression, MATH_RE)
    if not lexemes:
        raise MalformedExpressionError("There's nothing to calculate.")
    postfix = to_postfix(lexemes)
    logger.debug("Postfix for %r: %s", expression, " ".join(lexeme.text for lexeme in postfix))
    return resolve_rpn(postfix)
