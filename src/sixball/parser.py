from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Literal

from .calculator import BINARY, OPERATORS, OperatorSpec, to_postfix
from .errors import ArgumentError, MalformedExpressionError, MissingPoolError, SymbolError
from .genesys import GenesysKind
from .lexer import Lexeme, tokenize, tokenize_genesys
from .pool import MAX_GENERATIONS
from .rng import SYSTEM_SOURCE, DiceSource
from .tokens import (
    OPERATOR_TYPES,
    Argument,
    ArrayArg,
    Dice,
    Genesys,
    MathOp,
    Merge,
    Number,
    RollToken,
    SingleArg,
)
from .values import RollValue


logger = logging.getLogger(__name__)

DICE_PRECEDENCE = 6

DICE_OPERATORS: dict[str, OperatorSpec] = {
    **OPERATORS,
    "merge": OperatorSpec(5),
    "dice": OperatorSpec(DICE_PRECEDENCE),
    "keep": OperatorSpec(DICE_PRECEDENCE),
    "reroll": OperatorSpec(DICE_PRECEDENCE),
    "explode": OperatorSpec(DICE_PRECEDENCE),
    "cap": OperatorSpec(DICE_PRECEDENCE),
    "target": OperatorSpec(DICE_PRECEDENCE),
    "botch": OperatorSpec(DICE_PRECEDENCE),
    "genesys": OperatorSpec(DICE_PRECEDENCE, arity="postfix"),
}

# "d20" is read as "1d20".
_IMPLICIT = {"dice": "1"}


@dataclass(frozen=True)
class ParsedRoll:
    text: str
    kind: Literal["dice", "genesys"]
    root: RollToken
    # Every dice-domain token in the order it was resolved.
    operations: tuple[RollToken, ...]
    # The outermost dice-domain tokens, i.e. the leaves of the arithmetic.
    terms: tuple[RollToken, ...]

    def value(self) -> RollValue:
        return self.root.value()


Entry = tuple[RollToken, Lexeme]


def _pop(stack: list[Entry], lexeme: Lexeme) -> Entry:
    if not stack:
        raise MalformedExpressionError(f"'{lexeme.text}' at position {lexeme.position} is missing an operand.")
    return stack.pop()


def _argument(entry: Entry, operator: Lexeme) -> Argument:
    token, lexeme = entry
    if isinstance(token, ArrayArg):
        return token
    if isinstance(token, (Number, MathOp)) and token.is_constant:
        return token.as_argument()
    raise ArgumentError(
        f"'{operator.text}' at position {operator.position} needs a number or an [array], "
        f"not '{lexeme.text}'. Example: '4d6kh3' or '5d10t[0, 1, 2]'."
    )


def _with_pool(entry: Entry, operator: Lexeme, side: str = "left") -> RollToken:
    token, _ = entry
    try:
        token.pool()
    except MissingPoolError:
        if operator.kind == "merge":
            example = "2d6&1d8"
        elif operator.kind == "genesys":
            example = f"2d8{operator.text}"
        else:
            example = f"4d6{operator.text}1"
        raise MissingPoolError(
            f"'{operator.text}' at position {operator.position} needs dice on its {side}. Example: '{example}'."
        ) from None
    return token


def _reduce(postfix: list[Lexeme], rng: DiceSource, limit: int) -> tuple[RollToken, list[RollToken]]:
    stack: list[Entry] = []
    operations: list[RollToken] = []

    for lexeme in postfix:
        kind = lexeme.kind
        if kind == "number":
            token: RollToken = Number(float(lexeme.text))
        elif kind == "array":
            token = ArrayArg.parse(lexeme.text)
        elif kind == "neg":
            operand, _ = _pop(stack, lexeme)
            token = MathOp("neg").apply(operand)
        elif kind in BINARY:
            right, _ = _pop(stack, lexeme)
            left, _ = _pop(stack, lexeme)
            token = MathOp(kind).apply(left, right)
        elif kind == "dice":
            sides = _argument(_pop(stack, lexeme), lexeme)
            counts = _argument(_pop(stack, lexeme), lexeme)
            token = Dice().apply(counts, sides, rng)
            operations.append(token)
        elif kind == "merge":
            right = _with_pool(_pop(stack, lexeme), lexeme, side="right")
            left = _with_pool(_pop(stack, lexeme), lexeme)
            token = Merge().apply(left, right)
            operations.append(token)
        elif kind == "genesys":
            operand = _with_pool(_pop(stack, lexeme), lexeme)
            token = Genesys.parse(lexeme.text).apply(operand)
            operations.append(token)
        elif kind in OPERATOR_TYPES:
            argument = _argument(_pop(stack, lexeme), lexeme)
            operand = _with_pool(_pop(stack, lexeme), lexeme)
            token = OPERATOR_TYPES[kind].parse(lexeme.text).apply(operand, argument, rng, limit)
            operations.append(token)
        else:
            raise SymbolError(lexeme.text, lexeme.position)
        logger.debug("Resolved %s '%s' -> %s", kind, lexeme.text, token)
        stack.append((token, lexeme))

    if len(stack) != 1:
        raise MalformedExpressionError("That doesn't work out to a single roll. Is an operator missing?")
    return stack[0][0], operations


def _terms(token: RollToken) -> Iterator[RollToken]:
    if isinstance(token, MathOp):
        for child in (token.left, token.right):
            if child is not None:
                yield from _terms(child)
    elif not isinstance(token, Number):
        yield token


def parse(text: str, rng: DiceSource = SYSTEM_SOURCE, limit: int = MAX_GENERATIONS) -> ParsedRoll:
    """Parse and resolve a dice expression like '4d6kh3+2'.

    Raises a DiceError subclass naming the offending token when the text
    can't be read.
    """
    lexemes = tokenize(text)
    if not lexemes:
        raise MalformedExpressionError("There's nothing to roll. Example: '3d6+2'.")

    postfix = to_postfix(lexemes, DICE_OPERATORS, implicit_operands=_IMPLICIT)
    root, operations = _reduce(postfix, rng, limit)
    # Surface kind mismatches and stray arrays now rather than while rendering.
    root.value()

    return ParsedRoll(
        text=text,
        kind="dice",
        root=root,
        operations=tuple(operations),
        terms=tuple(_terms(root)),
    )


def parse_genesys(text: str, rng: DiceSource = SYSTEM_SOURCE) -> ParsedRoll:
    """Roll a Genesys pool like 'a2 p2 d3' and tally its symbols.

    Kinds can repeat and come in any order; each one is rolled as its own pool.
    """
    entries = tokenize_genesys(text)
    if not entries:
        raise ArgumentError("What dice do you want me to roll? Example: 'a2 p1 d3'.")

    operations: list[RollToken] = []
    conversions: list[RollToken] = []
    merged: RollToken | None = None
    for letter, count, position in entries:
        kind = GenesysKind.from_letter(letter)
        if count < 1:
            raise ArgumentError(f"'{letter}{count}' at position {position} needs at least one die.")
        dice = Dice().apply(SingleArg(count), SingleArg(kind.sides), rng)
        converted = Genesys(kind).apply(dice)
        operations.extend((dice, converted))
        conversions.append(converted)
        merged = converted if merged is None else Merge().apply(merged, converted)

    return ParsedRoll(
        text=text,
        kind="genesys",
        root=merged,
        operations=tuple(operations),
        terms=tuple(conversions),
    )
