from __future__ import annotations


class DiceError(ValueError):
    """User-facing errors. The message always starts with a stable [CODE]."""

    code = "DICE_ERROR"

    def __init__(self, message: str):
        super().__init__(f"[{self.code}] {message}")
        self.detail = message


class SymbolError(DiceError):
    code = "SYMBOL_ERROR"

    def __init__(self, symbol: str, position: int | None = None):
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"I don't know what '{symbol}' means{where}.")
        self.symbol = symbol
        self.position = position


class ArgumentError(DiceError):
    code = "ARGUMENT_ERROR"


class MissingPoolError(DiceError):
    code = "MISSING_POOL"

    def __init__(self, message: str = "There are no dice to work with here."):
        super().__init__(message)


class NotResolvedError(DiceError):
    code = "NOT_RESOLVED"

    def __init__(self, message: str = "Tried to read a roll that hasn't been resolved yet."):
        super().__init__(message)


class GenerationOverflow(DiceError):
    """More explosion generations than the operator allows (an internal bug)."""

    code = "GENERATION_OVERFLOW"


class RetrieveError(DiceError):
    code = "RETRIEVE_ERROR"


class NumericParseError(DiceError):
    code = "NUMERIC_PARSE"


class KindMismatchError(DiceError):
    code = "KIND_MISMATCH"

    def __init__(self, left: str, right: str):
        super().__init__(f"Can't combine a {left} result with a {right} result.")
        self.left = left
        self.right = right


class MathError(DiceError):
    code = "MATH_ERROR"


class MalformedExpressionError(MathError):
    code = "MALFORMED_EXPRESSION"


class UnparseableInputError(DiceError):
    code = "UNPARSEABLE_INPUT"
