"""Roll tokens: the nodes of a parsed dice expression.

An unresolved token only knows which operator it is. apply() returns a new,
resolved token that owns both the inputs it was given and the results it
produced, so a finished roll can be described tersely (description) or in
full (verbose) without rolling anything again.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Literal, TypeAlias

from . import genesys
from .calculator import SYMBOLS, apply_operator, format_number
from .errors import (
    ArgumentError,
    GenerationOverflow,
    MissingPoolError,
    NotResolvedError,
    NumericParseError,
    SymbolError,
)
from .genesys import Face, GenesysKind
from .pool import MAX_GENERATIONS, Pool
from .rng import SYSTEM_SOURCE, DiceSource
from .values import Numeric, RollValue, Successes, SymbolTally, add


_INTEGER_RE = re.compile(r"\d+")
MAX_ARGUMENT = 255


def _require(item, what: str = "roll"):
    if item is None:
        raise NotResolvedError(f"Tried to read a {what} that hasn't been resolved yet.")
    return item


def _faces_list(pool: Pool) -> str:
    return "[" + ", ".join(str(die) for die in pool.dice) + "]"


class RollToken:
    """Shared behaviour for every node of a roll expression."""

    name: ClassVar[str] = "token"

    @property
    def resolved(self) -> bool:
        return True

    @property
    def is_constant(self) -> bool:
        """True when no dice are involved anywhere below this token."""
        return False

    def pool(self) -> Pool:
        raise MissingPoolError(f"A {self.name} has no dice to work with.")

    def value(self) -> RollValue:
        raise NotResolvedError()

    def description(self) -> str:
        return str(self)

    def verbose(self) -> str:
        return str(self)

    def summary(self) -> str:
        return _faces_list(self.pool())


# Arguments


def parse_integer(text: str) -> int:
    text = text.strip()
    if not _INTEGER_RE.fullmatch(text):
        raise NumericParseError(f"'{text}' isn't a whole number.")
    number = int(text)
    if number > MAX_ARGUMENT:
        raise NumericParseError(f"{number} is too big, arguments go up to {MAX_ARGUMENT}.")
    return number


@dataclass(frozen=True)
class SingleArg:
    number: int

    @property
    def values(self) -> tuple[int, ...]:
        return (self.number,)

    @property
    def faces(self) -> frozenset[int]:
        return frozenset(self.values)

    def __str__(self) -> str:
        return str(self.number)


@dataclass(frozen=True)
class ArrayArg(RollToken):
    values: tuple[int, ...]

    name: ClassVar[str] = "array"

    @classmethod
    def parse(cls, text: str) -> ArrayArg:
        inner = text.strip()[1:-1]
        if not inner.strip():
            raise ArgumentError("An array needs at least one number, like [1, 2].")
        return cls(tuple(parse_integer(item) for item in inner.split(",")))

    @property
    def faces(self) -> frozenset[int]:
        return frozenset(self.values)

    def value(self) -> RollValue:
        raise ArgumentError(f"An array like {self} can only be used as a dice argument.")

    def __str__(self) -> str:
        return "[" + ", ".join(str(number) for number in self.values) + "]"


Argument: TypeAlias = SingleArg | ArrayArg


def _single(argument: Argument, operation: str) -> int:
    if isinstance(argument, SingleArg):
        return argument.number
    if len(argument.values) == 1:
        return argument.values[0]
    raise ArgumentError(f"{operation} needs exactly one number, got {argument}.")


@dataclass(frozen=True)
class Number(RollToken):
    amount: float

    name: ClassVar[str] = "number"

    @property
    def is_constant(self) -> bool:
        return True

    def value(self) -> RollValue:
        return Numeric(self.amount)

    def as_argument(self) -> SingleArg:
        if not float(self.amount).is_integer() or not 0 <= self.amount <= MAX_ARGUMENT:
            raise NumericParseError(
                f"{format_number(self.amount)} isn't a whole number between 0 and {MAX_ARGUMENT}."
            )
        return SingleArg(int(self.amount))

    def __str__(self) -> str:
        return format_number(self.amount)


# Operands


@dataclass(frozen=True)
class Dice(RollToken):
    counts: Argument | None = None
    sides: Argument | None = None
    rolled: Pool | None = None

    name: ClassVar[str] = "dice roll"

    def apply(self, counts: Argument, sides: Argument, rng: DiceSource = SYSTEM_SOURCE) -> Dice:
        pool = Pool.from_arguments(counts.values, sides.values, rng)
        return Dice(counts=counts, sides=sides, rolled=pool)

    @property
    def resolved(self) -> bool:
        return self.rolled is not None

    @property
    def code(self) -> str:
        return f"{_require(self.counts, 'dice roll')}d{_require(self.sides, 'dice roll')}"

    def pool(self) -> Pool:
        return _require(self.rolled, "dice roll")

    def value(self) -> RollValue:
        return Numeric(self.pool().total())

    def description(self) -> str:
        return f"Rolled {self.code}"

    def verbose(self) -> str:
        return f"{self.code} -> {self.pool()}"

    def __str__(self) -> str:
        return self.verbose() if self.resolved else "d"


@dataclass(frozen=True)
class Merge(RollToken):
    left: RollToken | None = None
    right: RollToken | None = None

    name: ClassVar[str] = "merge"

    def apply(self, left: RollToken, right: RollToken) -> Merge:
        left.pool()
        right.pool()
        add(left.value(), right.value())
        return Merge(left=left, right=right)

    @property
    def resolved(self) -> bool:
        return self.left is not None and self.right is not None

    def _sides(self) -> tuple[RollToken, RollToken]:
        return _require(self.left, "merge"), _require(self.right, "merge")

    def pool(self) -> Pool:
        left, right = self._sides()
        return left.pool().merge(right.pool())

    def value(self) -> RollValue:
        left, right = self._sides()
        return add(left.value(), right.value())

    def summary(self) -> str:
        left, right = self._sides()
        return f"{left.summary()} & {right.summary()}"

    def description(self) -> str:
        left, right = self._sides()
        return f"Merge {len(left.pool())} and {len(right.pool())} di(c)e into one pool"

    def verbose(self) -> str:
        return f"Merged -> {self.pool()}"

    def __str__(self) -> str:
        return self.verbose() if self.resolved else "&"


@dataclass(frozen=True)
class Genesys(RollToken):
    kind: GenesysKind
    base: Pool | None = None
    faces: tuple[Face, ...] = ()

    name: ClassVar[str] = "genesys conversion"

    @classmethod
    def parse(cls, text: str) -> Genesys:
        return cls(kind=GenesysKind.from_letter(text.strip()[-1]))

    def apply(self, operand: RollToken) -> Genesys:
        pool = operand.pool()
        return Genesys(kind=self.kind, base=pool, faces=genesys.resolve(self.kind, pool))

    @property
    def resolved(self) -> bool:
        return self.base is not None

    def pool(self) -> Pool:
        return _require(self.base, "genesys conversion")

    def value(self) -> RollValue:
        self.pool()
        return SymbolTally.from_faces(self.faces)

    def summary(self) -> str:
        self.pool()
        return f"{self.kind}: {genesys.format_faces(self.faces)}"

    def description(self) -> str:
        return f"Convert numeric results to {self.kind} die symbols"

    def verbose(self) -> str:
        return f"{self.pool()} -> {genesys.format_faces(self.faces)}"

    def __str__(self) -> str:
        if not self.resolved:
            return f"g{self.kind.letter}"
        return f"{self.kind.value.capitalize()}: {genesys.format_faces(self.faces)}"


# Operators: each takes the token to its left and a number or array argument


class Operator(RollToken, ABC):
    MODES: ClassVar[dict[str, str]] = {}

    @classmethod
    def parse(cls, text: str):
        try:
            mode = cls.MODES[text.strip().lower()]
        except KeyError:
            raise SymbolError(text) from None
        return cls(mode=mode)

    @abstractmethod
    def apply(
        self,
        operand: RollToken,
        argument: Argument,
        rng: DiceSource = SYSTEM_SOURCE,
        limit: int = MAX_GENERATIONS,
    ) -> Operator:
        """Resolve against the pool of operand."""


KeepMode: TypeAlias = Literal["high", "low", "exact"]


@dataclass(frozen=True)
class Keep(Operator):
    mode: KeepMode = "high"
    arg: Argument | None = None
    source: Pool | None = None
    kept: Pool | None = None

    name: ClassVar[str] = "keep"
    MODES: ClassVar[dict[str, str]] = {"k": "high", "kh": "high", "kl": "low", "ke": "exact"}

    def apply(self, operand, argument, rng=SYSTEM_SOURCE, limit=MAX_GENERATIONS) -> Keep:
        pool = operand.pool()
        if self.mode == "exact":
            kept = pool.keep_exact(argument.faces)
        elif self.mode == "high":
            kept = pool.keep_highest(_single(argument, "Keep highest"))
        else:
            kept = pool.keep_lowest(_single(argument, "Keep lowest"))
        return Keep(mode=self.mode, arg=argument, source=pool, kept=kept)

    @property
    def resolved(self) -> bool:
        return self.kept is not None

    def pool(self) -> Pool:
        return _require(self.kept, "keep")

    def value(self) -> RollValue:
        return Numeric(self.pool().total())

    def description(self) -> str:
        arg = _require(self.arg, "keep")
        if self.mode == "exact":
            return f"Keep all dice showing {arg}"
        return f"Keep {self.mode}est {arg} di(c)e"

    def verbose(self) -> str:
        kept = self.pool()
        if self.mode == "exact":
            return f"Keep {len(kept)} matching dice -> {kept}"
        return f"Keep {len(kept)} {self.mode}est -> {kept}"

    def __str__(self) -> str:
        if not self.resolved:
            return "k"
        label = "exactly" if self.mode == "exact" else f"{self.mode}est"
        return f"keep {label} {self.arg} -> {self.kept}"


RerollMode: TypeAlias = Literal["once", "recursive", "better", "worse"]


@dataclass(frozen=True)
class Reroll(Operator):
    mode: RerollMode = "once"
    arg: Argument | None = None
    source: Pool | None = None
    result: Pool | None = None
    rerolls: Pool | None = None

    name: ClassVar[str] = "reroll"
    MODES: ClassVar[dict[str, str]] = {
        "r": "once",
        "ro": "once",
        "rr": "recursive",
        "rb": "better",
        "rw": "worse",
    }

    def apply(self, operand, argument, rng=SYSTEM_SOURCE, limit=MAX_GENERATIONS) -> Reroll:
        pool = operand.pool()
        faces = argument.faces
        if self.mode == "once":
            result, rerolls = pool.reroll_once(faces, rng)
        elif self.mode == "recursive":
            result, rerolls = pool.reroll_recursive(faces, rng, limit)
        elif self.mode == "better":
            result, rerolls = pool.reroll_better(faces, rng)
        else:
            result, rerolls = pool.reroll_worse(faces, rng)
        return Reroll(mode=self.mode, arg=argument, source=pool, result=result, rerolls=rerolls)

    @property
    def resolved(self) -> bool:
        return self.result is not None

    def pool(self) -> Pool:
        return _require(self.result, "reroll")

    def value(self) -> RollValue:
        return Numeric(self.pool().total())

    def description(self) -> str:
        arg = _require(self.arg, "reroll")
        if self.mode == "once":
            return f"Reroll all dice showing {arg} once"
        if self.mode == "recursive":
            return f"Reroll all dice showing {arg} until none are left"
        return f"Reroll all dice showing {arg} and keep the {self.mode} result"

    def verbose(self) -> str:
        rerolls = _require(self.rerolls, "reroll")
        return f"Reroll {len(rerolls)} di(c)e -> {rerolls}, result: {self.pool()}"

    def __str__(self) -> str:
        if not self.resolved:
            return "r"
        return f"reroll {self.mode} {self.arg} -> {self.result}"


ExplodeMode: TypeAlias = Literal["once", "recursive", "additive"]


@dataclass(frozen=True)
class Explode(Operator):
    mode: ExplodeMode = "once"
    arg: Argument | None = None
    generations: tuple[Pool, ...] = ()
    compounded: Pool | None = None

    name: ClassVar[str] = "explosion"
    MODES: ClassVar[dict[str, str]] = {"e": "once", "eo": "once", "er": "recursive", "ea": "additive"}

    def apply(self, operand, argument, rng=SYSTEM_SOURCE, limit=MAX_GENERATIONS) -> Explode:
        pool = operand.pool()
        faces = argument.faces
        compounded = None
        if self.mode == "once":
            generations = pool.explode_once(faces, rng)
        elif self.mode == "recursive":
            generations = pool.explode_recursive(faces, rng, limit)
        else:
            generations, compounded = pool.explode_additive(faces, rng, limit)
        return Explode(mode=self.mode, arg=argument, generations=tuple(generations), compounded=compounded)

    @property
    def resolved(self) -> bool:
        return bool(self.generations)

    def pool(self) -> Pool:
        if not self.generations:
            raise NotResolvedError("Tried to read an explosion that hasn't been resolved yet.")
        if self.mode == "additive":
            return _require(self.compounded, "explosion")
        if self.mode == "once" and len(self.generations) > 2:
            raise GenerationOverflow(
                f"A single explosion produced {len(self.generations)} generations. Please report this!"
            )
        merged = self.generations[0]
        for generation in self.generations[1:]:
            merged = merged.merge(generation)
        return merged

    def value(self) -> RollValue:
        return Numeric(self.pool().total())

    def description(self) -> str:
        arg = _require(self.arg, "explosion")
        if self.mode == "once":
            return f"Explode dice showing {arg} once"
        if self.mode == "recursive":
            return f"Explode dice showing {arg} indefinitely"
        return f"For all dice showing {arg}, roll another one and add it to the die"

    def verbose(self) -> str:
        total = self.pool()
        lines = [
            f"Explode {len(generation)} di(c)e -> {generation}"
            for generation in self.generations[1:]
            if len(generation)
        ]
        if not lines:
            return f"No exploded dice -> {total}"
        return "\n".join(lines + [f"Total: {total}"])

    def __str__(self) -> str:
        if not self.resolved:
            return "e"
        return f"explode {self.mode} {self.arg} -> {self.pool()}"


TargetMode: TypeAlias = Literal["success", "botch"]


def align_table(values: tuple[int, ...], sides: int, high: bool) -> tuple[int, ...]:
    """Fit a per-face table to a die size.

    High tables line up with the top faces, low tables with the bottom ones.
    """
    if sides <= 0:
        return ()
    if len(values) >= sides:
        return tuple(values[-sides:]) if high else tuple(values[:sides])
    padding = (0,) * (sides - len(values))
    return padding + tuple(values) if high else tuple(values) + padding


@dataclass(frozen=True)
class Target(Operator):
    mode: TargetMode = "success"
    arg: Argument | None = None
    table: tuple[int, ...] = ()
    source: Pool | None = None
    sux: int = 0

    name: ClassVar[str] = "target"
    MODES: ClassVar[dict[str, str]] = {"t": "success", "b": "botch"}

    def apply(self, operand, argument, rng=SYSTEM_SOURCE, limit=MAX_GENERATIONS) -> Target:
        pool = operand.pool()
        # Chained targets and botches add up.
        base = operand.sux if isinstance(operand, Target) else 0
        table: tuple[int, ...] = ()
        if isinstance(argument, SingleArg):
            if self.mode == "success":
                gained = pool.count_at_least(argument.number)
            else:
                gained = -pool.count_at_most(argument.number)
        else:
            table = align_table(argument.values, pool.max_sides(), high=self.mode == "success")
            counted = pool.count_successes(table)
            gained = counted if self.mode == "success" else -counted
        return Target(mode=self.mode, arg=argument, table=table, source=pool, sux=base + gained)

    @property
    def resolved(self) -> bool:
        return self.source is not None

    def pool(self) -> Pool:
        return _require(self.source, "target")

    def value(self) -> RollValue:
        self.pool()
        return Successes(self.sux)

    def per_die(self) -> list[int]:
        pool = self.pool()
        sign = 1 if self.mode == "success" else -1
        if isinstance(self.arg, SingleArg):
            if self.mode == "success":
                return [1 if die.at_least(self.arg.number) else 0 for die in pool.dice]
            return [-1 if die.at_most(self.arg.number) else 0 for die in pool.dice]
        return [sign * die.successes(self.table) for die in pool.dice]

    def _table_text(self) -> str:
        sign = "" if self.mode == "success" else "-"
        entries = [f"{face}: {sign}{amount}" for face, amount in enumerate(self.table, start=1) if amount]
        return ", ".join(entries) if entries else "nothing"

    def summary(self) -> str:
        return f"{_faces_list(self.pool())} = {self.sux} success(es)"

    def description(self) -> str:
        arg = _require(self.arg, "target")
        if isinstance(arg, SingleArg):
            if self.mode == "success":
                return f"Count one success per die showing {arg} or higher"
            return f"Subtract one success per die showing {arg} or lower"
        verb = "Count" if self.mode == "success" else "Subtract"
        return f"{verb} successes per face: {self._table_text()}"

    def verbose(self) -> str:
        return f"{self.pool()} -> {self.per_die()} = {self.sux} success(es)"

    def __str__(self) -> str:
        if not self.resolved:
            return "t" if self.mode == "success" else "b"
        if isinstance(self.arg, SingleArg):
            if self.mode == "success":
                return f"success on {self.arg} or higher -> {self.sux} success(es)"
            return f"subtract success on {self.arg} or lower -> {self.sux} success(es)"
        return f"count successes: {self._table_text()} -> {self.sux} success(es)"


CapMode: TypeAlias = Literal["max", "min"]


@dataclass(frozen=True)
class Cap(Operator):
    mode: CapMode = "max"
    arg: Argument | None = None
    source: Pool | None = None
    result: Pool | None = None

    name: ClassVar[str] = "cap"
    MODES: ClassVar[dict[str, str]] = {"c": "max", "ch": "max", "cmax": "max", "cl": "min", "cmin": "min"}

    def apply(self, operand, argument, rng=SYSTEM_SOURCE, limit=MAX_GENERATIONS) -> Cap:
        pool = operand.pool()
        bound = _single(argument, "Cap")
        result = pool.cap_max(bound) if self.mode == "max" else pool.cap_min(bound)
        return Cap(mode=self.mode, arg=argument, source=pool, result=result)

    @property
    def resolved(self) -> bool:
        return self.result is not None

    def pool(self) -> Pool:
        return _require(self.result, "cap")

    def value(self) -> RollValue:
        return Numeric(self.pool().total())

    def description(self) -> str:
        arg = _require(self.arg, "cap")
        if self.mode == "max":
            return f"Lower every die above {arg} to {arg}"
        return f"Raise every die below {arg} to {arg}"

    def verbose(self) -> str:
        return f"{_require(self.source, 'cap')} -> {self.pool()}"

    def __str__(self) -> str:
        if not self.resolved:
            return "c"
        return f"cap {self.mode} {self.arg} -> {self.result}"


# Arithmetic on resolved values


@dataclass(frozen=True)
class MathOp(RollToken):
    kind: str
    left: RollToken | None = None
    right: RollToken | None = None
    amount: float | None = None

    name: ClassVar[str] = "calculation"

    def apply(self, left: RollToken, right: RollToken | None = None) -> MathOp:
        lhs = left.value().to_number()
        if self.kind == "neg":
            amount = -lhs
        else:
            amount = apply_operator(self.kind, lhs, _require(right, "calculation").value().to_number())
        return MathOp(kind=self.kind, left=left, right=right, amount=amount)

    @property
    def resolved(self) -> bool:
        return self.amount is not None

    @property
    def is_constant(self) -> bool:
        return all(child.is_constant for child in (self.left, self.right) if child is not None)

    def value(self) -> RollValue:
        return Numeric(_require(self.amount, "calculation"))

    def as_argument(self) -> SingleArg:
        return Number(_require(self.amount, "calculation")).as_argument()

    def summary(self) -> str:
        return str(self)

    def __str__(self) -> str:
        symbol = SYMBOLS.get(self.kind, self.kind)
        if not self.resolved:
            return symbol
        if self.kind == "neg":
            return f"-{format_number(self.left.value().to_number())}"
        return (
            f"{format_number(self.left.value().to_number())} {symbol} "
            f"{format_number(self.right.value().to_number())} = {format_number(self.amount)}"
        )


OPERATOR_TYPES: dict[str, type[Operator]] = {
    "keep": Keep,
    "reroll": Reroll,
    "explode": Explode,
    "target": Target,
    "botch": Target,
    "cap": Cap,
}
