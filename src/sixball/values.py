"""Roll values: what a resolved expression is worth.

A value is a plain number, a signed success count, or a tally of Genesys
symbols. Values only combine with values of the same kind.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TypeAlias

from .calculator import format_number
from .errors import KindMismatchError
from .genesys import Symbol


@dataclass(frozen=True)
class Numeric:
    amount: float

    kind = "numeric"

    def to_number(self) -> float:
        return float(self.amount)

    def __str__(self) -> str:
        return format_number(self.amount)


@dataclass(frozen=True)
class Successes:
    count: int

    kind = "success count"

    def to_number(self) -> float:
        return float(self.count)

    def __str__(self) -> str:
        return f"{self.count} success(es)"


def _plural(amount: int, singular: str, plural: str) -> str:
    return f"{amount} {singular if amount == 1 else plural}"


@dataclass(frozen=True)
class SymbolTally:
    counts: Mapping[Symbol, int] = field(default_factory=dict)

    kind = "symbol tally"

    def __post_init__(self) -> None:
        cleaned = {symbol: amount for symbol, amount in self.counts.items() if amount}
        object.__setattr__(self, "counts", MappingProxyType(cleaned))

    @classmethod
    def from_faces(cls, faces: Iterable[Iterable[Symbol]]) -> SymbolTally:
        counter: Counter[Symbol] = Counter()
        for face in faces:
            counter.update(face)
        return cls(dict(counter))

    def __getitem__(self, symbol: Symbol) -> int:
        return self.counts.get(symbol, 0)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SymbolTally):
            return NotImplemented
        return dict(self.counts) == dict(other.counts)

    def __hash__(self) -> int:
        return hash(frozenset(self.counts.items()))

    def to_number(self) -> float:
        raise KindMismatchError(self.kind, Numeric.kind)

    def net(self) -> dict[str, int]:
        """Cancel opposing symbols.

        Triumphs also count as a success and despairs as a failure.
        """
        successes = self[Symbol.SUCCESS] + self[Symbol.TRIUMPH] - self[Symbol.FAILURE] - self[Symbol.DESPAIR]
        advantages = self[Symbol.ADVANTAGE] - self[Symbol.THREAT]
        return {
            "successes": successes,
            "advantages": advantages,
            "triumphs": self[Symbol.TRIUMPH],
            "despairs": self[Symbol.DESPAIR],
        }

    def __str__(self) -> str:
        net = self.net()
        out: list[str] = []
        if net["successes"] > 0:
            out.append(_plural(net["successes"], "success", "successes"))
        elif net["successes"] < 0:
            out.append(_plural(-net["successes"], "failure", "failures"))
        if net["advantages"] > 0:
            out.append(_plural(net["advantages"], "advantage", "advantages"))
        elif net["advantages"] < 0:
            out.append(_plural(-net["advantages"], "threat", "threats"))
        if net["triumphs"]:
            out.append(_plural(net["triumphs"], "triumph", "triumphs"))
        if net["despairs"]:
            out.append(_plural(net["despairs"], "despair", "despairs"))
        return ", ".join(out) if out else "Wash"


RollValue: TypeAlias = Numeric | Successes | SymbolTally


def add(left: RollValue, right: RollValue) -> RollValue:
    if isinstance(left, Numeric) and isinstance(right, Numeric):
        return Numeric(left.amount + right.amount)
    if isinstance(left, Successes) and isinstance(right, Successes):
        return Successes(left.count + right.count)
    if isinstance(left, SymbolTally) and isinstance(right, SymbolTally):
        counter = Counter(dict(left.counts))
        counter.update(dict(right.counts))
        return SymbolTally(dict(counter))
    raise KindMismatchError(left.kind, right.kind)
