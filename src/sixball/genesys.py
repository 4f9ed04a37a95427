"""Narrative dice for the Genesys system.

Each kind of die maps its faces to a handful of symbols instead of a number.
"""

from __future__ import annotations

from enum import Enum

from .errors import ArgumentError
from .pool import Pool


class Symbol(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    ADVANTAGE = "advantage"
    THREAT = "threat"
    TRIUMPH = "triumph"
    DESPAIR = "despair"

    def __str__(self) -> str:
        return self.value


S = Symbol.SUCCESS
F = Symbol.FAILURE
A = Symbol.ADVANTAGE
T = Symbol.THREAT

Face = tuple[Symbol, ...]


class GenesysKind(str, Enum):
    BOOST = "boost"
    SETBACK = "setback"
    ABILITY = "ability"
    DIFFICULTY = "difficulty"
    PROFICIENCY = "proficiency"
    CHALLENGE = "challenge"

    @classmethod
    def from_letter(cls, letter: str) -> GenesysKind:
        try:
            return _LETTERS[letter.lower()]
        except KeyError:
            raise ArgumentError(
                f"'{letter}' isn't a Genesys die. Use b, s, a, d, p or c. Example: 'a2 p1 d3'."
            ) from None

    @property
    def letter(self) -> str:
        return self.value[0]

    @property
    def sides(self) -> int:
        return len(FACES[self])

    def __str__(self) -> str:
        return self.value


_LETTERS = {kind.value[0]: kind for kind in GenesysKind}


# Index 0 is face 1.
FACES: dict[GenesysKind, tuple[Face, ...]] = {
    GenesysKind.BOOST: ((), (), (S,), (S, A), (A, A), (A,)),
    GenesysKind.SETBACK: ((), (), (F,), (F,), (T,), (T,)),
    GenesysKind.ABILITY: ((), (S,), (S,), (S, S), (A,), (A,), (S, A), (A, A)),
    GenesysKind.DIFFICULTY: ((), (F,), (F, F), (T,), (T,), (T,), (T, T), (F, T)),
    GenesysKind.PROFICIENCY: (
        (), (S,), (S,), (S, S), (S, S), (A,),
        (S, A), (S, A), (S, A), (A, A), (A, A), (Symbol.TRIUMPH,),
    ),
    GenesysKind.CHALLENGE: (
        (), (F,), (F,), (F, F), (F, F), (T,),
        (T,), (F, T), (F, T), (T, T), (T, T), (Symbol.DESPAIR,),
    ),
}


def resolve(kind: GenesysKind, pool: Pool) -> tuple[Face, ...]:
    """Turn every die of the pool into the symbols on its face."""
    faces = FACES[kind]
    resolved: list[Face] = []
    for die in pool.dice:
        if die.sides != len(faces):
            raise ArgumentError(
                f"{kind.value.capitalize()} dice are d{len(faces)}s, but the pool holds a d{die.sides}."
            )
        if die.bonus:
            raise ArgumentError(
                f"A {kind.value} die showing {die.value} has no face to read. "
                "Convert before compounding explosions or caps above the top face."
            )
        resolved.append(faces[die.result - 1])
    return tuple(resolved)


def format_faces(faces: tuple[Face, ...]) -> str:
    rendered = []
    for face in faces:
        rendered.append("+".join(str(symbol) for symbol in face) if face else "blank")
    return "[" + ", ".join(rendered) + "]"
