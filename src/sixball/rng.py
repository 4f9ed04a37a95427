from __future__ import annotations

import secrets
from collections.abc import Iterable
from typing import Protocol


class DiceSource(Protocol):
    """Anything that can draw a uniform integer in [low, high].

    random.Random(seed) and secrets.SystemRandom() both qualify.
    """

    def randint(self, low: int, high: int) -> int: ...


SYSTEM_SOURCE: DiceSource = secrets.SystemRandom()


class ScriptExhaustedError(RuntimeError):
    """A ScriptedSource ran out of faces."""


class ScriptedSource:
    """Replays a fixed sequence of faces, for reproducible tests."""

    def __init__(self, faces: Iterable[int]):
        self._faces = list(faces)
        self._index = 0

    @property
    def remaining(self) -> int:
        return len(self._faces) - self._index

    def randint(self, low: int, high: int) -> int:
        if self._index >= len(self._faces):
            raise ScriptExhaustedError(f"No scripted faces left after {self._index} draws")
        face = self._faces[self._index]
        if not low <= face <= high:
            raise ValueError(f"Scripted face {face} is outside [{low}, {high}]")
        self._index += 1
        return face
