"""Per-conversation roll history, and the store that hands trays out."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from typing import TypeVar

from .calculator import evaluate, format_number
from .errors import RetrieveError
from .lexer import has_dice, tokenize
from .models import Roll, TrayId
from .parser import ParsedRoll, parse, parse_genesys
from .pool import MAX_GENERATIONS
from .rng import SYSTEM_SOURCE, DiceSource


logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10

T = TypeVar("T")


class Tray:
    """A bounded history of rolls. The oldest roll is evicted first."""

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        rng: DiceSource = SYSTEM_SOURCE,
        limit: int = MAX_GENERATIONS,
    ):
        if capacity < 1:
            raise ValueError(f"Tray capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.rng = rng
        self.limit = limit
        self._rolls: deque[Roll] = deque()

    def __len__(self) -> int:
        return len(self._rolls)

    @staticmethod
    def is_math(command: str) -> bool:
        return not has_dice(tokenize(command))

    def _parse(self, command: str, kind: str) -> ParsedRoll:
        if kind == "genesys":
            return parse_genesys(command, self.rng)
        return parse(command, self.rng, self.limit)

    def _store(self, roll: Roll) -> None:
        while len(self._rolls) >= self.capacity:
            evicted = self._rolls.popleft()
            logger.debug("Tray full, evicting `%s` from %s", evicted.command, evicted.timestamp)
        self._rolls.append(roll)
        logger.info("Rolled `%s` -> %s", roll.command, roll.result)

    def add(self, command: str, comment: str = "", roller: str = "", kind: str = "dice") -> Roll:
        parsed = self._parse(command, kind)
        roll = Roll.from_parsed(parsed, comment=comment, roller=roller)
        # Nothing is stored until the whole roll has resolved.
        self._store(roll)
        return roll

    def process(self, command: str, comment: str = "", roller: str = "") -> str:
        """Roll a command and return the compact one-line result.

        Commands without dice go to the calculator and are not stored.
        """
        command = command.strip()
        if self.is_math(command):
            return f"`{command}`: **{format_number(evaluate(command))}**"
        return self.add(command, comment, roller).compact()

    def process_genesys(self, command: str, comment: str = "", roller: str = "") -> str:
        return self.add(command.strip(), comment, roller, kind="genesys").compact()

    def latest(self) -> Roll:
        if not self._rolls:
            raise RetrieveError("There are no rolls in this tray yet.")
        return self._rolls[-1]

    def reroll_latest(self) -> Roll:
        """Roll the latest command again with fresh dice, replacing it in place."""
        previous = self.latest()
        parsed = self._parse(previous.command, previous.kind)
        roll = Roll.from_parsed(parsed, comment=previous.comment, roller=previous.roller)
        self._rolls[-1] = roll
        logger.info("Rerolled `%s` -> %s (was %s)", roll.command, roll.result, previous.result)
        return roll

    def rolls(self) -> tuple[Roll, ...]:
        return tuple(self._rolls)


class TrayStore:
    """Hands out one Tray per conversation.

    Work on a tray runs under that tray's own lock; the map lock is only held
    to look a tray up or create it.
    """

    def __init__(self, factory: Callable[[], Tray] = Tray):
        self._factory = factory
        self._trays: dict[TrayId, Tray] = {}
        self._locks: dict[TrayId, asyncio.Lock] = {}
        self._map_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._trays)

    def __contains__(self, tray_id: object) -> bool:
        return tray_id in self._trays

    def get_or_create(self, tray_id: TrayId) -> Tray:
        tray = self._trays.get(tray_id)
        if tray is None:
            tray = self._factory()
            self._trays[tray_id] = tray
            self._locks[tray_id] = asyncio.Lock()
            logger.debug("Created tray for %s", tray_id)
        return tray

    async def with_tray(self, tray_id: TrayId, fn: Callable[[Tray], T]) -> T:
        async with self._map_lock:
            tray = self.get_or_create(tray_id)
            lock = self._locks[tray_id]
        async with lock:
            return fn(tray)
