"""Dice and dice pools.

Pools are immutable: every keep, reroll, explode or cap returns a new Pool and
leaves the source untouched, so resolved roll tokens can hold on to both their
inputs and their outputs for later display.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection, Iterable
from dataclasses import dataclass

from .errors import ArgumentError
from .rng import SYSTEM_SOURCE, DiceSource


logger = logging.getLogger(__name__)

MAX_NUMBER = 255
MAX_SIDES = 255
MAX_DICE = 1000
MAX_GENERATIONS = 100


@dataclass(frozen=True)
class Die:
    sides: int
    result: int
    # Extra value carried by compounding explosions and caps above the top face.
    bonus: int = 0

    def __post_init__(self) -> None:
        if not 1 <= self.sides <= MAX_SIDES:
            raise ArgumentError(f"A die needs between 1 and {MAX_SIDES} sides, got {self.sides}.")
        if not 1 <= self.result <= self.sides:
            raise ArgumentError(f"A d{self.sides} can't show {self.result}.")
        if self.bonus < 0:
            raise ArgumentError(f"A die bonus can't be negative, got {self.bonus}.")

    @classmethod
    def roll(cls, sides: int, rng: DiceSource = SYSTEM_SOURCE) -> Die:
        return cls(sides=sides, result=rng.randint(1, sides))

    @property
    def value(self) -> int:
        return self.result + self.bonus

    def rerolled(self, rng: DiceSource = SYSTEM_SOURCE) -> Die:
        return Die.roll(self.sides, rng)

    def set(self, value: int) -> Die:
        return Die(sides=self.sides, result=value)

    def with_value(self, value: int) -> Die:
        if value <= self.sides:
            return Die(sides=self.sides, result=max(value, 1))
        return Die(sides=self.sides, result=self.sides, bonus=value - self.sides)

    def equals(self, value: int) -> bool:
        return self.value == value

    def at_least(self, target: int) -> bool:
        return self.value >= target

    def at_most(self, target: int) -> bool:
        return self.value <= target

    def matches(self, faces: Collection[int]) -> bool:
        return self.value in faces

    def successes(self, table: list[int] | tuple[int, ...]) -> int:
        """Look up this die in a per-face table (index 0 is face 1).

        Values past the end of the table (compounded dice) use the last entry.
        """
        if not table:
            return 0
        return table[min(self.value, len(table)) - 1]

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Pool:
    dice: tuple[Die, ...]
    # What was originally asked for; len(dice) drifts after keep/explode.
    numbers: tuple[int, ...] = ()
    sides: tuple[int, ...] = ()

    @classmethod
    def roll(cls, number: int, sides: int, rng: DiceSource = SYSTEM_SOURCE) -> Pool:
        return cls.from_arguments((number,), (sides,), rng)

    @classmethod
    def from_arguments(
        cls,
        numbers: Iterable[int],
        sides: Iterable[int],
        rng: DiceSource = SYSTEM_SOURCE,
    ) -> Pool:
        """Roll a pool from count and side lists.

        One list of length one is enumerated against the other. Two lists of
        the same length pair up by position; lists of different lengths roll
        every combination.
        """
        numbers = tuple(numbers)
        sides = tuple(sides)
        if not numbers or not sides:
            raise ArgumentError("Dice need both a count and a number of sides.")
        for number in numbers:
            if not 1 <= number <= MAX_NUMBER:
                raise ArgumentError(f"Dice count must be between 1 and {MAX_NUMBER}, got {number}.")
        for side in sides:
            if not 1 <= side <= MAX_SIDES:
                raise ArgumentError(f"Dice sides must be between 1 and {MAX_SIDES}, got {side}.")

        if len(numbers) > 1 and len(numbers) == len(sides):
            pairs = list(zip(numbers, sides))
        else:
            pairs = [(number, side) for number in numbers for side in sides]

        if sum(number for number, _ in pairs) > MAX_DICE:
            raise ArgumentError(f"That's too many dice! I can only hold {MAX_DICE} at once.")

        dice = tuple(Die.roll(side, rng) for number, side in pairs for _ in range(number))
        return cls(dice=dice, numbers=numbers, sides=sides)

    def _derive(self, dice: Iterable[Die]) -> Pool:
        return Pool(dice=tuple(dice), numbers=self.numbers, sides=self.sides)

    @property
    def number(self) -> int:
        return sum(self.numbers) if self.numbers else len(self.dice)

    def __len__(self) -> int:
        return len(self.dice)

    def total(self) -> int:
        return sum(die.value for die in self.dice)

    def results(self) -> tuple[int, ...]:
        return tuple(die.value for die in self.dice)

    def max_sides(self) -> int:
        if self.dice:
            return max(die.sides for die in self.dice)
        return max(self.sides, default=0)

    def merge(self, other: Pool) -> Pool:
        return Pool(
            dice=self.dice + other.dice,
            numbers=self.numbers + other.numbers,
            sides=self.sides + other.sides,
        )

    # Keep

    def keep_highest(self, amount: int) -> Pool:
        ordered = sorted(self.dice, key=lambda die: die.value)
        if amount <= 0:
            return self._derive(())
        return self._derive(ordered[max(len(ordered) - amount, 0):])

    def keep_lowest(self, amount: int) -> Pool:
        ordered = sorted(self.dice, key=lambda die: die.value)
        return self._derive(ordered[:max(amount, 0)])

    def keep_exact(self, faces: Collection[int]) -> Pool:
        return self._derive(die for die in self.dice if die.matches(faces))

    # Reroll: each returns (resulting pool, pool of the freshly rolled dice)

    def reroll_once(self, faces: Collection[int], rng: DiceSource = SYSTEM_SOURCE) -> tuple[Pool, Pool]:
        result: list[Die] = []
        rerolls: list[Die] = []
        for die in self.dice:
            if die.matches(faces):
                die = die.rerolled(rng)
                rerolls.append(die)
            result.append(die)
        return self._derive(result), self._derive(rerolls)

    def reroll_recursive(
        self,
        faces: Collection[int],
        rng: DiceSource = SYSTEM_SOURCE,
        limit: int = MAX_GENERATIONS,
    ) -> tuple[Pool, Pool]:
        current = list(self.dice)
        rerolls: list[Die] = []
        for _ in range(limit):
            matching = [index for index, die in enumerate(current) if die.matches(faces)]
            if not matching:
                break
            for index in matching:
                current[index] = current[index].rerolled(rng)
                rerolls.append(current[index])
        else:
            if any(die.matches(faces) for die in current):
                logger.warning("Recursive reroll stopped after %d rounds with dice still matching %s", limit, sorted(faces))
        return self._derive(current), self._derive(rerolls)

    def reroll_better(self, faces: Collection[int], rng: DiceSource = SYSTEM_SOURCE) -> tuple[Pool, Pool]:
        return self._reroll_keeping(faces, rng, max)

    def reroll_worse(self, faces: Collection[int], rng: DiceSource = SYSTEM_SOURCE) -> tuple[Pool, Pool]:
        return self._reroll_keeping(faces, rng, min)

    def _reroll_keeping(
        self,
        faces: Collection[int],
        rng: DiceSource,
        choose: Callable[..., Die],
    ) -> tuple[Pool, Pool]:
        result: list[Die] = []
        rerolls: list[Die] = []
        for die in self.dice:
            if die.matches(faces):
                new_die = die.rerolled(rng)
                rerolls.append(new_die)
                # Ties keep the original die.
                die = choose(die, new_die, key=lambda d: d.value)
            result.append(die)
        return self._derive(result), self._derive(rerolls)

    # Explode: every generation is kept for display, generation 0 is this pool

    def explode_once(self, faces: Collection[int], rng: DiceSource = SYSTEM_SOURCE) -> list[Pool]:
        extra = [Die.roll(die.sides, rng) for die in self.dice if die.matches(faces)]
        if not extra:
            return [self]
        return [self, self._derive(extra)]

    def explode_recursive(
        self,
        faces: Collection[int],
        rng: DiceSource = SYSTEM_SOURCE,
        limit: int = MAX_GENERATIONS,
    ) -> list[Pool]:
        generations = [self]
        last: Iterable[Die] = self.dice
        for _ in range(limit):
            extra = [Die.roll(die.sides, rng) for die in last if die.matches(faces)]
            if not extra:
                break
            generations.append(self._derive(extra))
            last = extra
        else:
            if any(die.matches(faces) for die in last):
                logger.warning("Explosion stopped after %d generations with dice still matching %s", limit, sorted(faces))
        return generations

    def explode_additive(
        self,
        faces: Collection[int],
        rng: DiceSource = SYSTEM_SOURCE,
        limit: int = MAX_GENERATIONS,
    ) -> tuple[list[Pool], Pool]:
        """Compound explosions onto the die that set them off.

        Each die's chain is rolled to the end before moving on to the next
        die. Returns the per-generation pools and the compounded pool.
        """
        layers: list[list[Die]] = []
        compounded: list[Die] = []
        for die in self.dice:
            bonus = 0
            current = die
            depth = 0
            while current.matches(faces) and depth < limit:
                current = Die.roll(die.sides, rng)
                bonus += current.result
                if len(layers) <= depth:
                    layers.append([])
                layers[depth].append(current)
                depth += 1
            if depth == limit and current.matches(faces):
                logger.warning("Compounding explosion stopped after %d generations", limit)
            compounded.append(Die(sides=die.sides, result=die.result, bonus=die.bonus + bonus))
        generations = [self] + [self._derive(layer) for layer in layers]
        return generations, self._derive(compounded)

    # Counting

    def count_at_least(self, threshold: int) -> int:
        return sum(1 for die in self.dice if die.at_least(threshold))

    def count_at_most(self, threshold: int) -> int:
        return sum(1 for die in self.dice if die.at_most(threshold))

    def count_successes(self, table: list[int] | tuple[int, ...]) -> int:
        return sum(die.successes(table) for die in self.dice)

    # Cap

    def cap_max(self, ceiling: int) -> Pool:
        return self._derive(die.with_value(min(die.value, ceiling)) for die in self.dice)

    def cap_min(self, floor: int) -> Pool:
        return self._derive(die.with_value(max(die.value, floor)) for die in self.dice)

    def __str__(self) -> str:
        faces = ", ".join(str(die) for die in self.dice)
        return f"**{self.total()}**: [{faces}]"
