"""Command handlers: raw text in, JSON-ready dicts out."""

from __future__ import annotations

import uuid
from typing import Any

from .calculator import evaluate, format_number
from .config import settings
from .errors import UnparseableInputError
from .models import Roll, TrayId, _now_utc_iso
from .tray import Tray, TrayStore


def split_comment(text: str, separator: str | None = None) -> tuple[str, str]:
    """Split 'command # comment' on the first separator."""
    separator = separator or settings.comment_separator
    command, _, comment = (text or "").partition(separator)
    command = command.strip()
    if not command:
        raise UnparseableInputError("What do you want me to roll? Example: '4d6kh3 # strength'.")
    return command, comment.strip()


def _envelope(text: str) -> dict[str, Any]:
    return {
        "request_id": uuid.uuid4().hex,
        "timestamp": _now_utc_iso(),
        "input": text,
    }


def _describe(roll: Roll, verbose: bool) -> dict[str, Any]:
    out: dict[str, Any] = {
        "kind": roll.kind,
        "total": str(roll.result),
        "compact": roll.compact(),
    }
    if verbose:
        out["breakdown"] = roll.breakdown().to_dict()
    return out


def _run_roll(tray: Tray, command: str, comment: str, roller: str, kind: str) -> tuple[str, Roll | None]:
    if kind == "dice" and tray.is_math(command):
        return tray.process(command, comment, roller), None
    roll = tray.add(command, comment, roller, kind=kind)
    return roll.compact(), roll


async def _roll(
    store: TrayStore, tray_id: TrayId, text: str, roller: str, verbose: bool, kind: str
) -> dict[str, Any]:
    command, comment = split_comment(text)
    message, roll = await store.with_tray(
        tray_id, lambda tray: _run_roll(tray, command, comment, roller, kind)
    )

    out = _envelope(text)
    out.update(command=command, comment=comment, result=message)
    if roll is not None:
        out.update(_describe(roll, verbose))
    return out


async def roll_from_text(
    store: TrayStore, tray_id: TrayId, text: str, roller: str = "", verbose: bool = False
) -> dict[str, Any]:
    """Roll a dice expression like '4d6kh3 + 2 # strength' and keep it in the tray.

    Expressions without dice are calculated and not kept. Raises DiceError for
    input that can't be rolled.
    """
    return await _roll(store, tray_id, text, roller, verbose, kind="dice")


async def genroll_from_text(
    store: TrayStore, tray_id: TrayId, text: str, roller: str = "", verbose: bool = False
) -> dict[str, Any]:
    """Roll a Genesys pool like 'a2 p1 d3 # perception'."""
    return await _roll(store, tray_id, text, roller, verbose, kind="genesys")


def calc_from_text(text: str) -> dict[str, Any]:
    expression = (text or "").strip()
    if not expression:
        raise UnparseableInputError("What do you want me to calculate? Example: '(3 + 4) * 2'.")
    amount = format_number(evaluate(expression))
    out = _envelope(text)
    out.update(result=f"`{expression}`: **{amount}**", total=amount)
    return out


async def reroll_latest(store: TrayStore, tray_id: TrayId, verbose: bool = False) -> dict[str, Any]:
    roll = await store.with_tray(tray_id, lambda tray: tray.reroll_latest())
    out = _envelope(roll.command)
    out.update(command=roll.command, comment=roll.comment, result=roll.compact())
    out.update(_describe(roll, verbose))
    return out


async def latest_breakdown(store: TrayStore, tray_id: TrayId) -> dict[str, Any]:
    roll = await store.with_tray(tray_id, lambda tray: tray.latest())
    breakdown = roll.breakdown()
    out = _envelope(roll.command)
    out.update(result=breakdown.render(), breakdown=breakdown.to_dict())
    return out


async def past_rolls(store: TrayStore, tray_id: TrayId) -> dict[str, Any]:
    rolls = await store.with_tray(tray_id, lambda tray: tray.rolls())
    out = _envelope("")
    out.update(
        result="\n".join(roll.compact() for roll in rolls) if rolls else "No rolls yet.",
        rolls=[roll.to_dict() for roll in rolls],
    )
    return out
