from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from . import dice
from .config import settings
from .errors import DiceError
from .logging_config import setup_logging
from .models import TrayId
from .tray import Tray, TrayStore


logger = logging.getLogger(__name__)

mcp = FastMCP("mcp-sixball")


def _new_tray() -> Tray:
    return Tray(capacity=settings.tray_capacity, limit=settings.max_generations)


store = TrayStore(_new_tray)


def _tray_id(conversation_id: str, private: bool) -> TrayId:
    return TrayId.private(conversation_id) if private else TrayId.guild(conversation_id)


@mcp.tool()
async def roll(
    text: str,
    conversation_id: str = "default",
    private: bool = False,
    roller: str = "",
    verbose: bool = False,
) -> dict[str, Any]:
    """Roll dice from an expression like '4d6kh3 + 2 # strength'.

    Supports keep (k, kh, kl, ke), reroll (r, ro, rr, rb, rw), explode
    (e, eo, er, ea), cap (c, cmax, cmin), targets (t), botches (b), merging
    pools with '&', Genesys conversion (gb, gs, ga, gd, gp, gc) and
    arithmetic. Arguments can be a number or an array like [9, 10].
    Text after '#' is kept as a comment.

    Raises a hard error (exception) on invalid input.
    """
    try:
        return await dice.roll_from_text(store, _tray_id(conversation_id, private), text, roller, verbose)
    except DiceError as e:
        # Fail-fast: surface stable error codes in the message.
        raise ValueError(str(e)) from None


@mcp.tool()
async def genroll(
    text: str,
    conversation_id: str = "default",
    private: bool = False,
    roller: str = "",
    verbose: bool = False,
) -> dict[str, Any]:
    """Roll a Genesys pool like 'a2 p1 d3 c1'.

    Letters: b boost, s setback, a ability, d difficulty, p proficiency,
    c challenge. Returns the net symbols.
    """
    try:
        return await dice.genroll_from_text(store, _tray_id(conversation_id, private), text, roller, verbose)
    except DiceError as e:
        raise ValueError(str(e)) from None


@mcp.tool()
def calc(text: str) -> dict[str, Any]:
    """Calculate an arithmetic expression with + - * / ^ and parentheses."""
    try:
        return dice.calc_from_text(text)
    except DiceError as e:
        raise ValueError(str(e)) from None


@mcp.tool()
async def reroll(conversation_id: str = "default", private: bool = False, verbose: bool = False) -> dict[str, Any]:
    """Roll the latest command of this conversation again."""
    try:
        return await dice.reroll_latest(store, _tray_id(conversation_id, private), verbose)
    except DiceError as e:
        raise ValueError(str(e)) from None


@mcp.tool()
async def breakdown(conversation_id: str = "default", private: bool = False) -> dict[str, Any]:
    """Show every step of the latest roll."""
    try:
        return await dice.latest_breakdown(store, _tray_id(conversation_id, private))
    except DiceError as e:
        raise ValueError(str(e)) from None


@mcp.tool()
async def pastrolls(conversation_id: str = "default", private: bool = False) -> dict[str, Any]:
    """List the rolls kept for this conversation, oldest first."""
    try:
        return await dice.past_rolls(store, _tray_id(conversation_id, private))
    except DiceError as e:
        raise ValueError(str(e)) from None


def run() -> None:
    setup_logging(settings.log_level, settings.log_file)
    logger.info("Starting mcp-sixball (tray capacity %d)", settings.tray_capacity)
    # Default transport is stdio.
    mcp.run()


if __name__ == "__main__":
    run()
