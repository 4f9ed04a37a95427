from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import SymbolError


MATH_TOKENS = r"""
    (?P<number>\d+(?:\.\d+)?|\.\d+)
    | (?P<plus>\+)
    | (?P<minus>-)
    | (?P<star>\*)
    | (?P<slash>/)
    | (?P<caret>\^)
    | (?P<lparen>\()
    | (?P<rparen>\))
"""

DICE_TOKENS = r"""
    | (?P<dice>d)
    | (?P<genesys>g[bsadpc])
    | (?P<keep>k[ehl]?)
    | (?P<reroll>r[obwr]?)
    | (?P<explode>e[aor]?)
    | (?P<cap>cmax|cmin|c[hl]?)
    | (?P<target>t)
    | (?P<botch>b)
    | (?P<merge>&)
    | (?P<array>\[[^\]\[]*\])
"""

MATH_RE = re.compile(MATH_TOKENS, re.VERBOSE | re.IGNORECASE)
DICE_RE = re.compile(MATH_TOKENS + DICE_TOKENS, re.VERBOSE | re.IGNORECASE)
GENESYS_RE = re.compile(r"(?P<kind>[bsadpc])\s*(?P<count>\d+)", re.IGNORECASE)

_WHITESPACE_RE = re.compile(r"\s+")
_JUNK_RE = re.compile(r"\S+?(?=\s|$)|\S")

DICE_KINDS = frozenset({"dice", "genesys", "keep", "reroll", "explode", "cap", "target", "botch", "merge", "array"})


@dataclass(frozen=True)
class Lexeme:
    kind: str
    text: str
    position: int

    def __str__(self) -> str:
        return self.text


def _bad_symbol(text: str, position: int) -> SymbolError:
    junk = _JUNK_RE.match(text, position)
    return SymbolError(junk.group(0) if junk else text[position:], position)


def tokenize(text: str, grammar: re.Pattern[str] = DICE_RE) -> list[Lexeme]:
    """Split text into lexemes, skipping whitespace.

    Raises SymbolError on the first run of characters the grammar can't read.
    """
    lexemes: list[Lexeme] = []
    position = 0
    while position < len(text):
        space = _WHITESPACE_RE.match(text, position)
        if space:
            position = space.end()
            continue
        match = grammar.match(text, position)
        if not match or match.end() == position:
            raise _bad_symbol(text, position)
        lexemes.append(Lexeme(kind=match.lastgroup or "", text=match.group(0).lower(), position=position))
        position = match.end()
    return lexemes


def has_dice(lexemes: list[Lexeme]) -> bool:
    return any(lexeme.kind in DICE_KINDS for lexeme in lexemes)


def tokenize_genesys(text: str) -> list[tuple[str, int, int]]:
    """Read a Genesys pool like 'a2 p2 d3' into (kind letter, count, position) triples."""
    found: list[tuple[str, int, int]] = []
    position = 0
    while position < len(text):
        space = _WHITESPACE_RE.match(text, position)
        if space:
            position = space.end()
            continue
        match = GENESYS_RE.match(text, position)
        if not match:
            raise _bad_symbol(text, position)
        found.append((match.group("kind").lower(), int(match.group("count")), position))
        position = match.end()
    return found
