from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, TypeAlias

from .parser import ParsedRoll
from .tokens import RollToken
from .values import RollValue


Scope: TypeAlias = Literal["private", "guild"]
RollKind: TypeAlias = Literal["dice", "genesys"]


def _now_utc_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class TrayId:
    """Names the conversation a tray belongs to."""

    scope: Scope
    identifier: str

    @classmethod
    def private(cls, identifier: str) -> TrayId:
        return cls("private", identifier)

    @classmethod
    def guild(cls, identifier: str) -> TrayId:
        return cls("guild", identifier)

    def __str__(self) -> str:
        return f"{self.scope}:{self.identifier}"


@dataclass(frozen=True)
class BreakdownField:
    name: str
    value: str


@dataclass(frozen=True)
class Breakdown:
    title: str
    fields: tuple[BreakdownField, ...]
    total: str

    def render(self) -> str:
        lines = [self.title]
        for item in self.fields:
            lines.append(f"{item.name}:")
            lines.extend(f"  {line}" for line in item.value.splitlines())
        lines.append(f"Total: {self.total}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "fields": [{"name": item.name, "value": item.value} for item in self.fields],
            "total": self.total,
        }


@dataclass(frozen=True)
class Roll:
    command: str
    result: RollValue
    kind: RollKind = "dice"
    comment: str = ""
    roller: str = ""
    timestamp: str = field(default_factory=_now_utc_iso)
    operations: tuple[RollToken, ...] = ()
    terms: tuple[RollToken, ...] = ()

    @classmethod
    def from_parsed(cls, parsed: ParsedRoll, comment: str = "", roller: str = "") -> Roll:
        return cls(
            command=parsed.text,
            result=parsed.value(),
            kind=parsed.kind,
            comment=comment,
            roller=roller,
            operations=parsed.operations,
            terms=parsed.terms,
        )

    def compact_breakdown(self) -> str:
        return ", ".join(term.summary() for term in self.terms)

    def compact(self) -> str:
        annotation = f" ({self.comment})" if self.comment else ""
        breakdown = self.compact_breakdown()
        suffix = f" ({breakdown})" if breakdown else ""
        return f"`{self.command}`{annotation}: **{self.result}**{suffix}"

    def breakdown(self) -> Breakdown:
        title = f"{self.command} ({self.comment})" if self.comment else self.command
        fields = tuple(BreakdownField(op.description(), op.verbose()) for op in self.operations)
        return Breakdown(title=title, fields=fields, total=str(self.result))

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "comment": self.comment,
            "roller": self.roller,
            "timestamp": self.timestamp,
            "kind": self.kind,
            "result": str(self.result),
            "compact": self.compact(),
        }

    def __str__(self) -> str:
        return self.compact()
