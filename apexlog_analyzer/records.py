"""Record and tree node types shared by the classifier and tree builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from apexlog_analyzer.errors import LogParseError


class Severity(str, Enum):
    ERROR = "error"
    SKIP = "skip"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class TruncationEvent:
    timestamp: int
    reason: str
    severity: Severity

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "reason": self.reason,
            "severity": self.severity.value
        }


@dataclass(eq=False)
class Record:
    """
    One classified trace line.

    A record with non-empty closing_kinds is a frame: it gets an exit
    timestamp, duration, self time and children once the tree builder
    resolves it. Leaves keep those fields unset unless a hook fills them
    in (managed package entries do).
    """

    kind: str
    timestamp: int
    text: str = ""
    closing_kinds: frozenset[str] = frozenset()
    line_number: int | str | None = None
    is_closing: bool = False
    accepts_trailing_text: bool = False
    marks_discontinuity: bool = False
    on_close: Callable[[Record, Record], None] | None = None
    on_next_record: Callable[..., None] | None = None

    namespace: str | None = None
    group: str | None = None
    category: str | None = None
    row_count: int | None = None
    value: str | None = None
    raw: str = ""

    exit_timestamp: int | None = None
    duration: int | None = None
    self_time: int | None = None
    children: list[BlockGroup | Record] = field(default_factory=list)

    @property
    def is_frame(self) -> bool:
        return bool(self.closing_kinds)


@dataclass(eq=False)
class BlockGroup:
    """A run of consecutive sibling leaf records."""

    records: list[Record]

    @property
    def duration(self) -> None:
        return None


def parse_timestamp(text: str) -> int:
    """Read the nanosecond value from a `hh:mm:ss.s (NNN)` field."""
    start = text.find("(")
    interior = text[start + 1:-1] if start >= 0 and text.endswith(")") else ""
    try:
        return int(interior)
    except ValueError:
        raise LogParseError(f"Unable to parse timestamp: '{text}'") from None


def parse_line_number(text: str) -> int | str:
    """Read a `[NN]` line number; markers such as [EXTERNAL] are kept as text."""
    interior = text[1:-1]
    if not interior:
        raise LogParseError(f"Unable to parse line number: '{text}'")
    try:
        return int(interior)
    except ValueError:
        return interior


def parse_rows(text: str) -> int:
    marker = text.find("Rows:")
    rows = text[marker + 5:] if marker >= 0 else ""
    try:
        return int(rows)
    except ValueError:
        raise LogParseError(f"Unable to parse row count: '{text}'") from None


@dataclass(eq=False)
class ParseResult:
    root: Record
    truncations: list[TruncationEvent]
    cpu_peak: int
    settings: list[tuple[str, str]]
