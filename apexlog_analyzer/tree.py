"""Call tree reconstruction from an ordered record stream."""

from __future__ import annotations

import logging

from apexlog_analyzer.config import DEFAULT_MAX_DEPTH
from apexlog_analyzer.diagnostics import Diagnostics
from apexlog_analyzer.errors import ResourceLimitError
from apexlog_analyzer.records import BlockGroup, Record, Severity

logger = logging.getLogger(__name__)

ROOT_KIND = "ROOT"


def make_root() -> Record:
    return Record(kind=ROOT_KIND, timestamp=0, text="Log Root")


def compute_durations(frame: Record) -> None:
    """
    Set duration and self time once a frame's exit is known.

    Self time subtracts only the direct children's durations; a child's
    duration already covers its own descendants. Malformed nesting can
    leave self time negative and it is reported as-is.
    """
    if frame.exit_timestamp is None:
        return
    frame.duration = frame.exit_timestamp - frame.timestamp
    frame.self_time = frame.duration
    for child in frame.children:
        if child.duration is not None:
            frame.self_time -= child.duration


class _Cursor:
    def __init__(self, records: list[Record]):
        self.records = records
        self.index = 0

    def peek(self) -> Record | None:
        return self.records[self.index] if self.index < len(self.records) else None

    def fetch(self) -> Record | None:
        record = self.peek()
        if record is not None:
            self.index += 1
        return record


class CallTreeBuilder:
    """
    Builds the call tree for one parse.

    The cursor, the unwinding flag and the last seen timestamp belong to
    this instance; a builder is used for a single record list only.
    """

    def __init__(self, records: list[Record], diagnostics: Diagnostics, max_depth: int = DEFAULT_MAX_DEPTH):
        self.cursor = _Cursor(records)
        self.diagnostics = diagnostics
        self.max_depth = max_depth
        self.unwinding = False
        self.last_timestamp = 0

    def build(self) -> Record:
        root = make_root()
        pending: list[Record] = []
        try:
            while True:
                record = self.cursor.fetch()
                if record is None:
                    break
                if record.marks_discontinuity:
                    self.unwinding = True
                self.last_timestamp = record.timestamp
                if record.is_frame:
                    _flush(root, pending)
                    pending = []
                    root.children.append(self.build_frame(record, depth=1))
                else:
                    # stray closers that reach the root are kept as leaves
                    pending.append(record)
        except RecursionError:
            raise ResourceLimitError("Call tree nesting exceeds the interpreter stack") from None
        _flush(root, pending)
        return root

    def build_frame(self, opener: Record, depth: int) -> Record:
        self.last_timestamp = opener.timestamp
        if not opener.is_frame:
            return opener
        if depth > self.max_depth:
            raise ResourceLimitError(
                f"Call tree nesting exceeds max depth {self.max_depth} at {opener.kind} ({opener.timestamp})"
            )

        pending: list[Record] = []
        end = None
        while True:
            record = self.cursor.peek()
            if record is None:
                break
            if record.marks_discontinuity:
                # an exception is propagating; mismatched exits are expected until it is absorbed
                self.unwinding = True
            if record.is_closing:
                end = record
                break
            self.cursor.fetch()
            self.last_timestamp = record.timestamp
            if record.is_frame:
                _flush(opener, pending)
                pending = []
                opener.children.append(self.build_frame(record, depth + 1))
            else:
                pending.append(record)
        _flush(opener, pending)

        if end is None:
            opener.exit_timestamp = self.last_timestamp
            self.diagnostics.truncate(self.last_timestamp, "Unexpected-End", Severity.UNEXPECTED)
        else:
            self.end_frame(opener, end)
        compute_durations(opener)
        return opener

    def end_frame(self, opener: Record, end: Record) -> bool:
        """Resolve a closing candidate; returns True when it closed this frame."""
        opener.exit_timestamp = end.timestamp
        if opener.on_close:
            opener.on_close(opener, end)

        if end.kind in opener.closing_kinds and (
            opener.line_number is None or end.line_number == opener.line_number
        ):
            self.cursor.fetch()
            self.last_timestamp = end.timestamp
            self.unwinding = False
            return True

        # the closer belongs to an ancestor (or nothing); leave it for the parent
        if not self.unwinding:
            logger.debug("%s at %d does not close %s", end.kind, end.timestamp, opener.kind)
            self.diagnostics.truncate(end.timestamp, "Unexpected-Exit", Severity.UNEXPECTED)
        return False


def _flush(frame: Record, pending: list[Record]) -> None:
    if pending:
        frame.children.append(BlockGroup(pending))


def build_call_tree(records: list[Record], diagnostics: Diagnostics, max_depth: int = DEFAULT_MAX_DEPTH) -> Record:
    return CallTreeBuilder(records, diagnostics, max_depth).build()
