"""Parse entry points: Apex debug log text to a call tree and summary."""

from __future__ import annotations

import logging
from typing import Iterator

from apexlog_analyzer.config import ParseLimits
from apexlog_analyzer.diagnostics import Diagnostics
from apexlog_analyzer.errors import ResourceLimitError
from apexlog_analyzer.records import BlockGroup, ParseResult, Record
from apexlog_analyzer.shape import count_nodes, shape_result
from apexlog_analyzer.stream import assemble_records, extract_settings
from apexlog_analyzer.tree import build_call_tree

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 5


def parse_log(log: str, limits: ParseLimits | None = None) -> ParseResult:
    """
    Parse one debug log into a call tree plus diagnostics.

    All working state is created here and dropped on return, so independent
    logs can be parsed concurrently from separate callers.

    Raises:
        LogParseError: a record has a malformed required field
        ResourceLimitError: the log is larger or nests deeper than allowed
    """
    limits = limits or ParseLimits()
    if len(log) > limits.max_log_chars:
        raise ResourceLimitError(
            f"Log is {len(log)} characters, limit is {limits.max_log_chars}"
        )

    diagnostics = Diagnostics()
    records = assemble_records(log, diagnostics)
    root = build_call_tree(records, diagnostics, limits.max_depth)
    return ParseResult(
        root=root,
        truncations=list(diagnostics.truncations),
        cpu_peak=diagnostics.cpu_peak,
        settings=extract_settings(log)
    )


def iter_frames(frame: Record) -> Iterator[Record]:
    """Yield every frame below the given one, depth first."""
    for child in frame.children:
        if isinstance(child, BlockGroup):
            continue
        yield child
        yield from iter_frames(child)


def summarize(result: ParseResult, top_n: int = DEFAULT_TOP_N) -> dict:
    """
    Headline numbers for a parsed log.

    Hotspots are the frames with the largest self time.
    """
    frames, leaves = count_nodes(result.root)
    timed = [frame for frame in iter_frames(result.root) if frame.self_time is not None]
    timed.sort(key=lambda frame: frame.self_time, reverse=True)
    top_level = [
        child.duration for child in result.root.children
        if isinstance(child, Record) and child.duration is not None
    ]
    return {
        # the synthetic root is not counted
        "frame_count": frames - 1,
        "record_count": leaves + frames - 1,
        "total_duration_ns": sum(top_level),
        "truncation_count": len(result.truncations),
        "cpu_peak_ns": result.cpu_peak,
        "hotspots": [
            {
                "kind": frame.kind,
                "text": frame.text,
                "timestamp": frame.timestamp,
                "duration_ns": frame.duration,
                "self_time_ns": frame.self_time
            }
            for frame in timed[:top_n]
        ]
    }


def analyze_log(log_path: str, limits: ParseLimits | None = None, top_n: int = DEFAULT_TOP_N) -> dict:
    """
    Read and parse a debug log file.

    Args:
        log_path: Path to the debug log
        limits: Parse bounds; taken from the environment when omitted
        top_n: Number of self-time hotspots to report

    Returns:
        Shaped parse output with a summary section
    """
    limits = limits or ParseLimits.from_env()
    with open(log_path, "r", encoding="utf-8") as f:
        log = f.read()

    logger.info("Parsing %s (%d characters)", log_path, len(log))
    result = parse_log(log, limits)
    output = shape_result(result)
    output["summary"] = summarize(result, top_n)
    output["log_path"] = log_path
    return output
