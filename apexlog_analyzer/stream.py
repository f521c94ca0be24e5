"""Record stream assembly: raw log text to an ordered list of records."""

from __future__ import annotations

import logging
import re

from apexlog_analyzer.catalog import classify_line
from apexlog_analyzer.diagnostics import Diagnostics
from apexlog_analyzer.records import Record

logger = logging.getLogger(__name__)

START_MARKER = "EXECUTION_STARTED"
SETTINGS_PATTERN = re.compile(r"^\d+\.\d+\sAPEX_CODE,\w+;APEX_PROFILING,.+$", re.MULTILINE)


def locate_trace_start(log: str) -> int:
    """Offset of the first line mentioning the start marker, or 0 when there is none."""
    marker = log.find(START_MARKER)
    if marker < 0:
        return 0
    return log.rfind("\n", 0, marker) + 1


def assemble_records(log: str, diagnostics: Diagnostics) -> list[Record]:
    records: list[Record] = []
    previous = None
    for line in log[locate_trace_start(log):].split("\n"):
        line = line.rstrip("\r")
        if not line.strip():
            continue
        record = classify_line(line, previous, diagnostics)
        if record is not None:
            records.append(record)
            previous = record
    logger.info("Assembled %d records", len(records))
    return records


def extract_settings(log: str) -> list[tuple[str, str]]:
    """
    Parse the debug level header, e.g.
    `59.0 APEX_CODE,FINEST;APEX_PROFILING,INFO;CALLOUT,INFO`.
    """
    match = SETTINGS_PATTERN.search(log)
    if not match:
        return []
    header = match.group(0).strip()
    settings = []
    for entry in header[header.index(" ") + 1:].split(";"):
        key, _, value = entry.partition(",")
        settings.append((key, value))
    return settings
