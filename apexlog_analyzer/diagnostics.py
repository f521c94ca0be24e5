"""Per-parse accumulator for truncation events and peak CPU usage."""

from __future__ import annotations

import logging

from apexlog_analyzer.records import Severity, TruncationEvent

logger = logging.getLogger(__name__)


class Diagnostics:
    """
    Collects what a single parse could not cleanly resolve.

    Truncation events are keyed by reason text; the first event for a
    reason is kept and later ones are dropped. One instance belongs to one
    parse call and is never shared.
    """

    def __init__(self):
        self.truncations: list[TruncationEvent] = []
        self._reasons: set[str] = set()
        self.cpu_peak = 0

    def truncate(self, timestamp: int, reason: str, severity: Severity) -> None:
        if reason in self._reasons:
            return
        self._reasons.add(reason)
        self.truncations.append(TruncationEvent(timestamp, reason, severity))
        logger.info("Truncation at %d: %s (%s)", timestamp, reason, severity.value)

    def record_cpu_time(self, cpu_time: int) -> None:
        if cpu_time > self.cpu_peak:
            self.cpu_peak = cpu_time

    @property
    def reasons(self) -> list[str]:
        return [event.reason for event in self.truncations]
