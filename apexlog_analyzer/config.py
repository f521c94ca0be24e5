"""Parse limits and their environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_MAX_DEPTH = 256
DEFAULT_MAX_LOG_CHARS = 50_000_000


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class ParseLimits:
    """Bounds that turn pathological input into a ResourceLimitError."""

    max_depth: int = DEFAULT_MAX_DEPTH
    max_log_chars: int = DEFAULT_MAX_LOG_CHARS

    @classmethod
    def from_env(cls) -> ParseLimits:
        return cls(
            max_depth=_env_int("APEXLOG_MAX_DEPTH", DEFAULT_MAX_DEPTH),
            max_log_chars=_env_int("APEXLOG_MAX_LOG_CHARS", DEFAULT_MAX_LOG_CHARS)
        )
