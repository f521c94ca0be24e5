"""Apex debug log call-tree analyzer."""

from apexlog_analyzer.analyzer import analyze_log, parse_log, summarize
from apexlog_analyzer.config import ParseLimits
from apexlog_analyzer.errors import LogParseError, ResourceLimitError
from apexlog_analyzer.shape import shape_result, shape_tree

__all__ = [
    "LogParseError",
    "ParseLimits",
    "ResourceLimitError",
    "analyze_log",
    "parse_log",
    "shape_result",
    "shape_tree",
    "summarize"
]
