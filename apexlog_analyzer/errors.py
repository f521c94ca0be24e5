"""Exceptions raised while parsing Apex debug logs."""


class LogParseError(ValueError):
    """A record is missing a required field or the field cannot be parsed."""

    def __init__(self, message: str, line: str | None = None):
        super().__init__(message)
        self.line = line


class ResourceLimitError(RuntimeError):
    """The log exceeds a configured size or nesting bound."""
