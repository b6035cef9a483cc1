from __future__ import annotations

from typing import Any, Dict, Optional


class TraceError(RuntimeError):
    """Base class for failures surfaced to the caller."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}


class ConfigError(TraceError):
    """Raised when settings are missing or malformed."""


class LogFileError(TraceError):
    """Raised when the canvas history cannot be opened or has no header."""


class AmbiguousCandidateError(TraceError):
    """Raised when several candidates remain and nothing picked one."""

    def __init__(self, candidates: list[str]):
        super().__init__(
            f"{len(candidates)} candidate users remain; a selection index is required.",
            {"candidates": list(candidates)},
        )
        self.candidates = list(candidates)


class SelectionError(TraceError):
    """Raised for a selection index that does not name a candidate."""


class ParseError(ValueError):
    """A malformed log line. Returned by the parser rather than raised."""

    def __init__(self, line: str, reason: str):
        super().__init__(f"{reason}: {line!r}")
        self.line = line
        self.reason = reason
