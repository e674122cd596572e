# fsmviz/errors.py
from __future__ import annotations

from typing import Optional

from .constants import PARSE_ERROR_PREFIX


class FsmVizError(Exception):
    """Base class for analysis failures that stop a diagram from being produced."""

    def __init__(
        self, reason: str, line: Optional[int] = None, column: Optional[int] = None
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.line = line
        self.column = column

    def position(self) -> str:
        if self.line is None:
            return ""
        if self.column is None:
            return f"line {self.line}"
        return f"line {self.line}, column {self.column}"

    def user_message(self) -> str:
        """Message shown to the user, always prefixed with ``Parse error: ``."""
        where = self.position()
        if where:
            return f"{PARSE_ERROR_PREFIX}{self.reason} at {where}"
        return f"{PARSE_ERROR_PREFIX}{self.reason}"

    def __str__(self) -> str:
        return self.user_message()


class LexError(FsmVizError):
    """Unrecoverable character sequence (unterminated literal or comment)."""


class ParseError(FsmVizError):
    """Structurally malformed input."""


class DuplicateStateError(FsmVizError):
    def __init__(
        self, qualified_id: str, line: Optional[int] = None, column: Optional[int] = None
    ) -> None:
        super().__init__(f"duplicate state {qualified_id!r}", line, column)
        self.qualified_id = qualified_id


class AmbiguousStateRefError(FsmVizError):
    def __init__(
        self,
        name: str,
        candidates: tuple[str, ...],
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        joined = ", ".join(candidates)
        super().__init__(f"ambiguous state reference {name!r} (candidates: {joined})", line, column)
        self.name = name
        self.candidates = candidates
