"""Source text representation and span tracking for diagnostics."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Span:
    """A 1-indexed row/column range within a submission."""

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def __str__(self) -> str:
        return f"{self.start_line}:{self.start_col}"

    @classmethod
    def point(cls, line: int, col: int) -> Span:
        return cls(line, col, line, col)


class SourceText:
    """A submitted piece of source with line access for diagnostics."""

    def __init__(self, content: str, name: str = "<input>") -> None:
        self.name = name
        self.content = content
        self.lines = content.splitlines()

    def line_at(self, n: int) -> str:
        """Return the 1-indexed line, or empty string if out of range."""
        if 1 <= n <= len(self.lines):
            return self.lines[n - 1]
        return ""
