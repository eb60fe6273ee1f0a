"""
Helpers for mapping offsets in script text to user-facing positions.
"""

from __future__ import annotations

from dataclasses import dataclass

HINT_WINDOW = 60


@dataclass(frozen=True)
class SourcePosition:
    """A 1-based line/column position in script text."""

    line: int
    column: int

    @classmethod
    def from_index(cls, text: str, index: int) -> SourcePosition:
        index = max(0, min(index, len(text)))
        line = text.count("\n", 0, index) + 1
        line_start = text.rfind("\n", 0, index) + 1
        return cls(line=line, column=index - line_start + 1)


def build_hint(text: str, index: int, window: int = HINT_WINDOW) -> str:
    """Return the offending line with a caret under ``index``.

    Long lines are windowed around the offending column so the caret stays
    visible; elided parts are marked with ``…``.
    """
    index = max(0, min(index, len(text)))
    line_start = text.rfind("\n", 0, index) + 1
    line_end = text.find("\n", index)
    if line_end == -1:
        line_end = len(text)
    line = text[line_start:line_end]
    column = index - line_start

    half = window // 2
    start = max(0, column - half)
    end = min(len(line), start + window)
    start = max(0, end - window)

    prefix = "…" if start > 0 else ""
    suffix = "…" if end < len(line) else ""
    excerpt = f"{prefix}{line[start:end]}{suffix}"
    caret = " " * (column - start + len(prefix)) + "^"
    return f"{excerpt}\n{caret}"
