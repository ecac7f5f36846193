# src/orgedit/engine/edits.py

"""
Text edits.

The engine never writes to a buffer directly. Every mutation is returned
as a list of TextEdit values (LSP-style: a range plus replacement text)
which the host applies as one batch.

All ranges in a batch refer to the text *before* the batch is applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from .model import Range


@dataclass(frozen=True, slots=True)
class TextEdit:
    range: Range
    new_text: str

    # -----------------------------------------------------------------
    # Constructors
    # -----------------------------------------------------------------

    @classmethod
    def replace_span(cls, line: int, start_col: int, end_col: int, text: str) -> "TextEdit":
        return cls(Range(line, start_col, line, end_col), text)

    @classmethod
    def replace_line(cls, line: int, old_text: str, new_text: str) -> "TextEdit":
        return cls(Range(line, 0, line, len(old_text)), new_text)

    @classmethod
    def insert_lines(cls, at: int, lines: Sequence[str]) -> "TextEdit":
        """Insert whole lines before line `at` (`at` may equal the line count)."""
        return cls(Range(at, 0, at, 0), "".join(f"{ln}\n" for ln in lines))

    @classmethod
    def delete_lines(cls, start: int, end: int) -> "TextEdit":
        return cls(Range(start, 0, end, 0), "")

    @property
    def line_delta(self) -> int:
        return self.new_text.count("\n") - (self.range.end_line - self.range.start_line)


# ---------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------

def apply_text_edits(lines: Sequence[str], edits: Iterable[TextEdit]) -> list[str]:
    """
    Apply a batch of edits to a list of lines and return the new lines.

    Edits are applied from the end of the text backwards, so earlier
    ranges stay valid. Edits inserted at the same position keep their
    order in the batch.
    """
    text = "".join(f"{ln}\n" for ln in lines)
    starts = _line_starts(lines)

    offsets: list[tuple[int, int, int, str]] = []
    for i, edit in enumerate(edits):
        start = _offset(starts, lines, edit.range.start_line, edit.range.start_col)
        end = _offset(starts, lines, edit.range.end_line, edit.range.end_col)
        if end < start:
            start, end = end, start
        offsets.append((start, end, i, edit.new_text))

    for start, end, _, replacement in sorted(offsets, key=lambda row: (row[0], row[1], row[2]), reverse=True):
        text = text[:start] + replacement + text[end:]

    if not text:
        return []
    if text.endswith("\n"):
        text = text[:-1]
    return text.split("\n")


def _line_starts(lines: Sequence[str]) -> list[int]:
    starts: list[int] = []
    pos = 0
    for ln in lines:
        starts.append(pos)
        pos += len(ln) + 1
    starts.append(pos)
    return starts


def _offset(starts: list[int], lines: Sequence[str], line: int, col: int) -> int:
    if line >= len(lines):
        return starts[-1]
    line = max(line, 0)
    col = max(0, min(col, len(lines[line]) + 1))
    return starts[line] + col
