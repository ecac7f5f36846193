# src/orgedit/engine/render.py

"""
Rendering helpers for CLI output.

This module is responsible for:
- the outline tree view (show),
- one-line validation reports.

It is presentation-only: it never edits documents or writes files.
"""

from __future__ import annotations

import sys
from datetime import date
from typing import Optional

from .model import Document, Headline, Node, TodoType
from .validate import ValidationResult


# ---------------------------------------------------------------------
# ANSI / terminal helpers
# ---------------------------------------------------------------------

_RESET = "\033[0m"
_DIM = "\033[90m"
_RED = "\033[31m"

_COLOR = {
    TodoType.TODO: "\033[33m",  # yellow
    TodoType.DONE: "\033[32m",  # green
}


def _supports_color() -> bool:
    """Return True if stdout is a TTY."""
    return sys.stdout.isatty()


# ---------------------------------------------------------------------
# Outline tree
# ---------------------------------------------------------------------

def format_headline(h: Headline, *, color: bool = False, today: Optional[date] = None) -> str:
    """
    One tree label:

      TODO [#A] Title :tag: (S: 2024-03-01, D: 2024-03-04)
    """
    parts: list[str] = []
    if h.todo is not None:
        kw = h.todo.value
        if color:
            kw = f"{_COLOR.get(h.todo.type, '')}{kw}{_RESET}"
        parts.append(kw)
    if h.priority:
        parts.append(f"[#{h.priority}]")
    parts.append(h.title or "(untitled)")
    if h.tags:
        tags = f":{':'.join(h.tags)}:"
        parts.append(f"{_DIM}{tags}{_RESET}" if color else tags)

    meta: list[str] = []
    if h.scheduled is not None:
        meta.append(f"S: {h.scheduled.date.isoformat()}")
    if h.deadline is not None:
        d = f"D: {h.deadline.date.isoformat()}"
        overdue = not h.is_done and h.deadline.date < (today or date.today())
        meta.append(f"{_RED}{d}{_RESET}" if color and overdue else d)
    if meta:
        parts.append(f"({', '.join(meta)})")
    return " ".join(parts)


def render_outline(doc: Document, *, color: bool = True) -> None:
    """
    Render the heading tree of a document.
    """
    use_color = color and _supports_color()
    print(doc.filename or "<buffer>")
    _render_children(doc, doc.root, prefix="", color=use_color)


def _render_children(doc: Document, node: Node, *, prefix: str, color: bool) -> None:
    items = doc.child_headlines(node)
    for i, child in enumerate(items):
        is_last = i == (len(items) - 1)
        branch = "└── " if is_last else "├── "
        next_prefix = prefix + ("    " if is_last else "│   ")

        print(f"{prefix}{branch}{format_headline(child, color=color)}")
        _render_children(doc, child, prefix=next_prefix, color=color)


# ---------------------------------------------------------------------
# Validation report
# ---------------------------------------------------------------------

def render_validation(result: ValidationResult) -> None:
    if result.ok:
        print(f"OK    {result.path}")
        return
    print(f"FAIL  {result.path}")
    for issue in result.issues:
        print(f"  - {result.path}:{issue.line + 1} [{issue.code}] {issue.message}")
