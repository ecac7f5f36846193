# src/orgedit/engine/ops.py

"""
Filesystem-level operations.

This module contains:
- writing a document's lines back to disk,
- appending archived subtrees to an archive file.

No parsing is performed here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


def render_lines(lines: Sequence[str]) -> str:
    """Join lines into file text; every line ends with a newline."""
    return "".join(f"{ln}\n" for ln in lines)


def write_document(path: str | Path, lines: Sequence[str]) -> None:
    """
    Overwrite `path` with `lines`.

    The parent directory must already exist.
    """
    p = Path(path)
    if not p.parent.is_dir():
        raise FileNotFoundError(f"Directory not found: {p.parent}")
    p.write_text(render_lines(lines), encoding="utf-8")


def append_archive(path: str | Path, lines: Sequence[str]) -> Path:
    """
    Append an archived subtree to an archive file.

    Behaviour:
    - missing parent directories and the file itself are created,
    - existing content is kept; a missing final newline is added first,
    - the subtree is appended verbatim.

    Returns the archive path.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    existing = p.read_text(encoding="utf-8") if p.exists() else ""
    if existing and not existing.endswith("\n"):
        existing += "\n"
    p.write_text(existing + render_lines(lines), encoding="utf-8")
    return p
