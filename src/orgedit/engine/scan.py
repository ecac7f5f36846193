# src/orgedit/engine/scan.py

"""
Document discovery and the headline index.

This module is responsible for:
- finding `.org` files below a directory (depth-limited, `tree -L` style),
- indexing the headlines of parsed documents for link resolution.

It performs no editing.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Final, Optional, Sequence

from .config import Config
from .links import HeadlineRef
from .model import Document, Headline
from .parse import ParseError, parse_document_file

logger = logging.getLogger(__name__)

ORG_SUFFIXES: Final[tuple[str, ...]] = (".org", ".org_archive")


# ---------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------

def iter_org_files(root: str | Path, level: int = 2) -> Iterator[Path]:
    """
    Yield outline files in the subtree rooted at `root`.

    Depth definition:
    - files directly in `root` are depth 0,
    - files in its child directories are depth 1, etc.

    Paths are absolute. Hidden directories are skipped. A negative
    `level` yields nothing.
    """
    if level < 0:
        return

    def walk_dir(d: Path, depth: int) -> Iterator[Path]:
        try:
            entries = sorted(d.iterdir(), key=lambda p: p.name)
        except PermissionError:
            logger.debug("Skipping unreadable directory %s", d)
            return

        for entry in entries:
            if entry.is_file() and entry.name.endswith(ORG_SUFFIXES):
                yield entry

        if depth >= level:
            return

        for entry in entries:
            if entry.is_dir() and not entry.name.startswith("."):
                yield from walk_dir(entry, depth + 1)

    yield from walk_dir(Path(root).resolve(), 0)


# ---------------------------------------------------------------------
# Headline index
# ---------------------------------------------------------------------

class FileHeadlineIndex:
    """
    Headline lookups over a set of parsed documents.
    """

    def __init__(self, docs: Sequence[Document]) -> None:
        self._entries: list[tuple[HeadlineRef, Headline]] = []
        for doc in docs:
            for h in doc.headlines():
                ref = HeadlineRef(
                    file=doc.filename,
                    line=h.line,
                    title=h.title,
                    id=h.get_property("ID"),
                    text=doc.lines[h.line],
                )
                self._entries.append((ref, h))

    @classmethod
    def from_directory(
        cls,
        root: str | Path,
        *,
        level: int = 2,
        config: Optional[Config] = None,
    ) -> "FileHeadlineIndex":
        docs: list[Document] = []
        for path in iter_org_files(root, level):
            try:
                docs.append(parse_document_file(path, config=config))
            except ParseError as e:
                logger.warning("Not indexing %s", e)
        return cls(docs)

    def __len__(self) -> int:
        return len(self._entries)

    def find_by_id(self, id: str) -> list[HeadlineRef]:
        return self.find_by_property_match("ID", id)

    def find_by_property_match(self, key: str, value: str) -> list[HeadlineRef]:
        return [ref for ref, h in self._entries if h.get_property(key) == value]

    def find_matching(self, target: str, file: Optional[str] = None) -> list[HeadlineRef]:
        """
        `*Title` matches titles exactly (ignoring case); any other text
        matches titles containing it.
        """
        entries = self._entries
        if file:
            wanted = Path(file).name
            entries = [(ref, h) for ref, h in entries if Path(ref.file).name == wanted]

        if target.startswith("*"):
            title = target[1:].strip().lower()
            return [ref for ref, h in entries if h.title.lower() == title]

        needle = target.strip().lower()
        if not needle:
            return []
        return [ref for ref, h in entries if needle in h.title.lower()]
