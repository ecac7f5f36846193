# src/orgedit/engine/navigate.py

"""
Tree navigation.

Position lookups over a parsed Document:
- the smallest node enclosing a position, and its nearest ancestor of a
  given kind,
- subtree bounds,
- ordered list renumbering (returned as edits).

Lookups accept an optional text version and refuse stale trees.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .edits import TextEdit
from .model import Document, Headline, ListItem, Node, NodeKind, Position, Range

logger = logging.getLogger(__name__)


def _encloses(node: Node, pos: Position) -> bool:
    r = node.range
    if node.kind in (NodeKind.TIMESTAMP, NodeKind.LINK):
        return r.contains(pos.line, pos.col)
    return r.start_line <= pos.line < r.end_line


def smallest_node_at(doc: Document, pos: Position, *, version: Optional[int] = None) -> Optional[Node]:
    """Deepest node whose range encloses `pos`."""
    if version is not None:
        doc.require_fresh(version)

    node = doc.root
    if not _encloses(node, pos):
        return None

    while True:
        child = next((c for c in doc.children_of(node) if _encloses(c, pos)), None)
        if child is None:
            return node
        node = child


def closest_node_of_kind(
    doc: Document,
    pos: Position,
    kind: NodeKind | Iterable[NodeKind],
    *,
    version: Optional[int] = None,
) -> Optional[Node]:
    """
    Walk upward from the smallest node at `pos` to the first node of
    `kind` (one kind or several). None when no such node encloses `pos`.
    """
    kinds = {kind} if isinstance(kind, NodeKind) else set(kind)
    node = smallest_node_at(doc, pos, version=version)
    while node is not None:
        if node.kind in kinds:
            return node
        node = doc.parent_of(node)
    logger.debug("No %s at %d:%d", "/".join(k.value for k in kinds), pos.line, pos.col)
    return None


def closest_headline(doc: Document, pos: Position, *, version: Optional[int] = None) -> Optional[Headline]:
    node = closest_node_of_kind(doc, pos, NodeKind.HEADLINE, version=version)
    return node if isinstance(node, Headline) else None


def closest_list_item(doc: Document, pos: Position, *, version: Optional[int] = None) -> Optional[ListItem]:
    node = closest_node_of_kind(doc, pos, NodeKind.LIST_ITEM, version=version)
    return node if isinstance(node, ListItem) else None


def subtree_bounds(h: Headline) -> Range:
    """Whole-line range from the heading line to the end of its subtree."""
    return Range.lines(h.range.start_line, h.range.end_line)


# ---------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------

def sibling_items(doc: Document, item: ListItem) -> list[ListItem]:
    parent = doc.parent_of(item)
    if parent is None:
        return [item]
    return [n for n in doc.children_of(parent, NodeKind.LIST_ITEM) if isinstance(n, ListItem)]


def renumber_ordered_list(doc: Document, start: ListItem) -> list[TextEdit]:
    """
    Renumber `start` and its following siblings contiguously from
    `start`'s number, stopping at the first item that is unordered or
    uses a different delimiter.
    """
    if not start.is_ordered:
        return []

    siblings = sibling_items(doc, start)
    number = start.number or 1
    delimiter = start.delimiter
    edits: list[TextEdit] = []

    for item in siblings[siblings.index(start):]:
        if not item.is_ordered or item.delimiter != delimiter:
            break
        bullet = f"{number}{delimiter}"
        if bullet != item.bullet:
            col = item.bullet_col
            edits.append(TextEdit.replace_span(item.line, col, col + len(item.bullet), bullet))
        number += 1
    return edits
