# src/orgedit/engine/model.py

"""
Core document models.

This module defines the in-memory representation of a parsed outline
document: text ranges, typed nodes, and the document arena that owns
them.

Nodes never hold references to each other. Parent and child links are
handles (indices into `Document.nodes`), so structural edits only ever
touch integers. A document is a snapshot of one text version; once the
text changes, the whole tree is discarded and parsed again.

No text mutation happens here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Optional

if TYPE_CHECKING:
    from .links import Link
    from .timestamp import Timestamp


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class StaleDocumentError(RuntimeError):
    """
    Raised when a document tree is used after its text has changed.
    """


# ---------------------------------------------------------------------
# Positions / ranges
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True, order=True)
class Position:
    """A 0-based (line, column) position."""

    line: int
    col: int = 0


@dataclass(frozen=True, slots=True)
class Range:
    """
    Half-open text range over (line, col) positions.

    Structural nodes use whole lines: `Range(start, 0, end, 0)` covers
    lines start..end-1. Inline nodes cover characters of one line.
    """

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    @classmethod
    def lines(cls, start: int, end: int) -> "Range":
        return cls(start, 0, end, 0)

    @property
    def start(self) -> Position:
        return Position(self.start_line, self.start_col)

    @property
    def end(self) -> Position:
        return Position(self.end_line, self.end_col)

    def contains(self, line: int, col: int = 0) -> bool:
        return (self.start_line, self.start_col) <= (line, col) < (self.end_line, self.end_col)

    def encloses(self, other: "Range") -> bool:
        return (
            (self.start_line, self.start_col) <= (other.start_line, other.start_col)
            and (other.end_line, other.end_col) <= (self.end_line, self.end_col)
        )

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line


# ---------------------------------------------------------------------
# Node kinds
# ---------------------------------------------------------------------

class NodeKind(str, Enum):
    DOCUMENT = "document"
    HEADLINE = "headline"
    PLANNING = "planning"
    DRAWER = "drawer"
    LIST = "list"
    LIST_ITEM = "listitem"
    PARAGRAPH = "paragraph"
    TIMESTAMP = "timestamp"
    LINK = "link"


class TodoType(str, Enum):
    TODO = "TODO"
    DONE = "DONE"


@dataclass(frozen=True, slots=True)
class TodoKeyword:
    """
    A configured TODO keyword.

    `index` is the keyword's position in the configured sequence;
    `shortcut` is its fast-access key, if any.
    """

    value: str
    type: TodoType
    index: int = 0
    shortcut: Optional[str] = None

    @property
    def is_done(self) -> bool:
        return self.type is TodoType.DONE


# ---------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------

@dataclass(slots=True, eq=False)
class Node:
    kind: NodeKind
    range: Range
    handle: int = -1
    parent: Optional[int] = None
    children: list[int] = field(default_factory=list)


@dataclass(slots=True, eq=False)
class ClockEntry:
    start: "Timestamp"
    end: Optional["Timestamp"]
    minutes: Optional[int]
    line: int


@dataclass(slots=True, eq=False)
class Headline(Node):
    """
    One heading and its subtree.

    `range` spans the heading line through the last line of its subtree.
    `dates` holds every timestamp in the heading's own content (not in
    child headings), planning dates included.
    """

    level: int = 1
    todo: Optional[TodoKeyword] = None
    priority: Optional[str] = None
    title: str = ""
    tags: list[str] = field(default_factory=list)
    properties: dict[str, str] = field(default_factory=dict)
    dates: list["Timestamp"] = field(default_factory=list)
    scheduled: Optional["Timestamp"] = None
    deadline: Optional["Timestamp"] = None
    closed: Optional["Timestamp"] = None
    logbook: list[ClockEntry] = field(default_factory=list)
    planning_line: Optional[int] = None

    @property
    def line(self) -> int:
        return self.range.start_line

    @property
    def is_done(self) -> bool:
        return self.todo is not None and self.todo.is_done

    @property
    def todo_value(self) -> str:
        return self.todo.value if self.todo is not None else ""

    def get_property(self, key: str) -> Optional[str]:
        """Case-insensitive property lookup."""
        wanted = key.upper()
        for k, v in self.properties.items():
            if k.upper() == wanted:
                return v
        return None


@dataclass(slots=True, eq=False)
class Drawer(Node):
    name: str = ""


@dataclass(slots=True, eq=False)
class ListItem(Node):
    """
    A plain list item.

    `bullet` is the raw marker (`-`, `+`, `*`, `3.`, `3)`); `checkbox`
    is the character between the brackets, or None without a checkbox;
    `checkbox_col` is that character's column.
    """

    indent: str = ""
    bullet: str = "-"
    checkbox: Optional[str] = None
    content: str = ""
    checkbox_col: Optional[int] = None

    @property
    def line(self) -> int:
        return self.range.start_line

    @property
    def is_ordered(self) -> bool:
        return self.bullet[:1].isdigit()

    @property
    def number(self) -> Optional[int]:
        return int(self.bullet[:-1]) if self.is_ordered else None

    @property
    def delimiter(self) -> str:
        return self.bullet[-1] if self.is_ordered else ""

    @property
    def bullet_col(self) -> int:
        return len(self.indent)


@dataclass(slots=True, eq=False)
class TimestampNode(Node):
    timestamp: Optional["Timestamp"] = None


@dataclass(slots=True, eq=False)
class LinkNode(Node):
    link: Optional["Link"] = None


# ---------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------

@dataclass(slots=True, eq=False)
class Document:
    """
    Arena owning every node of one parsed text version.

    Handle 0 is always the DOCUMENT root.
    """

    lines: list[str]
    filename: str = ""
    version: int = 0
    nodes: list[Node] = field(default_factory=list)

    # -----------------------------------------------------------------
    # Arena
    # -----------------------------------------------------------------

    def add(self, node: Node, parent: Optional[Node] = None) -> Node:
        node.handle = len(self.nodes)
        self.nodes.append(node)
        if parent is not None:
            node.parent = parent.handle
            parent.children.append(node.handle)
        return node

    @property
    def root(self) -> Node:
        return self.nodes[0]

    def get(self, handle: Optional[int]) -> Optional[Node]:
        if handle is None:
            return None
        return self.nodes[handle]

    def parent_of(self, node: Node) -> Optional[Node]:
        return self.get(node.parent)

    def children_of(self, node: Node, kind: Optional[NodeKind] = None) -> list[Node]:
        out = [self.nodes[h] for h in node.children]
        if kind is not None:
            out = [n for n in out if n.kind is kind]
        return out

    def ancestors(self, node: Node) -> Iterator[Node]:
        cur = self.parent_of(node)
        while cur is not None:
            yield cur
            cur = self.parent_of(cur)

    def descendants(self, node: Node) -> Iterator[Node]:
        for h in node.children:
            child = self.nodes[h]
            yield child
            yield from self.descendants(child)

    # -----------------------------------------------------------------
    # Versioning
    # -----------------------------------------------------------------

    def require_fresh(self, version: int) -> None:
        """
        Ensure this tree was parsed from the given text version.
        """
        if version != self.version:
            raise StaleDocumentError(
                f"Document tree is stale (parsed at version {self.version}, text is at {version})"
            )

    # -----------------------------------------------------------------
    # Headline queries
    # -----------------------------------------------------------------

    def headlines(self) -> list[Headline]:
        return [n for n in self.nodes if isinstance(n, Headline)]

    def headline_at_line(self, line: int) -> Optional[Headline]:
        """Return the headline whose heading line is `line`."""
        for h in self.headlines():
            if h.line == line:
                return h
        return None

    def parent_headline(self, node: Node) -> Optional[Headline]:
        for anc in self.ancestors(node):
            if isinstance(anc, Headline):
                return anc
        return None

    def child_headlines(self, node: Node) -> list[Headline]:
        return [n for n in self.children_of(node) if isinstance(n, Headline)]

    def list_item_at_line(self, line: int) -> Optional[ListItem]:
        for n in self.nodes:
            if isinstance(n, ListItem) and n.line == line:
                return n
        return None

    def own_content_end(self, headline: Headline) -> int:
        """Line index where the heading's own content stops (first child or subtree end)."""
        children = self.child_headlines(headline)
        if children:
            return children[0].range.start_line
        return headline.range.end_line

    def all_tags(self) -> list[str]:
        seen: dict[str, None] = {}
        for h in self.headlines():
            for t in h.tags:
                seen.setdefault(t, None)
        return list(seen)

    def category_of(self, headline: Headline) -> str:
        """CATEGORY property (inherited), else the file name without extension."""
        for h in [headline, *self.ancestors(headline)]:
            if isinstance(h, Headline):
                value = h.get_property("CATEGORY")
                if value:
                    return value
        name = self.filename.replace("\\", "/").rsplit("/", 1)[-1]
        return name.rsplit(".", 1)[0] if "." in name else name
