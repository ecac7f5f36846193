# src/orgedit/engine/headline.py

"""
Headline queries and mutators.

Every mutator takes a freshly parsed Document plus one of its Headline
nodes and returns the TextEdit batch that performs the change. Nothing
here touches a buffer; applying the batch makes the tree stale.

Mutators covered:
- heading line segments (TODO keyword, priority, tags, level),
- property drawer entries,
- planning line dates (SCHEDULED / DEADLINE / CLOSED),
- subtree moves among same-level siblings.
"""

from __future__ import annotations

import re
from typing import Any, Final, Iterable, Optional, Sequence

from .config import Config
from .edits import TextEdit
from .model import Document, Drawer, Headline, NodeKind, TodoKeyword
from .parse import HEADLINE_RE, PROPERTY_RE, TAGS_RE
from .timestamp import Timestamp


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class StructuralLimitError(ValueError):
    """
    Raised when a structural edit would cross an outline boundary
    (promote past level 1, move past the first/last sibling).
    """


_KEEP: Final = object()

ARCHIVE_TAG: Final[str] = "ARCHIVE"

_PLANNING_ENTRY_RE = re.compile(
    r"(?P<kw>SCHEDULED|DEADLINE|CLOSED):[ \t]*"
    r"(?P<ts>(?:<[^>]*>|\[[^\]]*\])(?:--(?:<[^>]*>|\[[^\]]*\]))?)"
)


# ---------------------------------------------------------------------
# Heading line
# ---------------------------------------------------------------------

def parse_tags_string(raw: str | Iterable[str] | None) -> list[str]:
    """
    Accept `:a:b:`, `a:b`, `a b` or a list of tags; drop duplicates.
    """
    if raw is None:
        return []
    items = [raw] if isinstance(raw, str) else list(raw)
    out: list[str] = []
    for item in items:
        for tag in re.split(r"[:\s]+", item):
            if tag and tag not in out:
                out.append(tag)
    return out


def tags_to_string(tags: Sequence[str]) -> str:
    return f":{':'.join(tags)}:" if tags else ""


def render_heading_line(
    doc: Document,
    h: Headline,
    *,
    level: Any = _KEEP,
    todo: Any = _KEEP,
    priority: Any = _KEEP,
    tags: Any = _KEEP,
) -> str:
    """
    Rebuild the heading line of `h` with some segments replaced.

    `todo` is a keyword string ("" removes it), `priority` a single
    character or None, `tags` a list. The gap before the tags is kept.
    """
    old = doc.lines[h.line]
    new_level = h.level if level is _KEEP else level
    new_todo = h.todo_value if todo is _KEEP else todo
    new_priority = h.priority if priority is _KEEP else priority
    new_tags = list(h.tags) if tags is _KEEP else list(tags)

    gap = " "
    m = HEADLINE_RE.match(old)
    if m and m.group("rest"):
        tm = TAGS_RE.search(m.group("rest"))
        if tm:
            gap = m.group("rest")[tm.start(): tm.start("tags")] or " "

    parts = ["*" * new_level]
    if new_todo:
        parts.append(new_todo)
    if new_priority:
        parts.append(f"[#{new_priority}]")
    if h.title:
        parts.append(h.title)
    line = " ".join(parts)
    if new_tags:
        line = f"{line}{gap}{tags_to_string(new_tags)}"
    if line == "*" * new_level:
        line += " "
    return line


def _heading_edit(doc: Document, h: Headline, **segments: Any) -> list[TextEdit]:
    old = doc.lines[h.line]
    new = render_heading_line(doc, h, **segments)
    if new == old:
        return []
    return [TextEdit.replace_line(h.line, old, new)]


def set_todo(doc: Document, h: Headline, keyword: str | TodoKeyword) -> list[TextEdit]:
    value = keyword.value if isinstance(keyword, TodoKeyword) else keyword
    return _heading_edit(doc, h, todo=value)


def set_priority(doc: Document, h: Headline, value: Optional[str]) -> list[TextEdit]:
    """Set the priority cookie; None removes it."""
    return _heading_edit(doc, h, priority=value or None)


def set_tags(doc: Document, h: Headline, tags: str | Iterable[str] | None) -> list[TextEdit]:
    return _heading_edit(doc, h, tags=parse_tags_string(tags))


def toggle_archive_tag(doc: Document, h: Headline) -> list[TextEdit]:
    tags = list(h.tags)
    if ARCHIVE_TAG in tags:
        tags = [t for t in tags if t != ARCHIVE_TAG]
    else:
        tags.append(ARCHIVE_TAG)
    return _heading_edit(doc, h, tags=tags)


# ---------------------------------------------------------------------
# Promote / demote
# ---------------------------------------------------------------------

def promote(
    doc: Document,
    h: Headline,
    count: int = 1,
    whole_subtree: bool = False,
    config: Optional[Config] = None,
) -> list[TextEdit]:
    if h.level - count < 1:
        raise StructuralLimitError("Cannot promote past level 1.")
    return _shift_level(doc, h, -count, whole_subtree, config or Config())


def demote(
    doc: Document,
    h: Headline,
    count: int = 1,
    whole_subtree: bool = False,
    config: Optional[Config] = None,
) -> list[TextEdit]:
    return _shift_level(doc, h, count, whole_subtree, config or Config())


def _shift_level(doc: Document, h: Headline, delta: int, whole_subtree: bool, config: Config) -> list[TextEdit]:
    targets = [h]
    if whole_subtree:
        targets += [n for n in doc.descendants(h) if isinstance(n, Headline)]

    edits: list[TextEdit] = []
    for t in targets:
        edits += _heading_edit(doc, t, level=t.level + delta)
        if config.adapt_indentation:
            for i in range(t.line + 1, doc.own_content_end(t)):
                edits += _reindent(doc.lines[i], i, delta)
    return edits


def _reindent(line: str, i: int, delta: int) -> list[TextEdit]:
    if not line.strip():
        return []
    if delta > 0:
        return [TextEdit.replace_span(i, 0, 0, " " * delta)]
    leading = len(line) - len(line.lstrip(" "))
    strip = min(leading, -delta)
    if not strip:
        return []
    return [TextEdit.replace_span(i, 0, strip, "")]


# ---------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------

def property_drawer(doc: Document, h: Headline) -> Optional[Drawer]:
    for node in doc.children_of(h, NodeKind.DRAWER):
        if isinstance(node, Drawer) and node.name.upper() == "PROPERTIES":
            return node
    return None


def set_property(
    doc: Document,
    h: Headline,
    key: str,
    value: str,
    config: Optional[Config] = None,
) -> list[TextEdit]:
    """
    Insert or update a property.

    Existing keys are matched case-insensitively and updated in place;
    new keys go just before `:END:`. The drawer is created after the
    heading (and planning line) when missing.
    """
    cfg = config or Config()
    drawer = property_drawer(doc, h)

    if drawer is None:
        indent = cfg.get_indent(h.level + 1)
        at = (h.planning_line if h.planning_line is not None else h.line) + 1
        return [
            TextEdit.insert_lines(
                at,
                [f"{indent}:PROPERTIES:", f"{indent}:{key}: {value}", f"{indent}:END:"],
            )
        ]

    start, end = drawer.range.start_line, drawer.range.end_line - 1
    first = doc.lines[start]
    indent = first[: len(first) - len(first.lstrip())]
    for i in range(start + 1, end):
        m = PROPERTY_RE.match(doc.lines[i])
        if m and m.group("key").upper() == key.upper():
            return [TextEdit.replace_line(i, doc.lines[i], f"{indent}:{m.group('key')}: {value}")]
    return [TextEdit.insert_lines(end, [f"{indent}:{key}: {value}"])]


# ---------------------------------------------------------------------
# Planning line
# ---------------------------------------------------------------------

def _planning_entries(line: str) -> list[tuple[str, str]]:
    return [(m.group("kw"), m.group("ts")) for m in _PLANNING_ENTRY_RE.finditer(line)]


def set_planning_date(
    doc: Document,
    h: Headline,
    keyword: str,
    ts: Optional[Timestamp],
    config: Optional[Config] = None,
) -> list[TextEdit]:
    """
    Insert, replace or remove one planning entry.

    Other entries keep their order; a new CLOSED goes first, any other
    new entry is appended. Removing an absent entry is a no-op.
    """
    cfg = config or Config()
    keyword = keyword.upper()

    if h.planning_line is None:
        if ts is None:
            return []
        indent = cfg.get_indent(h.level + 1)
        return [TextEdit.insert_lines(h.line + 1, [f"{indent}{keyword}: {ts.to_wrapped_string()}"])]

    old = doc.lines[h.planning_line]
    indent = old[: len(old) - len(old.lstrip())]
    entries = _planning_entries(old)
    present = any(kw == keyword for kw, _ in entries)

    if ts is None:
        if not present:
            return []
        entries = [(kw, text) for kw, text in entries if kw != keyword]
    elif present:
        entries = [(kw, ts.to_wrapped_string() if kw == keyword else text) for kw, text in entries]
    elif keyword == "CLOSED":
        entries.insert(0, (keyword, ts.to_wrapped_string()))
    else:
        entries.append((keyword, ts.to_wrapped_string()))

    if not entries:
        return [TextEdit.delete_lines(h.planning_line, h.planning_line + 1)]
    new = indent + " ".join(f"{kw}: {text}" for kw, text in entries)
    if new == old:
        return []
    return [TextEdit.replace_line(h.planning_line, old, new)]


def set_scheduled_date(doc: Document, h: Headline, ts: Timestamp, config: Optional[Config] = None) -> list[TextEdit]:
    return set_planning_date(doc, h, "SCHEDULED", ts, config)


def remove_scheduled_date(doc: Document, h: Headline, config: Optional[Config] = None) -> list[TextEdit]:
    return set_planning_date(doc, h, "SCHEDULED", None, config)


def set_deadline_date(doc: Document, h: Headline, ts: Timestamp, config: Optional[Config] = None) -> list[TextEdit]:
    return set_planning_date(doc, h, "DEADLINE", ts, config)


def remove_deadline_date(doc: Document, h: Headline, config: Optional[Config] = None) -> list[TextEdit]:
    return set_planning_date(doc, h, "DEADLINE", None, config)


def set_closed_date(
    doc: Document,
    h: Headline,
    ts: Optional[Timestamp] = None,
    config: Optional[Config] = None,
) -> list[TextEdit]:
    """Set CLOSED (inactive); defaults to the current time."""
    closed = ts or Timestamp.now(active=False)
    return set_planning_date(doc, h, "CLOSED", closed, config)


def remove_closed_date(doc: Document, h: Headline, config: Optional[Config] = None) -> list[TextEdit]:
    return set_planning_date(doc, h, "CLOSED", None, config)


# ---------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------

def get_repeater_dates(h: Headline) -> list[Timestamp]:
    return [d for d in h.dates if d.repeater is not None and not d.is_logbook]


def _same_level_siblings(doc: Document, h: Headline) -> list[Headline]:
    parent = doc.parent_of(h)
    if parent is None:
        return [h]
    return [s for s in doc.child_headlines(parent) if s.level == h.level]


def get_prev_headline_same_level(doc: Document, h: Headline) -> Optional[Headline]:
    siblings = _same_level_siblings(doc, h)
    i = siblings.index(h)
    return siblings[i - 1] if i > 0 else None


def get_next_headline_same_level(doc: Document, h: Headline) -> Optional[Headline]:
    siblings = _same_level_siblings(doc, h)
    i = siblings.index(h)
    return siblings[i + 1] if i + 1 < len(siblings) else None


def get_append_line(doc: Document, h: Headline) -> int:
    """
    Line where appended content goes: after the last non-blank line of
    the heading's own content (before the first child heading).
    """
    end = doc.own_content_end(h)
    while end > h.line + 1 and not doc.lines[end - 1].strip():
        end -= 1
    return end


def find_drawer(doc: Document, h: Headline, name: str) -> Optional[Drawer]:
    for node in doc.children_of(h, NodeKind.DRAWER):
        if isinstance(node, Drawer) and node.name.upper() == name.upper():
            return node
    return None


def get_drawer_append_line(
    doc: Document,
    h: Headline,
    name: str,
    config: Optional[Config] = None,
) -> tuple[int, list[TextEdit]]:
    """
    Line just inside drawer `name` (after its opening line).

    When the drawer is missing, also returns the edits that create it
    after the planning line and property drawer; the line number then
    refers to the text after those edits.
    """
    drawer = find_drawer(doc, h, name)
    if drawer is not None:
        return drawer.range.start_line + 1, []

    cfg = config or Config()
    at = (h.planning_line if h.planning_line is not None else h.line) + 1
    props = property_drawer(doc, h)
    if props is not None and props.range.start_line == at:
        at = props.range.end_line

    indent = cfg.get_indent(h.level + 1)
    return at + 1, [TextEdit.insert_lines(at, [f"{indent}:{name}:", f"{indent}:END:"])]


# ---------------------------------------------------------------------
# Subtree moves
# ---------------------------------------------------------------------

def move_subtree(doc: Document, h: Headline, direction: int) -> list[TextEdit]:
    """
    Swap the subtree with its previous (direction < 0) or next sibling.
    """
    if direction < 0:
        other = get_prev_headline_same_level(doc, h)
    else:
        other = get_next_headline_same_level(doc, h)
    if other is None:
        raise StructuralLimitError("Cannot move past superior level.")

    block = doc.lines[h.range.start_line: h.range.end_line]
    at = other.range.start_line if direction < 0 else other.range.end_line
    return [
        TextEdit.delete_lines(h.range.start_line, h.range.end_line),
        TextEdit.insert_lines(at, block),
    ]
