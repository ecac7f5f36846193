# src/orgedit/engine/parse.py

"""
Outline document parser.

Builds a Document (node arena) from raw text:

- headlines, nested by level, each spanning its whole subtree,
- planning lines (SCHEDULED / DEADLINE / CLOSED),
- drawers (PROPERTIES is read into `Headline.properties`, LOGBOOK into
  `Headline.logbook`),
- plain lists (nested by indentation) and paragraphs,
- inline timestamps and links, attached to the smallest structural node
  of their line.

This parser is lenient: malformed constructs degrade to paragraphs and
never raise. It performs *structural* parsing only; editing lives in
headline/actions.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Final, Optional, Sequence

from .config import Config
from .links import parse_links_from_line
from .model import (
    ClockEntry,
    Document,
    Drawer,
    Headline,
    LinkNode,
    ListItem,
    Node,
    NodeKind,
    Range,
    TimestampNode,
    TodoKeyword,
)
from .timestamp import parse_all_from_line

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ParseError(Exception):
    """
    Raised when a document cannot be read.
    """

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


# ---------------------------------------------------------------------
# Line grammar
# ---------------------------------------------------------------------

HEADLINE_RE: Final = re.compile(r"^(?P<stars>\*+)(?:[ \t]+(?P<rest>.*))?$")
PRIORITY_RE: Final = re.compile(r"^\[#(?P<priority>[A-Za-z0-9])\](?:[ \t]+|$)")
TAGS_RE: Final = re.compile(r"(?:^|[ \t]+)(?P<tags>:(?:[\w@#%]+:)+)[ \t]*$")

_TS: Final = r"(?:<[^>]*>|\[[^\]]*\])(?:--(?:<[^>]*>|\[[^\]]*\]))?"
PLANNING_RE: Final = re.compile(rf"^[ \t]*(?:(?:SCHEDULED|DEADLINE|CLOSED):[ \t]*{_TS}[ \t]*)+$")
PLANNING_KEYWORDS: Final[tuple[str, ...]] = ("SCHEDULED", "DEADLINE", "CLOSED")

DRAWER_START_RE: Final = re.compile(r"^[ \t]*:(?P<name>[\w-]+):[ \t]*$")
DRAWER_END_RE: Final = re.compile(r"^[ \t]*:END:[ \t]*$", re.IGNORECASE)
PROPERTY_RE: Final = re.compile(r"^[ \t]*:(?P<key>[^:\s]+):(?:[ \t]+(?P<value>.*?))?[ \t]*$")
CLOCK_RE: Final = re.compile(r"^[ \t]*CLOCK:")
CLOCK_DURATION_RE: Final = re.compile(r"=>[ \t]*(?P<h>\d+):(?P<m>\d{2})")

LIST_ITEM_RE: Final = re.compile(
    r"""
    ^(?P<indent>[ \t]*)
    (?P<bullet>[-+*]|\d+[.)])
    (?:[ \t]+|$)
    (?:\[(?P<checkbox>[ Xx-])\](?:[ \t]+|$))?
    (?P<content>.*)$
    """,
    re.VERBOSE,
)


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def parse_document(
    text: str | Sequence[str],
    *,
    config: Optional[Config] = None,
    filename: str = "",
    version: int = 0,
) -> Document:
    """
    Parse text (a string or a list of lines) into a Document.
    """
    lines = text.splitlines() if isinstance(text, str) else list(text)
    cfg = config or Config()
    keywords = {kw.value: kw for kw in cfg.todo_states()}

    doc = Document(lines=lines, filename=filename, version=version)
    root = doc.add(Node(kind=NodeKind.DOCUMENT, range=Range.lines(0, len(lines))))
    owner: list[int] = [root.handle] * len(lines)

    headlines = _parse_headlines(doc, root, keywords)
    for h in headlines:
        for i in range(h.range.start_line, h.range.end_line):
            owner[i] = h.handle

    first = headlines[0].range.start_line if headlines else len(lines)
    _parse_section(doc, root, 0, first, owner, headline=None)
    for h in headlines:
        _parse_section(doc, h, h.range.start_line + 1, doc.own_content_end(h), owner, headline=h)

    _parse_inline(doc, owner)

    for node in doc.nodes:
        node.children.sort(key=lambda c: (doc.nodes[c].range.start_line, doc.nodes[c].range.start_col))

    logger.debug("Parsed %s: %d lines, %d nodes", filename or "<buffer>", len(lines), len(doc.nodes))
    return doc


def parse_document_file(path: str | Path, *, config: Optional[Config] = None) -> Document:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(str(p), f"Cannot read file: {e}") from e
    return parse_document(text, config=config, filename=str(p))


def parse_headline_text(rest: str, keywords: dict[str, TodoKeyword]) -> tuple[
    Optional[TodoKeyword], Optional[str], str, list[str]
]:
    """
    Split the text after the stars into (todo, priority, title, tags).
    """
    tags: list[str] = []
    m = TAGS_RE.search(rest)
    if m:
        tags = [t for t in m.group("tags").split(":") if t]
        rest = rest[: m.start()]

    todo: Optional[TodoKeyword] = None
    words = rest.split(None, 1)
    if words and words[0] in keywords:
        todo = keywords[words[0]]
        rest = words[1] if len(words) > 1 else ""

    priority: Optional[str] = None
    rest = rest.lstrip()
    pm = PRIORITY_RE.match(rest)
    if pm:
        priority = pm.group("priority")
        rest = rest[pm.end():]

    return todo, priority, rest.strip(), tags


# ---------------------------------------------------------------------
# Headlines
# ---------------------------------------------------------------------

def _parse_headlines(doc: Document, root: Node, keywords: dict[str, TodoKeyword]) -> list[Headline]:
    out: list[Headline] = []
    stack: list[Headline] = []
    lines = doc.lines

    for i, line in enumerate(lines):
        m = HEADLINE_RE.match(line)
        if not m:
            continue

        level = len(m.group("stars"))
        while stack and stack[-1].level >= level:
            _close(stack.pop(), i)

        todo, priority, title, tags = parse_headline_text(m.group("rest") or "", keywords)
        h = Headline(
            kind=NodeKind.HEADLINE,
            range=Range.lines(i, len(lines)),
            level=level,
            todo=todo,
            priority=priority,
            title=title,
            tags=tags,
        )
        doc.add(h, stack[-1] if stack else root)
        stack.append(h)
        out.append(h)

    for h in stack:
        _close(h, len(lines))
    return out


def _close(h: Headline, end: int) -> None:
    h.range = Range.lines(h.range.start_line, end)


# ---------------------------------------------------------------------
# Section bodies
# ---------------------------------------------------------------------

def _parse_section(
    doc: Document,
    container: Node,
    start: int,
    end: int,
    owner: list[int],
    *,
    headline: Optional[Headline],
) -> None:
    lines = doc.lines
    i = start

    if headline is not None and i < end and PLANNING_RE.match(lines[i]):
        planning = doc.add(Node(kind=NodeKind.PLANNING, range=Range.lines(i, i + 1)), container)
        owner[i] = planning.handle
        headline.planning_line = i
        i += 1

    while i < end:
        line = lines[i]
        if not line.strip():
            i += 1
            continue

        dm = DRAWER_START_RE.match(line)
        if dm:
            close = _find_drawer_end(lines, i + 1, end)
            if close is not None:
                drawer = doc.add(
                    Drawer(kind=NodeKind.DRAWER, range=Range.lines(i, close + 1), name=dm.group("name")),
                    container,
                )
                for j in range(i, close + 1):
                    owner[j] = drawer.handle
                if headline is not None and drawer.name.upper() == "PROPERTIES" and not headline.properties:
                    headline.properties = _read_properties(lines[i + 1: close])
                i = close + 1
                continue

        if _match_item(line):
            i = _parse_list(doc, container, i, end, owner)
            continue

        i = _parse_paragraph(doc, container, i, end, owner)


def _find_drawer_end(lines: list[str], start: int, end: int) -> Optional[int]:
    for j in range(start, end):
        if DRAWER_END_RE.match(lines[j]):
            return j
        if DRAWER_START_RE.match(lines[j]) and not DRAWER_END_RE.match(lines[j]):
            return None
    return None


def _read_properties(body: list[str]) -> dict[str, str]:
    props: dict[str, str] = {}
    for line in body:
        m = PROPERTY_RE.match(line)
        if m:
            props[m.group("key")] = m.group("value") or ""
    return props


def _parse_paragraph(doc: Document, container: Node, start: int, end: int, owner: list[int]) -> int:
    lines = doc.lines
    j = start + 1
    while j < end:
        line = lines[j]
        if not line.strip() or _match_item(line) or DRAWER_START_RE.match(line):
            break
        j += 1
    para = doc.add(Node(kind=NodeKind.PARAGRAPH, range=Range.lines(start, j)), container)
    for k in range(start, j):
        owner[k] = para.handle
    return j


# ---------------------------------------------------------------------
# Lists
# ---------------------------------------------------------------------

def _match_item(line: str) -> Optional[re.Match[str]]:
    m = LIST_ITEM_RE.match(line)
    if not m:
        return None
    # A star at column 0 is a headline, never a bullet.
    if m.group("bullet") == "*" and not m.group("indent"):
        return None
    return m


def _indent_width(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def _parse_list(doc: Document, container: Node, start: int, end: int, owner: list[int]) -> int:
    """
    Parse consecutive items sharing one indentation; return the next line.
    """
    lines = doc.lines
    first = _match_item(lines[start])
    if first is None:
        return start + 1
    indent = len(first.group("indent"))

    lst = doc.add(Node(kind=NodeKind.LIST, range=Range.lines(start, start + 1)), container)
    i = start
    last_end = start

    while i < end:
        m = _match_item(lines[i])
        if not m or len(m.group("indent")) != indent:
            break

        item_end = _item_end(lines, i, end, indent)
        cb = m.group("checkbox")
        item = doc.add(
            ListItem(
                kind=NodeKind.LIST_ITEM,
                range=Range.lines(i, item_end),
                indent=m.group("indent"),
                bullet=m.group("bullet"),
                checkbox=cb.upper() if cb else None,
                checkbox_col=m.start("checkbox") if cb else None,
                content=m.group("content"),
            ),
            lst,
        )
        for k in range(i, item_end):
            owner[k] = item.handle

        j = i + 1
        while j < item_end:
            if _match_item(lines[j]) and _indent_width(lines[j]) > indent:
                j = _parse_list(doc, item, j, item_end, owner)
            else:
                j += 1

        last_end = item_end
        i = item_end
        # A single blank line between siblings keeps the list going.
        if i + 1 < end and not lines[i].strip():
            nxt = _match_item(lines[i + 1])
            if nxt and len(nxt.group("indent")) == indent:
                i += 1

    lst.range = Range.lines(start, last_end)
    for k in range(start, last_end):
        if doc.nodes[owner[k]].kind not in (NodeKind.LIST_ITEM,):
            owner[k] = lst.handle
    return max(last_end, start + 1)


def _item_end(lines: list[str], start: int, end: int, indent: int) -> int:
    j = start + 1
    while j < end:
        line = lines[j]
        if not line.strip():
            k = j + 1
            while k < end and not lines[k].strip():
                k += 1
            if k < end and _indent_width(lines[k]) > indent and k == j + 1:
                j = k
                continue
            break
        if _indent_width(line) <= indent:
            break
        j += 1
    return j


# ---------------------------------------------------------------------
# Inline nodes
# ---------------------------------------------------------------------

def _parse_inline(doc: Document, owner: list[int]) -> None:
    for i, line in enumerate(doc.lines):
        container = doc.nodes[owner[i]]
        headline = container if isinstance(container, Headline) else doc.parent_headline(container)
        in_logbook = isinstance(container, Drawer) and container.name.upper() == "LOGBOOK"
        is_clock = in_logbook and bool(CLOCK_RE.match(line))

        for ts in parse_all_from_line(line, i):
            if is_clock:
                ts = replace(ts, is_logbook=True)
            if ts.range is None:
                continue
            doc.add(TimestampNode(kind=NodeKind.TIMESTAMP, range=ts.range, timestamp=ts), container)
            if headline is None:
                continue
            headline.dates.append(ts)

            if container.kind is NodeKind.PLANNING:
                before = line[: ts.range.start_col].rstrip()
                for kw in PLANNING_KEYWORDS:
                    if before.endswith(kw + ":"):
                        setattr(headline, kw.lower(), ts)
                        break

            if is_clock:
                dm = CLOCK_DURATION_RE.search(line)
                minutes = int(dm.group("h")) * 60 + int(dm.group("m")) if dm else None
                headline.logbook.append(
                    ClockEntry(start=ts, end=ts.related_date_range, minutes=minutes, line=i)
                )

        for link in parse_links_from_line(line, i):
            if link.range is None:
                continue
            doc.add(LinkNode(kind=NodeKind.LINK, range=link.range, link=link), container)
