# src/orgedit/engine/lists.py

"""
Checkbox lists.

Toggling a checkbox item also:
- sets every checkbox item below it to the same state,
- recomputes the checkbox of each ancestor item ("X" when all children
  are checked, " " when none are, "-" otherwise),
- refreshes `[n/m]` and `[p%]` cookies on those ancestors and on the
  heading that owns the list.
"""

from __future__ import annotations

import re
from typing import Optional

from .edits import TextEdit
from .model import Document, Headline, ListItem, Node, NodeKind

COOKIE_RE = re.compile(r"\[(?P<done>\d*)/(?P<total>\d*)\]|\[(?P<percent>\d*)%\]")


def child_items(doc: Document, node: Node) -> list[ListItem]:
    """Items of the lists directly under `node` (an item or a heading)."""
    out: list[ListItem] = []
    for lst in doc.children_of(node, NodeKind.LIST):
        out += [n for n in doc.children_of(lst, NodeKind.LIST_ITEM) if isinstance(n, ListItem)]
    return out


def toggle_checkbox(doc: Document, item: ListItem) -> list[TextEdit]:
    return update_checkbox(doc, item, "toggle")


def update_checkbox(doc: Document, item: ListItem, action: str = "toggle") -> list[TextEdit]:
    """
    Change a checkbox and propagate the change.

    `action` is "toggle", "on" or "off". Items without a checkbox only
    refresh their ancestors.
    """
    states: dict[int, Optional[str]] = {}

    if item.checkbox is not None:
        if action == "toggle":
            new = " " if item.checkbox == "X" else "X"
        else:
            new = "X" if action == "on" else " "
        states[item.handle] = new
        for n in doc.descendants(item):
            if isinstance(n, ListItem) and n.checkbox is not None:
                states[n.handle] = new

    edits: list[TextEdit] = []
    for n in doc.descendants(item):
        if isinstance(n, ListItem) and n.handle in states:
            edits += _checkbox_edit(n, states[n.handle])
            edits += _cookie_edit(doc, n, states)
    edits += _checkbox_edit(item, states.get(item.handle, item.checkbox))
    edits += _cookie_edit(doc, item, states)

    cur: Node = item
    while True:
        lst = doc.parent_of(cur)
        owner = doc.parent_of(lst) if lst is not None else None
        if isinstance(owner, ListItem):
            if owner.checkbox is not None:
                states[owner.handle] = aggregate_checkbox(doc, owner, states) or owner.checkbox
                edits += _checkbox_edit(owner, states[owner.handle])
            edits += _cookie_edit(doc, owner, states)
            cur = owner
            continue
        if isinstance(owner, Headline):
            edits += _cookie_edit(doc, owner, states)
        break
    return edits


def _state(n: ListItem, states: dict[int, Optional[str]]) -> Optional[str]:
    return states.get(n.handle, n.checkbox)


def aggregate_checkbox(doc: Document, node: Node, states: Optional[dict[int, Optional[str]]] = None) -> Optional[str]:
    """Checkbox state implied by the checkbox items directly below `node`."""
    states = states or {}
    boxes = [_state(c, states) for c in child_items(doc, node) if c.checkbox is not None]
    if not boxes:
        return None
    checked = sum(1 for b in boxes if b == "X")
    if checked == len(boxes):
        return "X"
    if checked == 0 and "-" not in boxes:
        return " "
    return "-"


def _checkbox_edit(item: ListItem, new: Optional[str]) -> list[TextEdit]:
    if item.checkbox is None or item.checkbox_col is None or new is None or new == item.checkbox:
        return []
    col = item.checkbox_col
    return [TextEdit.replace_span(item.line, col, col + 1, new)]


def _cookie_edit(doc: Document, node: Node, states: dict[int, Optional[str]]) -> list[TextEdit]:
    line_no = node.range.start_line
    line = doc.lines[line_no]
    m = COOKIE_RE.search(line)
    if not m:
        return []

    boxes = [_state(c, states) for c in child_items(doc, node) if c.checkbox is not None]
    checked = sum(1 for b in boxes if b == "X")
    if m.group("percent") is not None:
        percent = checked * 100 // len(boxes) if boxes else 0
        cookie = f"[{percent}%]"
    else:
        cookie = f"[{checked}/{len(boxes)}]"

    if cookie == m.group(0):
        return []
    return [TextEdit.replace_span(line_no, m.start(), m.end(), cookie)]
