# src/orgedit/engine/actions.py

"""
Editing actions.

`OrgActions` holds the operations an editor binds to keys. Each one:
- asks the host for a freshly parsed document,
- locates the node under the cursor,
- computes a TextEdit batch with the headline/list/timestamp helpers,
- hands the batch to the host and, if more work follows, re-reads the
  document before touching it again.

Interactive steps (prompts, notes, calendar, selection) are chained on
the futures returned by the host. Edits made before a request stay in
place when the request is cancelled.

Failure handling:
- no node under the cursor: no-op, or pass-through of the keystroke,
- structural limits and unresolved links: host warning,
- ambiguous links: host selection.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import Future
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional, Sequence

from . import headline as hl
from .config import Config, LogDone
from .edits import TextEdit, apply_text_edits
from .events import EventManager, HeadlineDemoted, HeadlinePromoted, TodoChanged
from .host import CalendarChoice, Host, PromptRequest, resolved, then
from .links import HeadlineIndex, HeadlineRef, Link, LinkStore, LinkType, ResolutionStatus, resolve_internal
from .lists import update_checkbox
from .model import Document, Headline, ListItem, Position, TodoKeyword
from .navigate import closest_headline, closest_list_item, renumber_ordered_list
from .parse import CLOCK_DURATION_RE, parse_document
from .scan import FileHeadlineIndex
from .states import PriorityState, TodoState
from .timestamp import (
    NEXT_UNIT_CHAR,
    Field,
    Timestamp,
    Unit,
    format_duration,
    locate_field,
    parse_all_from_line,
)

logger = logging.getLogger(__name__)

_TOGGLE_BULLET_RE = re.compile(r"^[*-]\s")
_TOGGLE_CHECKBOX_RE = re.compile(r"^\[([X ])\]\s")
_HEADING_STARS_RE = re.compile(r"^\*+\s")


class OrgActions:
    def __init__(
        self,
        host: Host,
        config: Optional[Config] = None,
        *,
        index: Optional[HeadlineIndex] = None,
        events: Optional[EventManager] = None,
        clock: Optional[Callable[[], datetime]] = None,
        link_store: Optional[LinkStore] = None,
    ) -> None:
        self.host = host
        self.config = config or Config()
        self.index = index
        self.events = events or EventManager()
        self.link_store = link_store or LinkStore()
        self._clock = clock or datetime.now

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _now(self) -> datetime:
        """Return the current time (isolated for testability)."""
        return self._clock()

    def _doc(self) -> Document:
        doc = self.host.document()
        doc.require_fresh(self.host.version)
        return doc

    def _apply(self, edits: Sequence[TextEdit]) -> bool:
        if not edits:
            return False
        self.host.apply_edits(list(edits))
        return True

    def _closest_headline(self, doc: Document) -> Optional[Headline]:
        return closest_headline(doc, self.host.cursor, version=self.host.version)

    def _headline_at(self, line: int) -> Optional[Headline]:
        return self._doc().headline_at_line(line)

    # -----------------------------------------------------------------
    # TODO state
    # -----------------------------------------------------------------

    def todo_next_state(self) -> Future:
        return self._todo_change_state("next")

    def todo_prev_state(self) -> Future:
        return self._todo_change_state("prev")

    def _todo_change_state(self, direction: str) -> Future:
        """
        Cycle the TODO keyword of the heading under the cursor.

        The future resolves when all follow-up bookkeeping (closing
        date, repeaters, notes) is finished.
        """
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return resolved(None)

        line, old_state, was_done = h.line, h.todo_value, h.is_done
        changed = self._change_todo_state(direction, use_fast_access=direction == "next")
        return then(changed, lambda ok: self._after_todo_change(ok, line, h, old_state, was_done))

    def _change_todo_state(self, direction: str, *, use_fast_access: bool = False) -> Future:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return resolved(False)

        line = h.line
        state = TodoState(self.config.todo_states(), h.todo_value)
        if use_fast_access and state.has_fast_access():
            key = self.host.read_key(state.fast_access_prompt())
            return then(key, lambda k: self._set_todo_state(line, state.resolve_fast_access(k)))

        if direction == "next":
            new = state.get_next()
        elif direction == "prev":
            new = state.get_prev()
        else:
            new = state.get_todo()
        return resolved(self._set_todo_state(line, new))

    def _set_todo_state(self, line: int, new: Optional[TodoKeyword]) -> bool:
        if new is None:
            return False
        doc = self._doc()
        h = doc.headline_at_line(line)
        if h is None:
            return False
        if new.value == h.todo_value:
            if h.todo_value:
                self.host.info(f"TODO state was already {new.value}")
            return False
        return self._apply(hl.set_todo(doc, h, new))

    def _after_todo_change(
        self,
        changed: bool,
        line: int,
        old_node: Headline,
        old_state: str,
        was_done: bool,
    ) -> Optional[Future]:
        if not changed:
            return None

        item = self._headline_at(line)
        if item is None:
            return None

        def dispatch() -> None:
            self.events.dispatch(TodoChanged(old_node, self._headline_at(line), old_state, was_done))

        if not item.is_done and not was_done:
            dispatch()
            return None

        log_note = self.config.log_done is LogDone.NOTE
        should_log = self.config.log_done is not LogDone.OFF
        indent = self.config.get_indent(item.level + 1)
        now = Timestamp.now(active=False, at=self._now())

        repeaters = hl.get_repeater_dates(item)
        if not repeaters:
            if should_log and item.is_done and not was_done:
                self._apply(hl.set_closed_date(self._doc(), item, now, self.config))
                if log_note:
                    dispatch()
                    note = self.host.request_note("Closing note")
                    return then(note, lambda text: self._append_closing_note(line, text, indent))
            if should_log and not item.is_done and was_done:
                doc = self._doc()
                self._apply(hl.remove_closed_date(doc, doc.headline_at_line(line), self.config))
            dispatch()
            return None

        return self._repeat(line, item, old_state, repeaters, indent, log_note, dispatch)

    def _repeat(
        self,
        line: int,
        item: Headline,
        old_state: str,
        repeaters: list[Timestamp],
        indent: str,
        log_note: bool,
        dispatch: Callable[[], None],
    ) -> Future:
        now_dt = self._now()
        now = Timestamp.now(active=False, at=now_dt)

        doc = self._doc()
        edits = [self._replace_date_edit(doc, d, d.apply_repeater(now_dt)) for d in repeaters]
        self._apply([e for e in edits if e is not None])
        self._set_todo_state(line, TodoState(self.config.todo_states(), item.todo_value).get_todo())

        state_line = f'{indent}- State "{item.todo_value}" from "{old_state}" [{now.to_string()}]'
        dispatch()

        doc = self._doc()
        self._apply(hl.set_property(doc, doc.headline_at_line(line), "LAST_REPEAT", str(now), self.config))
        at = self._insert_log_lines(line, [state_line])

        if at is None or not log_note:
            return resolved(None)
        note = self.host.request_note("Closing note")
        return then(note, lambda text: self._insert_note_after(at + 1, text, indent))

    def _insert_log_lines(self, line: int, lines: list[str]) -> Optional[int]:
        """Insert at the heading's log location; return the first inserted line."""
        doc = self._doc()
        h = doc.headline_at_line(line)
        if h is None:
            return None
        drawer = self.config.log_into_drawer
        if drawer:
            at, edits = hl.get_drawer_append_line(doc, h, drawer, self.config)
            self._apply(edits)
        else:
            at = hl.get_append_line(doc, h)
        self._apply([TextEdit.insert_lines(at, lines)])
        return at

    def _format_note(self, text: Optional[str | list[str]], indent: str) -> Optional[list[str]]:
        if text is None:
            return None
        lines = text.splitlines() if isinstance(text, str) else list(text)
        now = Timestamp.now(active=False, at=self._now())
        return [f"{indent}- CLOSING NOTE {now} \\\\", *(f"{indent}  {ln}" for ln in lines)]

    def _append_closing_note(self, line: int, text: Optional[str | list[str]], indent: str) -> None:
        note = self._format_note(text, indent)
        if note is None:
            return
        doc = self._doc()
        h = doc.headline_at_line(line)
        if h is None:
            return
        self._apply([TextEdit.insert_lines(hl.get_append_line(doc, h), note)])

    def _insert_note_after(self, at: int, text: Optional[str | list[str]], indent: str) -> None:
        note = self._format_note(text, indent)
        if note is not None:
            self._apply([TextEdit.insert_lines(at, note)])

    # -----------------------------------------------------------------
    # Priority / tags
    # -----------------------------------------------------------------

    def priority_up(self) -> Future:
        return self._change_priority("up")

    def priority_down(self) -> Future:
        return self._change_priority("down")

    def set_priority(self, value: Optional[str] = None) -> Future:
        """
        Set the priority; prompt when `value` is None. A blank value
        removes the priority.
        """
        return self._change_priority(None, value)

    def _change_priority(self, direction: Optional[str], value: Optional[str] = None) -> Future:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return resolved(False)

        line = h.line
        state = PriorityState(self.config.priorities(), h.priority)
        if direction == "up":
            return resolved(self._write_priority(line, state.increase()))
        if direction == "down":
            return resolved(self._write_priority(line, state.decrease()))

        def accept(raw: Optional[str]) -> bool:
            ok, new = state.resolve_input(raw)
            if not ok:
                return False
            return self._write_priority(line, new)

        if value is not None:
            return resolved(accept(value))
        return then(self.host.prompt(PromptRequest(state.prompt_text())), accept)

    def _write_priority(self, line: int, value: Optional[str]) -> bool:
        doc = self._doc()
        h = doc.headline_at_line(line)
        if h is None:
            return False
        return self._apply(hl.set_priority(doc, h, value))

    def set_tags(self, tags: Optional[str | list[str]] = None) -> Future:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return resolved(False)

        line = h.line

        def write(raw: Optional[str | list[str]]) -> bool:
            if raw is None:
                return False
            fresh = self._doc()
            return self._apply(hl.set_tags(fresh, fresh.headline_at_line(line), raw))

        if tags is not None:
            return resolved(write(tags))

        known = doc.all_tags()

        def complete(prefix: str) -> list[str]:
            last = re.split(r"[:\s]", prefix)[-1]
            return [t for t in known if t.startswith(last)]

        request = PromptRequest("Tags:", default=hl.tags_to_string(h.tags), completer=complete)
        return then(self.host.prompt(request), write)

    def toggle_archive_tag(self) -> bool:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return False
        return self._apply(hl.toggle_archive_tag(doc, h))

    # -----------------------------------------------------------------
    # Structure
    # -----------------------------------------------------------------

    def do_promote(self, whole_subtree: bool = False, count: int = 1) -> bool:
        return self._change_level(-count, whole_subtree)

    def do_demote(self, whole_subtree: bool = False, count: int = 1) -> bool:
        return self._change_level(count, whole_subtree)

    def _change_level(self, delta: int, whole_subtree: bool) -> bool:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return False

        old_level = h.level
        try:
            if delta < 0:
                edits = hl.promote(doc, h, -delta, whole_subtree, self.config)
            else:
                edits = hl.demote(doc, h, delta, whole_subtree, self.config)
        except hl.StructuralLimitError as e:
            self.host.warn(str(e))
            return False

        self._apply(edits)
        new_node = self._headline_at(h.line)
        event = HeadlinePromoted if delta < 0 else HeadlineDemoted
        self.events.dispatch(event(h, new_node, old_level))
        return True

    def move_subtree_up(self) -> bool:
        return self._move_subtree(-1)

    def move_subtree_down(self) -> bool:
        return self._move_subtree(1)

    def _move_subtree(self, direction: int) -> bool:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return False
        try:
            edits = hl.move_subtree(doc, h, direction)
        except hl.StructuralLimitError as e:
            self.host.warn(str(e))
            return False

        offset = self.host.cursor.line - h.line
        if direction < 0:
            prev = hl.get_prev_headline_same_level(doc, h)
            if prev is None:
                return False
            new_line = prev.line
        else:
            nxt = hl.get_next_headline_same_level(doc, h)
            if nxt is None:
                return False
            new_line = h.line + nxt.range.line_count
        self._apply(edits)
        self.host.set_cursor(Position(new_line + offset, self.host.cursor.col))
        return True

    def forward_heading_same_level(self) -> bool:
        return self._goto_same_level(hl.get_next_headline_same_level)

    def backward_heading_same_level(self) -> bool:
        return self._goto_same_level(hl.get_prev_headline_same_level)

    def _goto_same_level(self, finder: Callable[[Document, Headline], Optional[Headline]]) -> bool:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return False
        target = finder(doc, h)
        if target is None:
            return False
        self.host.set_cursor(Position(target.line, 0))
        return True

    def outline_up_heading(self) -> bool:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return False
        parent = doc.parent_headline(h)
        if h.level <= 1 or parent is None:
            self.host.info("Already at top level of the outline")
            return False
        self.host.set_cursor(Position(parent.line, 0))
        return True

    # -----------------------------------------------------------------
    # Archive
    # -----------------------------------------------------------------

    def archive(self) -> bool:
        """
        Move the subtree under the cursor to the archive file.

        The archived copy gets ARCHIVE_TIME, ARCHIVE_FILE,
        ARCHIVE_CATEGORY and ARCHIVE_TODO properties.
        """
        filename = self.host.filename
        if filename.endswith("_archive"):
            self.host.warn("This file is already an archive file.")
            return False

        doc = self._doc()
        h = self._closest_headline(doc)
        target = self.config.archive_file_for(filename)
        if h is None or not target:
            return False

        props = {
            "ARCHIVE_TIME": Timestamp.now(at=self._now()).to_string(),
            "ARCHIVE_FILE": filename,
            "ARCHIVE_CATEGORY": doc.category_of(h),
            "ARCHIVE_TODO": h.todo_value,
        }
        lines = doc.lines[h.range.start_line: h.range.end_line]
        for key, value in props.items():
            copy = parse_document(lines, config=self.config)
            edits = hl.set_property(copy, copy.headlines()[0], key, value, self.config)
            lines = apply_text_edits(lines, edits)

        self.host.append_to_file(target, lines)
        self._apply([TextEdit.delete_lines(h.range.start_line, h.range.end_line)])
        self.host.info(f"Subtree archived to {target}")
        logger.debug("Archived %r to %s", h.title, target)
        return True

    # -----------------------------------------------------------------
    # Timestamps
    # -----------------------------------------------------------------

    def _date_under_cursor(self, col_offset: int = 0) -> Optional[Timestamp]:
        """
        First timestamp whose text covers the cursor column.

        Only the first match is returned when several qualify.
        """
        doc = self._doc()
        pos = self.host.cursor
        line, col = pos.line, pos.col + col_offset
        if not 0 <= line < len(doc.lines):
            return None

        h = self._closest_headline(doc)
        if h is not None:
            dates = [d for d in h.dates if d.range is not None and d.range.contains(line, col)]
        else:
            dates = [d for d in parse_all_from_line(doc.lines[line], line) if d.range.contains(line, col)]
        return dates[0] if dates else None

    def _replace_date_edit(self, doc: Document, old: Timestamp, new: Timestamp) -> Optional[TextEdit]:
        """
        Replace the text of `old` with `new`; on a CLOCK line the
        `=> H:MM` duration is recomputed.
        """
        r = old.range
        if r is None:
            return None
        new_text = new.to_wrapped_string()
        if not (old.is_logbook and new.related_date_range is not None):
            return TextEdit.replace_span(r.start_line, r.start_col, r.end_col, new_text)

        text = doc.lines[r.start_line]
        new_line = text[: r.start_col] + new_text + text[r.end_col:]
        m = CLOCK_DURATION_RE.search(new_line, r.start_col)
        if m:
            minutes = int((new.related_date_range.to_datetime() - new.to_datetime()).total_seconds() // 60)
            new_line = new_line[: m.start("h")] + format_duration(minutes) + new_line[m.end("m"):]
        return TextEdit.replace_line(r.start_line, text, new_line)

    def _replace_date(self, old: Timestamp, new: Timestamp) -> bool:
        edit = self._replace_date_edit(self._doc(), old, new)
        if edit is None:
            return False
        return self._apply([edit])

    def timestamp_up(self, count: int = 1) -> bool:
        return self.adjust_date_part(1, count)

    def timestamp_down(self, count: int = 1) -> bool:
        return self.adjust_date_part(-1, count)

    def timestamp_up_day(self, count: int = 1) -> bool:
        return self._adjust_date(count, Unit.DAY)

    def timestamp_down_day(self, count: int = 1) -> bool:
        return self._adjust_date(-count, Unit.DAY)

    def _adjust_date(self, amount: int, unit: Unit) -> bool:
        ts = self._date_under_cursor()
        if ts is None:
            self.host.passthrough()
            return False
        return self._replace_date(ts, ts.adjust(amount, unit))

    def adjust_date_part(self, direction: int, amount: int = 1) -> bool:
        """
        Adjust the timestamp field under the cursor by `direction * amount`.

        On a delimiter the timestamp toggles active/inactive; on a
        repeater unit letter the unit cycles h -> d -> w -> m -> y.
        Without a timestamp under the cursor the keystroke passes through.
        """
        ts = self._date_under_cursor()
        if ts is None or ts.range is None:
            self.host.passthrough()
            return False

        doc = self._doc()
        r = ts.range
        line = doc.lines[r.start_line]
        col = self.host.cursor.col
        ref = locate_field(line[r.start_col: r.end_col], col - r.start_col)
        if ref is None or ref.field is Field.RANGE_SEPARATOR:
            self.host.passthrough()
            return False

        if ref.field is Field.DELIMITER:
            return self._replace_date(ts, ts.toggled())

        if ref.field is Field.REPEATER_UNIT:
            nxt = NEXT_UNIT_CHAR.get(line[col])
            if nxt is None:
                return True
            return self._apply([TextEdit.replace_span(r.start_line, col, col + 1, nxt)])

        if ref.field is Field.REPEATER:
            return True

        step = direction * amount
        minutes = direction * amount * self.config.time_stamp_rounding_minutes
        target = ts.related_date_range if ref.in_related and ts.related_date_range else ts

        if ref.field is Field.YEAR:
            new = target.adjust(step, Unit.YEAR)
        elif ref.field is Field.MONTH:
            new = target.adjust(step, Unit.MONTH)
        elif ref.field in (Field.DAY, Field.DAYNAME):
            new = target.adjust(step, Unit.DAY)
        elif ref.field is Field.HOUR:
            new = target.adjust(step, Unit.HOUR)
        elif ref.field is Field.MINUTE:
            new = target.adjust(minutes, Unit.MINUTE)
        elif ref.field is Field.END_HOUR:
            new = target.adjust_end_time(step, Unit.HOUR)
        else:
            new = target.adjust_end_time(minutes, Unit.MINUTE)

        if target is not ts:
            new = ts.with_related(replace(new, range=target.range))
        return self._replace_date(ts, new)

    def change_date(self) -> Future:
        ts = self._date_under_cursor()
        if ts is None:
            return resolved(False)
        return then(self.host.calendar(ts), lambda choice: self._replace_from_calendar(ts, choice))

    def _replace_from_calendar(self, ts: Timestamp, choice: Optional[CalendarChoice]) -> bool:
        if choice is None or choice.timestamp is None:
            return False
        new = replace(choice.timestamp, active=ts.active)
        return self._replace_date(ts, new)

    def org_deadline(self) -> Future:
        return self._planning_from_calendar("DEADLINE")

    def org_schedule(self) -> Future:
        return self._planning_from_calendar("SCHEDULED")

    def _planning_from_calendar(self, keyword: str) -> Future:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return resolved(False)

        line = h.line
        current = h.deadline if keyword == "DEADLINE" else h.scheduled
        initial = current or Timestamp.from_date(self._now().date())

        def apply(choice: Optional[CalendarChoice]) -> bool:
            if choice is None:
                return False
            fresh = self._doc()
            target = fresh.headline_at_line(line)
            if target is None:
                return False
            if choice.cleared:
                return self._apply(hl.set_planning_date(fresh, target, keyword, None, self.config))
            if choice.timestamp is None:
                return False
            self._apply(hl.remove_closed_date(fresh, target, self.config))
            fresh = self._doc()
            ts = replace(choice.timestamp, active=True, range=None)
            return self._apply(hl.set_planning_date(fresh, fresh.headline_at_line(line), keyword, ts, self.config))

        return then(self.host.calendar(initial, clearable=True), apply)

    def org_time_stamp(self, inactive: bool = False) -> Future:
        """
        Edit the timestamp under the cursor, or insert a new one.

        A new timestamp typed right after another one becomes the second
        half of a date range.
        """
        ts = self._date_under_cursor()
        if ts is not None:
            return then(self.host.calendar(ts), lambda choice: self._replace_from_calendar(ts, choice))

        before = self._date_under_cursor(-1)
        pos = self.host.cursor
        today = Timestamp.from_date(self._now().date(), active=not inactive)

        def insert(choice: Optional[CalendarChoice]) -> bool:
            if choice is None or choice.timestamp is None:
                return False
            text = choice.timestamp.to_wrapped_string(not inactive)
            if before is not None:
                text = "--" + text
            return self._apply([TextEdit.replace_span(pos.line, pos.col, pos.col, text)])

        return then(self.host.calendar(today), insert)

    # -----------------------------------------------------------------
    # Insertion
    # -----------------------------------------------------------------

    def handle_return(self, suffix: str = "") -> bool:
        """
        Continue the structure under the cursor on a new line.

        On a heading line: a new heading of the same level. In a list
        item: a new item of the same kind (bullet, checkbox or the next
        number, renumbering the items below).
        """
        doc = self._doc()
        pos = self.host.cursor

        h = closest_headline(doc, pos, version=self.host.version)
        if h is not None and h.line == pos.line:
            content = self.config.respect_blank_before_new_entry([f"{'*' * h.level} {suffix}"], "heading")
            self._apply([TextEdit.insert_lines(pos.line + 1, content)])
            self.host.set_cursor(Position(pos.line + len(content), len(content[-1])))
            return True

        item = closest_list_item(doc, pos)
        if item is None:
            self.host.passthrough()
            return False
        return self._insert_list_item(item)

    def _insert_list_item(self, item: ListItem) -> bool:
        if item.is_ordered:
            marker = f"{(item.number or 0) + 1}{item.delimiter}"
        else:
            marker = item.bullet
        text = f"{item.indent}{marker} "
        if item.checkbox is not None:
            text += "[ ] "

        at = item.range.end_line
        content = self.config.respect_blank_before_new_entry([text], "plain_list_item")
        self._apply([TextEdit.insert_lines(at, content)])
        new_line = at + len(content) - 1
        self.host.set_cursor(Position(new_line, len(text)))

        doc = self._doc()
        new_item = doc.list_item_at_line(new_line)
        if new_item is None:
            return True
        if new_item.is_ordered and self._apply(renumber_ordered_list(doc, new_item)):
            doc = self._doc()
            new_item = doc.list_item_at_line(new_line)
        if new_item is not None and new_item.checkbox is not None:
            self._apply(update_checkbox(doc, new_item, "off"))
        return True

    def insert_heading_respect_content(self, suffix: str = "") -> bool:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return self._insert_heading_from_plain_line(suffix)

        content = self.config.respect_blank_before_new_entry([f"{'*' * h.level} {suffix}"], "heading")
        at = h.range.end_line
        self._apply([TextEdit.insert_lines(at, content)])
        self.host.set_cursor(Position(at + len(content) - 1, len(content[-1])))
        return True

    def insert_todo_heading_respect_content(self) -> bool:
        return self.insert_heading_respect_content(f"{self.config.first_todo().value} ")

    def insert_todo_heading(self) -> bool:
        suffix = f"{self.config.first_todo().value} "
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return self._insert_heading_from_plain_line(suffix)
        self.host.set_cursor(Position(h.line, 0))
        return self.handle_return(suffix)

    def _insert_heading_from_plain_line(self, suffix: str = "") -> bool:
        doc = self._doc()
        pos = self.host.cursor
        prefix = f"* {suffix}"

        if pos.line >= len(doc.lines):
            self._apply([TextEdit.insert_lines(len(doc.lines), [prefix])])
            self.host.set_cursor(Position(len(doc.lines), len(prefix)))
            return True

        line = doc.lines[pos.line]
        if not line or pos.col == 0:
            new = prefix + line
            self._apply([TextEdit.replace_line(pos.line, line, new)])
            self.host.set_cursor(Position(pos.line, len(new)))
            return True

        left, right = line[: pos.col], line[pos.col:]
        new = prefix + right
        self._apply([TextEdit.replace_line(pos.line, line, left), TextEdit.insert_lines(pos.line + 1, [new])])
        self.host.set_cursor(Position(pos.line + 1, len(new)))
        return True

    def toggle_heading(self) -> bool:
        """
        Turn the line under the cursor into a heading, or a heading back
        into plain text. List items become child headings; checkboxes map
        to the first TODO / DONE keyword.
        """
        doc = self._doc()
        pos = self.host.cursor
        if pos.line >= len(doc.lines):
            return False
        line = doc.lines[pos.line]
        parent = self._closest_headline(doc)

        if parent is None:
            new = f"* {line}"
        elif parent.line == pos.line:
            new = _HEADING_STARS_RE.sub("", line, count=1)
        else:
            body = line.lstrip()
            if _TOGGLE_BULLET_RE.match(body):
                body = body[2:]
                m = _TOGGLE_CHECKBOX_RE.match(body)
                if m:
                    kw = self.config.first_done() if m.group(1) == "X" else self.config.first_todo()
                    body = f"{kw.value} {body[m.end():]}"
            new = f"{'*' * (parent.level + 1)} {body}"

        return self._apply([TextEdit.replace_line(pos.line, line, new)])

    # -----------------------------------------------------------------
    # Lists
    # -----------------------------------------------------------------

    def toggle_checkbox(self) -> bool:
        doc = self._doc()
        item = closest_list_item(doc, self.host.cursor, version=self.host.version)
        if item is None:
            return False
        return self._apply(update_checkbox(doc, item, "toggle"))

    # -----------------------------------------------------------------
    # Links
    # -----------------------------------------------------------------

    def _link_under_cursor(self) -> Optional[Link]:
        doc = self._doc()
        pos = self.host.cursor
        if not 0 <= pos.line < len(doc.lines):
            return None
        return Link.at_pos(doc.lines[pos.line], pos.col, pos.line)

    def insert_link(self) -> Future:
        """
        Prompt for a link and its description and write `[[link][desc]]`,
        replacing the link under the cursor if there is one.
        """
        pos = self.host.cursor
        existing = self._link_under_cursor()

        def got_location(location: Optional[str]) -> Optional[Future]:
            if location is None or not location.strip():
                self.host.warn("No Link selected")
                return None

            location = location.strip()
            desc = self.link_store.description_for(location)
            if desc is None:
                desc = Link.new(location).target.extract_target()
            if location.startswith("id:") and " " in location:
                location, _, rest = location.partition(" ")
                desc = rest.strip()

            request = PromptRequest("Description:", default=desc or "")
            return then(self.host.prompt(request), lambda d: write(location, d))

        def write(location: str, description: Optional[str]) -> bool:
            if description is None:
                return False
            text = Link.new(location, description.strip() or None).to_string()
            if existing is not None and existing.range is not None:
                r = existing.range
                edit = TextEdit.replace_span(r.start_line, r.start_col, r.end_col, text)
                col = r.start_col + len(text)
            else:
                edit = TextEdit.replace_span(pos.line, pos.col, pos.col, text)
                col = pos.col + len(text)
            self._apply([edit])
            self.host.set_cursor(Position(pos.line, col))
            return True

        request = PromptRequest("Links:", completer=self.link_store.complete)
        return then(self.host.prompt(request), got_location)

    def store_link(self) -> bool:
        doc = self._doc()
        h = self._closest_headline(doc)
        if h is None:
            return False
        id_value = h.get_property("ID")
        if id_value:
            target = f"id:{id_value}"
        else:
            target = f"file:{self.host.filename}::*{h.title}"
        self.link_store.store(target, h.title)
        self.host.info(f"Stored: {h.title}")
        return True

    def open_at_point(self) -> Future:
        """
        Follow the link under the cursor; on a timestamp, open that day.
        """
        link = self._link_under_cursor()
        if link is None:
            ts = self._date_under_cursor()
            if ts is not None:
                self.host.open_day(ts)
                return resolved(True)
            return resolved(False)

        target = link.target
        if target.type is LinkType.FILE_PLAIN:
            self.host.open_location(target.file or "", 0)
            return resolved(True)
        if target.type is LinkType.FILE_WITH_LINE:
            self.host.open_location(target.file or self.host.filename, max((target.line or 1) - 1, 0))
            return resolved(True)
        if target.type is LinkType.HTTP:
            self.host.open_url(target.raw)
            return resolved(True)
        if target.type is LinkType.UNSUPPORTED:
            self.host.warn(f'Unsupported link format: "{target.raw}"')
            return resolved(False)

        doc = self._doc()
        index = self.index or FileHeadlineIndex([doc])
        current: Optional[HeadlineRef] = None
        h = self._closest_headline(doc)
        if h is not None:
            current = HeadlineRef(
                file=self.host.filename,
                line=h.line,
                title=h.title,
                id=h.get_property("ID"),
                text=doc.lines[h.line],
            )

        result = resolve_internal(target, index, current=current)
        if result.status is ResolutionStatus.NOT_FOUND:
            if target.type is LinkType.INTERNAL_ID:
                self.host.warn(f"No headline found with id: {target.id}")
            else:
                self.host.warn(f"No headline found matching: {target.search}")
            return resolved(False)

        if result.status is ResolutionStatus.RESOLVED:
            return resolved(self._goto_headline(result.candidates[0]))

        candidates = result.candidates
        width = max(len(c.text or c.title) for c in candidates)
        options = [f"{i}) {(c.text or c.title):<{width}} ({c.file})" for i, c in enumerate(candidates, start=1)]

        def choose(choice: Optional[int]) -> bool:
            if choice is None or not 0 <= choice < len(candidates):
                return False
            return self._goto_headline(candidates[choice])

        return then(self.host.select("Multiple targets found. Select target:", options), choose)

    def _goto_headline(self, ref: HeadlineRef) -> bool:
        self.host.open_location(ref.file, ref.line)
        return True

