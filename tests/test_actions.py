# tests/test_actions.py

from datetime import date

import pytest

from orgedit.engine.config import Config, LogDone
from orgedit.engine.events import EventManager, HeadlinePromoted, TodoChanged
from orgedit.engine.host import CalendarChoice
from orgedit.engine.model import Position
from orgedit.engine.timestamp import Timestamp

NOW_STAMP = "[2024-03-06 Wed 10:00]"


def _messages(host, level):
    return [m.text for m in host.messages if m.level == level]


# ---------------------------------------------------------------------
# TODO state
# ---------------------------------------------------------------------

def test_done_sets_closed_without_note(make_host, make_actions):
    host = make_host("* TODO Buy milk\n  SCHEDULED: <2024-03-05 Tue>\n")
    events = EventManager()
    seen = []
    events.listen(TodoChanged, seen.append)

    make_actions(host, events=events).todo_next_state().result()

    assert host.lines == [
        "* DONE Buy milk",
        f"  CLOSED: {NOW_STAMP} SCHEDULED: <2024-03-05 Tue>",
    ]
    assert not host.pending
    assert [(e.old_state, e.new_node.todo_value) for e in seen] == [("TODO", "DONE")]


def test_leaving_done_removes_closed(make_host, make_actions):
    host = make_host("* DONE Buy milk\n  CLOSED: [2024-03-01 Fri 09:00]\n")
    make_actions(host).todo_next_state().result()
    assert host.lines == ["* Buy milk"]


def test_prev_state_from_none_is_last_keyword(make_host, make_actions):
    host = make_host("* Task\n")
    make_actions(host).todo_prev_state().result()
    assert host.lines == ["* DONE Task", f"  CLOSED: {NOW_STAMP}"]


def test_log_done_off_leaves_planning_alone(make_host, make_actions):
    host = make_host("* TODO Task\n", config=Config(log_done=LogDone.OFF))
    make_actions(host).todo_next_state().result()
    assert host.lines == ["* DONE Task"]


def test_fast_access_key(make_host, make_actions):
    cfg = Config(todo_keywords=["TODO(t)", "|", "DONE(d)"])
    host = make_host("* TODO Task\n", config=cfg)
    host.answers.append("d")

    make_actions(host).todo_next_state().result()

    assert host.lines == ["* DONE Task", f"  CLOSED: {NOW_STAMP}"]


def test_fast_access_same_state_reports(make_host, make_actions):
    cfg = Config(todo_keywords=["TODO(t)", "|", "DONE(d)"])
    host = make_host("* TODO Task\n", config=cfg)
    host.answers.append("t")

    make_actions(host).todo_next_state().result()

    assert host.lines == ["* TODO Task"]
    assert _messages(host, "info") == ["TODO state was already TODO"]


def test_closing_note(make_host, make_actions):
    host = make_host("* TODO Call\n", config=Config(log_done=LogDone.NOTE))
    host.answers.append("Left a message")

    make_actions(host).todo_next_state().result()

    assert host.lines == [
        "* DONE Call",
        f"  CLOSED: {NOW_STAMP}",
        f"  - CLOSING NOTE {NOW_STAMP} \\\\",
        "    Left a message",
    ]


def test_cancelled_note_keeps_closed(make_host, make_actions):
    host = make_host("* TODO Call\n", config=Config(log_done=LogDone.NOTE))
    fut = make_actions(host).todo_next_state()

    assert not fut.done()
    host.resolve_pending(None)

    assert fut.done()
    assert host.lines == ["* DONE Call", f"  CLOSED: {NOW_STAMP}"]


def test_repeating_task_is_reset(make_host, make_actions):
    host = make_host("* TODO Water plants\n  SCHEDULED: <2024-03-01 Fri +1w>\n")
    make_actions(host).todo_next_state().result()

    assert host.lines == [
        "* TODO Water plants",
        "  SCHEDULED: <2024-03-08 Fri +1w>",
        "  :PROPERTIES:",
        f"  :LAST_REPEAT: {NOW_STAMP}",
        "  :END:",
        f'  - State "DONE" from "TODO" {NOW_STAMP}',
    ]


def test_repeating_task_logs_into_drawer(make_host, make_actions):
    cfg = Config(log_into_drawer="LOGBOOK")
    host = make_host("* TODO Water plants\n  SCHEDULED: <2024-03-01 Fri +1w>\n", config=cfg)
    make_actions(host).todo_next_state().result()

    assert host.lines[4:] == [
        "  :END:",
        "  :LOGBOOK:",
        f'  - State "DONE" from "TODO" {NOW_STAMP}',
        "  :END:",
    ]


def test_zero_amount_repeater_closes_normally(make_host, make_actions):
    host = make_host("* TODO Task\n  SCHEDULED: <2024-01-01 Mon ++0d>\n")
    make_actions(host).todo_next_state().result(timeout=5)
    assert host.lines[0] == "* DONE Task"
    assert host.lines[1].startswith(f"  CLOSED: {NOW_STAMP}")


def test_no_heading_is_noop(make_host, make_actions):
    host = make_host("plain text\n")
    assert make_actions(host).todo_next_state().result() is None
    assert host.version == 0


# ---------------------------------------------------------------------
# Priority / tags
# ---------------------------------------------------------------------

def test_priority_up_and_down(make_host, make_actions):
    host = make_host("* TODO A\n", config=Config(priority_lowest="C"))
    actions = make_actions(host)

    assert actions.priority_up().result() is True
    assert host.lines == ["* TODO [#C] A"]
    actions.priority_up().result()
    assert host.lines == ["* TODO [#B] A"]
    actions.priority_down().result()
    actions.priority_down().result()
    assert host.lines == ["* TODO A"]


def test_set_priority_prompts(make_host, make_actions):
    host = make_host("* TODO A\n")
    host.answers.append("b")
    make_actions(host).set_priority().result()
    assert host.lines == ["* TODO [#B] A"]


def test_set_tags(make_host, make_actions):
    host = make_host("* A\n")
    make_actions(host).set_tags("work home").result()
    assert host.lines == ["* A :work:home:"]


def test_toggle_archive_tag(make_host, make_actions):
    host = make_host("* A :x:\n")
    make_actions(host).toggle_archive_tag()
    assert host.lines == ["* A :x:ARCHIVE:"]


# ---------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------

def test_promote_dispatches_event(make_host, make_actions):
    host = make_host("* A\n** B\n", line=1)
    events = EventManager()
    seen = []
    events.listen(HeadlinePromoted, seen.append)

    assert make_actions(host, events=events).do_promote()

    assert host.lines == ["* A", "* B"]
    assert seen[0].old_level == 2
    assert seen[0].new_node.level == 1


def test_promote_top_level_warns(make_host, make_actions):
    host = make_host("* A\n")
    assert not make_actions(host).do_promote()
    assert _messages(host, "warning") == ["Cannot promote past level 1."]


def test_demote_subtree(make_host, make_actions):
    host = make_host("* A\n** B\n")
    make_actions(host).do_demote(whole_subtree=True)
    assert host.lines == ["** A", "*** B"]


def test_move_subtree_down_moves_cursor(make_host, make_actions):
    host = make_host("* A\n  a\n* B\n  b\n", line=1, col=2)

    assert make_actions(host).move_subtree_down()

    assert host.lines == ["* B", "  b", "* A", "  a"]
    assert host.cursor == Position(3, 2)


def test_move_first_subtree_up_warns(make_host, make_actions):
    host = make_host("* A\n* B\n")
    assert not make_actions(host).move_subtree_up()
    assert _messages(host, "warning") == ["Cannot move past superior level."]


def test_same_level_navigation(make_host, make_actions):
    host = make_host("* A\n** A1\n* B\n")
    actions = make_actions(host)

    assert actions.forward_heading_same_level()
    assert host.cursor == Position(2, 0)
    assert actions.backward_heading_same_level()
    assert host.cursor == Position(0, 0)
    assert not actions.backward_heading_same_level()


def test_outline_up_heading(make_host, make_actions):
    host = make_host("* A\n** B\n", line=1)
    actions = make_actions(host)

    assert actions.outline_up_heading()
    assert host.cursor == Position(0, 0)
    assert not actions.outline_up_heading()
    assert _messages(host, "info") == ["Already at top level of the outline"]


# ---------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------

def test_archive_subtree(make_host, make_actions):
    host = make_host("* DONE Old task\n  body\n* Keep\n")

    assert make_actions(host).archive()

    assert host.lines == ["* Keep"]
    assert host.appended["notes.org_archive"] == [
        "* DONE Old task",
        "  :PROPERTIES:",
        "  :ARCHIVE_TIME: 2024-03-06 Wed 10:00",
        "  :ARCHIVE_FILE: notes.org",
        "  :ARCHIVE_CATEGORY: notes",
        "  :ARCHIVE_TODO: DONE",
        "  :END:",
        "  body",
    ]
    assert _messages(host, "info") == ["Subtree archived to notes.org_archive"]


def test_archive_inside_archive_file_warns(make_host, make_actions):
    host = make_host("* Old\n", filename="notes.org_archive")
    assert not make_actions(host).archive()
    assert _messages(host, "warning") == ["This file is already an archive file."]


# ---------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------

PLANNED = "* A\n  SCHEDULED: <2024-03-01 Fri>\n"


@pytest.mark.parametrize(
    "col, expected",
    [
        (14, "<2025-03-01 Sat>"),
        (19, "<2024-04-01 Mon>"),
        (22, "<2024-03-02 Sat>"),
        (26, "<2024-03-02 Sat>"),
        (13, "[2024-03-01 Fri]"),
    ],
)
def test_timestamp_up_by_field(make_host, make_actions, col, expected):
    host = make_host(PLANNED, line=1, col=col)
    assert make_actions(host).timestamp_up()
    assert host.lines[1] == f"  SCHEDULED: {expected}"


def test_minutes_move_by_rounding(make_host, make_actions):
    host = make_host("* A\n  <2024-03-01 Fri 10:00>\n", line=1, col=21)
    actions = make_actions(host)

    actions.timestamp_up()
    assert host.lines[1] == "  <2024-03-01 Fri 10:05>"
    actions.timestamp_down(2)
    assert host.lines[1] == "  <2024-03-01 Fri 09:55>"


def test_repeater_unit_cycles(make_host, make_actions):
    host = make_host("* A\n  <2024-03-01 Fri +1w>\n", line=1, col=20)
    make_actions(host).timestamp_up()
    assert host.lines[1] == "  <2024-03-01 Fri +1m>"


def test_repeater_amount_is_left_alone(make_host, make_actions):
    host = make_host("* A\n  <2024-03-01 Fri +1w>\n", line=1, col=18)
    assert make_actions(host).timestamp_up()
    assert host.version == 0


def test_no_timestamp_passes_through(make_host, make_actions):
    host = make_host("* A\n  text\n", line=1, col=3)
    assert not make_actions(host).timestamp_up()
    assert host.passthroughs == 1


def test_clock_duration_is_recomputed(make_host, make_actions):
    text = (
        "* A\n"
        "  :LOGBOOK:\n"
        "  CLOCK: [2024-03-01 Fri 08:00]--[2024-03-01 Fri 08:45] =>  0:45\n"
        "  :END:\n"
    )
    host = make_host(text, line=2, col=52)
    make_actions(host).timestamp_up()
    assert host.lines[2] == "  CLOCK: [2024-03-01 Fri 08:00]--[2024-03-01 Fri 08:50] =>  0:50"


def test_timestamp_up_day(make_host, make_actions):
    host = make_host("* A\n  <2024-03-01 Fri>\n", line=1, col=5)
    make_actions(host).timestamp_up_day()
    assert host.lines[1] == "  <2024-03-02 Sat>"


def test_timestamp_down_day(make_host, make_actions):
    host = make_host("* A\n  <2024-03-01 Fri 10:00>\n", line=1, col=20)
    make_actions(host).timestamp_down_day(2)
    assert host.lines[1] == "  <2024-02-28 Wed 10:00>"


def test_change_date_keeps_active_flag(make_host, make_actions):
    host = make_host("* A\n  [2024-03-01 Fri]\n", line=1, col=4)
    host.answers.append(CalendarChoice(Timestamp.from_date(date(2024, 3, 9))))

    make_actions(host).change_date().result()
    assert host.lines[1] == "  [2024-03-09 Sat]"


def test_schedule_from_calendar(make_host, make_actions):
    host = make_host("* TODO A\n")
    host.answers.append(CalendarChoice(Timestamp.from_date(date(2024, 3, 10))))

    assert make_actions(host).org_schedule().result()
    assert host.lines == ["* TODO A", "  SCHEDULED: <2024-03-10 Sun>"]


def test_deadline_cleared(make_host, make_actions):
    host = make_host("* TODO A\n  DEADLINE: <2024-03-01 Fri>\n")
    host.answers.append(CalendarChoice(cleared=True))

    make_actions(host).org_deadline().result()
    assert host.lines == ["* TODO A"]


def test_time_stamp_inserted_at_cursor(make_host, make_actions):
    host = make_host("* A\n  due \n", line=1, col=6)
    host.answers.append(CalendarChoice(Timestamp.from_date(date(2024, 3, 10))))

    make_actions(host).org_time_stamp().result()
    assert host.lines[1] == "  due <2024-03-10 Sun>"


def test_time_stamp_after_timestamp_makes_range(make_host, make_actions):
    host = make_host("* A\n  <2024-03-01 Fri>\n", line=1, col=18)
    host.answers.append(CalendarChoice(Timestamp.from_date(date(2024, 3, 10))))

    make_actions(host).org_time_stamp().result()
    assert host.lines[1] == "  <2024-03-01 Fri>--<2024-03-10 Sun>"


# ---------------------------------------------------------------------
# Insertion
# ---------------------------------------------------------------------

def test_return_on_heading_adds_sibling(make_host, make_actions):
    host = make_host("** A\n", col=4)
    assert make_actions(host).handle_return()
    assert host.lines == ["** A", "** "]
    assert host.cursor == Position(1, 3)


def test_return_in_checkbox_list(make_host, make_actions):
    host = make_host("- [ ] a\n- [X] b\n")
    make_actions(host).handle_return()

    assert host.lines == ["- [ ] a", "- [ ] ", "- [X] b"]
    assert host.cursor == Position(1, 6)


def test_return_in_ordered_list_renumbers(make_host, make_actions):
    host = make_host("1. a\n2. b\n")
    make_actions(host).handle_return()
    assert host.lines == ["1. a", "2. ", "3. b"]


def test_return_in_ordered_checkbox_list(make_host, make_actions):
    host = make_host("* H\n  1. [ ] a\n  2. [ ] b\n", line=1)
    make_actions(host).handle_return()

    assert host.lines == ["* H", "  1. [ ] a", "  2. [ ] ", "  3. [ ] b"]
    assert host.cursor == Position(2, 9)


def test_new_checkbox_item_updates_parent(make_host, make_actions):
    host = make_host("- [X] p\n  - [X] a\n", line=1)
    make_actions(host).handle_return()
    assert host.lines == ["- [-] p", "  - [X] a", "  - [ ] "]


def test_return_in_plain_text_passes_through(make_host, make_actions):
    host = make_host("just text\n")
    assert not make_actions(host).handle_return()
    assert host.passthroughs == 1


def test_blank_before_new_heading(make_host, make_actions):
    cfg = Config(blank_before_new_entry={"heading": True, "plain_list_item": False})
    host = make_host("* A\n", config=cfg)
    make_actions(host).handle_return()
    assert host.lines == ["* A", "", "* "]


def test_insert_heading_respect_content(make_host, make_actions):
    host = make_host("* A\n** A1\n* B\n")
    make_actions(host).insert_heading_respect_content()
    assert host.lines == ["* A", "** A1", "* ", "* B"]
    assert host.cursor == Position(2, 2)


def test_insert_todo_heading(make_host, make_actions):
    host = make_host("* A\n  body\n", line=1)
    make_actions(host).insert_todo_heading()
    assert host.lines == ["* A", "* TODO ", "  body"]



def test_insert_todo_heading_respect_content(make_host, make_actions):
    host = make_host("* A\n  body\n* B\n")
    make_actions(host).insert_todo_heading_respect_content()
    assert host.lines == ["* A", "  body", "* TODO ", "* B"]
    assert host.cursor == Position(2, 7)


def test_insert_heading_on_plain_line(make_host, make_actions):
    host = make_host("hello\n")
    make_actions(host).insert_heading_respect_content()
    assert host.lines == ["* hello"]


def test_insert_heading_splits_line(make_host, make_actions):
    host = make_host("hello world\n", col=6)
    make_actions(host).insert_heading_respect_content()
    assert host.lines == ["hello ", "* world"]


def test_toggle_heading(make_host, make_actions):
    host = make_host("* A\n- [X] done item\n", line=1)
    actions = make_actions(host)

    actions.toggle_heading()
    assert host.lines == ["* A", "** DONE done item"]

    host.set_cursor(Position(0, 0))
    actions.toggle_heading()
    assert host.lines[0] == "A"


def test_toggle_checkbox(make_host, make_actions):
    host = make_host("- [ ] a\n")
    assert make_actions(host).toggle_checkbox()
    assert host.lines == ["- [X] a"]


# ---------------------------------------------------------------------
# Links
# ---------------------------------------------------------------------

def test_insert_link(make_host, make_actions):
    host = make_host("* A\n  see \n", line=1, col=6)
    host.answers.extend(["id:abc", "Alpha"])

    assert make_actions(host).insert_link().result()
    assert host.lines[1] == "  see [[id:abc][Alpha]]"
    assert host.cursor == Position(1, 23)


def test_insert_link_replaces_existing(make_host, make_actions):
    host = make_host("* A\n  [[old]]\n", line=1, col=4)
    host.answers.extend(["https://x.org", ""])

    make_actions(host).insert_link().result()
    assert host.lines[1] == "  [[https://x.org]]"


def test_insert_link_without_location_warns(make_host, make_actions):
    host = make_host("* A\n")
    host.answers.append("")

    make_actions(host).insert_link().result()
    assert _messages(host, "warning") == ["No Link selected"]


def test_store_link(make_host, make_actions):
    host = make_host("* Alpha\n  :PROPERTIES:\n  :ID: a-1\n  :END:\n* Beta\n")
    actions = make_actions(host)

    assert actions.store_link()
    assert actions.link_store.description_for("id:a-1") == "Alpha"

    host.set_cursor(Position(4, 0))
    actions.store_link()
    assert actions.link_store.description_for("file:notes.org::*Beta") == "Beta"
    assert _messages(host, "info") == ["Stored: Alpha", "Stored: Beta"]


def test_open_http(make_host, make_actions):
    host = make_host("* A\n  [[https://x.org][x]]\n", line=1, col=4)
    assert make_actions(host).open_at_point().result()
    assert host.opened == [("url", "https://x.org")]


def test_open_timestamp_opens_day(make_host, make_actions):
    host = make_host("* A\n  <2024-03-01 Fri>\n", line=1, col=4)
    make_actions(host).open_at_point().result()
    assert host.opened == [("day", date(2024, 3, 1))]


def test_open_file_with_line(make_host, make_actions):
    host = make_host("* A\n  [[./other.org::12]]\n", line=1, col=4)
    make_actions(host).open_at_point().result()
    assert host.opened == [("location", ("./other.org", 11))]


def test_open_unsupported_warns(make_host, make_actions):
    host = make_host("* A\n  [[mailto:a@b.c]]\n", line=1, col=4)
    assert not make_actions(host).open_at_point().result()
    assert _messages(host, "warning") == ['Unsupported link format: "mailto:a@b.c"']


def test_open_internal_search(make_host, make_actions):
    host = make_host("* Target\n* Source\n  [[*Target]]\n", line=2, col=4)

    assert make_actions(host).open_at_point().result()
    assert host.opened == [("location", ("notes.org", 0))]
    assert host.cursor == Position(0, 0)


@pytest.mark.parametrize(
    "link, message",
    [
        ("[[id:nope]]", "No headline found with id: nope"),
        ("[[*Missing]]", "No headline found matching: *Missing"),
    ],
)
def test_open_not_found_warns(make_host, make_actions, link, message):
    host = make_host(f"* A\n  {link}\n", line=1, col=4)
    assert not make_actions(host).open_at_point().result()
    assert _messages(host, "warning") == [message]


def test_open_ambiguous_selects(make_host, make_actions):
    host = make_host("* Beta one\n* Beta two\n* Source\n  [[Beta]]\n", line=3, col=4)
    host.answers.append(1)

    assert make_actions(host).open_at_point().result()
    assert host.cursor == Position(1, 0)


def test_open_ambiguous_cancelled(make_host, make_actions):
    host = make_host("* Beta one\n* Beta two\n* Source\n  [[Beta]]\n", line=3, col=4)
    fut = make_actions(host).open_at_point()

    host.resolve_pending(None)
    assert fut.result() is False
    assert host.opened == []
