# tests/test_headline.py

from datetime import date

import pytest

from orgedit.engine import headline as hl
from orgedit.engine.config import Config
from orgedit.engine.edits import apply_text_edits
from orgedit.engine.parse import parse_document
from orgedit.engine.timestamp import Timestamp


def _run(text, fn, *args, line=0, **kwargs):
    doc = parse_document(text)
    h = doc.headline_at_line(line)
    return apply_text_edits(doc.lines, fn(doc, h, *args, **kwargs))


# ---------------------------------------------------------------------
# Heading line
# ---------------------------------------------------------------------

def test_set_todo_keeps_tag_gap():
    out = _run("* TODO Buy milk    :shop:", hl.set_todo, "DONE")
    assert out == ["* DONE Buy milk    :shop:"]


def test_set_todo_empty_removes_keyword():
    assert _run("* TODO Buy milk", hl.set_todo, "") == ["* Buy milk"]


def test_set_priority():
    assert _run("* TODO Buy milk", hl.set_priority, "B") == ["* TODO [#B] Buy milk"]
    assert _run("* TODO [#B] Buy milk", hl.set_priority, None) == ["* TODO Buy milk"]


def test_set_tags_accepts_several_forms():
    assert _run("* Title", hl.set_tags, "a:b") == ["* Title :a:b:"]
    assert _run("* Title :x:", hl.set_tags, ["a", "a", "b"]) == ["* Title :a:b:"]
    assert _run("* Title :x:", hl.set_tags, "") == ["* Title"]


def test_toggle_archive_tag():
    assert _run("* Title :x:", hl.toggle_archive_tag) == ["* Title :x:ARCHIVE:"]
    assert _run("* Title :x:ARCHIVE:", hl.toggle_archive_tag) == ["* Title :x:"]


def test_parse_tags_string():
    assert hl.parse_tags_string(":a:b: c") == ["a", "b", "c"]
    assert hl.parse_tags_string(None) == []


# ---------------------------------------------------------------------
# Promote / demote
# ---------------------------------------------------------------------

TREE = "* Parent\n** Child\n   body\n*** Grandchild\n"


def test_demote_reindents_own_body():
    out = _run(TREE, hl.demote, line=1)
    assert out == ["* Parent", "*** Child", "    body", "*** Grandchild"]


def test_demote_whole_subtree():
    out = _run(TREE, hl.demote, whole_subtree=True, line=1)
    assert out == ["* Parent", "*** Child", "    body", "**** Grandchild"]


def test_promote_inverts_demote():
    doc = parse_document(TREE)
    demoted = apply_text_edits(doc.lines, hl.demote(doc, doc.headline_at_line(1), whole_subtree=True))

    doc2 = parse_document(demoted)
    restored = apply_text_edits(doc2.lines, hl.promote(doc2, doc2.headline_at_line(1), whole_subtree=True))
    assert restored == doc.lines


def test_promote_past_level_one_fails():
    doc = parse_document(TREE)
    with pytest.raises(hl.StructuralLimitError, match="Cannot promote past level 1."):
        hl.promote(doc, doc.headline_at_line(0))


def test_no_reindent_without_adapt_indentation():
    cfg = Config(adapt_indentation=False)
    out = _run(TREE, hl.demote, config=cfg, line=1)
    assert out[2] == "   body"


# ---------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------

def test_set_property_creates_drawer():
    out = _run("* Title\n", hl.set_property, "ID", "x1")
    assert out == ["* Title", "  :PROPERTIES:", "  :ID: x1", "  :END:"]


def test_set_property_after_planning_line():
    out = _run("* Title\n  SCHEDULED: <2024-03-01 Fri>\n", hl.set_property, "ID", "x1")
    assert out[1] == "  SCHEDULED: <2024-03-01 Fri>"
    assert out[2] == "  :PROPERTIES:"


def test_set_property_updates_case_insensitively():
    text = "* Title\n  :PROPERTIES:\n  :Id: old\n  :END:\n"
    out = _run(text, hl.set_property, "ID", "new")
    assert out == ["* Title", "  :PROPERTIES:", "  :Id: new", "  :END:"]


def test_set_property_appends_before_end():
    text = "* Title\n  :PROPERTIES:\n  :ID: x1\n  :END:\n"
    out = _run(text, hl.set_property, "CATEGORY", "home")
    assert out == ["* Title", "  :PROPERTIES:", "  :ID: x1", "  :CATEGORY: home", "  :END:"]


# ---------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------

TS = Timestamp.from_date(date(2024, 3, 6))


def test_set_scheduled_creates_planning_line():
    out = _run("* TODO Task\n", hl.set_scheduled_date, TS)
    assert out == ["* TODO Task", "  SCHEDULED: <2024-03-06 Wed>"]


def test_closed_goes_first():
    text = "* TODO Task\n  SCHEDULED: <2024-03-01 Fri>\n"
    closed = Timestamp.from_date(date(2024, 3, 6), active=False)
    out = _run(text, hl.set_closed_date, closed)
    assert out[1] == "  CLOSED: [2024-03-06 Wed] SCHEDULED: <2024-03-01 Fri>"


def test_deadline_is_appended_and_replaced():
    text = "* TODO Task\n  SCHEDULED: <2024-03-01 Fri>\n"
    out = _run(text, hl.set_deadline_date, TS)
    assert out[1] == "  SCHEDULED: <2024-03-01 Fri> DEADLINE: <2024-03-06 Wed>"

    later = Timestamp.from_date(date(2024, 3, 8))
    out = _run("\n".join(out), hl.set_deadline_date, later)
    assert out[1] == "  SCHEDULED: <2024-03-01 Fri> DEADLINE: <2024-03-08 Fri>"


def test_removing_last_entry_deletes_planning_line():
    text = "* TODO Task\n  SCHEDULED: <2024-03-01 Fri>\nbody\n"
    assert _run(text, hl.remove_scheduled_date) == ["* TODO Task", "body"]


def test_removing_absent_entry_is_noop():
    doc = parse_document("* TODO Task\n  SCHEDULED: <2024-03-01 Fri>\n")
    assert hl.remove_deadline_date(doc, doc.headlines()[0]) == []


# ---------------------------------------------------------------------
# Queries / moves
# ---------------------------------------------------------------------

def test_repeater_dates_skip_logbook():
    text = (
        "* TODO Task\n"
        "  SCHEDULED: <2024-03-01 Fri +1w>\n"
        "  :LOGBOOK:\n"
        "  CLOCK: [2024-03-01 Fri 08:00 +1w]--[2024-03-01 Fri 09:00] =>  1:00\n"
        "  :END:\n"
    )
    doc = parse_document(text)
    dates = hl.get_repeater_dates(doc.headlines()[0])
    assert [d.range.start_line for d in dates] == [1]


def test_same_level_navigation():
    doc = parse_document("* A\n** A1\n* B\n* C\n")
    a, _, b, c = doc.headlines()

    assert hl.get_next_headline_same_level(doc, a) is b
    assert hl.get_prev_headline_same_level(doc, c) is b
    assert hl.get_prev_headline_same_level(doc, a) is None


def test_get_append_line_skips_trailing_blanks():
    doc = parse_document("* A\n  text\n\n\n** Child\n")
    assert hl.get_append_line(doc, doc.headlines()[0]) == 2


def test_get_drawer_append_line_creates_drawer():
    text = "* A\n  SCHEDULED: <2024-03-01 Fri>\n  :PROPERTIES:\n  :ID: 1\n  :END:\n  text\n"
    doc = parse_document(text)
    at, edits = hl.get_drawer_append_line(doc, doc.headlines()[0], "LOGBOOK")
    out = apply_text_edits(doc.lines, edits)

    assert out[5:7] == ["  :LOGBOOK:", "  :END:"]
    assert at == 6


def test_get_drawer_append_line_existing():
    doc = parse_document("* A\n  :LOGBOOK:\n  :END:\n")
    assert hl.get_drawer_append_line(doc, doc.headlines()[0], "LOGBOOK") == (2, [])


def test_move_subtree_down_and_up():
    text = "* A\n  a\n* B\n  b\n"
    down = _run(text, hl.move_subtree, 1)
    assert down == ["* B", "  b", "* A", "  a"]

    up = _run("\n".join(down), hl.move_subtree, -1, line=2)
    assert up == ["* A", "  a", "* B", "  b"]


def test_move_past_last_sibling_fails():
    doc = parse_document("* A\n* B\n")
    with pytest.raises(hl.StructuralLimitError):
        hl.move_subtree(doc, doc.headlines()[1], 1)
