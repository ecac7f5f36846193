# tests/test_config.py

import logging

import pytest

from orgedit.engine.config import Config, ConfigError, LogDone, load_config
from orgedit.engine.model import TodoType


def _write(tmp_path, text):
    p = tmp_path / "orgedit.yaml"
    p.write_text(text, encoding="utf-8")
    return p


def test_defaults():
    cfg = Config()

    assert [kw.value for kw in cfg.todo_states()] == ["TODO", "DONE"]
    assert cfg.first_done().type is TodoType.DONE
    assert cfg.priorities()[0] == "A"
    assert cfg.priorities()[-1] == "Z"
    assert cfg.log_done is LogDone.TIME


def test_keywords_without_separator_make_last_done():
    cfg = Config(todo_keywords=["TODO", "NEXT", "DONE"])
    assert [kw.type for kw in cfg.todo_states()] == [TodoType.TODO, TodoType.TODO, TodoType.DONE]


def test_load_yaml(tmp_path):
    p = _write(
        tmp_path,
        "todo_keywords: [TODO(t), NEXT(n), '|', DONE(d)]\n"
        "priority_highest: A\n"
        "priority_lowest: C\n"
        "log_done: note\n"
        "log_into_drawer: true\n"
        "time_stamp_rounding_minutes: 15\n"
        "blank_before_new_entry:\n"
        "  heading: true\n",
    )
    cfg = load_config(p)

    assert [kw.shortcut for kw in cfg.todo_states()] == ["t", "n", "d"]
    assert cfg.priorities() == ["A", "B", "C"]
    assert cfg.log_done is LogDone.NOTE
    assert cfg.log_into_drawer == "LOGBOOK"
    assert cfg.time_stamp_rounding_minutes == 15
    assert cfg.respect_blank_before_new_entry(["* x"]) == ["", "* x"]
    assert cfg.respect_blank_before_new_entry(["- x"], "plain_list_item") == ["- x"]


def test_yaml_off_is_log_done_off(tmp_path):
    assert load_config(_write(tmp_path, "log_done: off\n")).log_done is LogDone.OFF


def test_unknown_key_warns(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        load_config(_write(tmp_path, "colour: blue\n"))
    assert "colour" in caplog.text


@pytest.mark.parametrize(
    "text",
    [
        "log_done: sometimes\n",
        "priority_highest: AB\n",
        "time_stamp_rounding_minutes: 0\n",
        "todo_keywords: 5\n",
        "todo_keywords: ['|']\n",
        "blank_before_new_entry: {table: true}\n",
        "priority_highest: C\npriority_lowest: A\n",
        "- just\n- a list\n",
        "key: [unclosed\n",
    ],
)
def test_invalid_config(tmp_path, text):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, text))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="Cannot read file"):
        load_config(tmp_path / "nope.yaml")


def test_archive_file_for():
    assert Config().archive_file_for("notes.org") == "notes.org_archive"
    assert Config(archive_location="::* Archive").archive_file_for("notes.org") is None
    assert Config(adapt_indentation=False).get_indent(3) == ""
