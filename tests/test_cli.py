# tests/test_cli.py

import pytest

from orgedit.cli import main


@pytest.fixture
def org_file(tmp_path):
    def _make(text, name="notes.org"):
        p = tmp_path / name
        p.write_text(text, encoding="utf-8")
        return p

    return _make


def test_show_prints_tree(org_file, capsys):
    p = org_file("* TODO Parent\n** Child :x:\n* Other\n")

    assert main(["show", str(p), "--no-color"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[1:] == ["├── TODO Parent", "│   └── Child :x:", "└── Other"]


def test_validate_reports_issues(org_file, capsys):
    good = org_file("* A\n** B\n", "good.org")
    bad = org_file("* A\n*** B\n", "bad.org")

    assert main(["validate", str(good)]) == 0
    assert main(["validate", str(good), str(bad)]) == 1

    out = capsys.readouterr().out
    assert "[level_jump]" in out


def test_todo_writes_file(org_file):
    p = org_file("* TODO Task\n")

    assert main(["todo", str(p), "1"]) == 0

    lines = p.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "* DONE Task"
    assert lines[1].startswith("  CLOSED: [")


def test_priority(org_file):
    p = org_file("* TODO Task\n")
    assert main(["priority", str(p), "1", "up"]) == 0
    assert p.read_text(encoding="utf-8") == "* TODO [#Z] Task\n"


def test_demote_subtree(org_file):
    p = org_file("* A\n** B\n")
    assert main(["demote", str(p), "1", "--subtree"]) == 0
    assert p.read_text(encoding="utf-8") == "** A\n*** B\n"


def test_promote_at_top_level_fails(org_file, capsys):
    p = org_file("* A\n")

    assert main(["promote", str(p), "1"]) == 1
    assert "Cannot promote past level 1." in capsys.readouterr().out
    assert p.read_text(encoding="utf-8") == "* A\n"


def test_shift_day(org_file):
    p = org_file("* A\n  SCHEDULED: <2024-03-01 Fri>\n")
    assert main(["shift", str(p), "2", "23", "up", "-n", "3"]) == 0
    assert p.read_text(encoding="utf-8").splitlines()[1] == "  SCHEDULED: <2024-03-04 Mon>"


def test_checkbox(org_file):
    p = org_file("- [ ] a\n")
    assert main(["checkbox", str(p), "1"]) == 0
    assert p.read_text(encoding="utf-8") == "- [X] a\n"


def test_archive_appends_next_to_file(org_file, tmp_path):
    p = org_file("* DONE Old\n* Keep\n")

    assert main(["archive", str(p), "1"]) == 0

    assert p.read_text(encoding="utf-8") == "* Keep\n"
    archived = (tmp_path / "notes.org_archive").read_text(encoding="utf-8").splitlines()
    assert archived[0] == "* DONE Old"
    assert "  :ARCHIVE_TODO: DONE" in archived


def test_open_url(org_file, capsys):
    p = org_file("* A\n  [[https://example.com][site]]\n")

    assert main(["open", str(p), "2", "5"]) == 0
    assert "https://example.com" in capsys.readouterr().out


def test_open_ambiguous_asks(org_file, capsys, monkeypatch):
    p = org_file("* Beta one\n* Beta two\n* Source\n  [[Beta]]\n")
    monkeypatch.setattr("builtins.input", lambda *_: "2")

    assert main(["open", str(p), "4", "5"]) == 0
    assert capsys.readouterr().out.splitlines()[-1].endswith("notes.org:2")


def test_open_across_directory(org_file, tmp_path, capsys):
    org_file("* Target\n  :PROPERTIES:\n  :ID: t-1\n  :END:\n", "other.org")
    p = org_file("* Source\n  [[id:t-1]]\n")

    assert main(["open", str(p), "2", "5", "--root", str(tmp_path)]) == 0
    assert capsys.readouterr().out.strip().endswith("other.org:1")


def test_config_file_is_used(org_file, tmp_path):
    cfg = tmp_path / "orgedit.yaml"
    cfg.write_text("priority_lowest: C\n", encoding="utf-8")
    p = org_file("* TODO Task\n")

    assert main(["--config", str(cfg), "priority", str(p), "1", "up"]) == 0
    assert p.read_text(encoding="utf-8") == "* TODO [#C] Task\n"


def test_missing_file_is_reported(tmp_path, capsys):
    assert main(["todo", str(tmp_path / "missing.org"), "1"]) == 2
    assert capsys.readouterr().out.startswith("Error:")


def test_open_relative_root_skips_current_heading(tmp_path, monkeypatch, capsys):
    (tmp_path / "notes").mkdir()
    (tmp_path / "notes" / "a.org").write_text("* Alpha [[Alpha]]\n* Beta\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert main(["open", "notes/a.org", "1", "12", "--root", "notes"]) == 1
    assert "No headline found matching: Alpha" in capsys.readouterr().out
