# src/orgedit/cli.py

"""
Command-line interface for orgedit.

This module:
- defines argument parsing and subcommands,
- runs editing actions against a file through a terminal host,
- keeps user interaction (prompts, selection) here.

Positions on the command line are 1-based (line, column), like the
locations printed by `validate`.
"""

import argparse
import logging
from concurrent.futures import Future
from datetime import date
from pathlib import Path
from typing import Optional, Sequence

from orgedit.engine.actions import OrgActions
from orgedit.engine.config import Config, ConfigError, load_config
from orgedit.engine.host import CalendarChoice, InMemoryHost, PromptRequest, resolved
from orgedit.engine.model import Position
from orgedit.engine.ops import append_archive, write_document
from orgedit.engine.parse import ParseError, parse_document_file
from orgedit.engine.render import render_outline, render_validation
from orgedit.engine.scan import FileHeadlineIndex
from orgedit.engine.timestamp import Timestamp
from orgedit.engine.validate import validate_document

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Terminal host
# ---------------------------------------------------------------------

class FileHost(InMemoryHost):
    """
    Host over a file on disk.

    Requests are answered on the terminal as soon as they are made;
    an empty answer cancels the request.
    """

    def __init__(self, path: Path, *, config: Config, cursor: Position) -> None:
        text = path.read_text(encoding="utf-8")
        super().__init__(text, config=config, filename=str(path), cursor=cursor)
        self.path = path

    def _ask(self, label: str) -> Optional[str]:
        s = input(f"{label} ").strip()
        return s or None

    def prompt(self, request: PromptRequest) -> Future:
        label = request.label
        if request.default:
            label = f"{label} [{request.default}]"
        answer = self._ask(label)
        if answer is None and request.default:
            answer = request.default
        return resolved(answer)

    def read_key(self, label: str) -> Future:
        print(label)
        answer = self._ask("Key:")
        return resolved(answer[0] if answer else None)

    def request_note(self, label: str) -> Future:
        print(f"{label} (blank line to finish)")
        lines: list[str] = []
        while True:
            s = input()
            if not s.strip():
                break
            lines.append(s)
        return resolved("\n".join(lines) if lines else None)

    def calendar(self, initial: Timestamp, *, clearable: bool = False) -> Future:
        hint = "YYYY-MM-DD, '-' to clear" if clearable else "YYYY-MM-DD"
        answer = self._ask(f"Date ({hint}) [{initial.date.isoformat()}]:")
        if answer is None:
            return resolved(CalendarChoice(timestamp=initial))
        if clearable and answer == "-":
            return resolved(CalendarChoice(cleared=True))
        try:
            d = date.fromisoformat(answer)
        except ValueError:
            self.warn(f"Invalid date: {answer}")
            return resolved(None)
        return resolved(CalendarChoice(timestamp=Timestamp.from_date(d, active=initial.active)))

    def select(self, title: str, options: Sequence[str]) -> Future:
        print(title)
        for i, label in enumerate(options, start=1):
            print(f"{i}) {label}")

        s = self._ask("Select number (blank to cancel):")
        if s is None:
            return resolved(None)
        try:
            n = int(s)
        except ValueError:
            return resolved(None)
        if n < 1 or n > len(options):
            return resolved(None)
        return resolved(n - 1)

    def warn(self, message: str) -> None:
        super().warn(message)
        print(f"Warning: {message}")

    def info(self, message: str) -> None:
        super().info(message)
        print(message)

    def open_location(self, file: str, line: int) -> None:
        super().open_location(file, line)
        print(f"{file or self.filename}:{line + 1}")

    def open_url(self, url: str) -> None:
        super().open_url(url)
        print(url)

    def open_day(self, ts: Timestamp) -> None:
        super().open_day(ts)
        print(ts.date.isoformat())

    def append_to_file(self, path: str, lines: Sequence[str]) -> None:
        super().append_to_file(path, lines)
        archive = Path(path)
        if not archive.is_absolute():
            archive = self.path.parent / archive
        append_archive(archive, lines)
        logger.info("Appended %d line(s) to %s", len(lines), archive)

    def save(self) -> bool:
        """Write the buffer back when any edit was applied."""
        if self.version == 0:
            return False
        write_document(self.path, self.lines)
        return True


# ---------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------

def _add_position(p: argparse.ArgumentParser, *, column: bool = False) -> None:
    p.add_argument("file", type=str, help="Org file")
    p.add_argument("line", type=int, help="Line number (1-based)")
    if column:
        p.add_argument("column", type=int, help="Column number (1-based)")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="orgedit")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="YAML configuration file",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # ------------------------------------------------------------------
    # Read-only commands
    # ------------------------------------------------------------------

    p_show = sub.add_parser(
        "show",
        help="Show the heading tree of a file",
    )
    p_show.add_argument("file", type=str, help="Org file")
    p_show.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors",
    )
    p_show.set_defaults(func=cmd_show)

    p_validate = sub.add_parser(
        "validate",
        help="Check files for outline problems",
    )
    p_validate.add_argument("files", nargs="+", help="Org files")
    p_validate.set_defaults(func=cmd_validate)

    # ------------------------------------------------------------------
    # Editing commands
    # ------------------------------------------------------------------

    p_todo = sub.add_parser(
        "todo",
        help="Cycle the TODO keyword of the heading at LINE",
    )
    _add_position(p_todo)
    p_todo.add_argument(
        "--prev",
        action="store_true",
        help="Cycle backwards",
    )
    p_todo.set_defaults(func=cmd_todo)

    p_priority = sub.add_parser(
        "priority",
        help="Raise or lower the priority of the heading at LINE",
    )
    _add_position(p_priority)
    p_priority.add_argument("direction", choices=["up", "down"])
    p_priority.set_defaults(func=cmd_priority)

    for name, help_text in (("promote", "Promote the heading at LINE"), ("demote", "Demote the heading at LINE")):
        p = sub.add_parser(name, help=help_text)
        _add_position(p)
        p.add_argument(
            "--subtree",
            action="store_true",
            help="Apply to the whole subtree",
        )
        p.set_defaults(func=cmd_structure)

    p_shift = sub.add_parser(
        "shift",
        help="Adjust the timestamp field at LINE/COLUMN",
    )
    _add_position(p_shift, column=True)
    p_shift.add_argument("direction", choices=["up", "down"])
    p_shift.add_argument(
        "-n",
        "--count",
        type=int,
        default=1,
        help="Number of steps (default: 1)",
    )
    p_shift.set_defaults(func=cmd_shift)

    p_checkbox = sub.add_parser(
        "checkbox",
        help="Toggle the checkbox of the list item at LINE",
    )
    _add_position(p_checkbox)
    p_checkbox.set_defaults(func=cmd_checkbox)

    p_archive = sub.add_parser(
        "archive",
        help="Move the subtree at LINE to the archive file",
    )
    _add_position(p_archive)
    p_archive.set_defaults(func=cmd_archive)

    p_open = sub.add_parser(
        "open",
        help="Resolve the link or date at LINE/COLUMN",
    )
    _add_position(p_open, column=True)
    p_open.add_argument(
        "--root",
        type=str,
        help="Index headlines of all files below this directory",
    )
    p_open.add_argument(
        "-L",
        "--level",
        type=int,
        default=2,
        help="Scan depth for --root (default: 2)",
    )
    p_open.set_defaults(func=cmd_open)

    return parser


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _config(args: argparse.Namespace) -> Config:
    if args.config:
        return load_config(args.config)
    return Config()


def _host(args: argparse.Namespace, config: Config) -> FileHost:
    path = Path(args.file).resolve()
    col = max(getattr(args, "column", 1) - 1, 0)
    return FileHost(path, config=config, cursor=Position(max(args.line - 1, 0), col))


def _finish(host: FileHost, result: object) -> int:
    if isinstance(result, Future):
        result = result.result()
    if host.save():
        logger.info("Wrote %s", host.path)
    return 0 if result else 1


# ---------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------

def cmd_show(args: argparse.Namespace) -> int:
    doc = parse_document_file(args.file, config=_config(args))
    render_outline(doc, color=not bool(args.no_color))
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    config = _config(args)
    had_errors = False

    for f in args.files:
        try:
            doc = parse_document_file(f, config=config)
        except ParseError as e:
            had_errors = True
            print(str(e))
            continue

        res = validate_document(doc)
        render_validation(res)
        if not res.ok:
            had_errors = True

    return 1 if had_errors else 0


def cmd_todo(args: argparse.Namespace) -> int:
    config = _config(args)
    host = _host(args, config)
    actions = OrgActions(host, config)
    fut = actions.todo_prev_state() if args.prev else actions.todo_next_state()
    fut.result()
    host.save()
    return 0


def cmd_priority(args: argparse.Namespace) -> int:
    config = _config(args)
    host = _host(args, config)
    actions = OrgActions(host, config)
    fut = actions.priority_up() if args.direction == "up" else actions.priority_down()
    return _finish(host, fut)


def cmd_structure(args: argparse.Namespace) -> int:
    config = _config(args)
    host = _host(args, config)
    actions = OrgActions(host, config)
    if args.command == "promote":
        ok = actions.do_promote(whole_subtree=args.subtree)
    else:
        ok = actions.do_demote(whole_subtree=args.subtree)
    return _finish(host, ok)


def cmd_shift(args: argparse.Namespace) -> int:
    config = _config(args)
    host = _host(args, config)
    actions = OrgActions(host, config)
    if args.direction == "up":
        ok = actions.timestamp_up(args.count)
    else:
        ok = actions.timestamp_down(args.count)
    return _finish(host, ok)


def cmd_checkbox(args: argparse.Namespace) -> int:
    config = _config(args)
    host = _host(args, config)
    return _finish(host, OrgActions(host, config).toggle_checkbox())


def cmd_archive(args: argparse.Namespace) -> int:
    config = _config(args)
    host = _host(args, config)
    return _finish(host, OrgActions(host, config).archive())


def cmd_open(args: argparse.Namespace) -> int:
    config = _config(args)
    host = _host(args, config)

    index = None
    if args.root:
        index = FileHeadlineIndex.from_directory(args.root, level=args.level, config=config)
        logger.debug("Indexed %d headline(s) below %s", len(index), args.root)

    OrgActions(host, config, index=index).open_at_point().result()
    return 0 if host.opened else 1


# ---------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 2

    try:
        return func(args)
    except (ParseError, ConfigError, OSError, UnicodeDecodeError) as e:
        print(f"Error: {e}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
