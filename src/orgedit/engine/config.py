# src/orgedit/engine/config.py

"""
Editing configuration.

Settings are plain dataclass fields with org-mode defaults. They can be
loaded from a YAML file:

    todo_keywords: ["TODO(t)", "NEXT(n)", "|", "DONE(d)", "CANCELLED(c)"]
    priority_highest: A
    priority_lowest: C
    log_done: time            # off | time | note
    log_into_drawer: LOGBOOK
    time_stamp_rounding_minutes: 5
    blank_before_new_entry:
      heading: true
      plain_list_item: false
    adapt_indentation: true
    archive_location: "%s_archive::"
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Final, Optional

import yaml

from .model import TodoKeyword, TodoType

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ConfigError(Exception):
    """
    Raised when a configuration file is unreadable or has invalid values.
    """

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


# ---------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------

class LogDone(str, Enum):
    OFF = "off"
    TIME = "time"
    NOTE = "note"


ENTRY_KINDS: Final[tuple[str, ...]] = ("heading", "plain_list_item")

_KEYWORD_RE = re.compile(r"^(?P<value>[^\s()|]+)(?:\((?P<shortcut>[^)])[^)]*\))?$")


@dataclass(slots=True)
class Config:
    todo_keywords: list[str] = field(default_factory=lambda: ["TODO", "|", "DONE"])
    priority_highest: str = "A"
    priority_lowest: str = "Z"
    log_done: LogDone = LogDone.TIME
    log_into_drawer: Optional[str] = None
    time_stamp_rounding_minutes: int = 5
    blank_before_new_entry: dict[str, bool] = field(
        default_factory=lambda: {"heading": False, "plain_list_item": False}
    )
    adapt_indentation: bool = True
    archive_location: str = "%s_archive::"

    # -----------------------------------------------------------------
    # Derived values
    # -----------------------------------------------------------------

    def todo_states(self) -> list[TodoKeyword]:
        """
        Parse `todo_keywords` into TodoKeyword values.

        Keywords before "|" are TODO-class, after it DONE-class.
        Without "|", only the last keyword is DONE-class.
        """
        raw = [k for k in self.todo_keywords if k.strip()]
        if "|" in raw:
            split = raw.index("|")
            todo_part, done_part = raw[:split], raw[split + 1:]
        else:
            todo_part, done_part = raw[:-1], raw[-1:]

        out: list[TodoKeyword] = []
        for part, kind in ((todo_part, TodoType.TODO), (done_part, TodoType.DONE)):
            for entry in part:
                m = _KEYWORD_RE.match(entry.strip())
                if not m:
                    raise ConfigError("<config>", f"Invalid TODO keyword: {entry!r}")
                out.append(
                    TodoKeyword(
                        value=m.group("value"),
                        type=kind,
                        index=len(out),
                        shortcut=m.group("shortcut"),
                    )
                )
        return out

    def first_todo(self) -> TodoKeyword:
        for kw in self.todo_states():
            if kw.type is TodoType.TODO:
                return kw
        raise ConfigError("<config>", "No TODO-class keyword configured")

    def first_done(self) -> TodoKeyword:
        for kw in self.todo_states():
            if kw.type is TodoType.DONE:
                return kw
        raise ConfigError("<config>", "No DONE-class keyword configured")

    def priorities(self) -> list[str]:
        """Priority alphabet, highest first."""
        hi, lo = self.priority_highest, self.priority_lowest
        if hi.isdigit() and lo.isdigit():
            return [str(n) for n in range(int(hi), int(lo) + 1)]
        return [chr(c) for c in range(ord(hi), ord(lo) + 1)]

    def get_indent(self, level: int) -> str:
        return " " * level if self.adapt_indentation else ""

    def respect_blank_before_new_entry(self, lines: list[str], kind: str = "heading") -> list[str]:
        if self.blank_before_new_entry.get(kind, False):
            return ["", *lines]
        return lines

    def archive_file_for(self, filename: str) -> Optional[str]:
        location = self.archive_location.split("::", 1)[0]
        if not location:
            return None
        return location.replace("%s", filename)


# ---------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------

def load_config(path: str | Path) -> Config:
    """
    Read a YAML configuration file.

    Unknown keys are ignored with a warning; bad values raise ConfigError.
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(str(p), f"Cannot read file: {e}") from e

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(str(p), f"Invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(str(p), "YAML root must be a mapping/dictionary")

    return config_from_mapping(data, source=str(p))


def config_from_mapping(data: dict[str, Any], *, source: str = "<config>") -> Config:
    cfg = Config()
    known = set(Config.__dataclass_fields__)

    for key in data:
        if key not in known:
            logger.warning("%s: ignoring unknown configuration key %r", source, key)

    if "todo_keywords" in data:
        cfg.todo_keywords = _require_str_list(source, data, "todo_keywords")
    for key in ("priority_highest", "priority_lowest"):
        if key in data:
            value = str(data[key])
            if len(value) != 1:
                raise ConfigError(source, f"'{key}' must be a single character")
            setattr(cfg, key, value)
    if "log_done" in data:
        raw = data["log_done"]
        raw = "off" if raw is False or raw is None else str(raw).strip().lower()
        try:
            cfg.log_done = LogDone(raw)
        except ValueError as e:
            allowed = ", ".join(v.value for v in LogDone)
            raise ConfigError(source, f"Invalid log_done '{raw}' (allowed: {allowed})") from e
    if "log_into_drawer" in data:
        raw = data["log_into_drawer"]
        if raw is True:
            raw = "LOGBOOK"
        cfg.log_into_drawer = str(raw) if raw else None
    if "time_stamp_rounding_minutes" in data:
        value = data["time_stamp_rounding_minutes"]
        if not isinstance(value, int) or value < 1:
            raise ConfigError(source, "'time_stamp_rounding_minutes' must be a positive integer")
        cfg.time_stamp_rounding_minutes = value
    if "blank_before_new_entry" in data:
        raw = data["blank_before_new_entry"]
        if not isinstance(raw, dict):
            raise ConfigError(source, "'blank_before_new_entry' must be a mapping")
        for kind, flag in raw.items():
            if kind not in ENTRY_KINDS:
                raise ConfigError(source, f"Unknown entry kind in blank_before_new_entry: {kind!r}")
            cfg.blank_before_new_entry[kind] = bool(flag)
    if "adapt_indentation" in data:
        cfg.adapt_indentation = bool(data["adapt_indentation"])
    if "archive_location" in data:
        cfg.archive_location = str(data["archive_location"])

    # Fail early on malformed keywords or an inverted priority range.
    cfg.todo_states()
    if not cfg.priorities():
        raise ConfigError(source, "priority_highest must sort before priority_lowest")
    return cfg


def _require_str_list(source: str, data: dict[str, Any], key: str) -> list[str]:
    value = data[key]
    if isinstance(value, str):
        value = value.split()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(source, f"'{key}' must be a list of strings")
    if not [v for v in value if v != "|"]:
        raise ConfigError(source, f"'{key}' must name at least one keyword")
    return value
