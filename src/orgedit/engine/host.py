# src/orgedit/engine/host.py

"""
Editor host contract.

The engine talks to the editor only through `Host`:
- reading the current document (freshly parsed, versioned),
- applying TextEdit batches,
- interactive requests (prompts, fast-access keys, notes, calendar,
  selection) answered later through `concurrent.futures.Future`,
- messages, navigation and pass-through of the original keystroke.

A cancelled request resolves to None.

`InMemoryHost` is a complete host over a list of lines. Interactive
requests are answered from `answers` when queued, otherwise they stay
pending until `resolve_pending` is called.
"""

from __future__ import annotations

import logging
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Sequence

from .config import Config
from .edits import TextEdit, apply_text_edits
from .model import Document, Position
from .parse import parse_document
from .timestamp import Timestamp

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class PromptRequest:
    label: str
    default: str = ""
    completer: Optional[Callable[[str], list[str]]] = None


@dataclass(frozen=True, slots=True)
class CalendarChoice:
    """Calendar result: a date, or `cleared` when the user removed it."""

    timestamp: Optional[Timestamp] = None
    cleared: bool = False


# ---------------------------------------------------------------------
# Continuations
# ---------------------------------------------------------------------

def resolved(value: Any) -> Future:
    fut: Future = Future()
    fut.set_result(value)
    return fut


def then(fut: Future, fn: Callable[[Any], Any]) -> Future:
    """
    Chain `fn` after `fut`.

    `fn` receives the result (None when `fut` was cancelled). When it
    returns a Future, the chained future follows that one.
    """
    out: Future = Future()

    def _done(f: Future) -> None:
        try:
            value = None if f.cancelled() else f.result()
            result = fn(value)
        except Exception as e:
            out.set_exception(e)
            return
        if isinstance(result, Future):
            result.add_done_callback(lambda r: _forward(r, out))
        else:
            out.set_result(result)

    fut.add_done_callback(_done)
    return out


def _forward(src: Future, dst: Future) -> None:
    if src.cancelled():
        dst.set_result(None)
    elif src.exception() is not None:
        dst.set_exception(src.exception())
    else:
        dst.set_result(src.result())


# ---------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------

class Host(Protocol):
    cursor: Position
    filename: str

    @property
    def version(self) -> int: ...

    def document(self) -> Document: ...

    def apply_edits(self, edits: Sequence[TextEdit]) -> None: ...

    def set_cursor(self, pos: Position) -> None: ...

    def prompt(self, request: PromptRequest) -> Future: ...

    def read_key(self, label: str) -> Future: ...

    def request_note(self, label: str) -> Future: ...

    def calendar(self, initial: Timestamp, *, clearable: bool = False) -> Future: ...

    def select(self, title: str, options: Sequence[str]) -> Future: ...

    def warn(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def passthrough(self) -> None: ...

    def open_location(self, file: str, line: int) -> None: ...

    def open_url(self, url: str) -> None: ...

    def open_day(self, ts: Timestamp) -> None: ...

    def append_to_file(self, path: str, lines: Sequence[str]) -> None: ...


# ---------------------------------------------------------------------
# In-memory host
# ---------------------------------------------------------------------

@dataclass(slots=True)
class Message:
    level: str
    text: str


class InMemoryHost:
    """
    Host over an in-memory list of lines.

    Every applied batch bumps `version`; `document()` parses the current
    text once per version.
    """

    def __init__(
        self,
        text: str | Sequence[str],
        *,
        config: Optional[Config] = None,
        filename: str = "",
        cursor: Position = Position(0, 0),
    ) -> None:
        self.lines: list[str] = text.splitlines() if isinstance(text, str) else list(text)
        self.config = config or Config()
        self.filename = filename
        self.cursor = cursor
        self.messages: list[Message] = []
        self.answers: deque[Any] = deque()
        self.pending: list[tuple[str, Future]] = []
        self.passthroughs = 0
        self.opened: list[tuple[str, Any]] = []
        self.appended: dict[str, list[str]] = {}
        self._version = 0
        self._doc: Optional[Document] = None

    # -----------------------------------------------------------------
    # Text
    # -----------------------------------------------------------------

    @property
    def version(self) -> int:
        return self._version

    @property
    def text(self) -> str:
        return "".join(f"{ln}\n" for ln in self.lines)

    def document(self) -> Document:
        if self._doc is None or self._doc.version != self._version:
            self._doc = parse_document(
                self.lines, config=self.config, filename=self.filename, version=self._version
            )
        return self._doc

    def apply_edits(self, edits: Sequence[TextEdit]) -> None:
        if not edits:
            return
        self.lines = apply_text_edits(self.lines, edits)
        self._version += 1
        logger.debug("Applied %d edit(s), version %d", len(edits), self._version)

    def set_cursor(self, pos: Position) -> None:
        self.cursor = pos

    # -----------------------------------------------------------------
    # Interaction
    # -----------------------------------------------------------------

    def _request(self, kind: str) -> Future:
        fut: Future = Future()
        if self.answers:
            fut.set_result(self.answers.popleft())
        else:
            self.pending.append((kind, fut))
        return fut

    def resolve_pending(self, value: Any) -> None:
        """Answer the oldest pending request (None cancels it)."""
        _, fut = self.pending.pop(0)
        fut.set_result(value)

    def prompt(self, request: PromptRequest) -> Future:
        return self._request(f"prompt:{request.label}")

    def read_key(self, label: str) -> Future:
        return self._request("key")

    def request_note(self, label: str) -> Future:
        return self._request("note")

    def calendar(self, initial: Timestamp, *, clearable: bool = False) -> Future:
        return self._request("calendar")

    def select(self, title: str, options: Sequence[str]) -> Future:
        return self._request("select")

    # -----------------------------------------------------------------
    # Messages / navigation
    # -----------------------------------------------------------------

    def warn(self, message: str) -> None:
        self.messages.append(Message("warning", message))

    def info(self, message: str) -> None:
        self.messages.append(Message("info", message))

    def passthrough(self) -> None:
        self.passthroughs += 1

    def open_location(self, file: str, line: int) -> None:
        self.opened.append(("location", (file, line)))
        if not file or file == self.filename:
            self.cursor = Position(line, 0)

    def open_url(self, url: str) -> None:
        self.opened.append(("url", url))

    def open_day(self, ts: Timestamp) -> None:
        self.opened.append(("day", ts.date))

    def append_to_file(self, path: str, lines: Sequence[str]) -> None:
        self.appended.setdefault(path, []).extend(lines)
