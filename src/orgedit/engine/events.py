# src/orgedit/engine/events.py

"""
Structural change notifications.

Events are plain frozen records. Listeners register per event type and
are called synchronously in emission order; a failing listener is
logged and skipped, it never aborts the edit that emitted the event.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Optional

from .model import Headline

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TodoChanged:
    old_node: Optional[Headline]
    new_node: Optional[Headline]
    old_state: str
    was_done: bool


@dataclass(frozen=True, slots=True)
class HeadlinePromoted:
    old_node: Optional[Headline]
    new_node: Optional[Headline]
    old_level: int


@dataclass(frozen=True, slots=True)
class HeadlineDemoted:
    old_node: Optional[Headline]
    new_node: Optional[Headline]
    old_level: int


Event = TodoChanged | HeadlinePromoted | HeadlineDemoted
Listener = Callable[[Event], None]


class EventManager:
    def __init__(self) -> None:
        self._listeners: dict[type, list[Listener]] = defaultdict(list)

    def listen(self, event_type: type, listener: Listener) -> None:
        self._listeners[event_type].append(listener)

    def dispatch(self, event: Event) -> None:
        for listener in list(self._listeners.get(type(event), ())):
            try:
                listener(event)
            except Exception:
                logger.warning("Listener %r failed for %s", listener, type(event).__name__, exc_info=True)
