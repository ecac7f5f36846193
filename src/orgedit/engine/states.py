# src/orgedit/engine/states.py

"""
TODO keyword and priority state machines.

Both machines are built per operation from the heading's current value
and the configured sequence; they hold no global cursor.

TODO cycling includes the "no keyword" position:

    (none) -> TODO -> NEXT -> DONE -> (none) -> ...

Priority stepping is clamped at both ends:

    (none) <-> C <-> B <-> A
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from .model import TodoKeyword, TodoType


EMPTY_KEYWORD = TodoKeyword(value="", type=TodoType.TODO, index=-1)


# ---------------------------------------------------------------------
# TODO keywords
# ---------------------------------------------------------------------

class TodoState:
    """
    Cyclic TODO keyword progression.

    The sequence is the configured keywords preceded by an empty keyword
    standing for "no TODO state".
    """

    def __init__(self, keywords: Sequence[TodoKeyword], current: Optional[str] = None) -> None:
        if not keywords:
            raise ValueError("At least one TODO keyword is required")
        self._sequence: list[TodoKeyword] = [EMPTY_KEYWORD, *keywords]
        self._index = self._find(current or "")

    def _find(self, value: str) -> int:
        for i, kw in enumerate(self._sequence):
            if kw.value == value:
                return i
        return 0

    @property
    def current(self) -> TodoKeyword:
        return self._sequence[self._index]

    def get_next(self) -> TodoKeyword:
        return self._sequence[(self._index + 1) % len(self._sequence)]

    def get_prev(self) -> TodoKeyword:
        return self._sequence[(self._index - 1) % len(self._sequence)]

    def get_todo(self) -> TodoKeyword:
        """First TODO-class keyword."""
        for kw in self._sequence[1:]:
            if kw.type is TodoType.TODO:
                return kw
        return self._sequence[1]

    def has_fast_access(self) -> bool:
        return any(kw.shortcut for kw in self._sequence)

    def fast_access_map(self) -> dict[str, TodoKeyword]:
        return {kw.shortcut: kw for kw in self._sequence if kw.shortcut}

    def fast_access_prompt(self) -> str:
        choices = " ".join(f"[{kw.shortcut}] {kw.value}" for kw in self._sequence if kw.shortcut)
        return f"{choices} [SPC] clear"

    def resolve_fast_access(self, key: Optional[str]) -> Optional[TodoKeyword]:
        """
        Map a fast-access keystroke to a keyword.

        A blank keystroke clears the keyword; unknown keys and None
        (cancelled) select nothing.
        """
        if key is None:
            return None
        if not key.strip():
            return EMPTY_KEYWORD
        return self.fast_access_map().get(key.strip()[:1])

    @staticmethod
    def is_transition_to_done(old: TodoKeyword, new: TodoKeyword) -> bool:
        return new.is_done and not old.is_done


# ---------------------------------------------------------------------
# Priorities
# ---------------------------------------------------------------------

@dataclass(slots=True)
class PriorityState:
    """
    Clamped priority stepping over an alphabet ordered highest first.

    `current` is None when the heading has no priority.
    """

    alphabet: Sequence[str]
    current: Optional[str] = None

    def _ladder(self) -> list[Optional[str]]:
        return [None, *reversed(list(self.alphabet))]

    def _position(self) -> int:
        ladder = self._ladder()
        if self.current in ladder:
            return ladder.index(self.current)
        return 0

    def increase(self) -> Optional[str]:
        ladder = self._ladder()
        return ladder[min(self._position() + 1, len(ladder) - 1)]

    def decrease(self) -> Optional[str]:
        ladder = self._ladder()
        return ladder[max(self._position() - 1, 0)]

    def prompt_text(self) -> str:
        return f"Priority {self.alphabet[0]}-{self.alphabet[-1]}, SPC to remove: "

    def resolve_input(self, raw: Optional[str]) -> tuple[bool, Optional[str]]:
        """
        Interpret a prompted priority.

        Returns (accepted, value); value None removes the priority.
        """
        if raw is None:
            return False, None
        value = raw.strip().upper()
        if not value:
            return True, None
        if value[:1] in self.alphabet:
            return True, value[:1]
        return False, None
