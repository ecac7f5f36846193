# src/orgedit/engine/timestamp.py

"""
Timestamp tokens.

This module parses, serialises and adjusts org timestamps:

    <2024-03-01 Fri>
    [2024-03-01 Fri 10:00]
    <2024-03-01 Fri 10:00-11:30 +1w -2d>
    <2024-03-01 Fri>--<2024-03-03 Sun>

Timestamps are immutable: every adjustment returns a new value. The text
range of a timestamp is carried along unchanged; callers update it after
substituting the new text into the buffer.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Final, Optional

from .model import Range


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class TimestampParseError(ValueError):
    """
    Raised when a token is not a well-formed timestamp.
    """


# ---------------------------------------------------------------------
# Units / repeaters
# ---------------------------------------------------------------------

class Unit(str, Enum):
    YEAR = "year"
    MONTH = "month"
    WEEK = "week"
    DAY = "day"
    HOUR = "hour"
    MINUTE = "minute"

    @classmethod
    def from_char(cls, ch: str) -> "Unit":
        """Map a repeater/warning unit letter to a Unit."""
        try:
            return _UNIT_CHARS[ch]
        except KeyError as e:
            raise TimestampParseError(f"Unknown unit: {ch!r}") from e

    @property
    def char(self) -> str:
        for ch, unit in _UNIT_CHARS.items():
            if unit is self:
                return ch
        raise ValueError(f"{self.value} has no unit letter")


_UNIT_CHARS: Final[dict[str, Unit]] = {
    "h": Unit.HOUR,
    "d": Unit.DAY,
    "w": Unit.WEEK,
    "m": Unit.MONTH,
    "y": Unit.YEAR,
}

# Unit letter cycle used when the cursor sits on a repeater unit.
NEXT_UNIT_CHAR: Final[dict[str, str]] = {"h": "d", "d": "w", "w": "m", "m": "y", "y": "h"}


class RepeaterKind(str, Enum):
    """
    Recurrence behaviour of a repeater.

    CUMULATIVE (+)  : shift once by the interval.
    CATCH_UP   (++) : shift by the interval until on or after today.
    RESTART    (.+) : shift by the interval counting from today.
    """

    CUMULATIVE = "+"
    CATCH_UP = "++"
    RESTART = ".+"


class WarningKind(str, Enum):
    ALL = "-"
    FIRST = "--"


@dataclass(frozen=True, slots=True)
class Repeater:
    kind: RepeaterKind
    amount: int
    unit: Unit

    def __str__(self) -> str:
        return f"{self.kind.value}{self.amount}{self.unit.char}"


@dataclass(frozen=True, slots=True)
class WarningPeriod:
    kind: WarningKind
    amount: int
    unit: Unit

    def __str__(self) -> str:
        return f"{self.kind.value}{self.amount}{self.unit.char}"


# ---------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------

DAYNAMES: Final[tuple[str, ...]] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

_SINGLE_RE = re.compile(
    r"""
    (?P<open>[<\[])
    (?P<date>\d{4}-\d{2}-\d{2})
    (?:[ ]+(?P<dayname>[^\s\d<>\[\]+\-.]+))?
    (?:[ ]+(?P<time>\d{2}:\d{2})(?:-(?P<time_end>\d{2}:\d{2}))?)?
    (?:[ ]+(?P<repeater>(?:\.\+|\+\+|\+)\d+[hdwmy]))?
    (?:[ ]+(?P<warning>--?\d+[hdwmy]))?
    (?P<close>[>\]])
    """,
    re.VERBOSE,
)

_CLOSERS: Final[dict[str, str]] = {"<": ">", "[": "]"}
_RANGE_SEP: Final[str] = "--"


# ---------------------------------------------------------------------
# Timestamp
# ---------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Timestamp:
    """
    A single timestamp token (or a date range, see `related_date_range`).

    `range` is the text range of the whole token, when the timestamp was
    read from a buffer. `is_logbook` marks CLOCK entries inside a LOGBOOK
    drawer.
    """

    date: date
    active: bool = True
    time: Optional[time] = None
    time_end: Optional[time] = None
    dayname: Optional[str] = None
    repeater: Optional[Repeater] = None
    warning: Optional[WarningPeriod] = None
    related_date_range: Optional["Timestamp"] = None
    is_logbook: bool = False
    range: Optional[Range] = None

    # -----------------------------------------------------------------
    # Constructors
    # -----------------------------------------------------------------

    @classmethod
    def from_date(cls, d: date, *, active: bool = True) -> "Timestamp":
        return cls(date=d, active=active, dayname=dayname_for(d))

    @classmethod
    def from_datetime(cls, dt: datetime, *, active: bool = True) -> "Timestamp":
        return cls(
            date=dt.date(),
            active=active,
            time=time(dt.hour, dt.minute),
            dayname=dayname_for(dt.date()),
        )

    @classmethod
    def now(cls, *, active: bool = False, at: Optional[datetime] = None) -> "Timestamp":
        return cls.from_datetime(at or datetime.now(), active=active)

    # -----------------------------------------------------------------
    # Serialisation
    # -----------------------------------------------------------------

    def to_string(self) -> str:
        """Render the body of a single timestamp (no delimiters)."""
        parts = [self.date.isoformat()]
        if self.dayname:
            parts.append(self.dayname)
        if self.time is not None:
            t = _fmt_time(self.time)
            if self.time_end is not None:
                t = f"{t}-{_fmt_time(self.time_end)}"
            parts.append(t)
        if self.repeater is not None:
            parts.append(str(self.repeater))
        if self.warning is not None:
            parts.append(str(self.warning))
        return " ".join(parts)

    def to_wrapped_string(self, active: Optional[bool] = None) -> str:
        """
        Render the full token, including a date range's second half.

        `active` overrides the delimiters of both halves when given.
        """
        is_active = self.active if active is None else active
        opener, closer = ("<", ">") if is_active else ("[", "]")
        out = f"{opener}{self.to_string()}{closer}"
        if self.related_date_range is not None:
            out += _RANGE_SEP + self.related_date_range.to_wrapped_string(active)
        return out

    def __str__(self) -> str:
        return self.to_wrapped_string()

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    @property
    def is_date_range(self) -> bool:
        return self.related_date_range is not None

    def to_datetime(self) -> datetime:
        return datetime.combine(self.date, self.time or time(0, 0))

    # -----------------------------------------------------------------
    # Arithmetic
    # -----------------------------------------------------------------

    def adjust(self, amount: int, unit: Unit) -> "Timestamp":
        """
        Shift the start of the timestamp by `amount` units.

        Month/year shifts clamp the day to the target month's length.
        Hour/minute shifts carry over into the date and move the end of a
        time range by the same amount, keeping its duration.
        """
        if unit in (Unit.YEAR, Unit.MONTH):
            months = amount * 12 if unit is Unit.YEAR else amount
            return self._with_date(_add_months(self.date, months))

        if unit in (Unit.WEEK, Unit.DAY):
            days = amount * 7 if unit is Unit.WEEK else amount
            return self._with_date(self.date + timedelta(days=days))

        delta = timedelta(hours=amount) if unit is Unit.HOUR else timedelta(minutes=amount)
        start = self.to_datetime() + delta
        time_end = self.time_end
        if time_end is not None:
            time_end = _clip_time((datetime.combine(self.date, time_end) + delta).time())
        return replace(
            self,
            date=start.date(),
            time=_clip_time(start.time()),
            time_end=time_end,
            dayname=dayname_for(start.date()),
        )

    def adjust_end_time(self, amount: int, unit: Unit) -> "Timestamp":
        """
        Shift only the end time-of-day of a time range.

        The end wraps around midnight without touching the date.
        """
        if self.time_end is None:
            return self
        if unit is Unit.HOUR:
            delta = timedelta(hours=amount)
        elif unit is Unit.MINUTE:
            delta = timedelta(minutes=amount)
        else:
            raise ValueError(f"End time can only move by hours or minutes, not {unit.value}")
        end = datetime.combine(self.date, self.time_end) + delta
        return replace(self, time_end=_clip_time(end.time()), dayname=dayname_for(self.date))

    def apply_repeater(self, now: Optional[datetime] = None) -> "Timestamp":
        """
        Advance a repeating timestamp to its next occurrence.

        Timestamps without a repeater, or with a zero amount, are returned
        unchanged.
        """
        rep = self.repeater
        if rep is None or rep.amount <= 0:
            return self

        now = now or datetime.now()

        if rep.kind is RepeaterKind.CUMULATIVE:
            return self._shift(rep.amount, rep.unit)

        if rep.kind is RepeaterKind.RESTART:
            if rep.unit is Unit.HOUR:
                base = replace(self, date=now.date(), time=time(now.hour, now.minute))
            else:
                base = replace(self, date=now.date())
            offset = base.date - self.date
            if base.related_date_range is not None:
                base = replace(base, related_date_range=base.related_date_range._with_date(
                    base.related_date_range.date + offset
                ))
            return base._shift(rep.amount, rep.unit)

        # CATCH_UP: at least one step, then until on or after today.
        nxt = self._shift(rep.amount, rep.unit)
        if rep.unit is Unit.HOUR:
            while nxt.to_datetime() < now:
                nxt = nxt._shift(rep.amount, rep.unit)
        else:
            while nxt.date < now.date():
                nxt = nxt._shift(rep.amount, rep.unit)
        return nxt

    def with_related(self, other: Optional["Timestamp"]) -> "Timestamp":
        return replace(self, related_date_range=other)

    def toggled(self) -> "Timestamp":
        """Flip active/inactive delimiters (both halves of a range)."""
        related = self.related_date_range
        if related is not None:
            related = replace(related, active=not self.active)
        return replace(self, active=not self.active, related_date_range=related)

    def _with_date(self, d: date) -> "Timestamp":
        return replace(self, date=d, dayname=dayname_for(d))

    def _shift(self, amount: int, unit: Unit) -> "Timestamp":
        shifted = self.adjust(amount, unit)
        if self.related_date_range is not None:
            shifted = replace(shifted, related_date_range=self.related_date_range.adjust(amount, unit))
        return shifted


# ---------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------

def parse_timestamp(text: str) -> Timestamp:
    """
    Parse a complete timestamp token.

    Accepts a single timestamp or a `<a>--<b>` date range.
    Raises TimestampParseError on anything else.
    """
    m = _SINGLE_RE.match(text)
    if not m:
        raise TimestampParseError(f"Not a timestamp: {text!r}")

    ts = _from_match(m)
    rest = text[m.end():]
    if not rest:
        return ts

    if not rest.startswith(_RANGE_SEP):
        raise TimestampParseError(f"Trailing text after timestamp: {text!r}")

    m2 = _SINGLE_RE.fullmatch(rest[len(_RANGE_SEP):])
    if not m2:
        raise TimestampParseError(f"Malformed date range: {text!r}")
    return ts.with_related(_from_match(m2))


def try_parse_timestamp(text: str) -> Optional[Timestamp]:
    try:
        return parse_timestamp(text)
    except TimestampParseError:
        return None


def parse_all_from_line(line: str, line_number: int) -> list[Timestamp]:
    """
    Return every timestamp token found on a line, with ranges set.

    Tokens with mismatched delimiters or impossible dates are skipped.
    """
    out: list[Timestamp] = []
    pos = 0
    while True:
        m = _SINGLE_RE.search(line, pos)
        if not m:
            break
        try:
            ts = _from_match(m)
        except TimestampParseError:
            pos = m.start() + 1
            continue

        end = m.end()
        if line.startswith(_RANGE_SEP, end):
            m2 = _SINGLE_RE.match(line, end + len(_RANGE_SEP))
            if m2:
                try:
                    second = _from_match(m2)
                except TimestampParseError:
                    second = None
                if second is not None:
                    second = replace(
                        second,
                        range=Range(line_number, m2.start(), line_number, m2.end()),
                    )
                    ts = ts.with_related(second)
                    end = m2.end()

        out.append(replace(ts, range=Range(line_number, m.start(), line_number, end)))
        pos = end
    return out


def _from_match(m: re.Match[str]) -> Timestamp:
    opener, closer = m.group("open"), m.group("close")
    if _CLOSERS[opener] != closer:
        raise TimestampParseError(f"Mismatched delimiters in {m.group(0)!r}")

    try:
        d = date.fromisoformat(m.group("date"))
        t = _parse_time(m.group("time"))
        t_end = _parse_time(m.group("time_end"))
    except ValueError as e:
        raise TimestampParseError(f"Invalid date or time in {m.group(0)!r}") from e

    return Timestamp(
        date=d,
        active=opener == "<",
        time=t,
        time_end=t_end,
        dayname=m.group("dayname"),
        repeater=_parse_repeater(m.group("repeater")),
        warning=_parse_warning(m.group("warning")),
    )


def _parse_time(raw: Optional[str]) -> Optional[time]:
    if raw is None:
        return None
    h, mm = raw.split(":", 1)
    return time(int(h), int(mm))


def _parse_repeater(raw: Optional[str]) -> Optional[Repeater]:
    if raw is None:
        return None
    for kind in (RepeaterKind.RESTART, RepeaterKind.CATCH_UP, RepeaterKind.CUMULATIVE):
        if raw.startswith(kind.value):
            body = raw[len(kind.value):]
            amount = int(body[:-1])
            if amount == 0:
                raise TimestampParseError(f"Repeater amount must be positive: {raw!r}")
            return Repeater(kind=kind, amount=amount, unit=Unit.from_char(body[-1]))
    raise TimestampParseError(f"Invalid repeater: {raw!r}")


def _parse_warning(raw: Optional[str]) -> Optional[WarningPeriod]:
    if raw is None:
        return None
    kind = WarningKind.FIRST if raw.startswith("--") else WarningKind.ALL
    body = raw[len(kind.value):]
    return WarningPeriod(kind=kind, amount=int(body[:-1]), unit=Unit.from_char(body[-1]))


# ---------------------------------------------------------------------
# Field location
# ---------------------------------------------------------------------

class Field(str, Enum):
    DELIMITER = "delimiter"
    YEAR = "year"
    MONTH = "month"
    DAY = "day"
    DAYNAME = "dayname"
    HOUR = "hour"
    MINUTE = "minute"
    END_HOUR = "end_hour"
    END_MINUTE = "end_minute"
    REPEATER = "repeater"
    REPEATER_UNIT = "repeater_unit"
    RANGE_SEPARATOR = "range_separator"


@dataclass(frozen=True, slots=True)
class FieldRef:
    """
    The sub-field addressed by an offset inside a timestamp token.

    `in_related` is True when the offset falls in the second half of a
    date range.
    """

    field: Field
    in_related: bool = False


def locate_field(text: str, offset: int) -> Optional[FieldRef]:
    """
    Map a character offset inside a timestamp token to its sub-field.

    Separators and blanks belong to the field to their left, so every
    offset of a well-formed token maps to exactly one field.
    Returns None for malformed text or offsets outside the token.
    """
    if offset < 0 or offset >= len(text):
        return None

    m = _SINGLE_RE.match(text)
    if not m:
        return None

    if offset < m.end():
        return _field_in_single(m, offset, in_related=False)

    rest_start = m.end()
    if not text.startswith(_RANGE_SEP, rest_start):
        return None
    if offset < rest_start + len(_RANGE_SEP):
        return FieldRef(Field.RANGE_SEPARATOR)

    m2 = _SINGLE_RE.match(text, rest_start + len(_RANGE_SEP))
    if not m2 or offset >= m2.end():
        return None
    return _field_in_single(m2, offset, in_related=True)


def _field_in_single(m: re.Match[str], offset: int, *, in_related: bool) -> FieldRef:
    if offset == m.start() or offset == m.end() - 1:
        return FieldRef(Field.DELIMITER, in_related)

    marks: list[tuple[int, Field]] = []

    ds = m.start("date")
    marks += [(ds, Field.YEAR), (ds + 5, Field.MONTH), (ds + 8, Field.DAY)]

    if m.group("dayname"):
        marks.append((m.start("dayname"), Field.DAYNAME))

    if m.group("time"):
        ts = m.start("time")
        colon = m.group("time").index(":")
        marks += [(ts, Field.HOUR), (ts + colon + 1, Field.MINUTE)]
    if m.group("time_end"):
        te = m.start("time_end")
        colon = m.group("time_end").index(":")
        marks += [(te, Field.END_HOUR), (te + colon + 1, Field.END_MINUTE)]

    for name in ("repeater", "warning"):
        if m.group(name):
            marks += [(m.start(name), Field.REPEATER), (m.end(name) - 1, Field.REPEATER_UNIT)]
            marks.append((m.end(name), Field.REPEATER))

    found = Field.YEAR
    for start, fld in marks:
        if start <= offset:
            found = fld
    return FieldRef(found, in_related)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def dayname_for(d: date) -> str:
    return DAYNAMES[d.weekday()]


def format_duration(minutes: int) -> str:
    """Render a clock duration as `H:MM`, the way CLOCK lines show it."""
    minutes = max(0, minutes)
    return f"{minutes // 60}:{minutes % 60:02d}"


def _fmt_time(t: time) -> str:
    return f"{t.hour:02d}:{t.minute:02d}"


def _clip_time(t: time) -> time:
    return time(t.hour, t.minute)


def _add_months(d: date, months: int) -> date:
    idx = d.year * 12 + (d.month - 1) + months
    year, month = divmod(idx, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last))
