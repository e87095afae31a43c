"""Date parsing and the half-open [from, to) trailing window.

Dates arrive as ISO-8601 timestamps, plain dates, D/M/YYYY strings, SQL
date/datetime values or epoch milliseconds. Everything is resolved to a
timezone-aware instant in the local calendar's timezone; day comparisons
use that local calendar.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any

from dateutil import parser as date_parser

_DMY_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$")

# Two different defaults: a component missing from the input shows up as a
# difference between the two parses.
_PROBE_DEFAULTS = (datetime(2000, 1, 1), datetime(2001, 2, 2))


@dataclass(frozen=True)
class Window:
    """Half-open calendar window [from_date, to_date)."""

    from_date: date
    to_date: date

    @property
    def days(self) -> int:
        return (self.to_date - self.from_date).days

    @property
    def from_str(self) -> str:
        return self.from_date.isoformat()

    @property
    def to_str(self) -> str:
        return self.to_date.isoformat()

    def contains(self, day: date) -> bool:
        return self.from_date <= day < self.to_date

    def as_dict(self) -> dict[str, str]:
        return {"from": self.from_str, "to": self.to_str}


def window_range(days: int, now: datetime) -> Window:
    """Trailing window of `days` days ending with today (inclusive).

    `to` is the start of tomorrow in `now`'s calendar, so today is always
    fully inside and future dates are outside.

    Examples:
        >>> w = window_range(30, datetime(2024, 5, 31, 15, 0))
        >>> (w.from_str, w.to_str)
        ('2024-05-02', '2024-06-01')
    """
    tomorrow = now.date() + timedelta(days=1)
    return Window(from_date=tomorrow - timedelta(days=days), to_date=tomorrow)


def _localize(dt: datetime, tz: tzinfo) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def _parse_iso(text: str) -> datetime | None:
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_general(text: str) -> datetime | None:
    """Lenient parse via dateutil; rejects strings without a full date."""
    try:
        first, second = (
            date_parser.parse(text, dayfirst=True, default=default) for default in _PROBE_DEFAULTS
        )
    except (ValueError, OverflowError):
        return None
    if first.date() != second.date():
        return None
    return first


def _parse_dmy(text: str) -> datetime | None:
    m = _DMY_RE.match(text)
    if not m:
        return None
    day, month, year = (int(g) for g in m.groups())
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def parse_to_instant(value: Any, tz: tzinfo) -> datetime | None:
    """Resolve a date-like value to an aware datetime in `tz`.

    Returns None when the value cannot be parsed; callers must treat that as
    "exclude this record".
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return _localize(value, tz)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=tz)

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).astimezone(tz)
        except (OverflowError, OSError, ValueError):
            return None

    text = str(value).strip()
    if not text:
        return None

    parsed = _parse_iso(text) or _parse_general(text) or _parse_dmy(text)
    if parsed is None:
        return None
    return _localize(parsed, tz)


def to_day(value: Any, tz: tzinfo) -> date | None:
    """Local calendar day of a date-like value."""
    instant = parse_to_instant(value, tz)
    return instant.date() if instant else None


def to_ymd(value: Any, tz: tzinfo) -> str:
    """'YYYY-MM-DD' of a date-like value, '' if unparseable."""
    day = to_day(value, tz)
    return day.isoformat() if day else ""


def in_window(value: Any, window: Window, tz: tzinfo) -> bool:
    """True iff the value's local day satisfies from <= day < to."""
    day = to_day(value, tz)
    return day is not None and window.contains(day)
