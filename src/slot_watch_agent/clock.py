"""Clock-time parsing, 12h/24h conversion and named day periods."""

from __future__ import annotations

import re
from datetime import time
from typing import Iterable, TypeVar

TIME_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)", re.IGNORECASE)
_CLOCK_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::(\d{2}))?\s*(AM|PM)?\s*$", re.IGNORECASE)

# Start/end of each named period as offered by the activity widget.
DAY_PERIODS: dict[str, tuple[time, time]] = {
    "morning": (time(8, 0), time(12, 0)),
    "afternoon": (time(12, 0), time(16, 0)),
    "evening": (time(16, 0), time(18, 0)),
}

T = TypeVar("T")


def _to_hour24(hour: int, meridiem: str | None) -> int:
    if meridiem is None:
        if not 0 <= hour <= 23:
            raise ValueError(f"Hour out of range: {hour}")
        return hour
    if not 1 <= hour <= 12:
        raise ValueError(f"Hour out of range for 12-hour clock: {hour}")
    meridiem = meridiem.upper()
    if meridiem == "AM":
        return 0 if hour == 12 else hour
    return hour if hour == 12 else hour + 12


def parse_clock(text: str) -> time:
    """Parse ``"16:00"``, ``"16:00:00"`` or ``"4:00 PM"`` into a ``time``."""
    match = _CLOCK_PATTERN.match(text or "")
    if not match:
        raise ValueError(f"Unrecognised clock time: {text!r}")
    hour, minute, second, meridiem = match.groups()
    minute_value = int(minute)
    if minute_value > 59:
        raise ValueError(f"Minute out of range: {text!r}")
    return time(_to_hour24(int(hour), meridiem), minute_value, int(second or 0))


def find_time(text: str) -> str | None:
    """Return the first ``H:MM AM/PM`` fragment found in ``text``."""
    match = TIME_PATTERN.search(text or "")
    return match.group(0) if match else None


def to_24h(text: str) -> str:
    """Convert a 12-hour clock string to ``HH:MM``.

    ``12 AM`` maps to hour 00, ``12 PM`` stays 12 and every other PM hour
    gains 12.
    """
    match = TIME_PATTERN.search(text or "")
    if not match:
        raise ValueError(f"Not a 12-hour clock time: {text!r}")
    hour, minute, meridiem = match.groups()
    if int(minute) > 59:
        raise ValueError(f"Minute out of range: {text!r}")
    return f"{_to_hour24(int(hour), meridiem):02d}:{minute}"


def format_12h(value: time | str) -> str:
    """Render a time as ``H:MM AM``/``H:MM PM``."""
    if isinstance(value, str):
        value = parse_clock(value)
    meridiem = "AM" if value.hour < 12 else "PM"
    hour = value.hour % 12 or 12
    return f"{hour}:{value.minute:02d} {meridiem}"


def period_for_time(value: time | str) -> str:
    """Map a clock time onto morning/afternoon/evening."""
    if isinstance(value, str):
        value = parse_clock(value)
    if value.hour < 12:
        return "morning"
    if value.hour < 16:
        return "afternoon"
    return "evening"


def period_label(period: str) -> str:
    """Tab caption used by widgets for a named period."""
    return period.strip().capitalize()


def filter_by_window(items: Iterable[T], start: time, end: time, *, key) -> list[T]:
    """Keep items whose clock time (via ``key``) lies in ``[start, end]``."""
    kept: list[T] = []
    for item in items:
        moment = parse_clock(key(item))
        if start <= moment <= end:
            kept.append(item)
    return kept
