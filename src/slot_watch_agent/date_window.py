"""Utilities for resolving the calendar day a target should be checked on."""

from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Iterable, List, Optional

from dateutil import parser as date_parser

WEEKDAY_NAMES = {
    0: "Monday",
    1: "Tuesday",
    2: "Wednesday",
    3: "Thursday",
    4: "Friday",
    5: "Saturday",
    6: "Sunday",
}

WEEKDAY_INDICES = {name.lower(): index for index, name in WEEKDAY_NAMES.items()}

MONTH_LABEL_PATTERN = re.compile(r"([A-Z][a-z]+)\s+(\d{4})")


def normalise_weekday(name: str) -> str:
    """Return the canonical capitalised weekday name, raising on unknown input."""
    key = (name or "").strip().lower()
    if key not in WEEKDAY_INDICES:
        raise ValueError(f"Invalid day name: {name}")
    return WEEKDAY_NAMES[WEEKDAY_INDICES[key]]


def next_weekday(name: str, today: date | None = None) -> date:
    """
    Next future occurrence of ``name``.

    Today never counts: asking for "Friday" on a Friday gives the following week.
    """
    today = today or date.today()
    target_index = WEEKDAY_INDICES[normalise_weekday(name).lower()]
    days_until = target_index - today.weekday()
    if days_until <= 0:
        days_until += 7
    return today + timedelta(days=days_until)


def resolve_weekdays(names: Iterable[str], today: date | None = None) -> List[date]:
    """Resolve each weekday name, keeping the caller's order and dropping repeats."""
    resolved: List[date] = []
    for name in names:
        value = next_weekday(name, today)
        if value not in resolved:
            resolved.append(value)
    return resolved


def parse_target_date(text: str) -> date:
    """Parse an explicit date string (ISO first, then a lenient parse)."""
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValueError("Empty date string")
    try:
        return date.fromisoformat(cleaned)
    except ValueError:
        pass
    try:
        return date_parser.parse(cleaned, dayfirst=False).date()
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Unrecognised date: {text!r}") from exc


def parse_month_label(text: Optional[str]) -> Optional[tuple[int, int]]:
    """Extract ``(year, month)`` from a calendar caption like ``"February 2026"``."""
    if not text:
        return None
    match = MONTH_LABEL_PATTERN.search(text)
    if not match:
        return None
    try:
        parsed = date_parser.parse(f"{match.group(1)} 1 {match.group(2)}")
    except (ValueError, OverflowError):
        return None
    return parsed.year, parsed.month
