from datetime import date

import pytest

from slot_watch_agent.date_window import (
    next_weekday,
    normalise_weekday,
    parse_month_label,
    parse_target_date,
    resolve_weekdays,
)

MONDAY = date(2026, 10, 19)


def test_next_weekday_is_strictly_in_the_future():
    assert next_weekday("Friday", MONDAY) == date(2026, 10, 23)
    assert next_weekday("monday", MONDAY) == date(2026, 10, 26)
    assert next_weekday("Sunday", MONDAY) == date(2026, 10, 25)


def test_unknown_weekday_is_rejected():
    with pytest.raises(ValueError):
        normalise_weekday("Funday")


def test_resolve_weekdays_keeps_order_and_drops_repeats():
    assert resolve_weekdays(["Saturday", "Friday", "saturday"], MONDAY) == [
        date(2026, 10, 24),
        date(2026, 10, 23),
    ]


def test_parse_target_date_handles_iso_and_loose_formats():
    assert parse_target_date("2026-12-05") == date(2026, 12, 5)
    assert parse_target_date("December 5, 2026") == date(2026, 12, 5)
    with pytest.raises(ValueError):
        parse_target_date("")


def test_parse_month_label():
    assert parse_month_label("February 2026") == (2026, 2)
    assert parse_month_label("  Showing March 2027  ") == (2027, 3)
    assert parse_month_label("Loading calendar") is None
    assert parse_month_label(None) is None
