from datetime import date, time

import pytest
from pydantic import ValidationError

from slot_watch_agent.models import (
    OutcomeStatus,
    PeriodResult,
    ScrapeOutcome,
    Slot,
    TargetDescriptor,
    TimeWindow,
)


def make_target(**overrides) -> TargetDescriptor:
    values = dict(target_id="a1", site_id="disneyland-bbb", target_date=date(2026, 11, 2), party_size=2, periods=["Morning"])
    values.update(overrides)
    return TargetDescriptor(**values)


def test_periods_are_normalised_and_deduplicated():
    target = make_target(periods=["Evening", "morning", "evening"])
    assert target.periods == ("evening", "morning")
    assert target.period_labels() == ["evening", "morning"]


def test_window_only_target_uses_window_label_as_period():
    target = make_target(periods=(), window={"start": "16:00:00", "end": "8:00 PM"})
    assert target.window == TimeWindow(start=time(16, 0), end=time(20, 0))
    assert target.period_labels() == ["16:00-20:00"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"party_size": 0},
        {"party_size": 21},
        {"periods": ["brunch"]},
        {"periods": ()},
        {"weekdays": ["Friday"]},
        {"target_date": None},
        {"periods": (), "window": {"start": "20:00", "end": "16:00"}},
    ],
)
def test_invalid_descriptors_are_rejected(overrides):
    with pytest.raises(ValidationError):
        make_target(**overrides)


def test_weekday_target_resolves_and_splits_per_date():
    target = make_target(target_date=None, weekdays=["friday", "Saturday"])
    days = target.resolve_dates(date(2026, 10, 19))
    assert days == [date(2026, 10, 23), date(2026, 10, 24)]
    single = target.for_date(days[0])
    assert single.target_date == date(2026, 10, 23)
    assert single.weekdays == ()
    assert target.weekdays == ("Friday", "Saturday")


def test_descriptor_is_immutable():
    target = make_target()
    with pytest.raises(ValidationError):
        target.party_size = 5


def test_outcome_status_reflects_slots():
    target = make_target(periods=["morning", "evening"])
    empty = ScrapeOutcome.from_periods(target, [PeriodResult("morning"), PeriodResult("evening")])
    assert empty.status is OutcomeStatus.NO_AVAILABILITY
    assert empty.ok

    found = ScrapeOutcome.from_periods(
        target,
        [PeriodResult("morning"), PeriodResult("evening", slots=[Slot("4:30 PM", "evening")])],
    )
    assert found.status is OutcomeStatus.SUCCESS
    assert found.slots_by_period() == {"morning": [], "evening": [Slot("4:30 PM", "evening")]}


def test_date_unavailable_is_a_successful_empty_outcome():
    outcome = ScrapeOutcome.date_unavailable(make_target())
    assert outcome.ok
    assert outcome.error is None
    assert outcome.slots == []


def test_failure_outcome_carries_message_and_no_slots():
    outcome = ScrapeOutcome.failure(make_target(), "boom", kind="selector_not_found")
    assert not outcome.ok
    assert outcome.error == "boom"
    assert outcome.slots == []


def test_period_labels_refuse_unvalidated_empty_descriptor():
    target = TargetDescriptor.model_construct(target_id="x", site_id="disneyland-bbb", party_size=2, periods=(), window=None)

    with pytest.raises(ValueError):
        target.period_labels()
