"""Shared data models used across the slot watch agent."""

from __future__ import annotations

import time as _time
from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .clock import DAY_PERIODS, format_12h, parse_clock, to_24h
from .date_window import normalise_weekday, resolve_weekdays

MAX_PARTY_SIZE = 20


class TimeWindow(BaseModel):
    """Inclusive clock range a slot must fall within."""

    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @field_validator("start", "end", mode="before")
    @classmethod
    def _coerce_clock(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_clock(value)
        return value

    @model_validator(mode="after")
    def _ordered(self) -> "TimeWindow":
        if self.start > self.end:
            raise ValueError("window start must not be after window end")
        return self

    @property
    def label(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"

    def contains(self, value: time | str) -> bool:
        if isinstance(value, str):
            value = parse_clock(value)
        return self.start <= value <= self.end


class TargetDescriptor(BaseModel):
    """Immutable scrape request produced by the alert store."""

    model_config = ConfigDict(frozen=True)

    target_id: str
    site_id: str
    target_date: Optional[date] = None
    weekdays: Tuple[str, ...] = ()
    party_size: int = Field(..., ge=1, le=MAX_PARTY_SIZE)
    periods: Tuple[str, ...] = ()
    window: Optional[TimeWindow] = None

    @field_validator("weekdays", mode="before")
    @classmethod
    def _normalise_weekdays(cls, value: object) -> object:
        if isinstance(value, str):
            value = [value]
        if value is None:
            return ()
        return tuple(normalise_weekday(str(item)) for item in value)

    @field_validator("periods", mode="before")
    @classmethod
    def _normalise_periods(cls, value: object) -> object:
        if isinstance(value, str):
            value = [value]
        if value is None:
            return ()
        periods: list[str] = []
        for item in value:
            name = str(item).strip().lower()
            if name not in DAY_PERIODS:
                raise ValueError(f"Unknown period {item!r}; expected one of {sorted(DAY_PERIODS)}")
            if name not in periods:
                periods.append(name)
        return tuple(periods)

    @model_validator(mode="after")
    def _check_shape(self) -> "TargetDescriptor":
        if (self.target_date is None) == (not self.weekdays):
            raise ValueError("exactly one of target_date or weekdays is required")
        if not self.periods and self.window is None:
            raise ValueError("at least one period or a time window is required")
        return self

    def period_labels(self) -> List[str]:
        """The requested period set every produced slot must belong to."""
        if self.periods:
            return list(self.periods)
        if self.window is None:
            raise ValueError("descriptor has neither periods nor a time window")
        return [self.window.label]

    def resolve_dates(self, today: date | None = None) -> List[date]:
        if self.target_date is not None:
            return [self.target_date]
        return resolve_weekdays(self.weekdays, today)

    def for_date(self, day: date) -> "TargetDescriptor":
        """Single-date copy of this descriptor."""
        return self.model_copy(update={"target_date": day, "weekdays": ()})


@dataclass(frozen=True)
class Slot:
    """One extracted availability unit; equal when time and period match."""

    time: str
    period: str
    available: bool = field(default=True, compare=False)

    @classmethod
    def from_text(cls, text: str, period: str, *, available: bool = True) -> "Slot":
        return cls(time=format_12h(to_24h(text)), period=period, available=available)

    @property
    def time24(self) -> str:
        return to_24h(self.time)


@dataclass
class PeriodResult:
    """Slots found for a single requested period, or the error isolated to it."""

    period: str
    slots: list[Slot] = field(default_factory=list)
    error: Optional[str] = None
    no_availability: bool = False


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    NO_AVAILABILITY = "no_availability"
    DATE_UNAVAILABLE = "date_unavailable"
    ERROR = "error"


class ScrapeOutcome(BaseModel):
    """Result of processing one single-date target, handed to the reporter."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    target_id: str
    site_id: str
    target_date: Optional[date] = None
    status: OutcomeStatus
    periods: List[PeriodResult] = Field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[str] = None
    attempts: int = 1
    duration_ms: int = 0

    @property
    def slots(self) -> List[Slot]:
        return [slot for result in self.periods for slot in result.slots]

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.ERROR

    def slots_by_period(self) -> dict[str, List[Slot]]:
        return {result.period: list(result.slots) for result in self.periods}

    @classmethod
    def from_periods(cls, target: TargetDescriptor, periods: List[PeriodResult]) -> "ScrapeOutcome":
        found = any(result.slots for result in periods)
        return cls(
            target_id=target.target_id,
            site_id=target.site_id,
            target_date=target.target_date,
            status=OutcomeStatus.SUCCESS if found else OutcomeStatus.NO_AVAILABILITY,
            periods=periods,
        )

    @classmethod
    def date_unavailable(cls, target: TargetDescriptor) -> "ScrapeOutcome":
        return cls(
            target_id=target.target_id,
            site_id=target.site_id,
            target_date=target.target_date,
            status=OutcomeStatus.DATE_UNAVAILABLE,
            periods=[PeriodResult(period=label) for label in target.period_labels()],
        )

    @classmethod
    def failure(cls, target: TargetDescriptor, message: str, *, kind: str | None = None) -> "ScrapeOutcome":
        return cls(
            target_id=target.target_id,
            site_id=target.site_id,
            target_date=target.target_date,
            status=OutcomeStatus.ERROR,
            error=message,
            error_kind=kind,
        )


@dataclass
class Attempt:
    """Counter plus elapsed time for one try inside the retry shell."""

    number: int
    started: float = field(default_factory=_time.monotonic)

    @property
    def elapsed_ms(self) -> int:
        return int((_time.monotonic() - self.started) * 1000)
