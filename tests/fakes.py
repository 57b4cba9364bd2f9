"""In-memory booking widget used in place of a live Playwright page."""

from __future__ import annotations

import calendar
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Pattern, Sequence

from slot_watch_agent.extractor import ElementSnapshot
from slot_watch_agent.fingerprint import DESKTOP_CHROMIUM
from slot_watch_agent.sites import SiteProfile

TEST_SITE = SiteProfile(
    site_id="test-widget",
    display_name="Test Widget",
    url="https://widget.test/book",
    fingerprint=DESKTOP_CHROMIUM,
    month_label=("#month",),
    next_month=("#next",),
    previous_month=("#prev",),
    day_candidates=("#days button",),
    fallback_day_candidates=(),
    party_readout=("#guests",),
    party_select=("#party-select",),
    party_increase=("#plus",),
    party_decrease=("#minus",),
    party_input=("#party-input",),
    party_button=('button.count:text-is("{count}")',),
    advance_after_date=("Next", "Continue"),
    advance_after_party=("Next", "Search"),
    period_tab=('.tab:has-text("{label}")',),
    slot_candidates="#slots button",
    initial_settle_ms=0,
    calendar_settle_ms=0,
    step_settle_ms=0,
    click_settle_ms=0,
    panel_settle_ms=0,
)


def button(text: str, *, disabled: bool = False, aria: Optional[str] = None, cls: str = "") -> ElementSnapshot:
    return ElementSnapshot(text=text, disabled=disabled, aria_disabled=aria, class_name=cls)


@dataclass
class Panel:
    """Contents of the result panel for one period tab."""

    buttons: List[ElementSnapshot] = field(default_factory=list)
    message: str = ""
    error: Optional[Exception] = None


@dataclass
class FakeWidget:
    """Simulated wizard: calendar, guest controls, advance buttons and result panels."""

    shown: tuple[int, int] = (2026, 10)
    disabled_days: set[int] = field(default_factory=set)
    has_next: bool = True
    has_prev: bool = True
    readable_label: bool = True
    stuck_calendar: bool = False
    guests: int = 1
    controls: set[str] = field(default_factory=lambda: {"stepper"})
    advance_labels: set[str] = field(default_factory=lambda: {"Next"})
    panels: Dict[Optional[str], Panel] = field(default_factory=dict)
    navigate_error: Optional[Exception] = None

    selected_day: Optional[date] = None
    active_tab: Optional[str] = None
    clicks: List[str] = field(default_factory=list)
    month_clicks: int = 0
    advanced: List[str] = field(default_factory=list)
    settles: List[int] = field(default_factory=list)
    navigated: List[str] = field(default_factory=list)

    @property
    def month_label(self) -> str:
        year, month = self.shown
        return f"{calendar.month_name[month]} {year}"

    def _step_month(self, delta: int) -> None:
        self.month_clicks += 1
        if self.stuck_calendar:
            return
        year, month = self.shown
        month += delta
        if month == 13:
            year, month = year + 1, 1
        elif month == 0:
            year, month = year - 1, 12
        self.shown = (year, month)

    def _panel(self) -> Panel:
        return self.panels.get(self.active_tab) or self.panels.get(None) or Panel()

    async def navigate(self, url: str, timeout_ms: Optional[int] = None) -> None:
        self.navigated.append(url)
        if self.navigate_error is not None:
            raise self.navigate_error

    async def wait_for_network_idle(self, timeout_ms: int = 4000) -> None:
        return None

    async def read_text(self, selectors: Sequence[str]) -> Optional[str]:
        for selector in selectors:
            if selector == "#month":
                return self.month_label if self.readable_label else "Loading calendar"
            if selector == "#guests" and "stepper" in self.controls:
                return f"{self.guests} Guests"
        return None

    async def read_value(self, selectors: Sequence[str]) -> Optional[str]:
        if "#party-select" in selectors and "select" in self.controls:
            return str(self.guests)
        return None

    async def click_first(self, selectors: Sequence[str]) -> Optional[str]:
        for selector in selectors:
            if self._click(selector):
                self.clicks.append(selector)
                return selector
        return None

    def _click(self, selector: str) -> bool:
        if selector == "#next" and self.has_next:
            self._step_month(1)
            return True
        if selector == "#prev" and self.has_prev:
            self._step_month(-1)
            return True
        if selector == "#plus" and "stepper" in self.controls:
            self.guests += 1
            return True
        if selector == "#minus" and "stepper" in self.controls:
            self.guests -= 1
            return True
        if selector.startswith('button.count:text-is("') and "button" in self.controls:
            self.guests = int(selector.split('"')[1])
            return True
        if selector.startswith('button:has-text("'):
            label = selector.split('"')[1]
            if label in self.advance_labels:
                self.advanced.append(label)
                return True
            return False
        if selector.startswith('.tab:has-text("'):
            label = selector.split('"')[1]
            if label in self.panels:
                self.active_tab = label
                return True
        return False

    async def click_nth(self, selector: str, index: int) -> None:
        assert selector == "#days button"
        year, month = self.shown
        self.selected_day = date(year, month, index + 1)

    async def select_value(self, selectors: Sequence[str], value: str) -> bool:
        if "#party-select" in selectors and "select" in self.controls:
            self.guests = int(value)
            return True
        return False

    async def fill(self, selectors: Sequence[str], value: str) -> bool:
        if "#party-input" in selectors and "input" in self.controls:
            self.guests = int(value)
            return True
        return False

    async def snapshots(self, selector: str) -> List[ElementSnapshot]:
        if selector == "#days button":
            year, month = self.shown
            last = calendar.monthrange(year, month)[1]
            return [button(str(day), disabled=day in self.disabled_days) for day in range(1, last + 1)]
        if selector == "#slots button":
            panel = self._panel()
            if panel.error is not None:
                raise panel.error
            return [button("Back"), *panel.buttons, button("Select a time")]
        return []

    async def has_text(self, pattern: Pattern[str]) -> bool:
        message = self._panel().message
        return bool(message and pattern.search(message))

    async def scroll_by(self, pixels: int) -> None:
        return None

    async def settle(self, ms: int) -> None:
        self.settles.append(ms)

    async def wait_until(self, predicate, timeout_ms: int, interval_ms: int = 250) -> bool:
        return await predicate()


class FakeSessionFactory:
    """Hands out one widget per attempt and counts open/close pairs."""

    def __init__(self, *widgets: FakeWidget):
        self._widgets = list(widgets)
        self.opened = 0
        self.closed = 0
        self.profiles: List[str] = []

    def __call__(self, profile, settings):
        self.profiles.append(profile.name)
        return self._session()

    @asynccontextmanager
    async def _session(self):
        assert self.opened == self.closed, "a previous session is still open"
        widget = self._widgets[min(self.opened, len(self._widgets) - 1)]
        self.opened += 1
        try:
            yield widget
        finally:
            self.closed += 1
