"""Site-agnostic booking wizard: date, party size, then one pass per period."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Sequence

import structlog

from .clock import DAY_PERIODS, TIME_PATTERN, period_label
from .date_window import parse_month_label
from .errors import CalendarNavigationExhausted, PeriodExtractionError, SelectorNotFound, WizardStateError
from .extractor import ElementSnapshot, extract_slots
from .models import PeriodResult
from .session import WidgetPage
from .sites import SiteProfile

LOGGER = structlog.get_logger(__name__)

_NUMBER = re.compile(r"\d+")


class WizardState(str, Enum):
    SELECT_DATE = "select_date"
    SET_PARTY_SIZE = "set_party_size"
    SELECT_PERIOD = "select_period"
    TERMINAL = "terminal"


_ORDER = [
    WizardState.SELECT_DATE,
    WizardState.SET_PARTY_SIZE,
    WizardState.SELECT_PERIOD,
    WizardState.TERMINAL,
]


@dataclass
class WizardResult:
    """What one pass through the wizard produced."""

    date_available: bool
    party_applied: bool = False
    periods: List[PeriodResult] = field(default_factory=list)


def _fill(template: str, **values: object) -> str:
    # str.format would trip over regex quantifiers such as \d{4} in text selectors.
    for key, value in values.items():
        template = template.replace("{" + key + "}", str(value))
    return template


def _day_enabled(snapshot: ElementSnapshot) -> bool:
    return not snapshot.disabled and (snapshot.aria_disabled or "").strip().lower() != "true"


def _first_int(text: Optional[str]) -> Optional[int]:
    if not text:
        return None
    match = _NUMBER.search(text)
    return int(match.group(0)) if match else None


class WizardNavigator:
    """Drives one site's booking flow through a strict state sequence."""

    def __init__(
        self,
        site: SiteProfile,
        page: WidgetPage,
        *,
        max_calendar_steps: int = 12,
        wait_timeout_ms: int = 3000,
    ):
        self._site = site
        self._page = page
        self._max_calendar_steps = max_calendar_steps
        self._wait_timeout_ms = wait_timeout_ms
        self.state: Optional[WizardState] = None
        self.history: List[WizardState] = []

    def _enter(self, state: WizardState) -> None:
        if self.state is None:
            allowed = state is WizardState.SELECT_DATE
        elif state is WizardState.TERMINAL:
            allowed = self.state is not WizardState.TERMINAL
        elif state is WizardState.SELECT_PERIOD and self.state is WizardState.SELECT_PERIOD:
            allowed = True
        else:
            allowed = _ORDER.index(state) == _ORDER.index(self.state) + 1
        if not allowed:
            raise WizardStateError(f"Illegal wizard transition {self.state} -> {state.value}")
        self.state = state
        self.history.append(state)

    async def run(self, day: date, party_size: int, periods: Sequence[str]) -> WizardResult:
        log = LOGGER.bind(site=self._site.site_id, date_iso=day.isoformat())

        self._enter(WizardState.SELECT_DATE)
        if not await self.select_date(day):
            self._enter(WizardState.TERMINAL)
            return WizardResult(date_available=False)
        await self.advance(self._site.advance_after_date, phase="date")

        self._enter(WizardState.SET_PARTY_SIZE)
        try:
            applied = await self.set_party_size(party_size)
        except Exception as exc:  # noqa: BLE001
            log.warning("wizard.party.failed", requested=party_size, error=str(exc))
            applied = False
        await self.advance(self._site.advance_after_party, phase="party")

        results: List[PeriodResult] = []
        for period in periods:
            self._enter(WizardState.SELECT_PERIOD)
            try:
                results.append(await self.select_period(period))
            except Exception as exc:  # noqa: BLE001
                error = PeriodExtractionError(period, exc)
                log.warning("wizard.period.failed", period=period, error=str(exc))
                results.append(PeriodResult(period=period, error=str(error)))

        self._enter(WizardState.TERMINAL)
        return WizardResult(date_available=True, party_applied=applied, periods=results)

    async def select_date(self, day: date) -> bool:
        """Show the right month and click the day; False when the day is not bookable."""
        site, page = self._site, self._page
        if site.date_trigger:
            if await page.click_first(site.date_trigger):
                await page.settle(site.calendar_settle_ms)
            else:
                LOGGER.debug("wizard.date.no_trigger", site=site.site_id)

        await self._show_month(day)

        templates = site.day_candidates + site.fallback_day_candidates
        for template in templates:
            selector = _fill(template, day=day.day, iso=day.isoformat())
            for index, snapshot in enumerate(await page.snapshots(selector)):
                if snapshot.label == str(day.day) and _day_enabled(snapshot):
                    await page.click_nth(selector, index)
                    LOGGER.info("wizard.date.selected", date_iso=day.isoformat(), selector=selector)
                    return True

        LOGGER.info("wizard.date.unavailable", date_iso=day.isoformat(), strategies=len(templates))
        return False

    async def _show_month(self, day: date) -> None:
        site, page = self._site, self._page
        target = (day.year, day.month)
        label: Optional[str] = None

        for step in range(self._max_calendar_steps + 1):
            label = await page.read_text(site.month_label)
            shown = parse_month_label(label)
            if shown == target:
                LOGGER.debug("wizard.calendar.month_found", label=label, steps=step)
                return
            if step == self._max_calendar_steps:
                break
            if shown is None:
                LOGGER.debug("wizard.calendar.label_unreadable", label=label)
                await page.settle(site.calendar_settle_ms)
                continue

            controls = site.next_month if shown < target else site.previous_month
            if not await page.click_first(controls):
                raise SelectorNotFound("calendar navigation", controls)

            previous = label

            async def label_changed() -> bool:
                return await page.read_text(site.month_label) != previous

            if not await page.wait_until(label_changed, timeout_ms=self._wait_timeout_ms):
                LOGGER.debug("wizard.calendar.label_unchanged", label=previous)
            await page.settle(site.calendar_settle_ms)

        raise CalendarNavigationExhausted(f"{day:%B %Y}", self._max_calendar_steps, label)

    async def _current_party_size(self) -> int:
        site, page = self._site, self._page
        if site.party_readout:
            value = _first_int(await page.read_text(site.party_readout))
            if value is not None:
                return value
        value = _first_int(await page.read_value(site.party_select))
        return value if value is not None else 1

    async def set_party_size(self, count: int) -> bool:
        """Apply ``count`` with the first control the widget offers."""
        site, page = self._site, self._page
        current = await self._current_party_size()

        if site.party_select and await page.select_value(site.party_select, str(count)):
            LOGGER.info("wizard.party.selected", count=count, strategy="select")
            return True
        if count == current:
            LOGGER.info("wizard.party.unchanged", count=count)
            return True

        controls = site.party_increase if count > current else site.party_decrease
        used = await page.click_first(controls)
        if used:
            for _ in range(abs(count - current) - 1):
                await page.settle(site.click_settle_ms)
                if not await page.click_first((used,)):
                    LOGGER.warning("wizard.party.control_lost", selector=used)
                    return False
            await page.settle(site.click_settle_ms)
            LOGGER.info("wizard.party.stepped", count=count, start=current, strategy="stepper")
            return True

        if site.party_input and await page.fill(site.party_input, str(count)):
            LOGGER.info("wizard.party.filled", count=count, strategy="input")
            return True

        buttons = tuple(_fill(template, count=count) for template in site.party_button)
        if buttons and await page.click_first(buttons):
            LOGGER.info("wizard.party.clicked", count=count, strategy="button")
            return True

        LOGGER.warning("wizard.party.degraded", requested=count, assumed=current)
        return False

    async def advance(self, labels: Sequence[str], *, phase: str) -> Optional[str]:
        """Click the first visible continue-style control; some wizards auto-advance."""
        site, page = self._site, self._page
        for label in labels:
            selector = _fill(site.advance_button, label=label)
            try:
                clicked = await page.click_first((selector,))
            except Exception as exc:  # noqa: BLE001
                LOGGER.debug("wizard.advance.click_failed", phase=phase, label=label, error=str(exc))
                continue
            if clicked:
                await page.settle(site.step_settle_ms)
                LOGGER.info("wizard.advance", phase=phase, label=label)
                return label
        if labels:
            LOGGER.info("wizard.advance.none", phase=phase)
        return None

    async def select_period(self, period: str) -> PeriodResult:
        site, page = self._site, self._page

        if period in DAY_PERIODS and site.period_tab:
            caption = period_label(period)
            tabs = tuple(_fill(template, label=caption) for template in site.period_tab)
            if await page.click_first(tabs):
                await page.settle(site.click_settle_ms)
            else:
                LOGGER.debug("wizard.period.no_tab", period=period)

        async def panel_ready() -> bool:
            if await page.has_text(site.no_availability):
                return True
            snapshots = await page.snapshots(site.slot_candidates)
            return any(TIME_PATTERN.search(snapshot.text) for snapshot in snapshots)

        if not await page.wait_until(panel_ready, timeout_ms=site.panel_settle_ms):
            LOGGER.debug("wizard.period.panel_not_ready", period=period)

        if await page.has_text(site.no_availability):
            LOGGER.info("wizard.period.no_availability", period=period)
            return PeriodResult(period=period, no_availability=True)

        slots = extract_slots(await page.snapshots(site.slot_candidates), period)
        LOGGER.info("wizard.period.extracted", period=period, slots=len(slots))
        return PeriodResult(period=period, slots=slots)
