"""One complete scrape attempt for one single-date target."""

from __future__ import annotations

import time
from typing import Any, AsyncContextManager, Callable, List

import structlog

from .config import Settings
from .fingerprint import FingerprintProfile
from .models import PeriodResult, ScrapeOutcome, TargetDescriptor
from .navigator import WizardNavigator
from .session import acquire_session
from .sites import get_site

LOGGER = structlog.get_logger(__name__)

SessionFactory = Callable[[FingerprintProfile, Settings], AsyncContextManager[Any]]


class SlotScraper:
    """Acquires a fresh session, walks the wizard and shapes the outcome."""

    def __init__(self, settings: Settings, *, session_factory: SessionFactory = acquire_session):
        self._settings = settings
        self._session_factory = session_factory

    async def scrape(self, target: TargetDescriptor) -> ScrapeOutcome:
        if target.target_date is None:
            raise ValueError("scrape() needs a descriptor resolved to a single date")

        site = get_site(target.site_id)
        started = time.monotonic()
        log = LOGGER.bind(target_id=target.target_id, site=site.site_id, date_iso=target.target_date.isoformat())
        log.info(
            "scrape.start",
            party_size=target.party_size,
            periods=target.period_labels(),
        )

        async with self._session_factory(site.fingerprint, self._settings) as session:
            await session.navigate(site.url, self._settings.navigation_timeout_ms)
            await session.wait_for_network_idle()
            await session.settle(site.initial_settle_ms)
            if site.reveal_scroll_px:
                await session.scroll_by(site.reveal_scroll_px)
                await session.settle(site.click_settle_ms)

            navigator = WizardNavigator(
                site,
                session,
                max_calendar_steps=self._settings.calendar_max_steps,
            )
            result = await navigator.run(target.target_date, target.party_size, target.period_labels())

        if not result.date_available:
            outcome = ScrapeOutcome.date_unavailable(target)
        else:
            outcome = ScrapeOutcome.from_periods(target, self._apply_window(target, result.periods))

        outcome.duration_ms = int((time.monotonic() - started) * 1000)
        log.info(
            "scrape.complete",
            status=outcome.status.value,
            slots=len(outcome.slots),
            duration_ms=outcome.duration_ms,
        )
        return outcome

    @staticmethod
    def _apply_window(target: TargetDescriptor, periods: List[PeriodResult]) -> List[PeriodResult]:
        window = target.window
        if window is None:
            return periods
        return [
            PeriodResult(
                period=result.period,
                slots=[slot for slot in result.slots if window.contains(slot.time24)],
                error=result.error,
                no_availability=result.no_availability,
            )
            for result in periods
        ]
