"""Sequential processing of a batch of targets."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import AsyncIterator, Iterable, List, Optional

import structlog

from .models import ScrapeOutcome, TargetDescriptor
from .reporter import ResultReporter
from .retry import RetryShell
from .scraper import SlotScraper

LOGGER = structlog.get_logger(__name__)


@dataclass
class BatchSummary:
    """Counts for one batch run."""

    outcomes: List[ScrapeOutcome] = field(default_factory=list)
    report_failures: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    @property
    def slots_found(self) -> int:
        return sum(len(outcome.slots) for outcome in self.outcomes)


def expand_targets(targets: Iterable[TargetDescriptor], today: date) -> List[TargetDescriptor]:
    """One single-date descriptor per resolved day; past days are dropped."""
    expanded: List[TargetDescriptor] = []
    for target in targets:
        for day in target.resolve_dates(today):
            if day < today:
                LOGGER.info("batch.skip_past", target_id=target.target_id, date_iso=day.isoformat())
                continue
            expanded.append(target.for_date(day))
    return expanded


class BatchRunner:
    """Runs every target to completion, one at a time, reporting as it goes."""

    def __init__(
        self,
        scraper: SlotScraper,
        shell: RetryShell,
        reporter: ResultReporter,
        *,
        today: Optional[date] = None,
    ):
        self._scraper = scraper
        self._shell = shell
        self._reporter = reporter
        self._today = today
        self.report_failures: List[str] = []

    async def iter_outcomes(self, targets: Iterable[TargetDescriptor]) -> AsyncIterator[ScrapeOutcome]:
        today = self._today or date.today()
        self.report_failures = []
        for target in expand_targets(targets, today):
            outcome = await self._shell.run(target, self._scraper.scrape)
            try:
                await self._reporter.report(outcome)
            except Exception as exc:  # noqa: BLE001
                LOGGER.exception("batch.report_failed", target_id=target.target_id, error=str(exc))
                self.report_failures.append(f"{target.target_id}: {exc}")
            yield outcome

    async def run(self, targets: Iterable[TargetDescriptor]) -> BatchSummary:
        summary = BatchSummary()
        async for outcome in self.iter_outcomes(targets):
            summary.outcomes.append(outcome)
        summary.report_failures = list(self.report_failures)
        LOGGER.info(
            "batch.complete",
            targets=len(summary.outcomes),
            succeeded=summary.succeeded,
            failed=summary.failed,
            slots=summary.slots_found,
        )
        return summary
