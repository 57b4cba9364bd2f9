"""Custom ADK agent that runs a slot-watch batch and narrates it as events."""

from __future__ import annotations

from typing import AsyncGenerator, List

import structlog
from google.adk.agents.base_agent import BaseAgent
from google.adk.events.event import Event
from google.genai import types
from pydantic import Field

from .batch import BatchRunner, BatchSummary
from .config import Settings
from .models import TargetDescriptor
from .reporter import HttpResultReporter, LogResultReporter, format_summary
from .retry import RetryShell
from .scraper import SlotScraper

LOGGER = structlog.get_logger(__name__)


def build_runner(settings: Settings, *, dry_run: bool = False) -> BatchRunner:
    """Wire scraper, retry shell and reporter from settings."""
    reporter = LogResultReporter() if dry_run else HttpResultReporter(settings)
    return BatchRunner(SlotScraper(settings), RetryShell.from_settings(settings), reporter)


def summarise(summary: BatchSummary) -> str:
    lines = [
        f"Check summary - targets: {len(summary.outcomes)}, succeeded: {summary.succeeded}, "
        f"failed: {summary.failed}, slots found: {summary.slots_found}."
    ]
    if summary.report_failures:
        lines.append("Report failures:")
        lines.extend(f"- {item}" for item in summary.report_failures)
    return "\n".join(lines)


class SlotWatchAgent(BaseAgent):
    """Agent that scrapes each target in turn and reports the outcome."""

    settings: Settings
    targets: List[TargetDescriptor] = Field(default_factory=list)
    dry_run: bool = False

    def model_post_init(self, __context) -> None:
        """Initialise internal helpers after pydantic validation."""
        super().model_post_init(__context)  # type: ignore[misc]
        self._runner = build_runner(self.settings, dry_run=self.dry_run)

    async def _run_async_impl(
        self, ctx
    ) -> AsyncGenerator[Event, None]:
        """Run the batch end-to-end."""
        if not self.targets:
            yield self._text_event(ctx, "No active targets to check. Exiting.", final=True)
            return

        summary = BatchSummary()
        try:
            async for outcome in self._runner.iter_outcomes(self.targets):
                summary.outcomes.append(outcome)
                yield self._text_event(ctx, format_summary(outcome))
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("agent.batch_error", error=str(exc))
            yield self._text_event(ctx, f"Slot check aborted: {exc}", final=True)
            return

        summary.report_failures = list(self._runner.report_failures)
        yield self._text_event(ctx, summarise(summary), final=True)

    def _text_event(self, ctx, text: str, *, final: bool = False) -> Event:
        """Create a simple text event for the ADK runner."""
        content = types.Content(
            role="model",
            parts=[types.Part.from_text(text=text)],
        )
        event = Event(
            invocation_id=ctx.invocation_id,
            author=self.name,
            branch=ctx.branch,
            content=content,
        )
        if final:
            event.actions.end_of_agent = True
        return event
