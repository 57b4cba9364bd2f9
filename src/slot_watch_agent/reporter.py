"""Reporting boundary: hands each outcome to the alert/notification service."""

from __future__ import annotations

from typing import Any, Optional, Protocol

import httpx
import structlog

from .config import Settings
from .errors import MissingCredentialsError, ReportDeliveryError
from .models import ScrapeOutcome
from .sites import SITES

LOGGER = structlog.get_logger(__name__)


class ResultReporter(Protocol):
    async def report(self, outcome: ScrapeOutcome) -> None: ...


def build_payload(outcome: ScrapeOutcome) -> dict[str, Any]:
    """JSON body posted for one outcome; failures never carry slots."""
    site = SITES.get(outcome.site_id)
    failed = outcome.error is not None
    slots = [] if failed else [{"time": slot.time, "period": slot.period} for slot in outcome.slots]
    period_errors = {result.period: result.error for result in outcome.periods if result.error}
    periods = [result.period for result in outcome.periods]
    return {
        "alertId": outcome.target_id,
        "siteId": outcome.site_id,
        "targetDate": outcome.target_date.isoformat() if outcome.target_date else None,
        "status": outcome.status.value,
        "timePeriod": ",".join(periods) if periods and not failed else "all",
        "slots": slots,
        "periodErrors": period_errors,
        "error": outcome.error,
        "errorKind": outcome.error_kind,
        "attempts": outcome.attempts,
        "durationMs": outcome.duration_ms,
        "bookingUrl": (site.extra("booking_url", site.url) if site else None),
    }


def format_summary(outcome: ScrapeOutcome) -> str:
    """One-line human summary of an outcome."""
    when = outcome.target_date.isoformat() if outcome.target_date else "unknown date"
    if outcome.error is not None:
        return f"{outcome.target_id} {when}: failed after {outcome.attempts} attempt(s): {outcome.error}"
    if not outcome.slots:
        return f"{outcome.target_id} {when}: {outcome.status.value.replace('_', ' ')}"
    times = ", ".join(f"{slot.time} ({slot.period})" for slot in outcome.slots)
    return f"{outcome.target_id} {when}: {len(outcome.slots)} slot(s) - {times}"


class HttpResultReporter:
    """POSTs outcomes to the reporting endpoint with the bearer credential."""

    def __init__(self, settings: Settings, *, client: Optional[httpx.AsyncClient] = None):
        if settings.report_url is None:
            raise MissingCredentialsError("SLOT_WATCH_REPORT_URL is required to report results")
        self._url = str(settings.report_url)
        self._headers = settings.auth_headers()
        self._timeout = settings.report_timeout_seconds
        self._client = client

    async def report(self, outcome: ScrapeOutcome) -> None:
        payload = build_payload(outcome)
        LOGGER.info("report.send.start", url=self._url, target_id=outcome.target_id, status=payload["status"])

        if self._client is not None:
            response = await self._client.post(self._url, json=payload, headers=self._headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(self._url, json=payload, headers=self._headers)

        if response.is_success:
            LOGGER.info("report.send.success", target_id=outcome.target_id)
            return
        LOGGER.error("report.send.failed", status_code=response.status_code, body=response.text)
        raise ReportDeliveryError(f"Report failed with {response.status_code}: {response.text}")


class LogResultReporter:
    """Dry-run reporter that only logs what would have been sent."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def report(self, outcome: ScrapeOutcome) -> None:
        payload = build_payload(outcome)
        self.sent.append(payload)
        LOGGER.info("report.dry_run", summary=format_summary(outcome), payload=payload)
