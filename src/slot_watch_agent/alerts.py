"""Inbound side: active alerts from the alert store, as target descriptors."""

from __future__ import annotations

from typing import Any, List, Mapping, Optional

import httpx
import structlog
from pydantic import ValidationError

from .config import Settings
from .date_window import parse_target_date
from .models import TargetDescriptor, TimeWindow
from .sites import DISNEYLAND_BBB, OPENTABLE_HOPR

LOGGER = structlog.get_logger(__name__)


def descriptor_from_alert(alert: Mapping[str, Any], default_site: Optional[str] = None) -> TargetDescriptor:
    """Build a descriptor from any of the alert shapes the store serves.

    Restaurant alerts carry ``party_size``/``target_days``/``window_*``,
    activity alerts ``num_guests``/``target_date``/``time_preferences``; the
    generic shape names ``site_id`` explicitly.
    """
    target_id = str(alert.get("id") or alert.get("target_id") or "")
    if not target_id:
        raise ValueError("alert has no id")

    if "time_preferences" in alert or "num_guests" in alert:
        return TargetDescriptor(
            target_id=target_id,
            site_id=str(alert.get("site_id") or DISNEYLAND_BBB.site_id),
            target_date=parse_target_date(str(alert["target_date"])),
            party_size=int(alert["num_guests"]),
            periods=tuple(alert.get("time_preferences") or ()),
        )

    if "target_days" in alert or "window_start" in alert:
        return TargetDescriptor(
            target_id=target_id,
            site_id=str(alert.get("site_id") or OPENTABLE_HOPR.site_id),
            weekdays=tuple(alert.get("target_days") or ()),
            party_size=int(alert["party_size"]),
            window=TimeWindow(start=alert["window_start"], end=alert["window_end"]),
        )

    site_id = alert.get("site_id") or default_site
    if not site_id:
        raise ValueError(f"alert {target_id} does not name a site")
    raw_date = alert.get("date") or alert.get("target_date")
    window = alert.get("window")
    return TargetDescriptor(
        target_id=target_id,
        site_id=str(site_id),
        target_date=parse_target_date(str(raw_date)) if raw_date else None,
        weekdays=tuple(alert.get("weekdays") or ()),
        party_size=int(alert.get("party_size") or alert.get("guests") or 0),
        periods=tuple(alert.get("periods") or ()),
        window=TimeWindow(**window) if isinstance(window, Mapping) else None,
    )


def descriptors_from_alerts(alerts: List[Mapping[str, Any]], default_site: Optional[str] = None) -> List[TargetDescriptor]:
    """Convert a batch, logging and skipping alerts that do not validate."""
    targets: List[TargetDescriptor] = []
    for alert in alerts:
        if alert.get("is_active") is False:
            continue
        try:
            targets.append(descriptor_from_alert(alert, default_site))
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            LOGGER.warning("alerts.invalid", alert_id=alert.get("id"), error=str(exc))
    return targets


class AlertStoreClient:
    """Fetches active alerts with the same bearer credential used for reporting."""

    def __init__(self, settings: Settings, *, client: Optional[httpx.AsyncClient] = None):
        if settings.alerts_url is None:
            raise ValueError("SLOT_WATCH_ALERTS_URL is required to fetch alerts")
        self._url = str(settings.alerts_url)
        self._headers = settings.auth_headers()
        self._timeout = settings.report_timeout_seconds
        self._client = client

    async def fetch_targets(self, default_site: Optional[str] = None) -> List[TargetDescriptor]:
        LOGGER.info("alerts.fetch.start", url=self._url)
        if self._client is not None:
            response = await self._client.get(self._url, headers=self._headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._url, headers=self._headers)
        response.raise_for_status()

        body = response.json()
        alerts = body.get("alerts", []) if isinstance(body, Mapping) else body
        targets = descriptors_from_alerts(list(alerts or []), default_site)
        LOGGER.info("alerts.fetch.complete", alerts=len(alerts or []), targets=len(targets))
        return targets
