"""FastAPI application exposing a manual availability check."""

from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

import structlog
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from .config import Settings
from .errors import UnknownSiteError
from .models import TargetDescriptor
from .reporter import build_payload
from .retry import RetryShell
from .scraper import SlotScraper
from .sites import SITES, get_site

LOGGER = structlog.get_logger(__name__)

app = FastAPI(title="Slot Watch Agent", version="0.1.0")


class SiteInfo(BaseModel):
    site_id: str
    display_name: str
    url: str


class CheckResponse(BaseModel):
    """Outcome of a manual check, in the same shape sent to the reporting boundary."""

    checked_dates: List[date]
    outcomes: List[Dict[str, object]]


def get_settings() -> Settings:
    return Settings()


def get_scraper(settings: Settings = Depends(get_settings)) -> SlotScraper:
    return SlotScraper(settings)


def get_shell(settings: Settings = Depends(get_settings)) -> RetryShell:
    return RetryShell.from_settings(settings)


@app.get("/sites", response_model=List[SiteInfo])
async def list_sites() -> List[SiteInfo]:
    return [
        SiteInfo(site_id=site.site_id, display_name=site.display_name, url=site.url)
        for site in SITES.values()
    ]


@app.post("/check", response_model=CheckResponse)
async def check(
    target: TargetDescriptor,
    today: Optional[date] = None,
    scraper: SlotScraper = Depends(get_scraper),
    shell: RetryShell = Depends(get_shell),
) -> CheckResponse:
    """Scrape one target now and return the outcome without reporting it."""

    LOGGER.info("api.check", target_id=target.target_id, site=target.site_id)
    try:
        get_site(target.site_id)
    except UnknownSiteError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    days = target.resolve_dates(today)
    outcomes = []
    for day in days:
        outcome = await shell.run(target.for_date(day), scraper.scrape)
        outcomes.append(build_payload(outcome))
    return CheckResponse(checked_dates=days, outcomes=outcomes)
