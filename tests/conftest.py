from __future__ import annotations

import pytest

from slot_watch_agent import sites
from slot_watch_agent.config import Settings

from .fakes import TEST_SITE


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        report_url="https://alerts.test/api/notify",
        alerts_url="https://alerts.test/api/notify",
        report_token="cron-secret",
        max_attempts=3,
        retry_backoff_seconds=5.0,
        calendar_max_steps=6,
    )


@pytest.fixture
def test_site(monkeypatch):
    monkeypatch.setitem(sites.SITES, TEST_SITE.site_id, TEST_SITE)
    return TEST_SITE


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()
