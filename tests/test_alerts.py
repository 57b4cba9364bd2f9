import asyncio
from datetime import date, time

import httpx

from slot_watch_agent.alerts import AlertStoreClient, descriptor_from_alert, descriptors_from_alerts


def test_activity_alert_shape():
    target = descriptor_from_alert(
        {
            "id": "bbb-9",
            "target_date": "2026-11-02",
            "num_guests": 3,
            "time_preferences": ["Morning", "evening"],
            "is_active": True,
        }
    )

    assert target.site_id == "disneyland-bbb"
    assert target.target_date == date(2026, 11, 2)
    assert target.party_size == 3
    assert target.periods == ("morning", "evening")


def test_restaurant_alert_shape():
    target = descriptor_from_alert(
        {
            "id": "hopr-3",
            "party_size": 4,
            "target_days": ["Friday", "saturday"],
            "window_start": "16:00:00",
            "window_end": "20:00:00",
        }
    )

    assert target.site_id == "opentable-hopr"
    assert target.weekdays == ("Friday", "Saturday")
    assert target.window.start == time(16, 0)
    assert target.period_labels() == ["16:00-20:00"]


def test_generic_alert_shape_uses_default_site():
    target = descriptor_from_alert(
        {"id": "g-1", "date": "Nov 14 2026", "guests": 2, "periods": "afternoon"},
        default_site="disneyland-bbb",
    )

    assert target.site_id == "disneyland-bbb"
    assert target.target_date == date(2026, 11, 14)
    assert target.periods == ("afternoon",)


def test_inactive_and_invalid_alerts_are_skipped():
    alerts = [
        {"id": "ok", "target_date": "2026-11-02", "num_guests": 2, "time_preferences": ["evening"]},
        {"id": "off", "target_date": "2026-11-02", "num_guests": 2, "time_preferences": ["evening"], "is_active": False},
        {"id": "bad-period", "target_date": "2026-11-02", "num_guests": 2, "time_preferences": ["brunch"]},
        {"id": "no-guests", "target_date": "2026-11-02", "time_preferences": ["evening"]},
        {"target_date": "2026-11-02", "num_guests": 2, "time_preferences": ["evening"]},
    ]

    assert [target.target_id for target in descriptors_from_alerts(alerts)] == ["ok"]


def test_fetch_targets_reads_alert_store(settings):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "alerts": [
                    {"id": "bbb-1", "target_date": "2026-11-02", "num_guests": 2, "time_preferences": ["evening"]},
                ]
            },
        )

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await AlertStoreClient(settings, client=client).fetch_targets()

    targets = asyncio.run(scenario())

    assert [target.target_id for target in targets] == ["bbb-1"]
    assert seen[0].method == "GET"
    assert seen[0].headers["Authorization"] == "Bearer cron-secret"
