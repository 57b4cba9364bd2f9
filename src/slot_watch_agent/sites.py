"""Per-site selector and strategy tables for the booking wizard."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern

from .errors import UnknownSiteError
from .fingerprint import ANAHEIM_FIREFOX, DESKTOP_CHROMIUM, FingerprintProfile

NO_AVAILABILITY = re.compile(
    r"no.*availability|sold.*out|fully.*booked|no.*tables|not available",
    re.IGNORECASE,
)

MONTH_LABEL_SELECTORS = ("text=/[A-Z][a-z]+ \\d{4}/",)

NEXT_MONTH_SELECTORS = (
    'button[aria-label*="next" i]',
    'button:has(svg[aria-label*="chevron-right"])',
    'button:has-text(">")',
)

PREVIOUS_MONTH_SELECTORS = (
    'button[aria-label*="prev" i]',
    'button:has(svg[aria-label*="chevron-left"])',
    'button:has-text("<")',
)

# Broad sweep used once the site-specific day selectors have failed.
FALLBACK_DAY_SELECTORS = (
    "button",
    '[role="gridcell"]',
    '[role="button"]',
    "td",
)

INCREASE_SELECTORS = (
    'button:has-text("+")',
    'button[aria-label*="increase" i]',
    'button[aria-label*="add" i]',
)

DECREASE_SELECTORS = (
    'button:has-text("-")',
    'button[aria-label*="decrease" i]',
    'button[aria-label*="remove" i]',
)

PARTY_INPUT_SELECTORS = (
    'input[type="number"]',
    'input[aria-label*="guest" i]',
    'input[aria-label*="participant" i]',
)

ADVANCE_AFTER_DATE = ("Next", "Continue", "Select", "Confirm")
ADVANCE_AFTER_PARTY = ("Next", "Continue", "Select", "Confirm", "Check Availability", "Search")


@dataclass(frozen=True)
class SiteProfile:
    """Ordered fallback selectors for each wizard step of one booking widget.

    Selectors containing ``{day}``, ``{iso}``, ``{count}`` or ``{label}`` are
    formatted with the value for the step before use.
    """

    site_id: str
    display_name: str
    url: str
    fingerprint: FingerprintProfile
    date_trigger: tuple[str, ...] = ()
    month_label: tuple[str, ...] = MONTH_LABEL_SELECTORS
    next_month: tuple[str, ...] = NEXT_MONTH_SELECTORS
    previous_month: tuple[str, ...] = PREVIOUS_MONTH_SELECTORS
    day_candidates: tuple[str, ...] = ()
    fallback_day_candidates: tuple[str, ...] = FALLBACK_DAY_SELECTORS
    party_readout: tuple[str, ...] = ()
    party_select: tuple[str, ...] = ("select",)
    party_increase: tuple[str, ...] = INCREASE_SELECTORS
    party_decrease: tuple[str, ...] = DECREASE_SELECTORS
    party_input: tuple[str, ...] = PARTY_INPUT_SELECTORS
    party_button: tuple[str, ...] = ('button:text-is("{count}")',)
    advance_after_date: tuple[str, ...] = ADVANCE_AFTER_DATE
    advance_after_party: tuple[str, ...] = ADVANCE_AFTER_PARTY
    advance_button: str = 'button:has-text("{label}")'
    period_tab: tuple[str, ...] = ('button:has-text("{label}")',)
    slot_candidates: str = "button"
    no_availability: Pattern[str] = NO_AVAILABILITY
    initial_settle_ms: int = 3000
    reveal_scroll_px: int = 0
    calendar_settle_ms: int = 500
    step_settle_ms: int = 2000
    click_settle_ms: int = 300
    panel_settle_ms: int = 2000
    extras: tuple[tuple[str, str], ...] = ()

    def extra(self, key: str, default: str | None = None) -> str | None:
        return dict(self.extras).get(key, default)


OPENTABLE_HOPR = SiteProfile(
    site_id="opentable-hopr",
    display_name="House of Prime Rib",
    url="https://www.opentable.com/house-of-prime-rib",
    fingerprint=DESKTOP_CHROMIUM,
    # The page renders an inline widget and a sticky copy; the sticky one is second.
    date_trigger=(
        '[data-test="day-picker"] >> nth=1',
        '[data-test="day-picker"]',
    ),
    day_candidates=(
        'button[aria-label*="{day}"]',
        '[role="gridcell"] button',
    ),
    party_select=(
        'select[data-test="party-size-picker"] >> nth=1',
        'select[data-test="party-size-picker"]',
    ),
    party_button=(),
    advance_after_date=(),
    advance_after_party=(),
    period_tab=(),
    reveal_scroll_px=300,
    step_settle_ms=1500,
    panel_settle_ms=3000,
    extras=(("booking_url", "https://www.opentable.com/house-of-prime-rib-reservations-san-francisco"),),
)

DISNEYLAND_BBB = SiteProfile(
    site_id="disneyland-bbb",
    display_name="Bibbidi Bobbidi Boutique",
    url="https://disneyland.disney.go.com/enchanting-extras-collection/booking-bibbidi-bobbidi-boutique/",
    fingerprint=ANAHEIM_FIREFOX,
    day_candidates=(
        '[data-date="{iso}"]',
        '[data-day="{day}"]',
        'button[data-test="day-{day}"]',
        '[role="gridcell"] button',
        ".calendar-day",
    ),
    party_readout=('[data-test="guest-count"]', ".guest-count", ".counter-value"),
    initial_settle_ms=8000,
    calendar_settle_ms=1000,
)

SITES: dict[str, SiteProfile] = {site.site_id: site for site in (OPENTABLE_HOPR, DISNEYLAND_BBB)}


def get_site(site_id: str) -> SiteProfile:
    try:
        return SITES[site_id]
    except KeyError as exc:
        raise UnknownSiteError(f"Unknown site {site_id!r}; known sites: {', '.join(sorted(SITES))}") from exc
