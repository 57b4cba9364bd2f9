"""Browser identity profiles and the init script that masks automation markers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

CHROME_MAC_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
CHROME_WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)

Pairs = tuple[tuple[str, str], ...]

# (property path, JavaScript expression returned by the overriding getter)
DEFAULT_OVERRIDES: Pairs = (
    ("navigator.webdriver", "undefined"),
    ("navigator.languages", json.dumps(["en-US", "en"])),
)


@dataclass(frozen=True)
class FingerprintProfile:
    """Static browser identity applied to every context created for a site."""

    name: str
    browser: str = "chromium"
    user_agent: str = CHROME_MAC_UA
    locale: str = "en-US"
    timezone_id: Optional[str] = None
    geolocation: Optional[tuple[float, float]] = None
    viewport: tuple[int, int] = (1280, 720)
    extra_http_headers: Pairs = ()
    launch_args: tuple[str, ...] = ()
    overrides: Pairs = DEFAULT_OVERRIDES

    def launch_options(self, headless: bool) -> dict[str, Any]:
        options: dict[str, Any] = {"headless": headless}
        if self.launch_args:
            options["args"] = list(self.launch_args)
        return options

    def context_options(self) -> dict[str, Any]:
        width, height = self.viewport
        options: dict[str, Any] = {
            "viewport": {"width": width, "height": height},
            "user_agent": self.user_agent,
            "locale": self.locale,
        }
        if self.timezone_id:
            options["timezone_id"] = self.timezone_id
        if self.geolocation:
            latitude, longitude = self.geolocation
            options["geolocation"] = {"latitude": latitude, "longitude": longitude}
            options["permissions"] = ["geolocation"]
        if self.extra_http_headers:
            options["extra_http_headers"] = dict(self.extra_http_headers)
        return options

    def init_script(self) -> str:
        """JavaScript run before any page script, redefining each overridden property."""
        return build_init_script(self.overrides)


def build_init_script(overrides: Union[Mapping[str, str], Iterable[tuple[str, str]]]) -> str:
    lines: list[str] = []
    for path, expression in dict(overrides).items():
        owner, _, prop = path.rpartition(".")
        if not owner or not prop:
            raise ValueError(f"Override path must look like 'object.property': {path!r}")
        lines.append(
            f"try {{ Object.defineProperty({owner}, {json.dumps(prop)}, "
            f"{{ get: () => {expression}, configurable: true }}); }} catch (e) {{}}"
        )
    return "\n".join(lines)


DESKTOP_CHROMIUM = FingerprintProfile(
    name="desktop-chromium",
    browser="chromium",
    user_agent=CHROME_MAC_UA,
    viewport=(1280, 720),
    launch_args=(
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-blink-features=AutomationControlled",
    ),
)

# Firefox trips fewer bot heuristics on the theme-park site.
ANAHEIM_FIREFOX = FingerprintProfile(
    name="anaheim-firefox",
    browser="firefox",
    user_agent=CHROME_WINDOWS_UA,
    locale="en-US",
    timezone_id="America/Los_Angeles",
    geolocation=(33.8121, -117.9190),
    viewport=(1920, 1080),
    extra_http_headers=(
        ("Accept-Language", "en-US,en;q=0.9"),
        ("Upgrade-Insecure-Requests", "1"),
    ),
    overrides=(("navigator.webdriver", "undefined"),),
)

PROFILES: dict[str, FingerprintProfile] = {
    profile.name: profile for profile in (DESKTOP_CHROMIUM, ANAHEIM_FIREFOX)
}
