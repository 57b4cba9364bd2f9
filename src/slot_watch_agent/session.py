"""Playwright session lifecycle and the DOM primitives the wizard drives."""

from __future__ import annotations

import asyncio
import re
from typing import Awaitable, Callable, List, Optional, Pattern, Protocol, Sequence

import structlog
from bs4 import BeautifulSoup
from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Locator,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from .config import Settings
from .errors import BotDetectionBlocked, NavigationTimeout
from .extractor import SNAPSHOT_SCRIPT, ElementSnapshot
from .fingerprint import FingerprintProfile

LOGGER = structlog.get_logger(__name__)

BLOCK_MARKERS: tuple[tuple[str, Pattern[str]], ...] = (
    ("access denied", re.compile(r"access\s+denied", re.IGNORECASE)),
    ("blocked", re.compile(r"\b(?:been|was|are)\s+blocked\b", re.IGNORECASE)),
    (
        "captcha",
        re.compile(
            r"verify\s+(?:that\s+)?you\s+are\s+(?:a\s+)?human"
            r"|(?:complete|solve)\s+the\s+captcha"
            r"|captcha\s+challenge",
            re.IGNORECASE,
        ),
    ),
)

# Interactive challenge frames. Passive badges such as recaptcha/api2/anchor are not blocks.
CHALLENGE_FRAMES = (
    "captcha-delivery.com",
    "hcaptcha.com/challenge",
    "recaptcha/api2/bframe",
    "challenges.cloudflare.com",
)

Predicate = Callable[[], Awaitable[bool]]


def detect_block(html: str) -> Optional[str]:
    """Return the block marker found in the rendered document, if any.

    Only visible text, the title and embedded frame sources are inspected so
    that marker words inside inline scripts do not count.
    """
    soup = BeautifulSoup(html or "", "html.parser")
    for frame in soup.find_all("iframe"):
        source = str(frame.get("src") or "").lower()
        if any(marker in source for marker in CHALLENGE_FRAMES):
            return "captcha"
    for tag in soup(["script", "style", "noscript", "template"]):
        tag.decompose()
    text = soup.get_text(" ", strip=True)
    for marker, pattern in BLOCK_MARKERS:
        if pattern.search(text):
            return marker
    return None


class WidgetPage(Protocol):
    """DOM operations the wizard navigator needs from a live page."""

    async def read_text(self, selectors: Sequence[str]) -> Optional[str]: ...

    async def read_value(self, selectors: Sequence[str]) -> Optional[str]: ...

    async def click_first(self, selectors: Sequence[str]) -> Optional[str]: ...

    async def click_nth(self, selector: str, index: int) -> None: ...

    async def select_value(self, selectors: Sequence[str], value: str) -> bool: ...

    async def fill(self, selectors: Sequence[str], value: str) -> bool: ...

    async def snapshots(self, selector: str) -> List[ElementSnapshot]: ...

    async def has_text(self, pattern: Pattern[str]) -> bool: ...

    async def scroll_by(self, pixels: int) -> None: ...

    async def settle(self, ms: int) -> None: ...

    async def wait_until(self, predicate: Predicate, timeout_ms: int, interval_ms: int = 250) -> bool: ...


class BrowserSession:
    """One browser process, one isolated context and one page for a single attempt."""

    def __init__(self, profile: FingerprintProfile, settings: Settings):
        self._profile = profile
        self._settings = settings
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "BrowserSession":
        try:
            await self._start()
        except BaseException:
            await self.release()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.release()

    async def _start(self) -> None:
        LOGGER.info(
            "session.start",
            profile=self._profile.name,
            browser=self._profile.browser,
            headless=self._settings.headless,
        )
        self._playwright = await async_playwright().start()
        launcher = getattr(self._playwright, self._profile.browser)
        self._browser = await launcher.launch(**self._profile.launch_options(self._settings.headless))
        self._context = await self._browser.new_context(**self._profile.context_options())
        # Must be registered before the first page exists.
        await self._context.add_init_script(script=self._profile.init_script())
        self._context.set_default_timeout(self._settings.action_timeout_ms)
        self._page = await self._context.new_page()
        self._page.on("console", self._on_console)
        self._page.on("pageerror", self._on_page_error)

    async def release(self) -> None:
        """Close context, browser and driver; safe to call more than once."""
        context, browser, playwright = self._context, self._browser, self._playwright
        self._page = self._context = self._browser = self._playwright = None
        try:
            if context is not None:
                await context.close()
        except PlaywrightError as exc:
            LOGGER.warning("session.context_close_failed", error=str(exc))
        finally:
            try:
                if browser is not None:
                    await browser.close()
            except PlaywrightError as exc:
                LOGGER.warning("session.browser_close_failed", error=str(exc))
            finally:
                if playwright is not None:
                    await playwright.stop()
                    LOGGER.info("session.released", profile=self._profile.name)

    @property
    def page(self) -> Page:
        if not self._page:
            raise RuntimeError("Playwright page has not been initialised")
        return self._page

    @staticmethod
    def _on_console(message) -> None:
        if message.type in ("error", "warning"):
            LOGGER.debug("browser.console", level=message.type, text=message.text)

    @staticmethod
    def _on_page_error(error) -> None:
        LOGGER.debug("browser.page_error", error=str(error))

    async def navigate(self, url: str, timeout_ms: Optional[int] = None) -> None:
        """Load ``url`` until the network is idle, then fail fast on block pages."""
        timeout_ms = timeout_ms or self._settings.navigation_timeout_ms
        LOGGER.info("session.navigate.start", url=url, timeout_ms=timeout_ms)
        try:
            await self.page.goto(url, wait_until="networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError as exc:
            LOGGER.warning("session.navigate.timeout", url=url, timeout_ms=timeout_ms)
            raise NavigationTimeout(url, timeout_ms) from exc

        marker = detect_block(await self.page.content())
        if marker:
            LOGGER.error("session.blocked", url=url, marker=marker, title=await self.page.title())
            raise BotDetectionBlocked(url, marker)
        LOGGER.info("session.navigate.complete", url=self.page.url)

    async def wait_until(self, predicate: Predicate, timeout_ms: int, interval_ms: int = 250) -> bool:
        """Poll ``predicate`` until it holds or ``timeout_ms`` elapses."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000
        while True:
            if await predicate():
                return True
            if loop.time() >= deadline:
                return False
            await asyncio.sleep(interval_ms / 1000)

    async def wait_for_network_idle(self, timeout_ms: int = 4000) -> None:
        try:
            await self.page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            LOGGER.debug("session.network_idle_timeout", timeout_ms=timeout_ms)

    async def settle(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def scroll_by(self, pixels: int) -> None:
        await self.page.evaluate("(pixels) => window.scrollBy(0, pixels)", pixels)

    async def _first_visible(self, selectors: Sequence[str]) -> Optional[tuple[str, Locator]]:
        for selector in selectors:
            locator = self.page.locator(selector).first
            try:
                await locator.wait_for(state="visible", timeout=self._settings.probe_timeout_ms)
            except PlaywrightTimeoutError:
                continue
            except PlaywrightError as exc:
                LOGGER.debug("session.selector_invalid", selector=selector, error=str(exc))
                continue
            return selector, locator
        return None

    async def read_text(self, selectors: Sequence[str]) -> Optional[str]:
        found = await self._first_visible(selectors)
        if found is None:
            return None
        try:
            return (await found[1].inner_text()).strip()
        except PlaywrightError:
            return None

    async def read_value(self, selectors: Sequence[str]) -> Optional[str]:
        found = await self._first_visible(selectors)
        if found is None:
            return None
        try:
            return await found[1].input_value()
        except PlaywrightError:
            return None

    async def click_first(self, selectors: Sequence[str]) -> Optional[str]:
        found = await self._first_visible(selectors)
        if found is None:
            return None
        selector, locator = found
        await locator.click()
        return selector

    async def click_nth(self, selector: str, index: int) -> None:
        await self.page.locator(selector).nth(index).click()

    async def select_value(self, selectors: Sequence[str], value: str) -> bool:
        found = await self._first_visible(selectors)
        if found is None:
            return False
        try:
            await found[1].select_option(value=value)
        except PlaywrightError as exc:
            LOGGER.debug("session.select_failed", selector=found[0], value=value, error=str(exc))
            return False
        return True

    async def fill(self, selectors: Sequence[str], value: str) -> bool:
        found = await self._first_visible(selectors)
        if found is None:
            return False
        try:
            await found[1].fill(value)
        except PlaywrightError as exc:
            LOGGER.debug("session.fill_failed", selector=found[0], error=str(exc))
            return False
        return True

    async def snapshots(self, selector: str) -> List[ElementSnapshot]:
        try:
            payload = await self.page.locator(selector).evaluate_all(SNAPSHOT_SCRIPT)
        except PlaywrightError as exc:
            LOGGER.debug("session.snapshot_failed", selector=selector, error=str(exc))
            return []
        return [ElementSnapshot.from_dict(item) for item in payload]

    async def has_text(self, pattern: Pattern[str]) -> bool:
        return await self.page.get_by_text(pattern).count() > 0


def acquire_session(profile: FingerprintProfile, settings: Settings) -> BrowserSession:
    """Scoped session: use with ``async with``; released on every exit path."""
    return BrowserSession(profile, settings)
