"""Failure taxonomy for scrape attempts and the reporting boundary."""

from __future__ import annotations


class ScrapeError(Exception):
    """Base class for failures raised during one scrape attempt."""

    kind = "scrape_error"


class NavigationTimeout(ScrapeError):
    """The page did not reach a quiescent network state in time."""

    kind = "navigation_timeout"

    def __init__(self, url: str, timeout_ms: int):
        super().__init__(f"Navigation to {url} did not settle within {timeout_ms}ms")
        self.url = url
        self.timeout_ms = timeout_ms


class BotDetectionBlocked(ScrapeError):
    """The target returned a block, access-denied or captcha page."""

    kind = "bot_detection_blocked"

    def __init__(self, url: str, marker: str):
        super().__init__(f"Access blocked at {url} (matched {marker!r}) - possible bot detection")
        self.url = url
        self.marker = marker


class CalendarNavigationExhausted(ScrapeError):
    """Month pagination did not reach the target month within the step bound."""

    kind = "calendar_navigation_exhausted"

    def __init__(self, target: str, steps: int, last_label: str | None):
        super().__init__(
            f"Calendar never showed {target} after {steps} navigation step(s); last label {last_label!r}"
        )
        self.target = target
        self.steps = steps
        self.last_label = last_label


class SelectorNotFound(ScrapeError):
    """A required control is absent; the target site may have changed shape."""

    kind = "selector_not_found"

    def __init__(self, step: str, selectors: tuple[str, ...] | list[str]):
        super().__init__(f"No control found for {step}; tried {len(selectors)} selector(s)")
        self.step = step
        self.selectors = tuple(selectors)


class PeriodExtractionError(ScrapeError):
    """Extraction failed for one period; recorded against that period only."""

    kind = "period_extraction_error"

    def __init__(self, period: str, cause: BaseException):
        super().__init__(f"{period}: {cause}")
        self.period = period
        self.cause = cause


class WizardStateError(RuntimeError):
    """The wizard was asked to move backwards or skip a step."""


class UnknownSiteError(ValueError):
    """No selector table is registered for the requested site id."""


class MissingCredentialsError(RuntimeError):
    """The reporting bearer credential is not configured."""


class ReportDeliveryError(RuntimeError):
    """The reporting endpoint rejected or failed to accept an outcome."""


def error_kind(exc: BaseException) -> str:
    """Stable kind label for an exception, used in failure outcomes."""
    kind = getattr(exc, "kind", None)
    if isinstance(kind, str):
        return kind
    return type(exc).__name__
