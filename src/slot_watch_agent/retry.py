"""Bounded retry loop around one scrape attempt."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_fixed

from .config import Settings
from .errors import BotDetectionBlocked, error_kind
from .models import Attempt, ScrapeOutcome, TargetDescriptor

LOGGER = structlog.get_logger(__name__)

AttemptFn = Callable[[TargetDescriptor], Awaitable[ScrapeOutcome]]
Sleep = Callable[[float], Awaitable[None]]


class RetryShell:
    """Runs an attempt until it succeeds or ``max_attempts`` is used up.

    Every failure waits the same fixed ``backoff_seconds`` before the next
    try. Exhaustion yields a failure outcome carrying the last error message;
    no partial slots survive a failed attempt.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff_seconds: float = 5.0,
        *,
        retry_blocked: bool = True,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.retry_blocked = retry_blocked
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, *, sleep: Sleep = asyncio.sleep) -> "RetryShell":
        return cls(
            settings.max_attempts,
            settings.retry_backoff_seconds,
            retry_blocked=settings.retry_blocked,
            sleep=sleep,
        )

    def _should_retry(self, exc: BaseException) -> bool:
        if isinstance(exc, BotDetectionBlocked):
            return self.retry_blocked
        return isinstance(exc, Exception)

    @staticmethod
    def _before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        LOGGER.warning(
            "retry.backoff",
            attempt=state.attempt_number,
            wait_seconds=state.next_action.sleep if state.next_action else None,
            error=str(exc),
            kind=error_kind(exc) if exc else None,
        )

    async def run(self, target: TargetDescriptor, attempt_fn: AttemptFn) -> ScrapeOutcome:
        current: Optional[Attempt] = None
        started = time.monotonic()
        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.backoff_seconds),
            retry=retry_if_exception(self._should_retry),
            before_sleep=self._before_sleep,
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    current = Attempt(number=attempt.retry_state.attempt_number)
                    LOGGER.info(
                        "retry.attempt",
                        target_id=target.target_id,
                        attempt=current.number,
                        max_attempts=self.max_attempts,
                    )
                    outcome = await attempt_fn(target)
                    outcome.attempts = current.number
                    return outcome
        except Exception as exc:  # noqa: BLE001
            attempts = current.number if current else 0
            LOGGER.error(
                "retry.exhausted",
                target_id=target.target_id,
                attempts=attempts,
                error=str(exc),
                kind=error_kind(exc),
                elapsed_ms=current.elapsed_ms if current else 0,
            )
            failure = ScrapeOutcome.failure(target, str(exc) or type(exc).__name__, kind=error_kind(exc))
            failure.attempts = attempts
            failure.duration_ms = int((time.monotonic() - started) * 1000)
            return failure
        raise RuntimeError("retry loop exited without an outcome")
