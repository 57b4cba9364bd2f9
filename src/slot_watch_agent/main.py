"""Entry point for the slot watch agent."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import httpx
import structlog
from google.adk.runners import InMemoryRunner
from google.genai import types
from pydantic import ValidationError

from .agent import SlotWatchAgent
from .alerts import AlertStoreClient
from .config import Settings
from .date_window import parse_target_date
from .models import TargetDescriptor, TimeWindow
from .sites import SITES


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog + stdlib logging."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stdout,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


LOGGER = structlog.get_logger(__name__)


async def run(settings: Settings, targets: List[TargetDescriptor], *, dry_run: bool = False) -> None:
    """Execute the ADK workflow for the given targets."""
    agent = SlotWatchAgent(
        name="slot_watch_agent",
        description="Checks booking widgets for open slots and reports them.",
        settings=settings,
        targets=targets,
        dry_run=dry_run,
    )

    async with InMemoryRunner(agent=agent, app_name="slot-watch-agent") as runner:
        user_id = settings.environment or "slot-watch"
        session_id = "slot-watch-session"

        await runner.session_service.create_session(
            app_name=runner.app_name,
            user_id=user_id,
            session_id=session_id,
        )

        trigger = types.Content(
            role="user",
            parts=[types.Part.from_text(text="Run slot availability check")],
        )

        async for event in runner.run_async(
            user_id=user_id,
            session_id=session_id,
            new_message=trigger,
        ):
            LOGGER.info(
                "agent.event",
                author=event.author,
                text=_extract_event_text(event),
            )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(
        description="Check booking widgets for open time slots and report them."
    )
    parser.add_argument("--site", choices=sorted(SITES), help="Check one ad-hoc target on this site.")
    parser.add_argument("--target-id", default="manual", help="Identifier reported for an ad-hoc target.")
    parser.add_argument("--date", help="Date (YYYY-MM-DD) for an ad-hoc target.")
    parser.add_argument(
        "--weekday",
        action="append",
        default=[],
        help="Weekday name resolved to its next occurrence; repeatable.",
    )
    parser.add_argument("--party-size", type=int, default=2, help="Party or guest count.")
    parser.add_argument(
        "--period",
        action="append",
        default=[],
        help="Named period (morning, afternoon, evening); repeatable.",
    )
    parser.add_argument("--window", help="Clock window such as 16:00-20:00.")
    parser.add_argument("--dry-run", action="store_true", help="Log outcomes instead of posting them.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _parse_window(text: str) -> TimeWindow:
    start, sep, end = text.partition("-")
    if not sep:
        raise ValueError(f"Invalid --window: {text}")
    return TimeWindow(start=start.strip(), end=end.strip())


def build_adhoc_target(args: argparse.Namespace) -> TargetDescriptor:
    """Build a descriptor from CLI flags."""
    try:
        window = _parse_window(args.window) if args.window else None
        return TargetDescriptor(
            target_id=args.target_id,
            site_id=args.site,
            target_date=parse_target_date(args.date) if args.date else None,
            weekdays=tuple(args.weekday),
            party_size=args.party_size,
            periods=tuple(args.period),
            window=window,
        )
    except (ValidationError, ValueError) as exc:
        raise SystemExit(f"Invalid target: {exc}") from exc


def resolve_targets(args: argparse.Namespace, settings: Settings) -> List[TargetDescriptor]:
    """Ad-hoc target from flags, otherwise the alert store's active alerts."""
    if args.site:
        return [build_adhoc_target(args)]
    return asyncio.run(AlertStoreClient(settings).fetch_targets())


def cli(argv: Optional[List[str]] = None) -> None:
    """Console script entrypoint."""
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        settings = Settings()
        if not args.dry_run or not args.site:
            # Fail before any browser is launched.
            settings.require_report_token()
    except Exception as exc:  # pragma: no cover - startup validation
        LOGGER.exception("settings.error", error=str(exc))
        raise SystemExit(2) from exc

    try:
        targets = resolve_targets(args, settings)
    except (httpx.HTTPError, ValueError) as exc:
        LOGGER.exception("alerts.failed", error=str(exc))
        raise SystemExit(1) from exc

    try:
        asyncio.run(run(settings, targets, dry_run=args.dry_run))
    except Exception as exc:  # pragma: no cover - top level
        LOGGER.exception("agent.failed", error=str(exc))
        raise SystemExit(1) from exc


def _extract_event_text(event) -> str:
    """Extract human-readable text from an ADK event."""
    if event.content and event.content.parts:
        fragments = [part.text for part in event.content.parts if getattr(part, "text", None)]
        return " ".join(fragment for fragment in fragments if fragment)
    return ""


if __name__ == "__main__":  # pragma: no cover
    cli()
