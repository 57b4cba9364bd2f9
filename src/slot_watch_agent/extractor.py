"""Slot extraction from snapshots of rendered, button-like elements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Union

import structlog

from .clock import find_time
from .models import Slot

LOGGER = structlog.get_logger(__name__)

DISABLED_CLASS_MARKERS = ("disabled",)

# Captures every matched element in one round trip instead of one call per attribute.
SNAPSHOT_SCRIPT = """
(elements) => elements.map((el) => ({
  text: (el.innerText || el.textContent || ''),
  disabled: el.hasAttribute('disabled'),
  ariaDisabled: el.getAttribute('aria-disabled'),
  className: (typeof el.className === 'string' ? el.className : el.getAttribute('class')) || '',
}))
"""


@dataclass(frozen=True)
class ElementSnapshot:
    """Text and availability-relevant attributes of one candidate element."""

    text: str
    disabled: bool = False
    aria_disabled: Optional[str] = None
    class_name: str = ""

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ElementSnapshot":
        aria = payload.get("ariaDisabled")
        return cls(
            text=str(payload.get("text") or ""),
            disabled=bool(payload.get("disabled")),
            aria_disabled=None if aria is None else str(aria),
            class_name=str(payload.get("className") or ""),
        )

    @property
    def label(self) -> str:
        return " ".join(self.text.split())

    @property
    def is_enabled(self) -> bool:
        if self.disabled:
            return False
        if (self.aria_disabled or "").strip().lower() == "true":
            return False
        return not has_disabled_class(self.class_name)


@dataclass(frozen=True)
class Skip:
    """Candidate that is not a bookable slot."""

    reason: str


@dataclass(frozen=True)
class Malformed:
    """Candidate whose text looked like a time but could not be parsed."""

    text: str
    reason: str


Classification = Union[Slot, Skip, Malformed]


def has_disabled_class(class_name: str) -> bool:
    tokens = (class_name or "").lower().split()
    return any(marker in token for token in tokens for marker in DISABLED_CLASS_MARKERS)


def classify(snapshot: ElementSnapshot, period: str) -> Classification:
    """Decide whether one element snapshot is an available slot for ``period``."""
    raw_time = find_time(snapshot.text)
    if raw_time is None:
        return Skip("no-time")
    if not snapshot.is_enabled:
        return Skip("unavailable")
    try:
        return Slot.from_text(raw_time, period)
    except ValueError as exc:
        return Malformed(text=snapshot.label, reason=str(exc))


def extract_slots(snapshots: Iterable[ElementSnapshot], period: str) -> List[Slot]:
    """Available slots in document order, without duplicates."""
    slots: List[Slot] = []
    skipped = 0
    for snapshot in snapshots:
        result = classify(snapshot, period)
        if isinstance(result, Slot):
            if result not in slots:
                slots.append(result)
        elif isinstance(result, Malformed):
            LOGGER.warning("extract.malformed", period=period, text=result.text, reason=result.reason)
        elif result.reason == "unavailable":
            skipped += 1

    LOGGER.debug("extract.complete", period=period, slots=len(slots), unavailable=skipped)
    return slots
