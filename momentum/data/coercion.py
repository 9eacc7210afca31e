"""
Momentum — Value coercion at the store boundary.

Leaf helpers shared by the record schemas and the recurrence core: canonical
day keys, and the lenient fallbacks applied to loosely typed stored values.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

from momentum.data.models import TASK_PRIORITIES

logger = logging.getLogger(__name__)

MASK_MAX = 0b1111111
DEFAULT_DIFFICULTY = 3


def to_day_key(value: date) -> str:
    """Format a date (or the date part of a datetime) as YYYY-MM-DD."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def parse_day(value: str | date | None) -> date | None:
    """Parse a calendar day from a date, a YYYY-MM-DD key or an ISO timestamp.

    Timezone-aware timestamps are converted to the local calendar day.
    Returns None for anything that is not a valid calendar date.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    raw = value.strip()
    if not raw:
        return None
    try:
        if len(raw) == 10:
            return date.fromisoformat(raw)
        stamp = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable calendar day: %r", value)
        return None
    if stamp.tzinfo is not None:
        stamp = stamp.astimezone()
    return stamp.date()


def coerce_interval(value: Any) -> int:
    """Positive whole number of days, falling back to 1."""
    if isinstance(value, bool):
        return 1
    try:
        interval = int(float(value))
    except (TypeError, ValueError):
        return 1
    return interval if interval > 0 else 1


def coerce_mask(value: Any) -> int | None:
    """A weekly mask in 1..127, or None for "no weekday restriction"."""
    if value is None or isinstance(value, bool):
        return None
    try:
        mask = int(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric weekday mask %r", value)
        return None
    if mask < 0 or mask > MASK_MAX:
        logger.warning("Ignoring out-of-range weekday mask %r", value)
        return None
    return mask or None


def normalize_priority(value: Any) -> str:
    if not value:
        return "none"
    normalized = str(value).strip().lower()
    return normalized if normalized in TASK_PRIORITIES else "none"


def normalize_difficulty(value: Any) -> int:
    if isinstance(value, bool):
        return DEFAULT_DIFFICULTY
    try:
        difficulty = float(value)
    except (TypeError, ValueError):
        return DEFAULT_DIFFICULTY
    if 1 <= difficulty <= 5:
        return int(difficulty)
    return DEFAULT_DIFFICULTY
