"""
Momentum — Recurrence Evaluator.

Decides whether a recurring template occurs on a given calendar day:
every ``recurrence_interval_days`` days counted from the anchor (due date,
else creation date), optionally restricted to the weekdays set in a 7-bit
mask (bit 0 = Sunday … bit 6 = Saturday).

No I/O: this module only transforms data.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from momentum.core.calendar_days import (
    WEEKDAY_SHORT,
    days_between,
    parse_day,
    weekday_index,
)
from momentum.data.models import TaskTemplate
from momentum.data.coercion import coerce_interval, coerce_mask

logger = logging.getLogger(__name__)


def anchor_day(template: TaskTemplate) -> date | None:
    """The day interval recurrence is counted from, or None if unusable.

    A due date that is present but unparseable does not fall back to the
    creation date: the template simply has no valid anchor.
    """
    raw = template.due_date or template.created_at
    return parse_day(raw)


def mask_allows(mask: int | None, day: date) -> bool:
    """True when the mask is unset/zero or has the bit for day's weekday."""
    mask = coerce_mask(mask)
    if not mask:
        return True
    return bool(mask & (1 << weekday_index(day)))


def occurs_on(template: TaskTemplate, day: str | date) -> bool:
    """Whether a recurring template has an occurrence on the given day.

    Fails closed: an invalid anchor or day never occurs.
    """
    target = parse_day(day)
    if target is None:
        return False

    anchor = anchor_day(template)
    if anchor is None:
        logger.warning(
            "Template %s has no valid anchor (due_date=%r, created_at=%r)",
            template.id, template.due_date, template.created_at,
        )
        return False

    diff_days = days_between(anchor, target)
    if diff_days < 0:
        return False

    interval = coerce_interval(template.recurrence_interval_days)
    if diff_days % interval != 0:
        return False

    return mask_allows(template.recurrence_days_mask, target)


def mask_from_weekdays(weekdays: Iterable[int]) -> int:
    """Encode weekday indexes (0 = Sunday) as a 7-bit mask."""
    mask = 0
    for day in weekdays:
        if not 0 <= day <= 6:
            raise ValueError(f"weekday index must be 0-6, got {day}")
        mask |= 1 << day
    return mask


def weekdays_from_mask(mask: int | None) -> list[int]:
    """Decode a mask into sorted weekday indexes; empty for no restriction."""
    mask = coerce_mask(mask)
    if not mask:
        return []
    return [i for i in range(7) if mask & (1 << i)]


def describe_repeat(template: TaskTemplate) -> str | None:
    """Short cadence label, e.g. "Daily", "Every 3d", "Daily · Mon, Fri".

    None for one-off templates.
    """
    if not template.is_recurring:
        return None
    interval = coerce_interval(template.recurrence_interval_days)
    label = "Daily" if interval == 1 else f"Every {interval}d"
    days = weekdays_from_mask(template.recurrence_days_mask)
    if days:
        label += " · " + ", ".join(WEEKDAY_SHORT[d] for d in days)
    return label
