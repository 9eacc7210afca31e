"""
Momentum — Checklist Visibility Resolver.

Decides which templates appear in a day's checklist. Evaluated per render;
nothing here persists state.

Policy: a template with a completed log for the day is hidden, whatever its
type. Completed items are reported separately so the day's count stays
stable without showing them again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from operator import attrgetter
from typing import Iterable

from momentum.core.calendar_days import add_days, parse_day, to_day_key
from momentum.core.recurrence import occurs_on
from momentum.data.coercion import coerce_mask
from momentum.data.models import ChecklistItem, CompletionLog, TaskTemplate

logger = logging.getLogger(__name__)


@dataclass
class Checklist:
    """One day's checklist: what to do, and what is already done."""

    day: str
    items: list[ChecklistItem] = field(default_factory=list)
    completed_today: list[ChecklistItem] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.items) + len(self.completed_today)


def should_appear(
    template: TaskTemplate,
    has_completed_log_for_today: bool,
    today: str | date | None = None,
) -> bool:
    """Whether the template belongs in the checklist for ``today``.

    ``today`` is only consulted for recurring templates with a weekday mask;
    it defaults to the local calendar day.
    """
    if has_completed_log_for_today:
        return False

    if template.is_one_off:
        return not template.is_archived

    if not template.is_active or template.is_archived:
        return False

    if coerce_mask(template.recurrence_days_mask):
        day = parse_day(today) if today is not None else date.today()
        return day is not None and occurs_on(template, day)
    return True


def can_reactivate(template: TaskTemplate, has_completed_log: bool) -> bool:
    """False for a one-off that was already completed or archived."""
    if template.is_one_off and (has_completed_log or template.is_archived):
        return False
    return True


def _completed_ids(logs: Iterable[CompletionLog], day_key: str) -> dict[str, CompletionLog]:
    return {
        log.template_id: log
        for log in logs
        if log.completed and log.log_date == day_key
    }


def _item(template: TaskTemplate, log: CompletionLog | None = None) -> ChecklistItem:
    return ChecklistItem(
        template_id=template.id,
        title=template.title,
        category=template.category,
        task_type=template.task_type,
        checked=log is not None,
        completed_at=log.completed_at if log else None,
    )


def build_checklist(
    templates: Iterable[TaskTemplate],
    logs: Iterable[CompletionLog],
    today: str | date,
) -> Checklist:
    """Resolve the full checklist for a day from templates and that day's logs.

    Items are sorted by category, then title.
    """
    day = parse_day(today)
    if day is None:
        raise ValueError(f"Invalid checklist day: {today!r}")
    day_key = to_day_key(day)
    done = _completed_ids(logs, day_key)

    checklist = Checklist(day=day_key)
    for template in templates:
        log = done.get(template.id)
        if log is not None:
            checklist.completed_today.append(_item(template, log))
        elif should_appear(template, False, day):
            checklist.items.append(_item(template))

    sort_key = attrgetter("category", "title")
    checklist.items.sort(key=sort_key)
    checklist.completed_today.sort(key=sort_key)
    logger.debug(
        "Checklist %s: %d open, %d done",
        day_key, len(checklist.items), len(checklist.completed_today),
    )
    return checklist


def scheduled_load(
    templates: Iterable[TaskTemplate],
    start: str | date,
    end: str | date,
) -> dict[str, list[int]]:
    """Difficulty of every template scheduled on each day of [start, end].

    Only active, unarchived templates count. Recurring templates count every
    day from their creation day; dated one-offs count on their due date;
    undated one-offs count every day from their creation day.
    """
    first, last = parse_day(start), parse_day(end)
    if first is None or last is None:
        raise ValueError(f"Invalid range: {start!r}..{end!r}")

    days: list[date] = []
    current = first
    while current <= last:
        days.append(current)
        current = add_days(current, 1)

    load: dict[str, list[int]] = {}
    for template in templates:
        if not template.is_active or template.is_archived:
            continue
        created = parse_day(template.created_at)
        due = parse_day(template.due_date)
        for day in days:
            if created is not None and day < created:
                continue
            if template.is_recurring or (due is None and template.is_one_off) or due == day:
                load.setdefault(to_day_key(day), []).append(template.difficulty)
    return load
