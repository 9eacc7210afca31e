"""
Momentum — Occurrence Expander.

Projects templates onto a bounded window of calendar days for the forward
timeline, then groups the result into rows by project (or category).

The expansion calls the recurrence evaluator once per template per day.
Windows are at most 30 days long, so O(templates × days) is fine and avoids
closed-form recurrence math.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Mapping, Sequence

from momentum.core.calendar_days import parse_day, to_day_key
from momentum.core.recurrence import occurs_on
from momentum.data.models import Occurrence, TaskTemplate, TimelineRow
from momentum.data.coercion import coerce_interval

logger = logging.getLogger(__name__)

_FALLBACK_PROJECT_LABEL = "Project"


def _window_keys(window: Iterable[str | date]) -> list[str]:
    keys: list[str] = []
    for value in window:
        day = parse_day(value)
        if day is None:
            raise ValueError(f"Invalid date in window: {value!r}")
        key = to_day_key(day)
        if key not in keys:
            keys.append(key)
    return keys


def expand(
    templates: Iterable[TaskTemplate],
    window: Sequence[str | date],
    project_lookup: Mapping[str, str] | None = None,
) -> list[Occurrence]:
    """Expand templates into dated occurrences inside the window.

    Recurring templates produce one occurrence per matching day. One-off
    templates produce one occurrence when their due date is inside the
    window; undated one-offs belong to the checklist only and are skipped.
    """
    project_lookup = project_lookup or {}
    keys = _window_keys(window)
    key_set = set(keys)
    occurrences: list[Occurrence] = []

    for template in templates:
        project_label = None
        if template.project_id:
            project_label = project_lookup.get(template.project_id) or _FALLBACK_PROJECT_LABEL
        category = template.category or "Uncategorized"

        if template.is_recurring:
            interval = coerce_interval(template.recurrence_interval_days)
            for key in keys:
                if not occurs_on(template, key):
                    continue
                occurrences.append(Occurrence(
                    template_id=template.id,
                    title=template.title,
                    category=category,
                    date=key,
                    is_recurring=True,
                    due_time=template.due_time,
                    project_id=template.project_id,
                    project_label=project_label,
                    recurrence_interval_days=interval,
                ))
            continue

        due = parse_day(template.due_date)
        if due is None or to_day_key(due) not in key_set:
            continue
        occurrences.append(Occurrence(
            template_id=template.id,
            title=template.title,
            category=category,
            date=to_day_key(due),
            is_recurring=False,
            due_time=template.due_time,
            project_id=template.project_id,
            project_label=project_label,
        ))

    logger.debug(
        "Expanded %d occurrences over %d days", len(occurrences), len(keys),
    )
    return occurrences


def merge_occurrences(*batches: Iterable[Occurrence]) -> list[Occurrence]:
    """Concatenate batches, dropping repeats of the same (template, date)."""
    seen: set[tuple[str, str]] = set()
    merged: list[Occurrence] = []
    for batch in batches:
        for occ in batch:
            if occ.instance_key in seen:
                continue
            seen.add(occ.instance_key)
            merged.append(occ)
    return merged


def display_sort_key(item: Occurrence | TaskTemplate) -> tuple:
    """Timed before untimed, then by due time, then by title."""
    if item.due_time:
        return (0, item.due_time, item.title)
    return (1, "", item.title)


def group_timeline_rows(occurrences: Iterable[Occurrence]) -> list[TimelineRow]:
    """Group occurrences into rows by project, else by category.

    Rows are sorted by label; each day's occurrences by display_sort_key.
    """
    rows: dict[str, TimelineRow] = {}
    for occ in occurrences:
        if occ.project_id:
            kind = "project"
            label = occ.project_label or _FALLBACK_PROJECT_LABEL
        else:
            kind = "category"
            label = occ.category
        key = f"{kind}-{label}"

        row = rows.get(key)
        if row is None:
            row = rows[key] = TimelineRow(key=key, label=label, kind=kind)
        row.occurrences_by_date.setdefault(occ.date, []).append(occ)

    for row in rows.values():
        for day_items in row.occurrences_by_date.values():
            day_items.sort(key=display_sort_key)

    return sorted(rows.values(), key=lambda r: r.label)


def group_scheduled_by_date(
    templates: Iterable[TaskTemplate],
) -> dict[str, list[TaskTemplate]]:
    """Group templates that carry a due date by that date.

    Used by the read-only "scheduled" preview, which lists dated templates
    as they are rather than expanding recurrence.
    """
    grouped: dict[str, list[TaskTemplate]] = {}
    for template in templates:
        due = parse_day(template.due_date)
        if due is None:
            continue
        grouped.setdefault(to_day_key(due), []).append(template)
    for items in grouped.values():
        items.sort(key=display_sort_key)
    return grouped
