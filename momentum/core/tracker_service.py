"""
Momentum — Tracker Service.

UI-agnostic facade over the recurrence and lifecycle core. The presentation
layer calls these methods with the acting user's id and renders the returned
objects; errors from momentum.errors propagate unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any, Mapping

from momentum.core.access import fetch_owned_template
from momentum.core.calendar_days import (
    DayLabel,
    TIMELINE_RANGES,
    add_days,
    date_window,
    parse_day,
    shift_window,
    to_day_key,
    today as local_today,
)
from momentum.errors import TaskValidationError
from momentum.core.expander import expand, group_scheduled_by_date, group_timeline_rows
from momentum.core.ledger import CompletionLedger, LedgerResult
from momentum.core.lifecycle import LifecycleManager
from momentum.core.visibility import Checklist, build_checklist, scheduled_load
from momentum.data.models import Occurrence, TaskTemplate, TaskType, TimelineRow
from momentum.data.records import validate_template_edit, validate_template_input

if TYPE_CHECKING:
    from momentum.ports.store_port import TaskStore

logger = logging.getLogger(__name__)


@dataclass
class Timeline:
    """A forward-looking window of occurrences, grouped for display."""

    days: list[DayLabel]
    rows: list[TimelineRow] = field(default_factory=list)
    occurrences: list[Occurrence] = field(default_factory=list)

    @property
    def start(self) -> str:
        return self.days[0].iso_date

    @property
    def end(self) -> str:
        return self.days[-1].iso_date


def _require_day(value: str | date | None, what: str) -> date:
    if value is None:
        return local_today()
    day = parse_day(value)
    if day is None:
        raise TaskValidationError(f"Invalid {what}: {value!r}")
    return day


class TrackerService:
    """Stateless service wiring the store to the core rules.

    ``timeline_range_days``, ``timeline_horizon_days`` and ``default_category``
    come from the caller; when omitted they fall back to momentum.config.settings.
    """

    def __init__(
        self,
        store: TaskStore,
        timeline_range_days: int | None = None,
        default_category: str | None = None,
        timeline_horizon_days: int | None = None,
    ) -> None:
        if None in (timeline_range_days, default_category, timeline_horizon_days):
            from momentum.config import settings
            timeline_range_days = timeline_range_days or settings.TIMELINE_RANGE_DAYS
            default_category = default_category or settings.DEFAULT_CATEGORY
            timeline_horizon_days = timeline_horizon_days or settings.TIMELINE_HORIZON_DAYS

        self._store = store
        self._range_days = timeline_range_days
        self._horizon_days = timeline_horizon_days
        self._default_category = default_category
        self._lifecycle = LifecycleManager(store)
        self._ledger = CompletionLedger(store, self._lifecycle)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def create_template(self, user_id: str, data: Mapping[str, Any]) -> TaskTemplate:
        """Validate user input and store a new, active template."""
        parsed = validate_template_input(data)
        fields = parsed.model_dump()
        fields["task_type"] = parsed.task_type.value
        fields["category"] = parsed.category or self._default_category
        fields["priority"] = parsed.priority or "none"
        if parsed.difficulty is None:
            fields.pop("difficulty")
        if parsed.task_type is TaskType.RECURRING:
            fields["recurrence_interval_days"] = parsed.recurrence_interval_days or 1
            fields["recurrence_days_mask"] = parsed.recurrence_days_mask or None
        else:
            fields["recurrence_interval_days"] = None
            fields["recurrence_days_mask"] = None

        template = self._store.add_template(user_id, fields)
        logger.info(
            "Template created: %s '%s' (%s) for user %s",
            template.id, template.title, template.task_type.value, user_id,
        )
        return template

    def edit_template(
        self, user_id: str, template_id: str, changes: Mapping[str, Any],
    ) -> TaskTemplate:
        """Apply field edits; lifecycle fields go through their own methods."""
        parsed = validate_template_edit(changes)
        patch = parsed.model_dump(exclude_unset=True)
        if "title" in patch and patch["title"] is None:
            raise TaskValidationError("Title required")
        if "recurrence_days_mask" in patch:
            patch["recurrence_days_mask"] = patch["recurrence_days_mask"] or None
        if "recurrence_interval_days" in patch:
            patch["recurrence_interval_days"] = patch["recurrence_interval_days"] or 1

        fetch_owned_template(self._store, user_id, template_id)
        if patch:
            self._store.update_template(template_id, patch)
            logger.info("Template %s edited: %s", template_id, sorted(patch))
        return fetch_owned_template(self._store, user_id, template_id)

    def set_active(self, user_id: str, template_id: str, active: bool) -> TaskTemplate:
        return self._lifecycle.set_active(user_id, template_id, active)

    def convert_type(
        self, user_id: str, template_id: str, new_type: TaskType | str,
    ) -> TaskTemplate:
        return self._lifecycle.convert_type(user_id, template_id, new_type)

    def delete_template(self, user_id: str, template_id: str) -> TaskTemplate:
        """Remove from the user's views by archiving; history is kept."""
        return self._lifecycle.retire(user_id, template_id)

    def retry_archive(self, user_id: str, template_id: str) -> TaskTemplate:
        """Re-run only the archive step after a PartialCompletionError."""
        return self._lifecycle.auto_archive(user_id, template_id)

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def record_completion(
        self,
        user_id: str,
        template_id: str,
        checked: bool,
        day: str | date | None = None,
    ) -> LedgerResult:
        log_day = _require_day(day, "completion date")
        return self._ledger.record_completion(user_id, template_id, log_day, checked)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def todays_checklist(self, user_id: str, day: str | date | None = None) -> Checklist:
        target = _require_day(day, "checklist date")
        key = to_day_key(target)
        templates = self._store.list_templates(user_id)
        logs = self._store.list_completion_logs(user_id, key)
        return build_checklist(templates, logs, target)

    def timeline(
        self,
        user_id: str,
        start: str | date | None = None,
        range_days: int | None = None,
        project_lookup: Mapping[str, str] | None = None,
    ) -> Timeline:
        """Expand the user's live templates over [start, start + range_days)."""
        first = _require_day(start, "timeline start")
        range_days = range_days or self._range_days
        if range_days not in TIMELINE_RANGES:
            raise TaskValidationError(
                f"Timeline range must be one of {TIMELINE_RANGES} days, got {range_days}"
            )

        days = date_window(first, range_days)
        live = [
            t for t in self._store.list_templates(user_id)
            if t.is_active and not t.is_archived
        ]
        occurrences = expand(live, [d.iso_date for d in days], project_lookup)
        return Timeline(days=days, rows=group_timeline_rows(occurrences), occurrences=occurrences)

    def shift_timeline(
        self,
        user_id: str,
        current_start: str | date,
        direction: int,
        range_days: int | None = None,
        project_lookup: Mapping[str, str] | None = None,
        today: str | date | None = None,
    ) -> Timeline:
        """Move the timeline one range forward (1) or back (-1).

        The new start never precedes today and never runs past the
        configured horizon.
        """
        current = _require_day(current_start, "timeline start")
        today_ = _require_day(today, "today")
        range_days = range_days or self._range_days
        if direction not in (-1, 1):
            raise TaskValidationError(f"Direction must be -1 or 1, got {direction}")
        if range_days not in TIMELINE_RANGES:
            raise TaskValidationError(
                f"Timeline range must be one of {TIMELINE_RANGES} days, got {range_days}"
            )

        start = shift_window(current, direction, range_days, today_, self._horizon_days)
        logger.debug("Timeline for user %s moved from %s to %s", user_id, current, start)
        return self.timeline(user_id, start=start, range_days=range_days,
                             project_lookup=project_lookup)

    def scheduled(self, user_id: str) -> dict[str, list[TaskTemplate]]:
        """Live templates that carry a due date, grouped by that date."""
        live = [
            t for t in self._store.list_templates(user_id)
            if t.is_active and not t.is_archived
        ]
        return group_scheduled_by_date(live)

    def scheduled_load(
        self, user_id: str, start: str | date, days: int,
    ) -> dict[str, list[int]]:
        first = _require_day(start, "range start")
        last = add_days(first, max(0, days - 1))
        return scheduled_load(self._store.list_templates(user_id), first, last)
