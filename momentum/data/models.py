"""
Momentum — Data Models.

Task templates and their completion logs, as the core sees them after
normalization at the store boundary (see momentum.data.records).
Dates are canonical "YYYY-MM-DD" keys, timestamps are ISO strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class TaskType(str, Enum):
    RECURRING = "recurring"
    ONE_OFF = "one_off"


TASK_PRIORITIES = ("none", "low", "medium", "high")


@dataclass
class TaskTemplate:
    """A user-owned task definition, recurring or one-off.

    The recurrence fields only matter for recurring templates. The anchor
    for interval counting is due_date when set, else created_at.
    """

    id: str
    user_id: str
    title: str
    task_type: TaskType = TaskType.RECURRING
    category: str = "Uncategorized"
    is_active: bool = True
    archived_at: str | None = None            # set = permanently retired
    created_at: str = ""                      # ISO timestamp
    updated_at: str = ""
    recurrence_interval_days: int = 1         # every N days
    recurrence_days_mask: int | None = None   # bit i = weekday i, 0 = Sunday
    due_date: str | None = None               # YYYY-MM-DD
    due_time: str | None = None               # HH:MM or HH:MM:SS
    project_id: str | None = None
    priority: str = "none"
    difficulty: int = 3                       # 1..5
    notes: str | None = None

    @property
    def is_recurring(self) -> bool:
        return self.task_type is TaskType.RECURRING

    @property
    def is_one_off(self) -> bool:
        return self.task_type is TaskType.ONE_OFF

    @property
    def is_archived(self) -> bool:
        return bool(self.archived_at)


@dataclass
class CompletionLog:
    """At most one per (user_id, template_id, log_date)."""

    user_id: str
    template_id: str
    log_date: str                     # YYYY-MM-DD
    completed: bool = False
    completed_at: str | None = None   # ISO timestamp
    id: int | None = None


@dataclass
class Occurrence:
    """A template projected onto one date of a timeline window. Not persisted."""

    template_id: str
    title: str
    category: str
    date: str                          # YYYY-MM-DD
    is_recurring: bool
    due_time: str | None = None
    project_id: str | None = None
    project_label: str | None = None
    recurrence_interval_days: int | None = None

    @property
    def instance_key(self) -> tuple[str, str]:
        """Stable identity across overlapping windows."""
        return (self.template_id, self.date)


@dataclass
class TimelineRow:
    """Occurrences grouped under one project or category."""

    key: str
    label: str
    kind: str                          # "project" | "category"
    occurrences_by_date: dict[str, list[Occurrence]] = field(default_factory=dict)


@dataclass
class ChecklistItem:
    """A template as it appears in today's checklist."""

    template_id: str
    title: str
    category: str
    task_type: TaskType
    checked: bool = False
    completed_at: str | None = None
