"""
Momentum — Store-boundary records.

Two kinds of schema live here:

* ``TemplateRecord`` / ``CompletionLogRecord`` normalize whatever the store
  hands back (dicts, ``sqlite3.Row`` mappings, loosely typed JSON) into the
  strict dataclasses the core works with. They are lenient: bad recurrence
  values are coerced to safe defaults instead of failing the whole read.
* ``TemplateInput`` / ``TemplateEdit`` validate user input before anything is
  written. They are strict and raise ``TaskValidationError``.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from momentum.data.coercion import (
    DEFAULT_DIFFICULTY,
    MASK_MAX,
    coerce_interval,
    coerce_mask,
    normalize_difficulty,
    normalize_priority,
    parse_day,
    to_day_key,
)
from momentum.data.models import TASK_PRIORITIES, CompletionLog, TaskTemplate, TaskType
from momentum.errors import TaskValidationError

_ISO_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DUE_TIME = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ---------------------------------------------------------------------------
# Lenient read-side records
# ---------------------------------------------------------------------------


class TemplateRecord(BaseModel):
    """A task template row as read from the store."""

    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str
    title: str = ""
    task_type: TaskType = TaskType.RECURRING
    category: str = "Uncategorized"
    is_active: bool = True
    archived_at: str | None = None
    created_at: str = ""
    updated_at: str = ""
    recurrence_interval_days: int = 1
    recurrence_days_mask: int | None = None
    due_date: str | None = None
    due_time: str | None = None
    project_id: str | None = None
    priority: str = "none"
    difficulty: int = DEFAULT_DIFFICULTY
    notes: str | None = None

    @field_validator("id", "user_id", "project_id", mode="before")
    @classmethod
    def ids_as_text(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        return str(v) if v is not None else None

    @field_validator("task_type", mode="before")
    @classmethod
    def default_task_type(cls, v: Any) -> Any:
        return v or TaskType.RECURRING

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> str:
        return (v or "").strip() or "Uncategorized"

    @field_validator("title", "created_at", "updated_at", mode="before")
    @classmethod
    def null_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("is_active", mode="before")
    @classmethod
    def null_active(cls, v: Any) -> Any:
        return True if v is None else v

    @field_validator("archived_at", "due_date", "due_time", "notes", mode="before")
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        return v.strip() if isinstance(v, str) else v

    @field_validator("recurrence_interval_days", mode="before")
    @classmethod
    def safe_interval(cls, v: Any) -> int:
        return coerce_interval(v)

    @field_validator("recurrence_days_mask", mode="before")
    @classmethod
    def safe_mask(cls, v: Any) -> int | None:
        return coerce_mask(v)

    @field_validator("priority", mode="before")
    @classmethod
    def safe_priority(cls, v: Any) -> str:
        return normalize_priority(v)

    @field_validator("difficulty", mode="before")
    @classmethod
    def safe_difficulty(cls, v: Any) -> int:
        return normalize_difficulty(v)

    def to_template(self) -> TaskTemplate:
        return TaskTemplate(**self.model_dump())


class CompletionLogRecord(BaseModel):
    """A completion log row as read from the store."""

    model_config = ConfigDict(extra="ignore")

    id: int | None = None
    user_id: str
    template_id: str
    log_date: str
    completed: bool = False
    completed_at: str | None = None

    @field_validator("user_id", "template_id", mode="before")
    @classmethod
    def ids_as_text(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    @field_validator("log_date", mode="before")
    @classmethod
    def canonical_day(cls, v: Any) -> str:
        day = parse_day(v)
        if day is None:
            raise ValueError(f"invalid log date {v!r}")
        return to_day_key(day)

    @field_validator("completed", mode="before")
    @classmethod
    def null_completed(cls, v: Any) -> Any:
        return False if v is None else v

    def to_log(self) -> CompletionLog:
        return CompletionLog(**self.model_dump())


def template_from_row(row: Mapping[str, Any]) -> TaskTemplate:
    """Normalize one store row into a TaskTemplate."""
    return TemplateRecord.model_validate(dict(row)).to_template()


def log_from_row(row: Mapping[str, Any]) -> CompletionLog:
    """Normalize one store row into a CompletionLog."""
    return CompletionLogRecord.model_validate(dict(row)).to_log()


# ---------------------------------------------------------------------------
# Strict write-side input
# ---------------------------------------------------------------------------


class TemplateEdit(BaseModel):
    """Field edits a user may make to an existing template.

    Lifecycle fields (task_type, is_active, archived_at) are not editable
    here; they change only through the lifecycle transitions.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    category: str | None = None
    recurrence_interval_days: int | None = None
    recurrence_days_mask: int | None = None
    due_date: str | None = None
    due_time: str | None = None
    project_id: str | None = None
    priority: str | None = None
    difficulty: int | None = None
    notes: str | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Title required")
        return v.strip() if v is not None else None

    @field_validator("category")
    @classmethod
    def strip_category(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or "Uncategorized"

    @field_validator("recurrence_interval_days")
    @classmethod
    def positive_interval(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("recurrence interval must be at least 1 day")
        return v

    @field_validator("recurrence_days_mask")
    @classmethod
    def mask_in_range(cls, v: int | None) -> int | None:
        if v is not None and not 0 <= v <= MASK_MAX:
            raise ValueError(f"weekday mask must be between 0 and {MASK_MAX}")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def valid_due_date(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        if v is None:
            return None
        if not isinstance(v, str) or not _ISO_DAY.match(v) or parse_day(v) is None:
            raise ValueError(f"due date must be YYYY-MM-DD, got {v!r}")
        return v

    @field_validator("due_time", mode="before")
    @classmethod
    def valid_due_time(cls, v: Any) -> Any:
        v = _blank_to_none(v)
        if v is None:
            return None
        if not isinstance(v, str) or not _DUE_TIME.match(v):
            raise ValueError(f"due time must be HH:MM, got {v!r}")
        return v

    @field_validator("priority")
    @classmethod
    def known_priority(cls, v: str | None) -> str | None:
        if v is None:
            return None
        normalized = v.strip().lower()
        if normalized not in TASK_PRIORITIES:
            raise ValueError(f"priority must be one of {TASK_PRIORITIES}")
        return normalized

    @field_validator("difficulty")
    @classmethod
    def difficulty_in_range(cls, v: int | None) -> int | None:
        if v is not None and not 1 <= v <= 5:
            raise ValueError("difficulty must be between 1 and 5")
        return v


class TemplateInput(TemplateEdit):
    """A new template as submitted by the user."""

    title: str
    task_type: TaskType = TaskType.RECURRING
    recurrence_interval_days: int | None = 1


def _as_validation_error(exc: ValidationError) -> TaskValidationError:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
        for err in exc.errors()
    )
    return TaskValidationError(problems)


def validate_template_input(data: Mapping[str, Any]) -> TemplateInput:
    try:
        return TemplateInput.model_validate(dict(data))
    except ValidationError as exc:
        raise _as_validation_error(exc) from exc


def validate_template_edit(data: Mapping[str, Any]) -> TemplateEdit:
    try:
        return TemplateEdit.model_validate(dict(data))
    except ValidationError as exc:
        raise _as_validation_error(exc) from exc
