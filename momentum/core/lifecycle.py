"""
Momentum — Lifecycle State Machine.

    Active (is_active, no archived_at)
      ⇅ activate / deactivate
    Inactive (not is_active, no archived_at)
      → Archived (archived_at set)

Archived is terminal for one-off templates: once a one-off is completed and
archived it can never be reactivated. Recurring templates normally move only
between Active and Inactive; they reach Archived only when the user deletes
them (``retire``), which keeps their completion history intact.

The ``*_patch`` functions are pure and enforce the rules; ``LifecycleManager``
applies them through the store.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from momentum.core.access import fetch_owned_template
from momentum.errors import (
    ConversionBlockedError,
    InvalidTransitionError,
    ReactivationBlockedError,
    TaskValidationError,
)
from momentum.data.models import TaskTemplate, TaskType

if TYPE_CHECKING:
    from momentum.ports.store_port import TaskStore

logger = logging.getLogger(__name__)


class TemplateState(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


def state_of(template: TaskTemplate) -> TemplateState:
    if template.is_archived:
        return TemplateState.ARCHIVED
    if template.is_active:
        return TemplateState.ACTIVE
    return TemplateState.INACTIVE


def _now_iso() -> str:
    return datetime.now().isoformat()


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------


def activation_patch(template: TaskTemplate, active: bool) -> dict[str, Any]:
    """Patch toggling is_active. Reactivating an archived one-off is refused."""
    if active and template.is_one_off and template.is_archived:
        raise ReactivationBlockedError(template.id)
    return {"is_active": active}


def archive_patch(template: TaskTemplate, now: str | None = None) -> dict[str, Any]:
    """Patch auto-archiving a completed one-off."""
    if not template.is_one_off:
        raise InvalidTransitionError(
            f"auto-archive is only defined for one-off templates, "
            f"template {template.id} is {template.task_type.value}"
        )
    return {"archived_at": now or _now_iso(), "is_active": False}


def retire_patch(template: TaskTemplate, now: str | None = None) -> dict[str, Any]:
    """Patch hiding a template for good while keeping its history."""
    return {"archived_at": template.archived_at or now or _now_iso(), "is_active": False}


def conversion_patch(
    template: TaskTemplate, new_type: TaskType | str, completed_count: int,
) -> dict[str, Any]:
    """Patch changing task_type.

    Recurring → one-off is refused when any completed log exists, since the
    one-off lifecycle would make that history inconsistent.
    """
    try:
        new_type = TaskType(new_type)
    except ValueError as exc:
        raise TaskValidationError(f"Unknown task type: {new_type!r}") from exc
    if (
        template.is_recurring
        and new_type is TaskType.ONE_OFF
        and completed_count > 0
    ):
        raise ConversionBlockedError(template.id, completed_count)
    return {"task_type": new_type.value}


# ---------------------------------------------------------------------------
# Store-backed transitions
# ---------------------------------------------------------------------------


class LifecycleManager:
    """Applies lifecycle transitions for the acting user's templates."""

    def __init__(self, store: TaskStore) -> None:
        self._store = store

    def set_active(self, user_id: str, template_id: str, active: bool) -> TaskTemplate:
        template = fetch_owned_template(self._store, user_id, template_id)
        patch = activation_patch(template, active)
        self._store.update_template(template_id, patch)
        template.is_active = active
        logger.info(
            "Template %s %s", template_id, "activated" if active else "deactivated",
        )
        return template

    def activate(self, user_id: str, template_id: str) -> TaskTemplate:
        return self.set_active(user_id, template_id, True)

    def deactivate(self, user_id: str, template_id: str) -> TaskTemplate:
        return self.set_active(user_id, template_id, False)

    def auto_archive(
        self, user_id: str, template_id: str, now: str | None = None,
    ) -> TaskTemplate:
        """Archive a completed one-off. Safe to retry after a partial failure."""
        template = fetch_owned_template(self._store, user_id, template_id)
        patch = archive_patch(template, now)
        if template.is_archived:
            return template
        self._store.update_template(template_id, patch)
        template.archived_at = patch["archived_at"]
        template.is_active = False
        logger.info("One-off template %s archived at %s", template_id, template.archived_at)
        return template

    def retire(self, user_id: str, template_id: str, now: str | None = None) -> TaskTemplate:
        """User-facing delete: archive instead of removing, for either type."""
        template = fetch_owned_template(self._store, user_id, template_id)
        patch = retire_patch(template, now)
        self._store.update_template(template_id, patch)
        template.archived_at = patch["archived_at"]
        template.is_active = False
        logger.info("Template %s retired", template_id)
        return template

    def convert_type(
        self, user_id: str, template_id: str, new_type: TaskType | str,
    ) -> TaskTemplate:
        template = fetch_owned_template(self._store, user_id, template_id)
        completed = self._store.count_completed_logs(template_id)
        patch = conversion_patch(template, new_type, completed)
        if patch["task_type"] == template.task_type.value:
            return template
        self._store.update_template(template_id, patch)
        template.task_type = TaskType(patch["task_type"])
        logger.info("Template %s converted to %s", template_id, template.task_type.value)
        return template
