"""Store port — abstract interface for template and completion-log storage.

Core modules depend on this protocol, never on a specific backend.
All dates crossing this boundary are "YYYY-MM-DD" keys; the weekday mask is
an integer 0-127.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from momentum.data.models import CompletionLog, TaskTemplate


class StoreError(Exception):
    """Raised when any store operation fails."""


class TaskStore(Protocol):
    """Abstract storage interface used by core modules."""

    def get_template(self, template_id: str) -> TaskTemplate | None: ...

    def list_templates(self, user_id: str) -> list[TaskTemplate]: ...

    def add_template(self, user_id: str, fields: Mapping[str, Any]) -> TaskTemplate: ...

    def update_template(self, template_id: str, patch: Mapping[str, Any]) -> None: ...

    def get_completion_log(
        self, user_id: str, template_id: str, log_date: str,
    ) -> CompletionLog | None: ...

    def list_completion_logs(
        self, user_id: str, start: str, end: str | None = None,
    ) -> list[CompletionLog]: ...

    def upsert_completion_log(
        self,
        user_id: str,
        template_id: str,
        log_date: str,
        completed: bool,
        completed_at: str | None = None,
    ) -> CompletionLog: ...

    def count_completed_logs(self, template_id: str) -> int: ...
