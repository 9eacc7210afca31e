"""Error taxonomy raised by the recurrence and lifecycle core.

Every error reaches the immediate caller (the presentation layer); nothing
here is retried internally.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from momentum.data.models import CompletionLog

REACTIVATION_BLOCKED_MESSAGE = "One-off tasks cannot be reactivated after completion"


class TrackerError(Exception):
    """Base class for user-facing errors."""


class TaskValidationError(TrackerError):
    """Input was rejected before the store was touched."""


class AuthorizationError(TrackerError):
    """The template does not belong to the acting user."""


class NotFoundError(TrackerError):
    """A template or log id does not exist."""


class LifecycleViolationError(TrackerError):
    """A deliberate business rule forbids the transition."""


class ReactivationBlockedError(LifecycleViolationError):
    def __init__(self, template_id: str) -> None:
        super().__init__(REACTIVATION_BLOCKED_MESSAGE)
        self.template_id = template_id


class ConversionBlockedError(LifecycleViolationError):
    def __init__(self, template_id: str, completion_count: int) -> None:
        super().__init__(conversion_error_message(completion_count))
        self.template_id = template_id
        self.completion_count = completion_count


class PartialCompletionError(TrackerError):
    """The completion log was written but the follow-up archive failed.

    Callers should retry only the archive step; the log is already saved.
    """

    def __init__(self, log: CompletionLog, cause: Exception) -> None:
        super().__init__("Completion saved but the task could not be archived")
        self.log = log
        self.cause = cause


class InvalidTransitionError(RuntimeError):
    """A transition was requested that no caller should ever request."""


def conversion_error_message(completion_count: int) -> str:
    return (
        f"Cannot convert: task has {completion_count} completion log(s). "
        "Delete logs first or create a new one-off task."
    )
