"""
Momentum — Completion Ledger.

Records "done" for (user, template, day) idempotently:

* unchecking is always a no-op, a completed log is never cleared here;
* checking an already-completed day is a no-op;
* otherwise the log is upserted as completed, and a one-off template is
  archived right after.

When the archive step fails after the log was written, the log is kept and
``PartialCompletionError`` tells the caller to retry only the archive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING

from momentum.core.access import fetch_owned_template
from momentum.core.calendar_days import parse_day, to_day_key
from momentum.errors import PartialCompletionError, TaskValidationError
from momentum.core.lifecycle import LifecycleManager

if TYPE_CHECKING:
    from momentum.data.models import CompletionLog
    from momentum.ports.store_port import TaskStore

logger = logging.getLogger(__name__)


class LedgerOutcome(Enum):
    RECORDED = "recorded"
    ALREADY_COMPLETED = "already_completed"
    UNCHECK_IGNORED = "uncheck_ignored"


@dataclass
class LedgerResult:
    outcome: LedgerOutcome
    template_id: str
    log_date: str
    log: CompletionLog | None = None
    archived: bool = False

    @property
    def changed(self) -> bool:
        return self.outcome is LedgerOutcome.RECORDED


class CompletionLedger:
    """Idempotent completion recording backed by the store."""

    def __init__(self, store: TaskStore, lifecycle: LifecycleManager | None = None) -> None:
        self._store = store
        self._lifecycle = lifecycle or LifecycleManager(store)

    def record_completion(
        self,
        user_id: str,
        template_id: str,
        day: str | date,
        checked: bool,
        now: str | None = None,
    ) -> LedgerResult:
        """Mark template_id done on day for user_id (or ignore an uncheck).

        Raises NotFoundError / AuthorizationError for a bad template id and
        PartialCompletionError when a one-off's archive step fails.
        """
        parsed = parse_day(day)
        if parsed is None:
            raise TaskValidationError(f"Invalid completion date: {day!r}")
        log_date = to_day_key(parsed)

        template = fetch_owned_template(self._store, user_id, template_id)

        if not checked:
            logger.debug("Ignoring uncheck of %s on %s", template_id, log_date)
            return LedgerResult(LedgerOutcome.UNCHECK_IGNORED, template_id, log_date)

        existing = self._store.get_completion_log(user_id, template_id, log_date)
        if existing is not None and existing.completed:
            return LedgerResult(
                LedgerOutcome.ALREADY_COMPLETED, template_id, log_date, log=existing,
            )

        log = self._store.upsert_completion_log(
            user_id, template_id, log_date, True, now or datetime.now().isoformat(),
        )
        logger.info("Completion recorded: template %s on %s", template_id, log_date)

        archived = False
        if template.is_one_off:
            try:
                self._lifecycle.auto_archive(user_id, template_id, now=now)
            except Exception as exc:
                logger.error(
                    "Completion of %s on %s saved but archive failed: %s",
                    template_id, log_date, exc,
                )
                raise PartialCompletionError(log, exc) from exc
            archived = True

        return LedgerResult(
            LedgerOutcome.RECORDED, template_id, log_date, log=log, archived=archived,
        )
