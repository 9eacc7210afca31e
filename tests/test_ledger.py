"""Tests for momentum.core.ledger — idempotent completion recording."""

from unittest.mock import MagicMock, patch

import pytest

from conftest import make_template
from momentum.errors import (
    AuthorizationError,
    NotFoundError,
    PartialCompletionError,
    ReactivationBlockedError,
    TaskValidationError,
)
from momentum.core.ledger import CompletionLedger, LedgerOutcome
from momentum.core.lifecycle import LifecycleManager
from momentum.core.visibility import should_appear
from momentum.data.models import CompletionLog


@pytest.fixture
def ledger(task_db):
    return CompletionLedger(task_db)


def _add(task_db, user_id="u1", **fields):
    fields.setdefault("title", "Task")
    return task_db.add_template(user_id, fields)


class TestRecordCompletion:
    def test_records_completed_log(self, ledger, task_db):
        t = _add(task_db)
        result = ledger.record_completion("u1", t.id, "2024-01-01", True, now="2024-01-01T07:00:00")
        assert result.outcome is LedgerOutcome.RECORDED
        assert result.changed is True
        assert result.archived is False
        log = task_db.get_completion_log("u1", t.id, "2024-01-01")
        assert log.completed is True
        assert log.completed_at == "2024-01-01T07:00:00"

    def test_second_check_is_noop(self, ledger, task_db):
        t = _add(task_db)
        ledger.record_completion("u1", t.id, "2024-01-01", True, now="2024-01-01T07:00:00")
        again = ledger.record_completion("u1", t.id, "2024-01-01", True, now="2024-01-01T09:00:00")
        assert again.outcome is LedgerOutcome.ALREADY_COMPLETED
        assert again.log.completed_at == "2024-01-01T07:00:00"
        assert len(task_db.list_completion_logs("u1", "2024-01-01")) == 1

    def test_uncheck_never_clears(self, ledger, task_db):
        t = _add(task_db)
        ledger.record_completion("u1", t.id, "2024-01-01", True)
        result = ledger.record_completion("u1", t.id, "2024-01-01", False)
        assert result.outcome is LedgerOutcome.UNCHECK_IGNORED
        assert task_db.get_completion_log("u1", t.id, "2024-01-01").completed is True

    def test_uncheck_writes_nothing(self, ledger, task_db):
        t = _add(task_db)
        ledger.record_completion("u1", t.id, "2024-01-01", False)
        assert task_db.get_completion_log("u1", t.id, "2024-01-01") is None

    def test_different_days_are_separate_logs(self, ledger, task_db):
        t = _add(task_db)
        ledger.record_completion("u1", t.id, "2024-01-01", True)
        ledger.record_completion("u1", t.id, "2024-01-02", True)
        assert task_db.count_completed_logs(t.id) == 2

    def test_accepts_timestamp_day(self, ledger, task_db):
        t = _add(task_db)
        result = ledger.record_completion("u1", t.id, "2024-01-01T21:15:00", True)
        assert result.log_date == "2024-01-01"

    def test_invalid_day(self, ledger, task_db):
        t = _add(task_db)
        with pytest.raises(TaskValidationError):
            ledger.record_completion("u1", t.id, "yesterday-ish", True)

    def test_missing_template(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.record_completion("u1", "nope", "2024-01-01", True)

    def test_other_users_template(self, ledger, task_db):
        t = _add(task_db, user_id="owner")
        with pytest.raises(AuthorizationError):
            ledger.record_completion("intruder", t.id, "2024-01-01", True)
        assert task_db.get_completion_log("intruder", t.id, "2024-01-01") is None


class TestOneOffScenarioD:
    def test_completion_archives_and_blocks_reactivation(self, ledger, task_db):
        t = _add(task_db, task_type="one_off")
        result = ledger.record_completion("u1", t.id, "2024-03-05", True, now="2024-03-05T12:00:00")

        assert result.archived is True
        log = task_db.get_completion_log("u1", t.id, "2024-03-05")
        assert log.completed is True
        stored = task_db.get_template(t.id)
        assert stored.archived_at == "2024-03-05T12:00:00"
        assert stored.is_active is False
        assert should_appear(stored, log.completed, "2024-03-05") is False

        with pytest.raises(ReactivationBlockedError):
            LifecycleManager(task_db).activate("u1", t.id)

    def test_recurring_never_archived(self, ledger, task_db):
        t = _add(task_db)
        ledger.record_completion("u1", t.id, "2024-03-05", True)
        assert task_db.get_template(t.id).archived_at is None


class TestPartialFailure:
    def test_archive_failure_keeps_log(self, task_db):
        t = _add(task_db, task_type="one_off")
        lifecycle = LifecycleManager(task_db)
        ledger = CompletionLedger(task_db, lifecycle)

        with patch.object(task_db, "update_template", side_effect=RuntimeError("disk full")):
            with pytest.raises(PartialCompletionError) as exc_info:
                ledger.record_completion("u1", t.id, "2024-03-05", True)

        err = exc_info.value
        assert isinstance(err.cause, RuntimeError)
        assert err.log.completed is True
        assert task_db.get_completion_log("u1", t.id, "2024-03-05").completed is True
        assert task_db.get_template(t.id).archived_at is None

        # Retrying only the archive step completes the transition
        lifecycle.auto_archive("u1", t.id)
        assert task_db.get_template(t.id).archived_at is not None

    def test_store_error_on_log_write_propagates(self):
        store = MagicMock()
        store.get_template.return_value = make_template(task_type="one_off")
        store.get_completion_log.return_value = None
        store.upsert_completion_log.side_effect = RuntimeError("timeout")
        ledger = CompletionLedger(store)

        with pytest.raises(RuntimeError, match="timeout"):
            ledger.record_completion("u1", "t1", "2024-03-05", True)
        store.update_template.assert_not_called()

    def test_existing_uncompleted_log_is_upgraded(self):
        store = MagicMock()
        store.get_template.return_value = make_template()
        store.get_completion_log.return_value = CompletionLog(
            user_id="u1", template_id="t1", log_date="2024-03-05", completed=False,
        )
        store.upsert_completion_log.return_value = CompletionLog(
            user_id="u1", template_id="t1", log_date="2024-03-05", completed=True,
        )
        result = CompletionLedger(store).record_completion("u1", "t1", "2024-03-05", True)
        assert result.outcome is LedgerOutcome.RECORDED
        store.upsert_completion_log.assert_called_once()
