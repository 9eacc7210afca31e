"""Tests for momentum.core.lifecycle — state machine rules and store-backed transitions."""

import pytest

from conftest import make_template
from momentum.errors import (
    AuthorizationError,
    ConversionBlockedError,
    InvalidTransitionError,
    LifecycleViolationError,
    NotFoundError,
    ReactivationBlockedError,
    TaskValidationError,
)
from momentum.core.lifecycle import (
    LifecycleManager,
    TemplateState,
    activation_patch,
    archive_patch,
    conversion_patch,
    retire_patch,
    state_of,
)
from momentum.data.models import TaskType


# ---------------------------------------------------------------------------
# Pure transitions
# ---------------------------------------------------------------------------


class TestStateOf:
    def test_states(self):
        assert state_of(make_template()) is TemplateState.ACTIVE
        assert state_of(make_template(is_active=False)) is TemplateState.INACTIVE
        assert state_of(make_template(archived_at="2024-01-01T00:00:00")) is TemplateState.ARCHIVED


class TestActivationPatch:
    def test_toggle_recurring(self):
        assert activation_patch(make_template(), False) == {"is_active": False}
        assert activation_patch(make_template(is_active=False), True) == {"is_active": True}

    def test_archived_one_off_cannot_reactivate(self):
        t = make_template(task_type="one_off", archived_at="2024-03-05T10:00:00", is_active=False)
        with pytest.raises(ReactivationBlockedError) as exc_info:
            activation_patch(t, True)
        assert "cannot be reactivated" in str(exc_info.value)
        assert isinstance(exc_info.value, LifecycleViolationError)

    def test_archived_one_off_can_still_be_deactivated(self):
        t = make_template(task_type="one_off", archived_at="2024-03-05T10:00:00", is_active=False)
        assert activation_patch(t, False) == {"is_active": False}


class TestArchivePatch:
    def test_one_off(self):
        t = make_template(task_type="one_off")
        assert archive_patch(t, now="2024-03-05T10:00:00") == {
            "archived_at": "2024-03-05T10:00:00", "is_active": False,
        }

    def test_recurring_is_a_programming_error(self):
        with pytest.raises(InvalidTransitionError):
            archive_patch(make_template())


class TestRetirePatch:
    def test_keeps_first_archive_time(self):
        t = make_template(task_type="one_off", archived_at="2024-03-05T10:00:00")
        assert retire_patch(t, now="2024-04-01T00:00:00")["archived_at"] == "2024-03-05T10:00:00"

    def test_recurring_retired(self):
        patch = retire_patch(make_template(), now="2024-04-01T00:00:00")
        assert patch == {"archived_at": "2024-04-01T00:00:00", "is_active": False}


class TestConversionPatch:
    def test_recurring_with_completions_blocked(self):
        with pytest.raises(ConversionBlockedError) as exc_info:
            conversion_patch(make_template(), "one_off", 1)
        assert exc_info.value.completion_count == 1
        assert "1 completion log(s)" in str(exc_info.value)

    def test_recurring_without_completions_allowed(self):
        assert conversion_patch(make_template(), TaskType.ONE_OFF, 0) == {"task_type": "one_off"}

    def test_one_off_to_recurring_unguarded(self):
        t = make_template(task_type="one_off")
        assert conversion_patch(t, "recurring", 5) == {"task_type": "recurring"}

    def test_unknown_type(self):
        with pytest.raises(TaskValidationError):
            conversion_patch(make_template(), "weekly", 0)


# ---------------------------------------------------------------------------
# LifecycleManager against the SQLite store
# ---------------------------------------------------------------------------


@pytest.fixture
def manager(task_db):
    return LifecycleManager(task_db)


def _add(task_db, user_id="u1", **fields):
    fields.setdefault("title", "Task")
    return task_db.add_template(user_id, fields)


class TestLifecycleManager:
    def test_deactivate_and_activate(self, manager, task_db):
        t = _add(task_db)
        manager.deactivate("u1", t.id)
        assert task_db.get_template(t.id).is_active is False
        manager.activate("u1", t.id)
        assert task_db.get_template(t.id).is_active is True

    def test_auto_archive_then_activate_fails(self, manager, task_db):
        t = _add(task_db, task_type="one_off")
        manager.auto_archive("u1", t.id, now="2024-03-05T10:00:00")
        stored = task_db.get_template(t.id)
        assert stored.archived_at == "2024-03-05T10:00:00"
        assert stored.is_active is False
        with pytest.raises(ReactivationBlockedError):
            manager.activate("u1", t.id)

    def test_auto_archive_is_idempotent(self, manager, task_db):
        t = _add(task_db, task_type="one_off")
        manager.auto_archive("u1", t.id, now="2024-03-05T10:00:00")
        manager.auto_archive("u1", t.id, now="2024-03-06T10:00:00")
        assert task_db.get_template(t.id).archived_at == "2024-03-05T10:00:00"

    def test_auto_archive_recurring_raises(self, manager, task_db):
        t = _add(task_db)
        with pytest.raises(InvalidTransitionError):
            manager.auto_archive("u1", t.id)
        assert task_db.get_template(t.id).archived_at is None

    def test_convert_blocked_by_completed_log_scenario_e(self, manager, task_db):
        t = _add(task_db)
        task_db.upsert_completion_log("u1", t.id, "2024-01-01", True)
        with pytest.raises(ConversionBlockedError) as exc_info:
            manager.convert_type("u1", t.id, "one_off")
        assert exc_info.value.completion_count == 1
        assert task_db.get_template(t.id).task_type is TaskType.RECURRING

    def test_convert_ignores_uncompleted_logs(self, manager, task_db):
        t = _add(task_db)
        task_db.upsert_completion_log("u1", t.id, "2024-01-01", False)
        converted = manager.convert_type("u1", t.id, "one_off")
        assert converted.task_type is TaskType.ONE_OFF
        assert task_db.get_template(t.id).task_type is TaskType.ONE_OFF

    def test_retire_keeps_logs(self, manager, task_db):
        t = _add(task_db)
        task_db.upsert_completion_log("u1", t.id, "2024-01-01", True)
        manager.retire("u1", t.id)
        assert task_db.get_template(t.id).archived_at is not None
        assert task_db.count_completed_logs(t.id) == 1

    def test_missing_template(self, manager):
        with pytest.raises(NotFoundError):
            manager.activate("u1", "does-not-exist")

    def test_other_users_template(self, manager, task_db):
        t = _add(task_db, user_id="owner")
        with pytest.raises(AuthorizationError):
            manager.deactivate("intruder", t.id)
        assert task_db.get_template(t.id).is_active is True
