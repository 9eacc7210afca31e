"""Tests for momentum.data.models — TaskTemplate / CompletionLog / Occurrence dataclasses."""

from dataclasses import asdict

from momentum.data.models import CompletionLog, Occurrence, TaskTemplate, TaskType


def test_template_defaults():
    t = TaskTemplate(id="t1", user_id="u1", title="Run 5km")
    assert t.task_type is TaskType.RECURRING
    assert t.is_active is True
    assert t.archived_at is None
    assert t.recurrence_interval_days == 1
    assert t.recurrence_days_mask is None
    assert t.priority == "none"
    assert t.difficulty == 3


def test_template_flags():
    t = TaskTemplate(id="t1", user_id="u1", title="Dentist", task_type=TaskType.ONE_OFF,
                     archived_at="2024-03-05T10:00:00")
    assert t.is_one_off is True
    assert t.is_recurring is False
    assert t.is_archived is True


def test_completion_log_defaults():
    log = CompletionLog(user_id="u1", template_id="t1", log_date="2024-01-01")
    assert log.completed is False
    assert log.completed_at is None


def test_occurrence_instance_key():
    occ = Occurrence(template_id="t1", title="Run", category="Training",
                     date="2024-01-01", is_recurring=True)
    assert occ.instance_key == ("t1", "2024-01-01")


def test_template_serializable():
    d = asdict(TaskTemplate(id="t1", user_id="u1", title="Test"))
    assert d["title"] == "Test"
    assert d["task_type"] == "recurring"
