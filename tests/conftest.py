"""Shared test fixtures and configuration.

Sets environment variables before any momentum imports so settings load
predictably, and provides a temp-file store plus a template factory.
"""

import os

# Patch env vars BEFORE any momentum imports
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMELINE_RANGE_DAYS", "7")
os.environ.setdefault("TIMELINE_HORIZON_DAYS", "30")
os.environ.setdefault("DEFAULT_CATEGORY", "Uncategorized")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_momentum.db")


@pytest.fixture
def task_db(tmp_db_path):
    """Return a TaskDB instance backed by a temp file."""
    from momentum.data.db import TaskDB
    return TaskDB(db_path=tmp_db_path)


@pytest.fixture
def service(task_db):
    """Return a TrackerService over the temp-file store."""
    from momentum.core.tracker_service import TrackerService
    return TrackerService(
        task_db, timeline_range_days=7, default_category="Uncategorized",
        timeline_horizon_days=30,
    )


def make_template(**overrides):
    """Build an in-memory TaskTemplate with sensible defaults."""
    from momentum.data.models import TaskTemplate, TaskType

    fields = {
        "id": "t1",
        "user_id": "u1",
        "title": "Run 5km",
        "task_type": TaskType.RECURRING,
        "category": "Training",
        "created_at": "2024-01-01T08:00:00",
    }
    fields.update(overrides)
    if isinstance(fields["task_type"], str):
        fields["task_type"] = TaskType(fields["task_type"])
    return TaskTemplate(**fields)


@pytest.fixture
def template_factory():
    return make_template
