"""
Momentum — Task Database.

SQLite-backed implementation of the TaskStore port: task templates and their
per-day completion logs. Rows are normalized through momentum.data.records
on the way out, so callers always get well-typed records.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Mapping

from momentum.data.models import CompletionLog, TaskTemplate
from momentum.data.records import log_from_row, template_from_row
from momentum.errors import NotFoundError
from momentum.ports.store_port import StoreError

logger = logging.getLogger(__name__)

_TEMPLATE_COLUMNS = (
    "title", "task_type", "category", "is_active", "archived_at",
    "recurrence_interval_days", "recurrence_days_mask",
    "due_date", "due_time", "project_id", "priority", "difficulty", "notes",
)


def _sql_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


class TaskDB:
    """SQLite-backed storage for task templates and completion logs."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from momentum.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        # An in-memory database lives only as long as its connection
        self._shared_conn: sqlite3.Connection | None = None
        if db_path == ":memory:":
            self._shared_conn = sqlite3.connect(db_path, check_same_thread=False)
            self._shared_conn.row_factory = sqlite3.Row
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._shared_conn is not None:
            return self._shared_conn
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit on success; surface SQLite failures as StoreError."""
        conn = self._connect()
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreError(f"SQLite error: {exc}") from exc
        finally:
            if conn is not self._shared_conn:
                conn.close()

    def _init_db(self) -> None:
        """Create tables if they don't exist, and migrate schema."""
        with self._transaction() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS task_templates (
                    id                       TEXT PRIMARY KEY,
                    user_id                  TEXT    NOT NULL,
                    title                    TEXT    NOT NULL,
                    task_type                TEXT    NOT NULL DEFAULT 'recurring',
                    category                 TEXT    NOT NULL DEFAULT 'Uncategorized',
                    is_active                INTEGER NOT NULL DEFAULT 1,
                    archived_at              TEXT,
                    created_at               TEXT    NOT NULL,
                    updated_at               TEXT    NOT NULL,
                    recurrence_interval_days INTEGER,
                    due_date                 TEXT,
                    due_time                 TEXT,
                    notes                    TEXT
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS completion_logs (
                    id           INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id      TEXT    NOT NULL,
                    template_id  TEXT    NOT NULL,
                    log_date     TEXT    NOT NULL,
                    completed    INTEGER NOT NULL DEFAULT 0,
                    completed_at TEXT,
                    UNIQUE (user_id, template_id, log_date)
                )
            """)
            # Migrate existing DBs: add new columns if missing
            existing_cols = {
                row[1] for row in conn.execute("PRAGMA table_info(task_templates)").fetchall()
            }
            if "recurrence_days_mask" not in existing_cols:
                conn.execute(
                    "ALTER TABLE task_templates ADD COLUMN recurrence_days_mask INTEGER"
                )
            if "project_id" not in existing_cols:
                conn.execute("ALTER TABLE task_templates ADD COLUMN project_id TEXT")
            if "priority" not in existing_cols:
                conn.execute(
                    "ALTER TABLE task_templates ADD COLUMN priority TEXT NOT NULL DEFAULT 'none'"
                )
            if "difficulty" not in existing_cols:
                conn.execute(
                    "ALTER TABLE task_templates ADD COLUMN difficulty INTEGER NOT NULL DEFAULT 3"
                )
        logger.debug("Task tables initialized at %s", self._db_path)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def add_template(self, user_id: str, fields: Mapping[str, Any]) -> TaskTemplate:
        """Insert a new active template with a fresh UUID."""
        unknown = set(fields) - set(_TEMPLATE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown template fields: {sorted(unknown)}")

        template_id = str(uuid.uuid4())
        now = datetime.now().isoformat()
        values = {k: _sql_value(v) for k, v in fields.items() if v is not None}
        values.setdefault("is_active", 1)
        columns = ["id", "user_id", "created_at", "updated_at", *values]
        params = [template_id, str(user_id), now, now, *values.values()]

        with self._transaction() as conn:
            conn.execute(
                f"INSERT INTO task_templates ({', '.join(columns)}) "
                f"VALUES ({', '.join('?' for _ in columns)})",
                params,
            )
        template = self.get_template(template_id)
        logger.info("Template added: %s '%s'", template_id, fields.get("title"))
        return template

    def get_template(self, template_id: str) -> TaskTemplate | None:
        """Fetch a single template by ID."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM task_templates WHERE id = ?", (str(template_id),)
            ).fetchone()
        if row is None:
            return None
        return template_from_row(row)

    def list_templates(self, user_id: str) -> list[TaskTemplate]:
        """All of a user's templates, archived included, oldest first."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM task_templates WHERE user_id = ? ORDER BY created_at",
                (str(user_id),),
            ).fetchall()
        return [template_from_row(r) for r in rows]

    def update_template(self, template_id: str, patch: Mapping[str, Any]) -> None:
        """Apply a partial update. Raises NotFoundError for a missing id."""
        unknown = set(patch) - set(_TEMPLATE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown template fields: {sorted(unknown)}")

        values = {k: _sql_value(v) for k, v in patch.items()}
        values["updated_at"] = datetime.now().isoformat()
        assignments = ", ".join(f"{col} = ?" for col in values)

        with self._transaction() as conn:
            cursor = conn.execute(
                f"UPDATE task_templates SET {assignments} WHERE id = ?",
                [*values.values(), str(template_id)],
            )
            updated = cursor.rowcount
        if updated == 0:
            raise NotFoundError(f"Task template {template_id} not found")
        logger.debug("Template %s updated: %s", template_id, sorted(patch))

    # ------------------------------------------------------------------
    # Completion logs
    # ------------------------------------------------------------------

    def get_completion_log(
        self, user_id: str, template_id: str, log_date: str,
    ) -> CompletionLog | None:
        with self._transaction() as conn:
            row = conn.execute(
                """
                SELECT * FROM completion_logs
                WHERE user_id = ? AND template_id = ? AND log_date = ?
                """,
                (str(user_id), str(template_id), log_date),
            ).fetchone()
        if row is None:
            return None
        return log_from_row(row)

    def list_completion_logs(
        self, user_id: str, start: str, end: str | None = None,
    ) -> list[CompletionLog]:
        """Logs for one day, or for the inclusive range [start, end]."""
        end = end or start
        with self._transaction() as conn:
            rows = conn.execute(
                """
                SELECT * FROM completion_logs
                WHERE user_id = ? AND log_date BETWEEN ? AND ?
                ORDER BY log_date, id
                """,
                (str(user_id), start, end),
            ).fetchall()
        return [log_from_row(r) for r in rows]

    def upsert_completion_log(
        self,
        user_id: str,
        template_id: str,
        log_date: str,
        completed: bool,
        completed_at: str | None = None,
    ) -> CompletionLog:
        """Insert or update the log for (user, template, day).

        A completed log stays completed and keeps its first completed_at,
        whatever order concurrent writes arrive in.
        """
        if completed and completed_at is None:
            completed_at = datetime.now().isoformat()
        if not completed:
            completed_at = None

        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO completion_logs
                    (user_id, template_id, log_date, completed, completed_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (user_id, template_id, log_date) DO UPDATE SET
                    completed_at = CASE
                        WHEN completion_logs.completed = 1 THEN completion_logs.completed_at
                        ELSE excluded.completed_at
                    END,
                    completed = MAX(completion_logs.completed, excluded.completed)
                """,
                (str(user_id), str(template_id), log_date, int(completed), completed_at),
            )
            row = conn.execute(
                """
                SELECT * FROM completion_logs
                WHERE user_id = ? AND template_id = ? AND log_date = ?
                """,
                (str(user_id), str(template_id), log_date),
            ).fetchone()
        return log_from_row(row)

    def count_completed_logs(self, template_id: str) -> int:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM completion_logs WHERE template_id = ? AND completed = 1",
                (str(template_id),),
            ).fetchone()
        return row[0]
