"""PostgreSQL-backed storage with automatic table migration."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from datetime import UTC, datetime
from typing import Any

from todo_api.app.errors import StorageUnavailableError, TaskNotFoundError, TaskValidationError
from todo_api.app.models import Task, next_updated_at, normalize_text, parse_task_id, utc_now


class PostgresTaskStorage:
    """Persist tasks in PostgreSQL through one long-lived psycopg connection."""

    def __init__(self, database_url: str) -> None:
        if not database_url:
            raise ValueError("TODO_API_DATABASE_URL is required")
        self.database_url = database_url
        self._lock = threading.Lock()
        self._psycopg, self._dict_row = self._load_psycopg()
        try:
            self._conn = self._psycopg.connect(self.database_url, row_factory=self._dict_row)
        except self._psycopg.Error as exc:
            raise StorageUnavailableError(f"Cannot connect to PostgreSQL: {exc}") from exc

    def migrate(self) -> None:
        with self._guard() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id BIGSERIAL PRIMARY KEY,
                    text VARCHAR(500) NOT NULL,
                    completed BOOLEAN NOT NULL DEFAULT FALSE,
                    created_at TIMESTAMPTZ NOT NULL,
                    updated_at TIMESTAMPTZ NOT NULL
                )
                """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tasks_created_at
                ON tasks(created_at DESC)
                """)
            conn.commit()

    def list_tasks(self, *, completed: bool | None = None) -> list[Task]:
        with self._guard() as conn:
            if completed is None:
                rows = conn.execute(
                    "SELECT * FROM tasks ORDER BY created_at DESC, id DESC"
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT *
                    FROM tasks
                    WHERE completed = %s
                    ORDER BY created_at DESC, id DESC
                    """,
                    (completed,),
                ).fetchall()
            conn.commit()
        return [self._row_to_task(row) for row in rows]

    def get_task(self, task_id: str) -> Task:
        key = parse_task_id(task_id)
        with self._guard() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = %s", (key,)).fetchone()
            conn.commit()
        if row is None:
            raise TaskNotFoundError(task_id)
        return self._row_to_task(row)

    def create_task(self, text: str) -> Task:
        clean_text = normalize_text(text)
        now = utc_now()
        with self._guard() as conn:
            row = conn.execute(
                """
                INSERT INTO tasks (text, completed, created_at, updated_at)
                VALUES (%s, %s, %s, %s)
                RETURNING *
                """,
                (clean_text, False, now, now),
            ).fetchone()
            conn.commit()
        if row is None:
            raise StorageUnavailableError("Failed to persist task")
        return self._row_to_task(row)

    def update_task(
        self,
        task_id: str,
        *,
        text: str | None = None,
        completed: bool | None = None,
    ) -> Task:
        key = parse_task_id(task_id)
        if text is None and completed is None:
            raise TaskValidationError("No fields to update")
        clean_text = normalize_text(text) if text is not None else None

        with self._guard() as conn:
            # Row lock keeps the updated_at bump monotonic under concurrent writers.
            current = conn.execute(
                "SELECT * FROM tasks WHERE id = %s FOR UPDATE", (key,)
            ).fetchone()
            if current is None:
                conn.rollback()
                raise TaskNotFoundError(task_id)
            previous = self._row_to_task(current)
            row = conn.execute(
                """
                UPDATE tasks
                SET text = COALESCE(%s, text),
                    completed = COALESCE(%s, completed),
                    updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (clean_text, completed, next_updated_at(previous.updated_at), key),
            ).fetchone()
            conn.commit()
        if row is None:
            raise TaskNotFoundError(task_id)
        return self._row_to_task(row)

    def delete_task(self, task_id: str) -> Task:
        key = parse_task_id(task_id)
        with self._guard() as conn:
            row = conn.execute("DELETE FROM tasks WHERE id = %s RETURNING *", (key,)).fetchone()
            conn.commit()
        if row is None:
            raise TaskNotFoundError(task_id)
        return self._row_to_task(row)

    def ping(self) -> bool:
        try:
            with self._guard() as conn:
                conn.execute("SELECT 1").fetchone()
                conn.commit()
        except StorageUnavailableError:
            return False
        return True

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def _guard(self) -> Iterator[Any]:
        """Serialize access to the shared connection and wrap driver errors."""
        with self._lock:
            try:
                yield self._conn
            except self._psycopg.Error as exc:
                with suppress(self._psycopg.Error):
                    self._conn.rollback()
                raise StorageUnavailableError(f"PostgreSQL error: {exc}") from exc

    @staticmethod
    def _load_psycopg() -> tuple[Any, Any]:
        try:
            import psycopg
            from psycopg.rows import dict_row
        except ImportError as exc:  # pragma: no cover
            raise RuntimeError(
                "PostgreSQL storage requires psycopg. "
                'Install with: python -m pip install "psycopg[binary]>=3.2,<4.0"'
            ) from exc
        return psycopg, dict_row

    @staticmethod
    def _parse_datetime(raw: Any) -> datetime:
        if isinstance(raw, datetime):
            return raw if raw.tzinfo is not None else raw.replace(tzinfo=UTC)
        if isinstance(raw, str):
            return datetime.fromisoformat(raw)
        raise TypeError(f"Unsupported datetime value: {type(raw)!r}")

    @classmethod
    def _row_to_task(cls, row: Any) -> Task:
        return Task(
            id=str(row["id"]),
            text=row["text"],
            completed=bool(row["completed"]),
            created_at=cls._parse_datetime(row["created_at"]),
            updated_at=cls._parse_datetime(row["updated_at"]),
        )
