"""SQLite storage backend for tasks.

Beginner terms:
- Migration: creating/updating database tables before normal reads/writes.
- Row factory: returns query rows as dict-like objects instead of tuples.
- AUTOINCREMENT: SQLite never reuses an id, even after the row is deleted.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from todo_api.app.errors import StorageUnavailableError, TaskNotFoundError, TaskValidationError
from todo_api.app.models import Task, next_updated_at, normalize_text, parse_task_id, utc_now


class SqliteTaskStorage:
    """Thread-safe SQLite-backed storage for Task records."""

    def __init__(self, path: str | Path) -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        # One connection for the process lifetime, shared across request threads.
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageUnavailableError(f"Cannot open SQLite database: {exc}") from exc
        self._conn.row_factory = sqlite3.Row

    def migrate(self) -> None:
        """Create the tasks table, or add the columns older files are missing."""
        with self._guard() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    text TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                )
                """)
            # Files created by the first version of the app only had id/text/created_at.
            columns = {row["name"] for row in conn.execute("PRAGMA table_info(tasks)")}
            if "completed" not in columns:
                conn.execute("ALTER TABLE tasks ADD COLUMN completed INTEGER NOT NULL DEFAULT 0")
            if "updated_at" not in columns:
                conn.execute("ALTER TABLE tasks ADD COLUMN updated_at TEXT")
            conn.execute("UPDATE tasks SET updated_at = created_at WHERE updated_at IS NULL")
            # CURRENT_TIMESTAMP text ("2024-05-01 09:30:00") sorts before ISO text on
            # the same day, so rewrite it in the format new rows use.
            legacy_rows = conn.execute("""
                SELECT id, created_at, updated_at
                FROM tasks
                WHERE created_at NOT LIKE '%T%' OR updated_at NOT LIKE '%T%'
                """).fetchall()
            for row in legacy_rows:
                conn.execute(
                    "UPDATE tasks SET created_at = ?, updated_at = ? WHERE id = ?",
                    (
                        self._format_datetime(self._parse_datetime(row["created_at"])),
                        self._format_datetime(self._parse_datetime(row["updated_at"])),
                        row["id"],
                    ),
                )
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tasks_created_at
                ON tasks(created_at DESC)
                """)
            conn.commit()

    def list_tasks(self, *, completed: bool | None = None) -> list[Task]:
        query = "SELECT * FROM tasks"
        params: tuple[Any, ...] = ()
        if completed is not None:
            query += " WHERE completed = ?"
            params = (int(completed),)
        query += " ORDER BY created_at DESC, id DESC"
        with self._guard() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_task(row) for row in rows]

    def get_task(self, task_id: str) -> Task:
        key = parse_task_id(task_id)
        with self._guard() as conn:
            row = self._fetch(conn, key)
        if row is None:
            raise TaskNotFoundError(task_id)
        return self._row_to_task(row)

    def create_task(self, text: str) -> Task:
        clean_text = normalize_text(text)
        now = self._format_datetime(utc_now())
        with self._guard() as conn:
            cursor = conn.execute(
                """
                INSERT INTO tasks (text, completed, created_at, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (clean_text, 0, now, now),
            )
            row = self._fetch(conn, int(cursor.lastrowid))
            conn.commit()
        if row is None:
            raise StorageUnavailableError("Failed to load created task")
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
            current = self._fetch(conn, key)
            if current is None:
                raise TaskNotFoundError(task_id)
            previous = self._row_to_task(current)
            # Merge partial updates with current values.
            conn.execute(
                """
                UPDATE tasks
                SET text = ?,
                    completed = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    clean_text if clean_text is not None else previous.text,
                    int(completed if completed is not None else previous.completed),
                    self._format_datetime(next_updated_at(previous.updated_at)),
                    key,
                ),
            )
            row = self._fetch(conn, key)
            conn.commit()
        if row is None:
            raise TaskNotFoundError(task_id)
        return self._row_to_task(row)

    def delete_task(self, task_id: str) -> Task:
        key = parse_task_id(task_id)
        with self._guard() as conn:
            row = self._fetch(conn, key)
            if row is None:
                raise TaskNotFoundError(task_id)
            conn.execute("DELETE FROM tasks WHERE id = ?", (key,))
            conn.commit()
        return self._row_to_task(row)

    def ping(self) -> bool:
        try:
            with self._guard() as conn:
                conn.execute("SELECT 1").fetchone()
        except StorageUnavailableError:
            return False
        return True

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def _guard(self) -> Iterator[sqlite3.Connection]:
        """Serialize access to the shared connection and wrap driver errors."""
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as exc:
                self._rollback_quietly()
                raise StorageUnavailableError(f"SQLite error: {exc}") from exc

    def _rollback_quietly(self) -> None:
        # The error that triggered the rollback is the one reported.
        with suppress(sqlite3.Error):
            self._conn.rollback()

    @staticmethod
    def _fetch(conn: sqlite3.Connection, key: int) -> sqlite3.Row | None:
        return conn.execute("SELECT * FROM tasks WHERE id = ?", (key,)).fetchone()

    @staticmethod
    def _format_datetime(value: datetime) -> str:
        # Fixed-width ISO text so ORDER BY created_at sorts chronologically.
        return value.astimezone(UTC).isoformat(timespec="microseconds")

    @staticmethod
    def _parse_datetime(raw: Any) -> datetime:
        """Parse a stored timestamp; naive values are UTC (SQLite CURRENT_TIMESTAMP)."""
        if isinstance(raw, datetime):
            parsed = raw
        elif isinstance(raw, str):
            parsed = datetime.fromisoformat(raw)
        else:
            raise TypeError(f"Unsupported datetime value: {type(raw)!r}")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed

    @classmethod
    def _row_to_task(cls, row: sqlite3.Row) -> Task:
        """Map one DB row to the canonical Task model."""
        created_at = cls._parse_datetime(row["created_at"])
        updated_raw = row["updated_at"]
        return Task(
            id=str(row["id"]),
            text=row["text"],
            completed=bool(row["completed"]),
            created_at=created_at,
            updated_at=cls._parse_datetime(updated_raw) if updated_raw else created_at,
        )
