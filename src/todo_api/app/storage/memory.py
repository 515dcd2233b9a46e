"""In-memory storage backend for tests and throwaway runs."""

from __future__ import annotations

import threading

from todo_api.app.errors import TaskNotFoundError, TaskValidationError
from todo_api.app.models import Task, next_updated_at, normalize_text, parse_task_id, utc_now


class InMemoryTaskStorage:
    """Simple dict-backed implementation; data is lost when the process exits."""

    def __init__(self) -> None:
        self._tasks: dict[int, Task] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def migrate(self) -> None:
        return None

    def list_tasks(self, *, completed: bool | None = None) -> list[Task]:
        with self._lock:
            items = [
                (key, task)
                for key, task in self._tasks.items()
                if completed is None or task.completed == completed
            ]
        items.sort(key=lambda item: (item[1].created_at, item[0]), reverse=True)
        return [task.model_copy() for _, task in items]

    def get_task(self, task_id: str) -> Task:
        key = parse_task_id(task_id)
        with self._lock:
            task = self._tasks.get(key)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task.model_copy()

    def create_task(self, text: str) -> Task:
        clean_text = normalize_text(text)
        now = utc_now()
        with self._lock:
            key = self._next_id
            self._next_id += 1
            task = Task(
                id=str(key),
                text=clean_text,
                completed=False,
                created_at=now,
                updated_at=now,
            )
            self._tasks[key] = task
        return task.model_copy()

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
        changes: dict[str, object] = {}
        if text is not None:
            changes["text"] = normalize_text(text)
        if completed is not None:
            changes["completed"] = completed

        with self._lock:
            current = self._tasks.get(key)
            if current is None:
                raise TaskNotFoundError(task_id)
            changes["updated_at"] = next_updated_at(current.updated_at)
            updated = current.model_copy(update=changes)
            self._tasks[key] = updated
        return updated.model_copy()

    def delete_task(self, task_id: str) -> Task:
        key = parse_task_id(task_id)
        with self._lock:
            removed = self._tasks.pop(key, None)
        if removed is None:
            raise TaskNotFoundError(task_id)
        return removed

    def ping(self) -> bool:
        return True

    def close(self) -> None:
        return None
