"""Storage interface shared by every task backend."""

from __future__ import annotations

from typing import Protocol

from todo_api.app.models import Task


class TaskStorage(Protocol):
    def migrate(self) -> None: ...

    def list_tasks(self, *, completed: bool | None = None) -> list[Task]: ...

    def get_task(self, task_id: str) -> Task: ...

    def create_task(self, text: str) -> Task: ...

    def update_task(
        self,
        task_id: str,
        *,
        text: str | None = None,
        completed: bool | None = None,
    ) -> Task: ...

    def delete_task(self, task_id: str) -> Task: ...

    def ping(self) -> bool: ...

    def close(self) -> None: ...
