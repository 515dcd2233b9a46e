"""Storage backends and the factory that picks one from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from todo_api.app.storage.base import TaskStorage
from todo_api.app.storage.memory import InMemoryTaskStorage
from todo_api.app.storage.postgres import PostgresTaskStorage
from todo_api.app.storage.sqlite import SqliteTaskStorage

if TYPE_CHECKING:
    from todo_api.config import Settings

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("sqlite", "postgres", "memory")


def build_storage(settings: Settings) -> TaskStorage:
    """Construct the backend named by ``settings.storage_backend``."""
    backend = settings.storage_backend.strip().lower()
    if backend == "sqlite":
        logger.info("task_storage event=open backend=sqlite path=%s", settings.sqlite_path)
        return SqliteTaskStorage(settings.sqlite_path)
    if backend == "postgres":
        database_url = settings.database_url.strip()
        if not database_url:
            raise RuntimeError(
                "Missing database URL. Set TODO_API_DATABASE_URL when "
                "TODO_API_STORAGE_BACKEND=postgres."
            )
        logger.info("task_storage event=open backend=postgres")
        return PostgresTaskStorage(database_url)
    if backend == "memory":
        logger.info("task_storage event=open backend=memory")
        return InMemoryTaskStorage()
    raise RuntimeError(
        f"Unknown storage backend {settings.storage_backend!r}. "
        f"Expected one of: {', '.join(STORAGE_BACKENDS)}."
    )


__all__ = [
    "InMemoryTaskStorage",
    "PostgresTaskStorage",
    "STORAGE_BACKENDS",
    "SqliteTaskStorage",
    "TaskStorage",
    "build_storage",
]
