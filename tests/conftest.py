from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from todo_api.app.storage import InMemoryTaskStorage, SqliteTaskStorage, TaskStorage
from todo_api.config import Settings
from todo_api.main import create_app


def _make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "app_env": "dev",
        "storage_backend": "memory",
        "cors_enabled": True,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_settings():
    return _make_settings


@pytest.fixture
def storage() -> InMemoryTaskStorage:
    return InMemoryTaskStorage()


@pytest.fixture
def client(storage: InMemoryTaskStorage) -> Iterator[TestClient]:
    app = create_app(storage=storage, settings_override=_make_settings())
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[TaskStorage]:
    """Every backend that can run without an external server."""
    if request.param == "memory":
        backend: TaskStorage = InMemoryTaskStorage()
    else:
        backend = SqliteTaskStorage(tmp_path / "tasks.db")
    backend.migrate()
    try:
        yield backend
    finally:
        backend.close()
