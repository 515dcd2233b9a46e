from __future__ import annotations

import sqlite3
from datetime import UTC
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from todo_api.app.errors import StorageUnavailableError
from todo_api.app.storage import SqliteTaskStorage
from todo_api.main import create_app


def test_tasks_survive_reopening_the_file(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "tasks.db"
    first = SqliteTaskStorage(db_path)
    first.migrate()
    created = first.create_task("Persist me")
    first.update_task(created.id, completed=True)
    first.close()

    second = SqliteTaskStorage(db_path)
    second.migrate()
    try:
        reloaded = second.get_task(created.id)
        assert reloaded.text == "Persist me"
        assert reloaded.completed is True
        assert reloaded.created_at.tzinfo is not None
        assert second.create_task("next").id == "2"
    finally:
        second.close()


def test_migrate_upgrades_legacy_table(tmp_path: Path) -> None:
    db_path = tmp_path / "legacy.db"
    with sqlite3.connect(db_path) as conn:
        conn.execute("""
            CREATE TABLE tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                text TEXT NOT NULL,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
            """)
        conn.execute(
            "INSERT INTO tasks (text, created_at) VALUES (?, ?)",
            ("Old task", "2024-05-01 09:30:00"),
        )
        conn.commit()

    storage = SqliteTaskStorage(db_path)
    storage.migrate()
    try:
        task = storage.get_task("1")
        assert task.text == "Old task"
        assert task.completed is False
        assert task.created_at.tzinfo == UTC
        assert task.updated_at == task.created_at

        updated = storage.update_task("1", completed=True)
        assert updated.completed is True
        assert updated.updated_at > task.updated_at
    finally:
        storage.close()


def test_driver_errors_become_storage_unavailable(tmp_path: Path) -> None:
    storage = SqliteTaskStorage(tmp_path / "tasks.db")
    storage.migrate()
    storage.close()

    with pytest.raises(StorageUnavailableError):
        storage.list_tasks()
    with pytest.raises(StorageUnavailableError):
        storage.create_task("never stored")
    assert storage.ping() is False


def test_migrate_rewrites_legacy_timestamps_so_listing_stays_newest_first(
    tmp_path: Path,
) -> None:
    db_path = tmp_path / "mixed.db"
    with sqlite3.connect(db_path) as conn:
        conn.execute("""
            CREATE TABLE tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                text TEXT NOT NULL,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
            """)
        conn.execute(
            "INSERT INTO tasks (text, created_at) VALUES (?, ?)",
            ("late legacy", "2999-01-01 23:00:00"),
        )
        conn.commit()

    storage = SqliteTaskStorage(db_path)
    storage.migrate()
    try:
        # A row written by the current app earlier on the same day.
        early = "2999-01-01T01:00:00.000000+00:00"
        with storage._guard() as conn:
            conn.execute(
                """
                INSERT INTO tasks (text, completed, created_at, updated_at)
                VALUES (?, 0, ?, ?)
                """,
                ("early new", early, early),
            )
            conn.commit()

        listed = storage.list_tasks()
        assert [task.text for task in listed] == ["late legacy", "early new"]
        assert listed[0].created_at.hour == 23

        # Running the migration again leaves already converted rows alone.
        storage.migrate()
        assert [task.text for task in storage.list_tasks()] == ["late legacy", "early new"]
    finally:
        storage.close()


def test_oversized_ids_are_invalid_over_http(tmp_path: Path, make_settings) -> None:
    storage = SqliteTaskStorage(tmp_path / "tasks.db")
    app = create_app(storage=storage, settings_override=make_settings())
    client = TestClient(app)
    try:
        huge = "9999999999999999999999999"
        for response in (
            client.get(f"/tasks/{huge}"),
            client.put(f"/tasks/{huge}", json={"completed": True}),
            client.delete(f"/tasks/{huge}"),
        ):
            assert response.status_code == 400
            assert response.json() == {"error": "Invalid task id"}

        # The largest 64-bit id is well-formed, just absent.
        assert client.get("/tasks/9223372036854775807").status_code == 404
    finally:
        storage.close()
