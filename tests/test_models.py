from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from todo_api.app.errors import InvalidTaskIdError, TaskValidationError
from todo_api.app.models import (
    MAX_TASK_ID,
    MAX_TEXT_LENGTH,
    Task,
    next_updated_at,
    normalize_text,
    parse_task_id,
)


def test_normalize_text_trims_and_limits_length() -> None:
    assert normalize_text("  hello  ") == "hello"
    assert normalize_text(" " + "z" * MAX_TEXT_LENGTH + " ") == "z" * MAX_TEXT_LENGTH
    with pytest.raises(TaskValidationError, match="required"):
        normalize_text(" \t ")
    with pytest.raises(TaskValidationError, match="at most 500"):
        normalize_text("z" * (MAX_TEXT_LENGTH + 1))


def test_parse_task_id() -> None:
    assert parse_task_id("12") == 12
    assert parse_task_id(" 7 ") == 7
    assert parse_task_id(3) == 3
    assert parse_task_id(str(MAX_TASK_ID)) == MAX_TASK_ID
    assert parse_task_id("007") == 7
    for bad in ("x1", "0", "+5", "", True, 0, str(MAX_TASK_ID + 1), MAX_TASK_ID + 1, "9" * 5000):
        with pytest.raises(InvalidTaskIdError):
            parse_task_id(bad)


def test_next_updated_at_is_strictly_after_previous() -> None:
    past = datetime(2020, 1, 1, tzinfo=UTC)
    assert next_updated_at(past) > past

    future = datetime.now(tz=UTC) + timedelta(hours=1)
    assert next_updated_at(future) == future + timedelta(microseconds=1)


def test_task_serializes_with_camel_case_keys() -> None:
    now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)
    task = Task(id="1", text="Buy milk", created_at=now, updated_at=now)

    payload = task.model_dump(mode="json", by_alias=True)
    assert payload["id"] == "1"
    assert payload["completed"] is False
    assert set(payload) == {"id", "text", "completed", "createdAt", "updatedAt"}

    parsed = Task.model_validate(payload)
    assert parsed == task
