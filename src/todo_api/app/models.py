"""Pydantic models and validation helpers shared by the API and storage backends.

Beginner terms used in this file:
- Model: a typed schema class used for validation/serialization.
- Alias: the JSON key name of a field when it differs from the Python name
  (``created_at`` is sent as ``createdAt``).
- Trimmed text: the input string with leading/trailing whitespace removed.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .errors import InvalidTaskIdError, TaskValidationError

MAX_TEXT_LENGTH = 500
# Largest signed 64-bit integer: SQLite INTEGER and Postgres BIGSERIAL ceiling.
MAX_TASK_ID = 2**63 - 1

DatabaseStatus = Literal["connected", "disconnected"]


class Task(BaseModel):
    """Canonical task record shape returned by API/storage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Store-issued identifier, rendered as a string in JSON.
    id: str
    text: str
    completed: bool = False
    created_at: datetime
    updated_at: datetime


class CreateTaskRequest(BaseModel):
    """Request body for POST /tasks."""

    # Length/emptiness is checked by the store after trimming.
    text: str


class UpdateTaskRequest(BaseModel):
    """Request body for PUT /tasks/{task_id}. Omitted fields stay unchanged."""

    text: str | None = None
    completed: bool | None = None


class DeleteTaskResponse(BaseModel):
    """Response body for DELETE /tasks/{task_id}."""

    message: str = "Task deleted successfully"
    task: Task


class HealthResponse(BaseModel):
    status: str = "ok"
    database: DatabaseStatus


class ErrorResponse(BaseModel):
    error: str
    detail: str | None = Field(default=None, description="Only set outside production.")


def normalize_text(raw: str) -> str:
    """Trim task text and enforce the 1..500 character rule."""
    text = raw.strip()
    if not text:
        raise TaskValidationError("Task text is required")
    if len(text) > MAX_TEXT_LENGTH:
        raise TaskValidationError(f"Task text must be at most {MAX_TEXT_LENGTH} characters")
    return text


def parse_task_id(raw: str | int) -> int:
    """Convert a path id into the positive integer every backend uses."""
    if isinstance(raw, bool):
        raise InvalidTaskIdError("Invalid task id")
    if isinstance(raw, int):
        value = raw
    else:
        candidate = str(raw).strip()
        # isdecimal() rejects signs, spaces inside and unicode superscripts.
        if not candidate.isdecimal() or not candidate.isascii():
            raise InvalidTaskIdError("Invalid task id")
        # Leading zeros aside, anything this long is past MAX_TASK_ID.
        if len(candidate.lstrip("0")) > len(str(MAX_TASK_ID)):
            raise InvalidTaskIdError("Invalid task id")
        value = int(candidate)
    if value < 1 or value > MAX_TASK_ID:
        raise InvalidTaskIdError("Invalid task id")
    return value


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def next_updated_at(previous: datetime) -> datetime:
    """Return a timestamp strictly after ``previous``, normally just now."""
    now = utc_now()
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now
