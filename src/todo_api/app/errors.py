"""Task error taxonomy and the FastAPI handlers that turn it into JSON.

Every client-visible error payload has the shape ``{"error": <message>}``.
Internal detail is logged; it is added to the payload as ``detail`` only when
the app is not running in production mode.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class TaskError(Exception):
    """Base class for errors raised by the task store."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TaskValidationError(TaskError):
    """Bad input shape or length (empty text, text too long, nothing to update)."""


class InvalidTaskIdError(TaskError):
    """Identifier is not well-formed for the backing store."""


class TaskNotFoundError(TaskError):
    def __init__(self, task_id: str | int) -> None:
        self.task_id = str(task_id)
        super().__init__("Task not found")


class StorageUnavailableError(TaskError):
    """Storage layer failed or could not be reached."""


def _show_detail(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return settings is None or not settings.is_production


def _error_response(
    status_code: int, message: str, *, detail: str | None = None
) -> JSONResponse:
    content: dict[str, Any] = {"error": message}
    if detail is not None:
        content["detail"] = detail
    return JSONResponse(status_code=status_code, content=content)


def task_validation_handler(request: Request, exc: TaskValidationError) -> JSONResponse:
    logger.warning("task_api event=validation_error path=%s error=%s", request.url.path, exc)
    return _error_response(status.HTTP_400_BAD_REQUEST, exc.message)


def invalid_task_id_handler(request: Request, exc: InvalidTaskIdError) -> JSONResponse:
    logger.warning("task_api event=invalid_id path=%s", request.url.path)
    return _error_response(status.HTTP_400_BAD_REQUEST, exc.message)


def task_not_found_handler(request: Request, exc: TaskNotFoundError) -> JSONResponse:
    logger.warning("task_api event=not_found task_id=%s", exc.task_id)
    return _error_response(status.HTTP_404_NOT_FOUND, exc.message)


def storage_unavailable_handler(request: Request, exc: StorageUnavailableError) -> JSONResponse:
    logger.error("task_api event=storage_error path=%s error=%s", request.url.path, exc)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Storage unavailable",
        detail=exc.message if _show_detail(request) else None,
    )


def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    logger.warning("task_api event=bad_request path=%s error=%s", request.url.path, message)
    return _error_response(status.HTTP_400_BAD_REQUEST, message)


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = "Endpoint not found"
    elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        message = "Method not allowed"
    else:
        message = str(exc.detail)
    return _error_response(exc.status_code, message)


def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("task_api event=unhandled_error path=%s", request.url.path)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Something went wrong!",
        detail=str(exc) if _show_detail(request) else None,
    )
