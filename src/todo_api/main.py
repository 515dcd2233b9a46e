"""FastAPI application wiring for the todo service.

Beginner terms used in this file:
- FastAPI app: the main web application object.
- Route/path operation: a function exposed over HTTP (for example, GET /health).
- response_model: Pydantic model used to validate/shape API responses.
- app.state: a place to store shared runtime objects (settings, storage).
- Lifespan: code that runs once at startup and once at shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .app.errors import (
    InvalidTaskIdError,
    StorageUnavailableError,
    TaskNotFoundError,
    TaskValidationError,
    http_exception_handler,
    invalid_task_id_handler,
    request_validation_handler,
    storage_unavailable_handler,
    task_not_found_handler,
    task_validation_handler,
    unexpected_exception_handler,
)
from .app.models import (
    CreateTaskRequest,
    DeleteTaskResponse,
    ErrorResponse,
    HealthResponse,
    Task,
    UpdateTaskRequest,
)
from .app.storage import TaskStorage, build_storage
from .app.ui import render_homepage
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

# Documented error shapes for the OpenAPI schema.
_bad_request = {400: {"model": ErrorResponse, "description": "Invalid id or body"}}
_not_found = {404: {"model": ErrorResponse, "description": "Task not found"}}
_server_error = {500: {"model": ErrorResponse, "description": "Storage or unexpected error"}}


def _ensure_runtime_state(
    app: FastAPI,
    *,
    settings: Settings,
    storage_override: TaskStorage | None,
) -> None:
    if not hasattr(app.state, "settings"):
        app.state.settings = settings

    if not hasattr(app.state, "storage"):
        app.state.storage = storage_override or build_storage(settings)
        app.state.storage.migrate()


def create_app(
    *,
    storage: TaskStorage | None = None,
    settings_override: Settings | None = None,
) -> FastAPI:
    """Application factory.

    Pass ``storage`` to inject a ready-made backend (tests do this); otherwise
    the backend named in settings is built at startup and closed at shutdown.
    """
    settings = settings_override or get_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _ensure_runtime_state(app, settings=settings, storage_override=None)
        logger.info(
            "task_api event=startup app=%s env=%s backend=%s",
            settings.app_name,
            settings.app_env,
            settings.storage_backend,
        )
        yield
        app.state.storage.close()
        logger.info("task_api event=shutdown app=%s", settings.app_name)

    app_lifespan = lifespan if storage is None else None
    app = FastAPI(title=settings.app_name, version="1.0.0", lifespan=app_lifespan)

    # Injected storage is owned by the caller, so no lifespan is needed.
    if storage is not None:
        _ensure_runtime_state(app, settings=settings, storage_override=storage)

    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.exception_handler(TaskValidationError)(task_validation_handler)
    app.exception_handler(InvalidTaskIdError)(invalid_task_id_handler)
    app.exception_handler(TaskNotFoundError)(task_not_found_handler)
    app.exception_handler(StorageUnavailableError)(storage_unavailable_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(unexpected_exception_handler)

    def _get_task_storage(request: Request) -> TaskStorage:
        if not hasattr(request.app.state, "storage"):
            _ensure_runtime_state(request.app, settings=settings, storage_override=storage)
        return request.app.state.storage

    router = APIRouter()

    @router.get("/tasks", response_model=list[Task], responses=_server_error)
    def list_tasks(request: Request, completed: bool | None = None) -> list[Task]:
        return _get_task_storage(request).list_tasks(completed=completed)

    @router.get(
        "/tasks/{task_id}",
        response_model=Task,
        responses={**_bad_request, **_not_found},
    )
    def get_task(task_id: str, request: Request) -> Task:
        return _get_task_storage(request).get_task(task_id)

    @router.post(
        "/tasks",
        response_model=Task,
        status_code=status.HTTP_201_CREATED,
        responses=_bad_request,
    )
    def create_task(payload: CreateTaskRequest, request: Request) -> Task:
        task = _get_task_storage(request).create_task(payload.text)
        logger.info("task_api event=created task_id=%s", task.id)
        return task

    @router.put(
        "/tasks/{task_id}",
        response_model=Task,
        responses={**_bad_request, **_not_found},
    )
    def update_task(task_id: str, payload: UpdateTaskRequest, request: Request) -> Task:
        task = _get_task_storage(request).update_task(
            task_id,
            text=payload.text,
            completed=payload.completed,
        )
        logger.info(
            "task_api event=updated task_id=%s completed=%s", task.id, task.completed
        )
        return task

    @router.delete(
        "/tasks/{task_id}",
        response_model=DeleteTaskResponse,
        responses={**_bad_request, **_not_found},
    )
    def delete_task(task_id: str, request: Request) -> DeleteTaskResponse:
        task = _get_task_storage(request).delete_task(task_id)
        logger.info("task_api event=deleted task_id=%s", task.id)
        return DeleteTaskResponse(task=task)

    @router.get("/health", response_model=HealthResponse)
    def health(request: Request) -> HealthResponse:
        try:
            connected = _get_task_storage(request).ping()
        except StorageUnavailableError:
            logger.exception("task_api event=health_check_failed")
            connected = False
        return HealthResponse(database="connected" if connected else "disconnected")

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    def home() -> str:
        return render_homepage(app_name=settings.app_name)

    app.include_router(router)
    # The deployed client talks to /api/tasks; keep both paths working.
    app.include_router(router, prefix="/api", include_in_schema=False)

    return app


# Module-level app for `uvicorn todo_api.main:app`.
app = create_app()
