"""Task API endpoints for the board.

This module provides a FastAPI router with CRUD, board view and move
endpoints.  It is mounted under ``/api/tasks`` by :func:`create_app`.
Board errors are turned into ``{"error": ...}`` bodies by the handlers
registered in :mod:`taskboard.server.api`.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from ..board.engine import TaskEngine
from ..board.positioner import coerce_column


# ---------------------------------------------------------------------------
# Pydantic request / response models
# ---------------------------------------------------------------------------

class CreateTaskRequest(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    description: str = ""
    status: str = "TODO"
    priority: str = "MEDIUM"
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpdateTaskRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    position: Optional[float] = None
    priority: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class MoveTaskRequest(BaseModel):
    destination_column: str
    destination_index: int


class TaskResponse(BaseModel):
    task: dict[str, Any]


class TaskListResponse(BaseModel):
    tasks: list[dict[str, Any]]
    total: int


class BoardResponse(BaseModel):
    columns: dict[str, list[dict[str, Any]]]


class MoveResponse(BaseModel):
    task: dict[str, Any]
    index: int
    renormalized: bool


class EventsResponse(BaseModel):
    events: list[dict[str, Any]]


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------

def create_task_router(get_engine: Callable[[Optional[str]], TaskEngine]) -> APIRouter:
    """Create the task API router.

    Parameters
    ----------
    get_engine:
        A callable ``(project_dir_param: str | None) -> TaskEngine`` that
        resolves the engine for the current request's project directory.
    """
    router = APIRouter(prefix="/api/tasks", tags=["tasks"])

    @router.get("", response_model=TaskListResponse)
    async def list_tasks(
        project_dir: Optional[str] = Query(None),
        status: Optional[str] = Query(None),
        search: Optional[str] = Query(None),
    ) -> TaskListResponse:
        engine = get_engine(project_dir)
        tasks = engine.list_tasks(status=status, search=search)
        data = [t.to_dict() for t in tasks]
        return TaskListResponse(tasks=data, total=len(data))

    @router.post("", response_model=TaskResponse, status_code=201)
    async def create_task(
        body: CreateTaskRequest,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        engine = get_engine(project_dir)
        task = engine.create_task(**body.model_dump())
        return TaskResponse(task=task.to_dict())

    @router.get("/board", response_model=BoardResponse)
    async def get_board(project_dir: Optional[str] = Query(None)) -> BoardResponse:
        engine = get_engine(project_dir)
        return BoardResponse(columns=engine.get_board())

    @router.get("/events", response_model=EventsResponse)
    async def get_events(
        project_dir: Optional[str] = Query(None),
        limit: int = Query(100, ge=1, le=1000),
    ) -> EventsResponse:
        engine = get_engine(project_dir)
        return EventsResponse(events=engine.get_recent_events(limit))

    @router.get("/{task_id}", response_model=TaskResponse)
    async def get_task(task_id: str, project_dir: Optional[str] = Query(None)) -> TaskResponse:
        engine = get_engine(project_dir)
        return TaskResponse(task=engine.get_task(task_id).to_dict())

    @router.patch("/{task_id}", response_model=TaskResponse)
    async def update_task(
        task_id: str,
        body: UpdateTaskRequest,
        project_dir: Optional[str] = Query(None),
    ) -> TaskResponse:
        engine = get_engine(project_dir)
        changes = body.model_dump(exclude_unset=True, exclude_none=True)
        task = engine.update_task(task_id, changes)
        return TaskResponse(task=task.to_dict())

    @router.delete("/{task_id}")
    async def delete_task(task_id: str, project_dir: Optional[str] = Query(None)) -> dict[str, str]:
        engine = get_engine(project_dir)
        engine.delete_task(task_id)
        return {"status": "deleted"}

    @router.post("/{task_id}/move", response_model=MoveResponse)
    async def move_task(
        task_id: str,
        body: MoveTaskRequest,
        project_dir: Optional[str] = Query(None),
    ) -> MoveResponse:
        engine = get_engine(project_dir)
        column = coerce_column(body.destination_column)
        result = engine.move_task(task_id, column, body.destination_index)
        return MoveResponse(
            task=engine.get_task(task_id).to_dict(),
            index=result.index,
            renormalized=result.needs_renormalize,
        )

    return router
