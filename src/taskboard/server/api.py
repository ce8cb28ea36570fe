"""FastAPI web server for the task board."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .. import __version__
from ..board.engine import TaskEngine
from ..board.errors import BoardError
from .task_api import create_task_router


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    msg = str(first.get("msg", "Invalid value"))
    return f"{loc}: {msg}" if loc else msg


def create_app(
    project_dir: Optional[Path] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        project_dir: Default project directory.
        enable_cors: Whether to enable CORS.

    Returns:
        Configured FastAPI app.
    """
    app = FastAPI(
        title="Task Board",
        description="Kanban task board API",
        version=__version__,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.state.default_project_dir = project_dir
    app.state.engines = {}

    def _get_project_dir(project_dir_param: Optional[str] = None) -> Path:
        if project_dir_param:
            return Path(project_dir_param).expanduser().resolve()
        if app.state.default_project_dir:
            return Path(app.state.default_project_dir).resolve()
        return Path.cwd().resolve()

    def get_engine(project_dir_param: Optional[str] = None) -> TaskEngine:
        path = _get_project_dir(project_dir_param)
        engine = app.state.engines.get(path)
        if engine is None:
            engine = TaskEngine.for_project(path)
            app.state.engines[path] = engine
        return engine

    @app.exception_handler(BoardError)
    async def board_error_handler(request: Request, exc: BoardError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("{} {} failed: {}", request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    app.include_router(create_task_router(get_engine))
    return app
