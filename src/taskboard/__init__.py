"""Provide the public `taskboard` package exports."""

from __future__ import annotations

__version__ = "0.1.0"

from .board.errors import (  # noqa: E402
    BoardError,
    InvalidArgumentError,
    PersistenceError,
    TaskNotFoundError,
)
from .board.model import Task, TaskStatus, normalize_status  # noqa: E402
from .board.positioner import MoveResult, compute_move  # noqa: E402

__all__ = [
    "__version__",
    "BoardError",
    "InvalidArgumentError",
    "MoveResult",
    "PersistenceError",
    "Task",
    "TaskNotFoundError",
    "TaskStatus",
    "compute_move",
    "normalize_status",
]
