"""Errors raised by board operations."""

from __future__ import annotations

from typing import Optional


class BoardError(Exception):
    """Base class for task board errors."""

    status_code = 500


class TaskNotFoundError(BoardError, LookupError):
    """The task being operated on does not exist (e.g. deleted concurrently)."""

    status_code = 404

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class InvalidArgumentError(BoardError, ValueError):
    """Malformed column, index, or field value."""

    status_code = 400


class PersistenceError(BoardError):
    """Writing to or reading from the task store failed.

    ``reason`` is the machine-readable reason reported by the server, or
    ``None`` when the request never got a usable response.
    """

    status_code = 502

    def __init__(self, message: str, reason: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.http_status = status_code
