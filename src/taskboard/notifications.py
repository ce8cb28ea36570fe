"""User-facing notifications (toasts) raised by board sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from loguru import logger


@dataclass(frozen=True)
class Notification:
    level: str
    message: str
    task_id: Optional[str] = None
    ts: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class Notifier:
    """Collect notifications and forward them to an optional display callback.

    Args:
        on_notify: Called with each :class:`Notification` as it is raised,
            e.g. to render a toast.
    """

    def __init__(self, on_notify: Optional[Callable[[Notification], None]] = None) -> None:
        self._on_notify = on_notify
        self.history: list[Notification] = []

    def notify(self, level: str, message: str, task_id: Optional[str] = None) -> Notification:
        note = Notification(level=level, message=message, task_id=task_id)
        self.history.append(note)
        logger.log(level.upper(), "Notification: {}", message)
        if self._on_notify is not None:
            self._on_notify(note)
        return note

    def error(self, message: str, task_id: Optional[str] = None) -> Notification:
        return self.notify("error", message, task_id)

    def info(self, message: str, task_id: Optional[str] = None) -> Notification:
        return self.notify("info", message, task_id)

    def clear(self) -> None:
        self.history.clear()
