"""Task model for the Kanban board.

Tasks are grouped into four fixed status columns and ordered inside each
column by a floating-point ``position``.  Status values coming from users or
older records are free text, so everything that reads a status goes through
:func:`normalize_status`.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class TaskStatus(str, Enum):
    """Board column a task lives in."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"

    @property
    def label(self) -> str:
        return _COLUMN_TITLES[self]


_COLUMN_TITLES = {
    TaskStatus.TODO: "To Do",
    TaskStatus.IN_PROGRESS: "In Progress",
    TaskStatus.IN_REVIEW: "Review",
    TaskStatus.DONE: "Done",
}

# Column order on the board, left to right.
COLUMNS: tuple[TaskStatus, ...] = (
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.IN_REVIEW,
    TaskStatus.DONE,
)


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


# ---------------------------------------------------------------------------
# Status normalization
# ---------------------------------------------------------------------------

_WHITESPACE_RE = re.compile(r"\s+")
_STATUS_ALIASES = {
    "TO_DO": TaskStatus.TODO,
    "REVIEW": TaskStatus.IN_REVIEW,
}


def _status_key(value: Any) -> str:
    return _WHITESPACE_RE.sub("_", str(value or "").strip().upper())


def is_known_status(value: Any) -> bool:
    """True if *value* names a column directly or through an alias."""
    if isinstance(value, TaskStatus):
        return True
    key = _status_key(value)
    return key in _STATUS_ALIASES or key in TaskStatus._value2member_map_


def normalize_status(value: Any) -> TaskStatus:
    """Map a free-text status onto one of the board columns.

    ``"to do"`` becomes ``TODO`` and ``"Review"`` becomes ``IN_REVIEW``.
    Unknown or empty values fall back to ``TODO``; this never raises.
    """
    if isinstance(value, TaskStatus):
        return value
    key = _status_key(value)
    try:
        return TaskStatus(key)
    except ValueError:
        return _STATUS_ALIASES.get(key, TaskStatus.TODO)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _generate_id() -> str:
    """Short human-friendly task ID: ``task-<8hex>``."""
    return f"task-{uuid.uuid4().hex[:8]}"


def _coerce_priority(raw: Any) -> TaskPriority:
    if isinstance(raw, TaskPriority):
        return raw
    try:
        return TaskPriority(str(raw).strip().upper())
    except ValueError:
        return TaskPriority.MEDIUM


def _coerce_position(raw: Any) -> float:
    if isinstance(raw, bool):
        return 0.0
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


# ---------------------------------------------------------------------------
# Task dataclass
# ---------------------------------------------------------------------------

@dataclass
class Task:
    """A card on the board.

    Only ``status`` and ``position`` take part in ordering; everything else
    is carried through the store for display.
    """

    id: str = field(default_factory=_generate_id)
    title: str = ""
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    position: float = 0.0
    priority: TaskPriority = TaskPriority.MEDIUM
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)
    completed_at: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for YAML/JSON persistence."""
        data: dict[str, Any] = {}
        for k, v in asdict(self).items():
            data[k] = v.value if isinstance(v, Enum) else v
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Task":
        """Deserialize from a plain dict, normalizing status and priority."""
        d = dict(data)
        return cls(
            id=str(d.get("id") or _generate_id()),
            title=str(d.get("title") or ""),
            description=str(d.get("description") or ""),
            status=normalize_status(d.get("status")),
            position=_coerce_position(d.get("position", 0.0)),
            priority=_coerce_priority(d.get("priority", TaskPriority.MEDIUM)),
            created_at=str(d.get("created_at") or _now_iso()),
            updated_at=str(d.get("updated_at") or _now_iso()),
            completed_at=d.get("completed_at"),
            metadata=dict(d.get("metadata") or {}),
        )

    # ------------------------------------------------------------------
    # Mutation helpers
    # ------------------------------------------------------------------

    def touch(self) -> None:
        """Bump ``updated_at`` to now."""
        self.updated_at = _now_iso()

    def place(self, status: TaskStatus, position: float) -> None:
        """Set column and position, keeping ``completed_at`` in step with DONE."""
        if status == TaskStatus.DONE and self.status != TaskStatus.DONE:
            self.completed_at = _now_iso()
        elif status != TaskStatus.DONE:
            self.completed_at = None
        self.status = status
        self.position = float(position)
        self.touch()

    @property
    def is_done(self) -> bool:
        return self.status == TaskStatus.DONE
