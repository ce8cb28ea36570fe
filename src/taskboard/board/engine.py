"""Task engine: board CRUD and task moves on top of a :class:`TaskRepository`.

This is the server-side entry point for all task manipulation.  It adds the
board rules to the store: new tasks go to the end of their column, moves
use the fractional positioner, and cramped columns are respaced.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from ..config import get_positioning_config, load_board_config, state_dir_for
from ..constants import (
    ARTIFACTS_DIR,
    DEFAULT_POSITION_STEP,
    DEFAULT_RENORMALIZE_EPSILON,
    EVENTS_FILE,
)
from ..io_utils import _append_jsonl, _read_jsonl_tail
from .errors import InvalidArgumentError, TaskNotFoundError
from .interfaces import TaskRepository
from .model import COLUMNS, Task, TaskPriority, TaskStatus, normalize_status
from .positioner import (
    MoveResult,
    compute_move,
    group_by_column,
    needs_renormalization,
    next_position,
    renormalize_column,
)
from .store import TaskStore

_UPDATABLE_FIELDS = {"title", "description", "status", "position", "priority", "metadata"}


class TaskEngine:
    """Manage tasks on one project's board.

    Parameters
    ----------
    store:
        Repository holding the tasks.
    events_path:
        Optional JSONL file receiving an audit event per mutation.
    step, epsilon:
        Positioning spacing and renormalization threshold.
    """

    def __init__(
        self,
        store: TaskRepository,
        *,
        events_path: Optional[Path] = None,
        step: float = DEFAULT_POSITION_STEP,
        epsilon: float = DEFAULT_RENORMALIZE_EPSILON,
    ) -> None:
        self.store = store
        self.step = step
        self.epsilon = epsilon
        self._events_path = events_path

    @classmethod
    def for_project(cls, project_dir: Path) -> "TaskEngine":
        """Build an engine over ``<project_dir>/.taskboard`` honouring its config."""
        config, err = load_board_config(project_dir)
        if err:
            logger.warning("Ignoring unreadable board config: {}", err)
        positioning = get_positioning_config(config)
        state_dir = state_dir_for(project_dir)
        return cls(
            TaskStore(state_dir),
            events_path=state_dir / ARTIFACTS_DIR / EVENTS_FILE,
            step=positioning["step"],
            epsilon=positioning["epsilon"],
        )

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def _emit_event(self, event_type: str, task: Task, **details: Any) -> None:
        if self._events_path is None:
            return
        payload: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "type": event_type,
            "task_id": task.id,
            "status": task.status.value,
            "position": task.position,
        }
        if details:
            payload["details"] = details
        try:
            _append_jsonl(self._events_path, payload)
        except OSError:
            logger.exception("Failed to append task event {} for {}", event_type, task.id)

    def get_recent_events(self, limit: int = 100) -> list[dict[str, Any]]:
        if self._events_path is None:
            return []
        return _read_jsonl_tail(self._events_path, limit)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def create_task(
        self,
        title: str,
        description: str = "",
        status: Any = TaskStatus.TODO,
        priority: Any = TaskPriority.MEDIUM,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Task:
        """Create a task at the end of its column and persist it."""
        if not title or not title.strip():
            raise InvalidArgumentError("'title' is required and must be non-empty")
        try:
            prio = TaskPriority(str(getattr(priority, "value", priority)).upper())
        except ValueError:
            raise InvalidArgumentError(f"Unknown priority: {priority!r}") from None
        column = normalize_status(status)

        with self.store.transaction() as tx:
            task = Task(
                title=title.strip(),
                description=description or "",
                priority=prio,
                metadata=metadata or {},
            )
            task.place(column, next_position(tx.list_all(), column, self.step))
            tx.add(task)
            self._emit_event("task.created", task)

        logger.info("Created task {} in {} at {}", task.id, column.value, task.position)
        return task

    def get_task(self, task_id: str) -> Task:
        task = self.store.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def list_tasks(self, *, status: Optional[str] = None, search: Optional[str] = None) -> list[Task]:
        with self.store.transaction() as tx:
            return tx.find(status=status, search=search)

    def update_task(self, task_id: str, changes: dict[str, Any]) -> Task:
        """Apply a partial update.

        ``status`` is normalized; changing ``status`` or ``position`` keeps
        ``completed_at`` in sync and may respace the destination column.
        """
        unknown = sorted(set(changes) - _UPDATABLE_FIELDS)
        if unknown:
            raise InvalidArgumentError(f"Cannot update fields: {unknown}")

        with self.store.transaction() as tx:
            task = tx.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)

            if "title" in changes:
                title = str(changes["title"] or "").strip()
                if not title:
                    raise InvalidArgumentError("'title' must be non-empty")
                task.title = title
            if "description" in changes:
                task.description = str(changes["description"] or "")
            if "priority" in changes:
                try:
                    task.priority = TaskPriority(str(changes["priority"]).upper())
                except ValueError:
                    raise InvalidArgumentError(f"Unknown priority: {changes['priority']!r}") from None
            if "metadata" in changes:
                task.metadata = dict(changes["metadata"] or {})

            if "status" in changes or "position" in changes:
                column = normalize_status(changes["status"]) if "status" in changes else task.status
                position = changes.get("position", task.position)
                if isinstance(position, bool) or not isinstance(position, (int, float)):
                    raise InvalidArgumentError(f"'position' must be a number, got {position!r}")
                task.place(column, float(position))
                self._respace_if_cramped(tx, column)
            else:
                task.touch()

            tx.dirty = True
            self._emit_event("task.updated", task, fields=sorted(changes))
            return task

    def delete_task(self, task_id: str) -> None:
        with self.store.transaction() as tx:
            task = tx.get(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            tx.remove(task_id)
            self._emit_event("task.deleted", task)
        logger.info("Deleted task {}", task_id)

    # ------------------------------------------------------------------
    # Board
    # ------------------------------------------------------------------

    def get_board(self) -> dict[str, list[dict[str, Any]]]:
        """Return every column with its tasks sorted by position."""
        grouped = group_by_column(self.store.list())
        return {column.value: [t.to_dict() for t in grouped[column]] for column in COLUMNS}

    def move_task(self, task_id: str, destination_column: Any, destination_index: int) -> MoveResult:
        """Move a task to ``destination_index`` of ``destination_column``.

        Only the moved task changes, unless the new position is too close
        to a neighbour; then the whole destination column is respaced with
        the task inserted at the requested index.
        """
        with self.store.transaction() as tx:
            tasks = tx.list_all()
            result = compute_move(
                tasks,
                task_id,
                destination_column,
                destination_index,
                step=self.step,
                epsilon=self.epsilon,
            )
            task = tx.get(task_id)
            previous = task.status
            task.place(result.status, result.position)

            if result.needs_renormalize:
                positions = renormalize_column(
                    tasks, result.status, step=self.step, moved=(task_id, result.index)
                )
                self._apply_positions(tx, positions)
                result = MoveResult(
                    task_id=task_id,
                    status=result.status,
                    position=positions[task_id],
                    index=result.index,
                    needs_renormalize=True,
                )
                logger.info("Renormalized column {} ({} tasks)", result.status.value, len(positions))

            tx.dirty = True
            self._emit_event(
                "task.moved",
                task,
                from_status=previous.value,
                index=result.index,
                renormalized=result.needs_renormalize,
            )

        logger.info(
            "Moved task {} to {}[{}] at {}", task_id, result.status.value, result.index, result.position
        )
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _respace_if_cramped(self, tx: Any, column: TaskStatus) -> None:
        tasks = tx.list_all()
        if not needs_renormalization(tasks, column, self.epsilon):
            return
        positions = renormalize_column(tasks, column, step=self.step)
        self._apply_positions(tx, positions)
        logger.info("Renormalized column {} ({} tasks)", column.value, len(positions))

    @staticmethod
    def _apply_positions(tx: Any, positions: dict[str, float]) -> None:
        for tid, position in positions.items():
            other = tx.get(tid)
            if other is not None and other.position != position:
                other.position = position
                other.touch()
        tx.dirty = True

