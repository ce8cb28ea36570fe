"""Client-side board session with optimistic task moves.

A :class:`BoardSession` owns the locally displayed task list for one board.
A move is applied to that list immediately, then written to the task store;
if the write fails the list is restored and the user is notified.  Each
move is tracked as a :class:`PendingMove`::

    APPLIED --> CONFIRMED
            \\-> ROLLED_BACK

Nothing is retried: a failed move stays rolled back until the user moves
the task again.  Two quick moves of the same task are not sequenced; the
second is computed from the first's optimistic state.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol

from loguru import logger

from ..constants import (
    CONNECTIVITY_FAILURE_MESSAGE,
    DEFAULT_POSITION_STEP,
    DEFAULT_RENORMALIZE_EPSILON,
)
from ..notifications import Notifier
from .errors import InvalidArgumentError, PersistenceError
from .model import TaskStatus, normalize_status
from .positioner import (
    MoveResult,
    column_tasks,
    compute_move,
    find_task,
    group_by_column,
    renormalize_column,
)


class TaskStoreGateway(Protocol):
    """What a session needs from the task store (see :class:`taskboard.client.TaskStoreClient`)."""

    async def list_tasks(self) -> list[dict[str, Any]]: ...

    async def update_task(self, task_id: str, changes: dict[str, Any]) -> dict[str, Any]: ...

    async def move_task(self, task_id: str, destination_column: str, destination_index: int) -> dict[str, Any]: ...


# ---------------------------------------------------------------------------
# Pending move state machine
# ---------------------------------------------------------------------------

class MoveState(str, Enum):
    APPLIED = "applied"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


_VALID_TRANSITIONS: dict[MoveState, set[MoveState]] = {
    MoveState.APPLIED: {MoveState.CONFIRMED, MoveState.ROLLED_BACK},
    MoveState.CONFIRMED: set(),
    MoveState.ROLLED_BACK: set(),
}


@dataclass
class PendingMove:
    """One optimistic move and the local state needed to undo it."""

    result: MoveResult
    snapshot: list[dict[str, Any]]
    state: MoveState = MoveState.APPLIED
    reason: Optional[str] = None
    history: list[MoveState] = field(default_factory=lambda: [MoveState.APPLIED])

    @property
    def task_id(self) -> str:
        return self.result.task_id

    def _transition(self, target: MoveState) -> None:
        if target not in _VALID_TRANSITIONS[self.state]:
            raise InvalidArgumentError(
                f"Cannot move pending move for {self.task_id} from {self.state.value} to {target.value}"
            )
        self.state = target
        self.history.append(target)

    def confirm(self) -> None:
        self._transition(MoveState.CONFIRMED)

    def roll_back(self, reason: Optional[str] = None) -> None:
        self._transition(MoveState.ROLLED_BACK)
        self.reason = reason


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

def failure_message(exc: PersistenceError) -> str:
    """Text shown to the user when a move could not be saved."""
    if exc.reason:
        return f"Failed to move task: {exc.reason}"
    return CONNECTIVITY_FAILURE_MESSAGE


class BoardSession:
    """Local board state for one user session.

    Parameters
    ----------
    store:
        Task store gateway used to load, persist, and refresh tasks.
    notifier:
        Receives user-visible failure notifications.
    step, epsilon:
        Positioning parameters, matching the server's.
    """

    def __init__(
        self,
        store: TaskStoreGateway,
        notifier: Optional[Notifier] = None,
        *,
        step: float = DEFAULT_POSITION_STEP,
        epsilon: float = DEFAULT_RENORMALIZE_EPSILON,
    ) -> None:
        self._store = store
        self.notifier = notifier or Notifier()
        self.step = step
        self.epsilon = epsilon
        self._tasks: list[dict[str, Any]] = []
        self._loaded = False
        self.pending: list[PendingMove] = []

    # -- lifecycle ------------------------------------------------------------

    async def load(self) -> list[dict[str, Any]]:
        """Fetch the task list from the store; call at session start."""
        self._tasks = [dict(t) for t in await self._store.list_tasks()]
        self._loaded = True
        return self.tasks

    def clear(self) -> None:
        """Drop all local state; call at logout."""
        self._tasks = []
        self.pending = []
        self._loaded = False
        self.notifier.clear()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def tasks(self) -> list[dict[str, Any]]:
        return copy.deepcopy(self._tasks)

    def columns(self) -> dict[str, list[dict[str, Any]]]:
        grouped = group_by_column(self._tasks)
        return {column.value: copy.deepcopy(items) for column, items in grouped.items()}

    def _current_index(self, task: dict[str, Any]) -> tuple[TaskStatus, int]:
        column = normalize_status(task.get("status"))
        ids = [t.get("id") for t in column_tasks(self._tasks, column)]
        return column, ids.index(task.get("id"))

    # -- moves ----------------------------------------------------------------

    async def move(self, task_id: str, destination_column: Any, destination_index: int) -> Optional[PendingMove]:
        """Move a task optimistically and persist it.

        Returns the resolved :class:`PendingMove`, or ``None`` when the task
        was dropped back onto its own slot.  ``TaskNotFoundError`` and
        ``InvalidArgumentError`` propagate before anything changes; a failed
        write is rolled back and notified, not raised.
        """
        result = compute_move(
            self._tasks,
            task_id,
            destination_column,
            destination_index,
            step=self.step,
            epsilon=self.epsilon,
        )
        task = find_task(self._tasks, task_id)
        current_column, current_index = self._current_index(task)
        if current_column == result.status and current_index == destination_index:
            return None

        pending = PendingMove(result=result, snapshot=copy.deepcopy(self._tasks))
        if result.needs_renormalize:
            positions = renormalize_column(
                self._tasks, result.status, step=self.step, moved=(task_id, result.index)
            )
        else:
            positions = {task_id: result.position}
        self._tasks = [self._placed(t, task_id, result.status, positions) for t in self._tasks]
        self.pending.append(pending)

        try:
            if result.needs_renormalize:
                # The server respaces the whole column around the requested index.
                await self._store.move_task(task_id, result.status.value, result.index)
            else:
                await self._store.update_task(task_id, result.as_changes())
        except PersistenceError as exc:
            self._tasks = pending.snapshot
            pending.roll_back(exc.reason)
            self.pending.remove(pending)
            logger.warning("Rolled back move of {}: {}", task_id, exc)
            self.notifier.error(failure_message(exc), task_id=task_id)
            return pending

        pending.confirm()
        self.pending.remove(pending)
        await self._refresh()
        return pending

    @staticmethod
    def _placed(
        task: dict[str, Any], task_id: str, column: TaskStatus, positions: dict[str, float]
    ) -> dict[str, Any]:
        tid = task.get("id")
        if tid == task_id:
            return {**task, "status": column.value, "position": positions[tid]}
        if tid in positions:
            return {**task, "position": positions[tid]}
        return task

    async def _refresh(self) -> None:
        try:
            self._tasks = [dict(t) for t in await self._store.list_tasks()]
        except PersistenceError as exc:
            # The move itself is saved; keep the optimistic view until the next load.
            logger.warning("Refresh after move failed: {}", exc)
