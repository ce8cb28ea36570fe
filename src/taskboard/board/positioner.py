"""Fractional positioning of tasks inside board columns.

A moved task gets a position between its new neighbours, so no other task
has to be renumbered:

* empty column            -> ``step``
* top of the column       -> half of the first position
* bottom of the column    -> last position + ``step``
* between two tasks       -> mean of the two neighbours

Repeated inserts at the same spot halve the gap each time.  Once two
adjacent positions are closer than ``epsilon`` the column has to be
respaced with :func:`renormalize_column`.

Everything here is pure: tasks may be :class:`Task` objects or plain
mappings with ``id``, ``status`` and ``position`` keys, and nothing is
mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from ..constants import DEFAULT_POSITION_STEP, DEFAULT_RENORMALIZE_EPSILON
from .errors import InvalidArgumentError, TaskNotFoundError
from .model import COLUMNS, TaskStatus, is_known_status, normalize_status


@dataclass(frozen=True)
class MoveResult:
    """New placement for a moved task.

    ``needs_renormalize`` is set when the computed position does not sit
    strictly (and by more than epsilon) between its neighbours.
    """

    task_id: str
    status: TaskStatus
    position: float
    index: int
    needs_renormalize: bool = False

    def as_changes(self) -> dict[str, Any]:
        return {"status": self.status.value, "position": self.position}


# ---------------------------------------------------------------------------
# Field access
# ---------------------------------------------------------------------------

def _get(task: Any, name: str) -> Any:
    if isinstance(task, Mapping):
        return task.get(name)
    return getattr(task, name, None)


def _position(task: Any) -> float:
    raw = _get(task, "position")
    try:
        return float(raw or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _task_id(task: Any) -> str:
    return str(_get(task, "id"))


# ---------------------------------------------------------------------------
# Column views
# ---------------------------------------------------------------------------

def coerce_column(value: Any) -> TaskStatus:
    """Resolve a destination column, rejecting names that are not columns.

    Unlike :func:`normalize_status` this does not fall back to ``TODO``:
    a drop target that is not a column is a caller bug.
    """
    if not is_known_status(value):
        raise InvalidArgumentError(f"Unknown column: {value!r}")
    return normalize_status(value)


def column_tasks(tasks: Iterable[Any], column: TaskStatus, exclude_id: Optional[str] = None) -> list[Any]:
    """Tasks in *column* sorted by position (stable for equal positions)."""
    selected = [
        t for t in tasks
        if normalize_status(_get(t, "status")) == column
        and (exclude_id is None or _task_id(t) != exclude_id)
    ]
    return sorted(selected, key=_position)


def group_by_column(tasks: Iterable[Any]) -> dict[TaskStatus, list[Any]]:
    """Return every column (even empty ones) with its tasks in board order."""
    items = list(tasks)
    return {column: column_tasks(items, column) for column in COLUMNS}


def next_position(tasks: Iterable[Any], column: Any, step: float = DEFAULT_POSITION_STEP) -> float:
    """Position that appends a new task to the end of *column*."""
    ordered = column_tasks(tasks, normalize_status(column))
    if not ordered:
        return step
    return _position(ordered[-1]) + step


# ---------------------------------------------------------------------------
# Move computation
# ---------------------------------------------------------------------------

def _validate_index(destination_index: Any) -> int:
    if isinstance(destination_index, bool) or not isinstance(destination_index, int):
        raise InvalidArgumentError(f"destination_index must be an integer, got {destination_index!r}")
    if destination_index < 0:
        raise InvalidArgumentError(f"destination_index must be >= 0, got {destination_index}")
    return destination_index


def find_task(tasks: Iterable[Any], task_id: str) -> Any:
    for t in tasks:
        if _task_id(t) == task_id:
            return t
    raise TaskNotFoundError(task_id)


def compute_move(
    tasks: Iterable[Any],
    task_id: str,
    destination_column: Any,
    destination_index: int,
    *,
    step: float = DEFAULT_POSITION_STEP,
    epsilon: float = DEFAULT_RENORMALIZE_EPSILON,
) -> MoveResult:
    """Compute the status and position for moving *task_id*.

    Args:
        tasks: Every task currently on the board.
        task_id: Task being moved. Raises :class:`TaskNotFoundError` if absent.
        destination_column: Target column key.
        destination_index: 0-based slot in the target column, counted with
            the moved task already taken out of its old slot.
        step: Spacing used for an empty column and for drops at the bottom.
        epsilon: Minimum gap to a neighbour before renormalization is flagged.

    Returns:
        The :class:`MoveResult`; no task is modified.
    """
    index = _validate_index(destination_index)
    column = coerce_column(destination_column)
    items = list(tasks)
    find_task(items, task_id)

    others = column_tasks(items, column, exclude_id=task_id)
    positions = [_position(t) for t in others]

    if not positions:
        new_position = step
    elif index == 0:
        new_position = positions[0] / 2
    elif index >= len(positions):
        new_position = positions[-1] + step
    else:
        new_position = (positions[index - 1] + positions[index]) / 2

    slot = min(index, len(positions))
    lower = positions[slot - 1] if slot > 0 else None
    upper = positions[slot] if slot < len(positions) else None
    cramped = (lower is not None and new_position - lower <= epsilon) or (
        upper is not None and upper - new_position <= epsilon
    )

    return MoveResult(
        task_id=task_id,
        status=column,
        position=new_position,
        index=slot,
        needs_renormalize=cramped,
    )


# ---------------------------------------------------------------------------
# Renormalization
# ---------------------------------------------------------------------------

def needs_renormalization(
    tasks: Iterable[Any],
    column: Any,
    epsilon: float = DEFAULT_RENORMALIZE_EPSILON,
) -> bool:
    """True if any two adjacent positions in *column* are within *epsilon*."""
    positions = [_position(t) for t in column_tasks(tasks, normalize_status(column))]
    return any(b - a <= epsilon for a, b in zip(positions, positions[1:]))


def renormalize_column(
    tasks: Iterable[Any],
    column: Any,
    *,
    step: float = DEFAULT_POSITION_STEP,
    moved: Optional[tuple[str, int]] = None,
) -> dict[str, float]:
    """Evenly respace *column*, returning ``{task_id: position}``.

    Current order is preserved.  With ``moved=(task_id, index)`` that task
    is taken out and reinserted at ``index`` first, so a cramped move and
    its respacing happen in one step.
    """
    target = normalize_status(column)
    items = list(tasks)
    if moved is None:
        ordered_ids = [_task_id(t) for t in column_tasks(items, target)]
    else:
        moved_id, moved_index = moved
        ordered_ids = [_task_id(t) for t in column_tasks(items, target, exclude_id=moved_id)]
        ordered_ids.insert(min(max(moved_index, 0), len(ordered_ids)), moved_id)
    return {tid: step * (i + 1) for i, tid in enumerate(ordered_ids)}
