"""File-based task store with locking.

Tasks live in a single YAML file (``tasks.yaml``) inside the project's
``.taskboard/`` directory.  Every read-modify-write goes through
:meth:`TaskStore.transaction`, which holds an exclusive file lock (and an
in-process lock for threads sharing the store) for its whole duration.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml
from loguru import logger

from ..constants import TASKS_FILE, TASKS_LOCK_FILE
from ..io_utils import FileLock, _atomic_write_yaml
from .interfaces import TaskRepository
from .model import Task, normalize_status

STORE_VERSION = 1


# ---------------------------------------------------------------------------
# Low-level I/O
# ---------------------------------------------------------------------------

def _load_raw(path: Path) -> list[dict[str, Any]]:
    """Load the raw task list from *path*, returning ``[]`` if missing."""
    if not path.exists():
        return []
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or "tasks" not in data:
        return []
    tasks = data["tasks"]
    if not isinstance(tasks, list):
        return []
    return [t for t in tasks if isinstance(t, dict)]


def _save_raw(path: Path, tasks: list[dict[str, Any]]) -> None:
    _atomic_write_yaml(path, {"version": STORE_VERSION, "tasks": tasks})


# ---------------------------------------------------------------------------
# TaskStore
# ---------------------------------------------------------------------------

class TaskStore(TaskRepository):
    """File-backed :class:`TaskRepository`.

    Parameters
    ----------
    state_dir:
        Path to the ``.taskboard/`` directory for the project.
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir
        self._store_path = state_dir / TASKS_FILE
        self._lock = FileLock(state_dir / TASKS_LOCK_FILE)
        self._thread_lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._store_path

    # -- internal helpers ---------------------------------------------------

    def _load(self) -> list[Task]:
        return [Task.from_dict(d) for d in _load_raw(self._store_path)]

    def _save(self, tasks: list[Task]) -> None:
        _save_raw(self._store_path, [t.to_dict() for t in tasks])

    # -- transactions -------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[_TaskTx]:
        """Acquire the lock, load tasks, yield a transaction, and save on exit.

        Usage::

            with store.transaction() as tx:
                task = tx.get("task-abc123")
                task.position = 1500.0
                tx.dirty = True

        Nothing is written if the block raises.
        """
        with self._thread_lock:
            with self._lock:
                tx = _TaskTx(self._load())
                yield tx
                if tx.dirty:
                    self._save(tx.tasks)
                    logger.debug("Saved {} tasks to {}", len(tx.tasks), self._store_path)

    # -- Repository API -----------------------------------------------------

    def list(self) -> list[Task]:
        with self._thread_lock:
            with self._lock:
                return self._load()

    def get(self, entity_id: str) -> Optional[Task]:
        for task in self.list():
            if task.id == entity_id:
                return task
        return None

    def upsert(self, entity: Task) -> Task:
        with self.transaction() as tx:
            existing = tx.get(entity.id)
            if existing is None:
                tx.add(entity)
            else:
                entity.touch()
                tx.replace(entity)
        return entity

    def delete(self, entity_id: str) -> bool:
        with self.transaction() as tx:
            return tx.remove(entity_id)


class _TaskTx:
    """In-memory transaction over a list of tasks.

    Mutations are collected and flushed back to disk when the
    ``transaction`` context-manager exits.
    """

    def __init__(self, tasks: list[Task]) -> None:
        self.tasks = tasks
        self.dirty = False
        self._index: dict[str, int] = {t.id: i for i, t in enumerate(tasks)}

    # -- lookups ------------------------------------------------------------

    def get(self, task_id: str) -> Optional[Task]:
        idx = self._index.get(task_id)
        return self.tasks[idx] if idx is not None else None

    def list_all(self) -> list[Task]:
        return list(self.tasks)

    def find(self, *, status: Optional[str] = None, search: Optional[str] = None) -> list[Task]:
        column = normalize_status(status) if status else None
        out: list[Task] = []
        for t in self.tasks:
            if column is not None and t.status != column:
                continue
            if search:
                q = search.lower()
                if q not in t.title.lower() and q not in t.description.lower() and q not in t.id.lower():
                    continue
            out.append(t)
        return out

    # -- mutations ----------------------------------------------------------

    def add(self, task: Task) -> Task:
        if task.id in self._index:
            raise ValueError(f"Task {task.id} already exists")
        self._index[task.id] = len(self.tasks)
        self.tasks.append(task)
        self.dirty = True
        return task

    def replace(self, task: Task) -> Task:
        idx = self._index[task.id]
        self.tasks[idx] = task
        self.dirty = True
        return task

    def remove(self, task_id: str) -> bool:
        """Physically remove a task from the store."""
        idx = self._index.pop(task_id, None)
        if idx is None:
            return False
        self.tasks.pop(idx)
        self._index = {t.id: i for i, t in enumerate(self.tasks)}
        self.dirty = True
        return True
