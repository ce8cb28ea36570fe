from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Generic, Optional, TypeVar

from .model import Task

T = TypeVar("T")


class Repository(ABC, Generic[T]):
    @abstractmethod
    def list(self) -> list[T]:
        raise NotImplementedError

    @abstractmethod
    def get(self, entity_id: str) -> Optional[T]:
        raise NotImplementedError

    @abstractmethod
    def upsert(self, entity: T) -> T:
        raise NotImplementedError

    @abstractmethod
    def delete(self, entity_id: str) -> bool:
        raise NotImplementedError


class TaskRepository(Repository[Task]):
    @abstractmethod
    def transaction(self) -> AbstractContextManager[Any]:
        """Yield a locked, mutable view of every task; saved on clean exit if dirty."""
        raise NotImplementedError
