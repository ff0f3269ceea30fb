from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .models import DEFAULT_PRIORITY, DEFAULT_STATUS, TaskEntity, TaskPriority, TaskStatus
from .settings import get_settings

# Client-facing sort names mapped to entity fields.
SORTABLE_FIELDS: Dict[str, str] = {
    "name": "name",
    "dueDate": "due_date",
    "status": "status",
    "priority": "priority",
    "createdAt": "created_at",
}
DEFAULT_SORT_FIELD = "created_at"

STATUS_RANK = {s: i for i, s in enumerate(TaskStatus)}
PRIORITY_RANK = {p: i for i, p in enumerate(TaskPriority)}


@dataclass(frozen=True)
class TaskFilter:
    """
    Conjunctive filter for tasks. Each clause left as None imposes no
    constraint; name_contains is a case-insensitive substring match.
    """
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    is_active: Optional[bool] = None
    name_contains: Optional[str] = None

    def matches(self, task: TaskEntity) -> bool:
        if self.status is not None and task["status"] != self.status:
            return False
        if self.priority is not None and task["priority"] != self.priority:
            return False
        if self.is_active is not None and task["is_active"] != self.is_active:
            return False
        if self.name_contains and self.name_contains.lower() not in task["name"].lower():
            return False
        return True


@dataclass(frozen=True)
class TaskSort:
    """
    Sort instruction; field is an entity field name from SORTABLE_FIELDS.
    """
    field: str = DEFAULT_SORT_FIELD
    descending: bool = True


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for task storage backends."""

    def create(self, fields: Mapping[str, Any]) -> TaskEntity:
        """
        Build a new, unsaved TaskEntity from caller-settable fields, applying
        defaults. Nothing is written until save().
        """
        return {
            "id": None,
            "name": fields["name"],
            "due_date": fields["due_date"],
            "status": fields.get("status") or DEFAULT_STATUS,
            "priority": fields.get("priority") or DEFAULT_PRIORITY,
            "is_active": fields.get("is_active", True),
            "created_at": None,
            "updated_at": None,
        }

    @abstractmethod
    def find_one(self, task_id: str) -> Optional[TaskEntity]:
        """Return a TaskEntity by id, or None if not found."""

    @abstractmethod
    def find_many_and_count(
        self, criteria: TaskFilter, sort: TaskSort, offset: int, limit: int
    ) -> Tuple[List[TaskEntity], int]:
        """
        Return one sorted slice of TaskEntities matching criteria, plus the
        total count of matches ignoring offset/limit.
        """

    @abstractmethod
    def count(self, criteria: Optional[TaskFilter] = None) -> int:
        """Return the number of tasks matching criteria (all tasks if None)."""

    @abstractmethod
    def save(self, task: TaskEntity) -> TaskEntity:
        """
        Insert or overwrite a task and return the stored copy. Assigns id and
        created_at on first save; refreshes updated_at on every save.
        """

    @abstractmethod
    def remove(self, task: TaskEntity) -> None:
        """Delete the task with task['id']."""


def _sort_key(field: str):
    if field == "status":
        return lambda t: STATUS_RANK[t["status"]]
    if field == "priority":
        return lambda t: PRIORITY_RANK[t["priority"]]
    return lambda t: t[field]


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: dict[str, TaskEntity] = {}

    def find_one(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def find_many_and_count(
        self, criteria: TaskFilter, sort: TaskSort, offset: int, limit: int
    ) -> Tuple[List[TaskEntity], int]:
        with self._lock:
            items = [t for t in self._items.values() if criteria.matches(t)]
            total = len(items)

            items_sorted = sorted(items, key=_sort_key(sort.field), reverse=sort.descending)

            start = max(offset, 0)
            end = start + max(limit, 0)
            # Return copies to avoid external mutation
            return [t.copy() for t in items_sorted[start:end]], total

    def count(self, criteria: Optional[TaskFilter] = None) -> int:
        with self._lock:
            if criteria is None:
                return len(self._items)
            return sum(1 for t in self._items.values() if criteria.matches(t))

    def save(self, task: TaskEntity) -> TaskEntity:
        now = utcnow()
        stored = task.copy()
        if stored["id"] is None:
            stored["id"] = str(uuid.uuid4())
            stored["created_at"] = now
        stored["updated_at"] = now
        with self._lock:
            self._items[stored["id"]] = stored
        return stored.copy()

    def remove(self, task: TaskEntity) -> None:
        with self._lock:
            self._items.pop(task["id"], None)


@lru_cache
def _configured_repository() -> Repository:
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path)
    return InMemoryRepository()


# PUBLIC_INTERFACE
def get_repository() -> Repository:
    """
    Return the process-wide repository configured by settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository (sqlite3 standard library)
    """
    return _configured_repository()
