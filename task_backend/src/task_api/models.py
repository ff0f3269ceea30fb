from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TaskStatus(str, Enum):
    """Lifecycle state of a task. Declaration order is the sort order."""

    PENDING = "Pending"
    DONE = "Done"
    IN_PROGRESS = "In Progress"
    PAUSED = "Paused"


# PUBLIC_INTERFACE
class TaskPriority(str, Enum):
    """Priority colour of a task. Declaration order is the sort order."""

    HIGH = "Red"
    MEDIUM = "Yellow"
    NORMAL = "Blue"


DEFAULT_STATUS = TaskStatus.PENDING
DEFAULT_PRIORITY = TaskPriority.NORMAL


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A lightweight domain model representing a Task record for non-ORM storage
    backends.

    Fields:
    - id: Opaque UUID string assigned by the store on first save (None before)
    - name: Trimmed name (1..255 chars, enforced via schemas)
    - due_date: Calendar date, no time component
    - status: One of TaskStatus
    - priority: One of TaskPriority
    - is_active: Boolean active flag
    - created_at: UTC creation timestamp, set once by the store
    - updated_at: UTC timestamp refreshed by the store on every save
    """

    id: Optional[str]
    name: str
    due_date: date
    status: TaskStatus
    priority: TaskPriority
    is_active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


# Fields a caller may set; everything else belongs to the store.
MUTABLE_FIELDS = ("name", "due_date", "status", "priority", "is_active")
