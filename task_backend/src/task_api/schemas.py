from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator
from pydantic.alias_generators import to_camel

from .errors import InvalidDateFormatError
from .models import DEFAULT_PRIORITY, DEFAULT_STATUS, TaskPriority, TaskStatus

NAME_MAX_LENGTH = 255
PAGE_SIZE_MAX = 100
DEFAULT_PAGE_SIZE = 10

# Input models accept camelCase keys only and reject anything unknown.
_INPUT_CONFIG = ConfigDict(alias_generator=to_camel, extra="forbid")


def _check_name(v: str) -> str:
    s = v.strip()
    if not (1 <= len(s) <= NAME_MAX_LENGTH):
        raise ValueError(f"name length must be between 1 and {NAME_MAX_LENGTH} characters")
    return s


# PUBLIC_INTERFACE
def parse_due_date(value: Any) -> date:
    """
    Parse a due date string into a calendar date.

    Accepts an ISO8601 date ('2025-01-31') or datetime ('2025-01-31T13:45:00');
    any time component is dropped.

    Raises:
        InvalidDateFormatError: if the value is not a parseable date string.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDateFormatError(value)

    s = value.strip()
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s).date()
    except ValueError as e:
        raise InvalidDateFormatError(value) from e


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new Task.

    dueDate is shape-checked here (must be a string); parsing it into a date is
    left to parse_due_date so a bad value is reported as InvalidDateFormat.
    """

    model_config = ConfigDict(
        **_INPUT_CONFIG,
        json_schema_extra={
            "example": {
                "name": "Complete project documentation",
                "dueDate": "2024-12-31",
                "status": "Pending",
                "priority": "Red",
                "isActive": True,
            }
        },
    )

    name: StrictStr = Field(..., description="Name of the task (1..255 chars after trimming)")
    due_date: StrictStr = Field(..., description="Due date, ISO8601 date string")
    status: TaskStatus = Field(default=DEFAULT_STATUS, description="Status of the task")
    priority: TaskPriority = Field(default=DEFAULT_PRIORITY, description="Priority level of the task")
    is_active: StrictBool = Field(default=True, description="Whether the task is active")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..255 length.
        """
        return _check_name(v)


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Schema for updating an existing Task.
    All fields are optional; only provided fields will be updated. Explicit
    nulls are rejected rather than treated as "not provided".
    """

    model_config = ConfigDict(
        **_INPUT_CONFIG,
        json_schema_extra={
            "example": {
                "name": "Updated task name",
                "status": "In Progress",
            }
        },
    )

    name: Optional[StrictStr] = Field(default=None, description="Name of the task")
    due_date: Optional[StrictStr] = Field(default=None, description="Due date, ISO8601 date string")
    status: Optional[TaskStatus] = Field(default=None, description="Status of the task")
    priority: Optional[TaskPriority] = Field(default=None, description="Priority level of the task")
    is_active: Optional[StrictBool] = Field(default=None, description="Whether the task is active")

    @field_validator("name", "due_date", "status", "priority", "is_active", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("must not be null")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        """
        If name is provided, strip whitespace and enforce 1..255 length.
        """
        if v is None:
            return v
        return _check_name(v)


# PUBLIC_INTERFACE
class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


# PUBLIC_INTERFACE
class TaskQuery(BaseModel):
    """
    Schema for list filters, sorting and pagination.

    Values usually arrive as query-string text: page/limit are coerced to int,
    and isActive accepts the literals 'true'/'false'. sortBy is free text; an
    unsupported field falls back to createdAt when the sort is resolved.
    """

    model_config = ConfigDict(**_INPUT_CONFIG)

    page: int = Field(default=1, ge=1, description="Page number (>= 1)")
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=PAGE_SIZE_MAX, description="Page size (1..100)")
    status: Optional[TaskStatus] = Field(default=None, description="Filter by task status")
    priority: Optional[TaskPriority] = Field(default=None, description="Filter by task priority")
    is_active: Optional[StrictBool] = Field(default=None, description="Filter by active flag")
    search: Optional[StrictStr] = Field(default=None, description="Case-insensitive substring of name")
    sort_by: StrictStr = Field(default="createdAt", description="name, dueDate, status, priority or createdAt")
    sort_order: SortOrder = Field(default=SortOrder.DESC, description="ASC or DESC")

    @field_validator("is_active", mode="before")
    @classmethod
    def coerce_is_active(cls, v: Any) -> Any:
        if v == "true":
            return True
        if v == "false":
            return False
        return v

    @field_validator("search")
    @classmethod
    def trim_search(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None

    @field_validator("sort_order", mode="before")
    @classmethod
    def normalize_sort_order(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a Task.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "name": "Complete project documentation",
                "dueDate": "2024-12-31",
                "status": "Pending",
                "priority": "Red",
                "isActive": True,
                "createdAt": "2024-12-01T10:15:30.123456+00:00",
                "updatedAt": "2024-12-02T09:00:00.000001+00:00",
            }
        },
    )

    id: str = Field(..., description="Unique identifier of the task (UUID)")
    name: str = Field(..., description="Name of the task")
    due_date: date = Field(..., description="Due date of the task")
    status: TaskStatus = Field(..., description="Current status of the task")
    priority: TaskPriority = Field(..., description="Priority level of the task")
    is_active: bool = Field(..., description="Whether the task is active")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class PaginationMeta(BaseModel):
    """
    Pagination metadata for list responses.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Number of items per page")
    total: int = Field(..., description="Total number of items matching the filters")
    total_pages: int = Field(..., description="Total number of pages")
    has_next: bool = Field(..., description="Whether there is a next page")
    has_prev: bool = Field(..., description="Whether there is a previous page")


# PUBLIC_INTERFACE
class PaginatedTasks(BaseModel):
    """
    Envelope for paginated list responses.
    """

    data: List[TaskOut] = Field(..., description="Tasks on the requested page")
    meta: PaginationMeta = Field(..., description="Pagination metadata")


# PUBLIC_INTERFACE
class TaskStats(BaseModel):
    """
    Aggregate counts over the whole collection.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int = Field(..., description="Total number of tasks")
    pending: int = Field(..., description="Number of pending tasks")
    in_progress: int = Field(..., description="Number of in-progress tasks")
    done: int = Field(..., description="Number of completed tasks")
    paused: int = Field(..., description="Number of paused tasks")
    active: int = Field(..., description="Number of active tasks")
