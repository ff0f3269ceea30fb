"""
Error hierarchy for the task core.

Every failure the core can report is a TaskApiError subclass carrying a stable
code and the HTTP status the transport layer maps it to. Errors are raised by
the component that detects them and surfaced unchanged; nothing here retries.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict


class FieldViolation(TypedDict):
    """A single field-level validation message."""

    field: str
    message: str


# PUBLIC_INTERFACE
class TaskApiError(Exception):
    """Base exception for all task core failures."""

    code = "TaskApiError"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def details(self) -> List[Any]:
        return []

    def to_response(self) -> Dict[str, Any]:
        """
        Convert to the JSON error envelope.

        Response format:
            {
                "error": "<code>",
                "message": "<human readable message>",
                "detail": [...]
            }
        """
        return {"error": self.code, "message": self.message, "detail": self.details()}


class MissingIdentifierError(TaskApiError):
    """Identifier absent or blank."""

    code = "MissingIdentifier"
    http_status = 400

    def __init__(self) -> None:
        super().__init__("Task ID is required")


class MalformedIdentifierError(TaskApiError):
    """Identifier present but not a canonical UUID."""

    code = "MalformedIdentifier"
    http_status = 400

    def __init__(self, task_id: str) -> None:
        super().__init__("Invalid task ID format")
        self.task_id = task_id


class ValidationFailedError(TaskApiError):
    """One or more payload fields violate shape, range or enum constraints."""

    code = "ValidationError"
    http_status = 400

    def __init__(self, violations: List[FieldViolation], message: str = "Request validation failed") -> None:
        super().__init__(message)
        self.violations = violations

    @property
    def fields(self) -> List[str]:
        return [v["field"] for v in self.violations]

    def details(self) -> List[Any]:
        return [dict(v) for v in self.violations]


class InvalidDateFormatError(TaskApiError):
    """A supplied due date string does not parse as a calendar date."""

    code = "InvalidDateFormat"
    http_status = 400

    def __init__(self, value: Any) -> None:
        super().__init__("Invalid due date format")
        self.value = value

    def details(self) -> List[Any]:
        return [{"field": "dueDate", "message": self.message}]


class TaskNotFoundError(TaskApiError):
    """No task exists for a well-formed identifier."""

    code = "NotFound"
    http_status = 404

    def __init__(self, task_id: str) -> None:
        super().__init__(f'Task with ID "{task_id}" not found')
        self.task_id = task_id


class PersistenceError(TaskApiError):
    """The store failed for reasons outside input validation."""

    code = "PersistenceError"
    http_status = 500

    def __init__(self, operation: str, reason: Optional[str] = None) -> None:
        super().__init__(f"Failed to {operation}")
        self.operation = operation
        self.reason = reason
