from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import FieldViolation, ValidationFailedError
from .schemas import TaskCreate, TaskQuery, TaskUpdate

ModelT = TypeVar("ModelT", bound=BaseModel)


def _message_for(error: Dict[str, Any], field: str) -> str:
    kind = error.get("type")
    if kind == "missing":
        return f"{field} is required"
    if kind == "extra_forbidden":
        return f"property {field} should not exist"
    msg = str(error.get("msg", "invalid value"))
    # Strip pydantic's prefix on messages raised from our own validators
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return msg


# PUBLIC_INTERFACE
def violations_from(exc: ValidationError) -> List[FieldViolation]:
    """
    Flatten a pydantic ValidationError into one message per field.

    The first error reported for a field wins; field names are the camelCase
    keys the client sent.
    """
    seen: Dict[str, FieldViolation] = {}
    for error in exc.errors():
        loc = error.get("loc") or ()
        field = ".".join(str(part) for part in loc) or "__root__"
        if field not in seen:
            seen[field] = {"field": field, "message": _message_for(error, field)}
    return list(seen.values())


def _validate(model: Type[ModelT], payload: Optional[Mapping[str, Any]]) -> ModelT:
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise ValidationFailedError(
            [{"field": "__root__", "message": "payload must be an object"}]
        )
    try:
        return model.model_validate(dict(payload))
    except ValidationError as e:
        raise ValidationFailedError(violations_from(e)) from e


# PUBLIC_INTERFACE
def validate_create_payload(payload: Optional[Mapping[str, Any]]) -> TaskCreate:
    """Validate a raw create payload; name and dueDate are mandatory."""
    return _validate(TaskCreate, payload)


# PUBLIC_INTERFACE
def validate_update_payload(payload: Optional[Mapping[str, Any]]) -> TaskUpdate:
    """Validate a raw update payload; every field is optional, {} is valid."""
    return _validate(TaskUpdate, payload)


# PUBLIC_INTERFACE
def validate_query_payload(payload: Optional[Mapping[str, Any]]) -> TaskQuery:
    """Validate raw list parameters (typically the request's query string)."""
    return _validate(TaskQuery, payload)
