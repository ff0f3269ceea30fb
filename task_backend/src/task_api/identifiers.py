from __future__ import annotations

import re
from typing import Optional

from .errors import MalformedIdentifierError, MissingIdentifierError

_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)


# PUBLIC_INTERFACE
def verify_task_id(task_id: Optional[str]) -> str:
    """
    Check that a task identifier is usable before any store lookup.

    Raises:
        MissingIdentifierError: if the id is None, empty or whitespace only.
        MalformedIdentifierError: if the id is not an 8-4-4-4-12 hex UUID.

    Returns:
        The identifier in lowercase, the form the stores assign and compare.
    """
    if task_id is None or not str(task_id).strip():
        raise MissingIdentifierError()
    if not isinstance(task_id, str) or not _UUID_RE.fullmatch(task_id):
        raise MalformedIdentifierError(str(task_id))
    return task_id.lower()
