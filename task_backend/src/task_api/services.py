"""
Task service: the query, mutation and statistics operations behind the API.

Every operation runs verify -> look up -> validate/mutate -> persist against a
Repository. Identifier checks always happen before the store is touched, and
any store failure that is not already a TaskApiError is re-raised as
PersistenceError. Nothing is retried or rolled back here.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Mapping, Optional, Union

from .errors import PersistenceError, TaskApiError, TaskNotFoundError
from .identifiers import verify_task_id
from .models import TaskEntity, TaskStatus
from .repositories import DEFAULT_SORT_FIELD, SORTABLE_FIELDS, Repository, TaskFilter, TaskSort
from .schemas import SortOrder, TaskCreate, TaskQuery, TaskUpdate, parse_due_date
from .utils import pagination_meta
from .validation import validate_create_payload, validate_query_payload, validate_update_payload

logger = logging.getLogger(__name__)

Payload = Optional[Mapping[str, Any]]


# PUBLIC_INTERFACE
def resolve_sort(sort_by: Optional[str], sort_order: SortOrder = SortOrder.DESC) -> TaskSort:
    """
    Map a client sort field onto an entity field. Anything outside
    name/dueDate/status/priority/createdAt falls back to createdAt; this is
    never an error.
    """
    field = SORTABLE_FIELDS.get(sort_by or "")
    if field is None:
        logger.debug("unsupported sort field %r, using %s", sort_by, DEFAULT_SORT_FIELD)
        field = DEFAULT_SORT_FIELD
    return TaskSort(field=field, descending=sort_order == SortOrder.DESC)


# PUBLIC_INTERFACE
class TaskService:
    """Stateless task operations over a Repository."""

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    @contextmanager
    def _store(self, operation: str, task_id: Optional[str] = None) -> Iterator[None]:
        try:
            yield
        except TaskApiError:
            raise
        except Exception as e:
            logger.error(
                "store failure during %s: %s", operation, e,
                exc_info=True, extra={"operation": operation, "task_id": task_id},
            )
            raise PersistenceError(operation, str(e)) from e

    def _find_or_raise(self, task_id: Optional[str], operation: str) -> TaskEntity:
        task_id = verify_task_id(task_id)
        with self._store(operation, task_id):
            task = self._repo.find_one(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def create_task(self, payload: Union[TaskCreate, Payload]) -> TaskEntity:
        """
        Validate and persist a new task.

        Raises ValidationFailedError, InvalidDateFormatError (before any store
        write) or PersistenceError.
        """
        data = payload if isinstance(payload, TaskCreate) else validate_create_payload(payload)
        due_date = parse_due_date(data.due_date)

        with self._store("create task"):
            task = self._repo.create(
                {
                    "name": data.name,
                    "due_date": due_date,
                    "status": data.status,
                    "priority": data.priority,
                    "is_active": data.is_active,
                }
            )
            saved = self._repo.save(task)
        logger.info("task created", extra={"task_id": saved["id"], "operation": "create"})
        return saved

    def list_tasks(self, query: Union[TaskQuery, Payload] = None) -> Dict[str, Any]:
        """
        Return {"data": [...], "meta": {...}} for one page of matching tasks.

        The page number is never clamped: asking past the last page yields an
        empty data list with metadata computed for the requested page.
        """
        q = query if isinstance(query, TaskQuery) else validate_query_payload(query)
        criteria = TaskFilter(
            status=q.status,
            priority=q.priority,
            is_active=q.is_active,
            name_contains=q.search,
        )
        sort = resolve_sort(q.sort_by, q.sort_order)
        offset = (q.page - 1) * q.limit

        with self._store("list tasks"):
            items, total = self._repo.find_many_and_count(criteria, sort, offset, q.limit)

        return {"data": items, "meta": pagination_meta(q.page, q.limit, total)}

    def get_task(self, task_id: Optional[str]) -> TaskEntity:
        return self._find_or_raise(task_id, "fetch task")

    def update_task(self, task_id: Optional[str], payload: Union[TaskUpdate, Payload]) -> TaskEntity:
        """
        Apply a partial update. Fields absent from the payload are left as they
        are; an empty payload still refreshes updatedAt.
        """
        task = self._find_or_raise(task_id, "update task")
        data = payload if isinstance(payload, TaskUpdate) else validate_update_payload(payload)

        changes = data.model_dump(exclude_unset=True)
        if "due_date" in changes:
            changes["due_date"] = parse_due_date(changes["due_date"])
        task.update(changes)

        with self._store("update task", task["id"]):
            saved = self._repo.save(task)
        logger.info(
            "task updated", extra={"task_id": saved["id"], "operation": "update"}
        )
        return saved

    def delete_task(self, task_id: Optional[str]) -> None:
        task = self._find_or_raise(task_id, "delete task")
        with self._store("delete task", task["id"]):
            self._repo.remove(task)
        logger.info("task deleted", extra={"task_id": task["id"], "operation": "delete"})

    def get_stats(self) -> Dict[str, int]:
        """
        Six independent counts over the whole collection. A failure in any of
        them fails the whole call; partial numbers are never returned.
        """
        with self._store("fetch task statistics"):
            stats = {
                "total": self._repo.count(),
                "pending": self._repo.count(TaskFilter(status=TaskStatus.PENDING)),
                "in_progress": self._repo.count(TaskFilter(status=TaskStatus.IN_PROGRESS)),
                "done": self._repo.count(TaskFilter(status=TaskStatus.DONE)),
                "paused": self._repo.count(TaskFilter(status=TaskStatus.PAUSED)),
                "active": self._repo.count(TaskFilter(is_active=True)),
            }
        return stats
