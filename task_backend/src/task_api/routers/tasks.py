from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request, Response, status

from ..repositories import Repository, get_repository
from ..schemas import PaginatedTasks, PaginationMeta, TaskOut, TaskStats
from ..services import TaskService

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)

_CREATE_EXAMPLE = {
    "name": "Complete project documentation",
    "dueDate": "2024-12-31",
    "status": "Pending",
    "priority": "Red",
    "isActive": True,
}
_UPDATE_EXAMPLE = {"status": "In Progress"}
_ID_DESCRIPTION = "Task ID (UUID), e.g. 123e4567-e89b-12d3-a456-426614174000"


# PUBLIC_INTERFACE
def get_task_service(repo: Repository = Depends(get_repository)) -> TaskService:
    """
    Dependency providing a TaskService bound to the configured repository.
    """
    return TaskService(repo)


def _out(task) -> TaskOut:
    return TaskOut.model_validate(task)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task and return the created resource.",
    responses={
        201: {"description": "Task has been successfully created"},
        400: {"description": "Invalid input data or due date format"},
    },
)
def create_task(
    payload: Dict[str, Any] = Body(..., examples=[_CREATE_EXAMPLE]),
    service: TaskService = Depends(get_task_service),
) -> TaskOut:
    """
    Create a new Task. Unknown fields are rejected.
    """
    return _out(service.create_task(payload))


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=PaginatedTasks,
    summary="List Tasks",
    description=(
        "List tasks with optional filters, sorting and pagination.\n\n"
        "Query parameters:\n"
        "- page: page number (>=1, default 1)\n"
        "- limit: page size (1..100, default 10)\n"
        "- status: Pending, Done, In Progress or Paused\n"
        "- priority: Red, Yellow or Blue\n"
        "- isActive: true or false\n"
        "- search: case-insensitive substring of the task name\n"
        "- sortBy: name, dueDate, status, priority or createdAt (others fall back to createdAt)\n"
        "- sortOrder: ASC or DESC (default DESC)\n\n"
        "Unknown query parameters are rejected. Returns the page of tasks and pagination metadata."
    ),
    responses={
        200: {"description": "Tasks retrieved successfully"},
        400: {"description": "Invalid query parameters"},
    },
)
def list_tasks(request: Request, service: TaskService = Depends(get_task_service)) -> PaginatedTasks:
    """
    List tasks with pagination and filters.
    """
    result = service.list_tasks(dict(request.query_params))
    return PaginatedTasks(
        data=[_out(t) for t in result["data"]],
        meta=PaginationMeta(**result["meta"]),
    )


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=TaskStats,
    summary="Task Statistics",
    description="Total, per-status and active task counts over the whole collection.",
    responses={200: {"description": "Task statistics retrieved successfully"}},
)
def get_stats(service: TaskService = Depends(get_task_service)) -> TaskStats:
    """
    Aggregate task counts.
    """
    return TaskStats(**service.get_stats())


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description=f"Get a single task by ID. {_ID_DESCRIPTION}",
    responses={
        200: {"description": "Task retrieved successfully"},
        400: {"description": "Missing or invalid task ID"},
        404: {"description": "Task not found"},
    },
)
def get_task(task_id: str, service: TaskService = Depends(get_task_service)) -> TaskOut:
    """
    Retrieve a single Task by its ID.
    """
    return _out(service.get_task(task_id))


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description=f"Partially update fields of a task. {_ID_DESCRIPTION}",
    responses={
        200: {"description": "Task has been successfully updated"},
        400: {"description": "Invalid input data or task ID"},
        404: {"description": "Task not found"},
    },
)
def update_task(
    task_id: str,
    payload: Dict[str, Any] = Body(..., examples=[_UPDATE_EXAMPLE]),
    service: TaskService = Depends(get_task_service),
) -> TaskOut:
    """
    Partial update of a Task; omitted fields keep their current values.
    """
    return _out(service.update_task(task_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete Task",
    description=f"Delete a task by ID. {_ID_DESCRIPTION}",
    responses={
        204: {"description": "Task has been successfully deleted"},
        400: {"description": "Missing or invalid task ID"},
        404: {"description": "Task not found"},
    },
)
def delete_task(task_id: str, service: TaskService = Depends(get_task_service)) -> Response:
    """
    Delete a Task. Returns 204 on success, 404 if not found.
    """
    service.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
