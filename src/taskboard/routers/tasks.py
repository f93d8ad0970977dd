from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_identity, get_task_service
from ..models import Identity, TaskPriority, TaskStatus
from ..schemas import MessageResponse, TaskCreate, TaskListResponse, TaskResponse, TaskUpdate
from ..tasks import TaskFilter, TaskService

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task owned by the authenticated user.",
    responses={
        201: {"description": "Task created successfully"},
        401: {"description": "Not authenticated"},
        422: {"description": "Validation error"},
    },
)
def create_task(
    payload: TaskCreate,
    identity: Identity = Depends(get_identity),
    tasks: TaskService = Depends(get_task_service),
) -> TaskResponse:
    return TaskResponse(message="Task created successfully", task=tasks.create(identity, payload))


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TaskListResponse,
    summary="List Tasks",
    description=(
        "List the authenticated user's tasks, newest first.\n\n"
        "Query parameters:\n"
        "- status: pending, in-progress or completed\n"
        "- priority: low, medium or high\n"
        "- search: case-insensitive text matched against title and description\n\n"
        "All supplied filters must match."
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        401: {"description": "Not authenticated"},
        422: {"description": "Invalid query parameters"},
    },
)
def list_tasks(
    status_: Optional[TaskStatus] = Query(None, alias="status", description="Filter by status"),
    priority: Optional[TaskPriority] = Query(None, description="Filter by priority"),
    search: Optional[str] = Query(None, description="Search text for title/description"),
    identity: Identity = Depends(get_identity),
    tasks: TaskService = Depends(get_task_service),
) -> TaskListResponse:
    items = tasks.list(identity, TaskFilter(status=status_, priority=priority, search=search))
    return TaskListResponse(tasks=items, count=len(items))


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={
        200: {"description": "Task found"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
    },
)
def get_task(
    task_id: str,
    identity: Identity = Depends(get_identity),
    tasks: TaskService = Depends(get_task_service),
) -> TaskResponse:
    return TaskResponse(task=tasks.get(identity, task_id))


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Update Task",
    description="Partially update fields of a task. Omitted fields are left unchanged.",
    responses={
        200: {"description": "Task updated"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
        422: {"description": "Validation error"},
    },
)
@router.patch(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Patch Task",
    description="Alias of PUT; partially update fields of a task.",
    responses={
        200: {"description": "Task updated"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
        422: {"description": "Validation error"},
    },
)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    identity: Identity = Depends(get_identity),
    tasks: TaskService = Depends(get_task_service),
) -> TaskResponse:
    return TaskResponse(message="Task updated successfully", task=tasks.update(identity, task_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=MessageResponse,
    summary="Delete Task",
    description="Delete a task by ID.",
    responses={
        200: {"description": "Task deleted"},
        401: {"description": "Not authenticated"},
        404: {"description": "Task not found"},
    },
)
def delete_task(
    task_id: str,
    identity: Identity = Depends(get_identity),
    tasks: TaskService = Depends(get_task_service),
) -> MessageResponse:
    tasks.delete(identity, task_id)
    return MessageResponse(message="Task deleted successfully")
