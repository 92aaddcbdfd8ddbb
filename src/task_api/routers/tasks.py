from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth import get_current_user
from ..models import UserEntity
from ..schemas import MessageOut, TaskCreate, TaskOut, TaskSummary, TaskUpdate
from ..services import TaskService, get_task_service

router = APIRouter(
    prefix="/api/tasks",
    tags=["tasks"],
    responses={401: {"description": "Missing or invalid token"}},
)

_OWNERSHIP_RESPONSES = {
    403: {"description": "Task belongs to another user"},
    404: {"description": "Task not found"},
}


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description=(
        "List the caller's tasks with optional filters.\n\n"
        "Query parameters:\n"
        "- status: Pending, In Progress, Completed or All\n"
        "- priority: Low, Medium, High or All\n"
        "- sortBy: dueDate (ascending, undated first), priority (High first); "
        "anything else sorts newest first\n\n"
        "Filters combine with AND. Only tasks owned by the caller are returned."
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"description": "Invalid filter value"},
    },
)
def list_tasks(
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status, or 'All'"),
    priority: Optional[str] = Query(None, description="Filter by priority, or 'All'"),
    sort_by: Optional[str] = Query(None, alias="sortBy", description="dueDate, priority or createdAt"),
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> List[TaskOut]:
    items = service.list_tasks(user["id"], status=status_filter, priority=priority, sort_by=sort_by)
    return [TaskOut(**it) for it in items]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=TaskSummary,
    summary="Task Counts",
    description="Count the caller's tasks per status.",
)
def task_stats(
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskSummary:
    return TaskSummary(**service.summarize(user["id"]))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task owned by the caller and return it.",
    responses={
        201: {"description": "Task created successfully"},
        400: {"description": "Missing title or invalid field"},
    },
)
def create_task(
    payload: TaskCreate,
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskOut:
    created = service.create_task(user["id"], payload)
    return TaskOut(**created)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={200: {"description": "Task found"}, **_OWNERSHIP_RESPONSES},
)
def get_task(
    task_id: str,
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskOut:
    item = service.get_task(task_id, user["id"])
    return TaskOut(**item)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description=(
        "Partially update a task. Empty title, priority or status values are ignored. "
        "description, dueDate and reminderDate are replaced by whatever is sent, "
        "so null clears them. Omitted fields are left unchanged."
    ),
    responses={
        200: {"description": "Task updated"},
        400: {"description": "Invalid field"},
        **_OWNERSHIP_RESPONSES,
    },
)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> TaskOut:
    updated = service.update_task(task_id, user["id"], payload)
    return TaskOut(**updated)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=MessageOut,
    summary="Delete Task",
    description="Delete a task by ID.",
    responses={200: {"description": "Task deleted"}, **_OWNERSHIP_RESPONSES},
)
def delete_task(
    task_id: str,
    user: UserEntity = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
) -> MessageOut:
    service.delete_task(task_id, user["id"])
    return MessageOut(message="Task deleted successfully")
