from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import Depends

from .errors import ForbiddenError, NotFoundError, ValidationError
from .models import ALL, Priority, SortKey, Status, TaskEntity
from .repositories import ListQuery, Repository, get_repository
from .schemas import TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)

# Falsy values for these are ignored on update; they can be replaced but never cleared
_KEEP_IF_EMPTY = ("title", "priority", "status")
# Any value sent for these overwrites the stored one, null included
_CLEARABLE = ("description", "due_date", "reminder_date")


def _filter_value(value: Optional[str]) -> Optional[str]:
    # "All" and a blank value mean no clause; anything else is an equality match
    if value is None or value == ALL or value == "":
        return None
    return value


class TaskService:
    """
    Owner-scoped task operations.

    Every method takes the caller's user id, resolved upstream by authentication.
    A missing task is NotFoundError; a task owned by someone else is ForbiddenError.
    """

    def __init__(self, repo: Repository) -> None:
        self._repo = repo

    def list_tasks(
        self,
        caller_id: str,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        sort_by: Optional[str] = None,
    ) -> List[TaskEntity]:
        query = ListQuery(
            owner=caller_id,
            status=_filter_value(status),
            priority=_filter_value(priority),
            sort=SortKey.parse(sort_by),
        )
        return self._repo.list(query)

    def get_task(self, task_id: str, caller_id: str) -> TaskEntity:
        return self._owned(task_id, caller_id, "access")

    def create_task(self, caller_id: str, data: TaskCreate) -> TaskEntity:
        if not data.title:
            raise ValidationError("Task title is required")

        task = self._repo.create(
            {
                "title": data.title,
                "description": data.description or "",
                "owner": caller_id,
                "priority": (data.priority or Priority.MEDIUM).value,
                "status": (data.status or Status.PENDING).value,
                "due_date": data.due_date,
                "reminder_date": data.reminder_date,
            }
        )
        logger.info("Created task %s for user %s", task["id"], caller_id)
        return task

    def update_task(self, task_id: str, caller_id: str, data: TaskUpdate) -> TaskEntity:
        self._owned(task_id, caller_id, "update")

        changes = self._resolve_changes(data)
        updated = self._repo.update(task_id, changes)
        if updated is None:
            # Deleted between the ownership check and the write
            raise NotFoundError("Task not found")
        logger.info("Updated task %s (%s)", task_id, ", ".join(sorted(changes)) or "no fields")
        return updated

    def delete_task(self, task_id: str, caller_id: str) -> None:
        self._owned(task_id, caller_id, "delete")
        if not self._repo.delete(task_id):
            raise NotFoundError("Task not found")
        logger.info("Deleted task %s", task_id)

    def summarize(self, caller_id: str) -> Dict[str, int]:
        """Count the caller's tasks per status."""
        tasks = self._repo.list(ListQuery(owner=caller_id))
        counts = {status: 0 for status in Status}
        for task in tasks:
            counts[Status(task["status"])] += 1
        return {
            "total": len(tasks),
            "pending": counts[Status.PENDING],
            "in_progress": counts[Status.IN_PROGRESS],
            "completed": counts[Status.COMPLETED],
        }

    def _owned(self, task_id: str, caller_id: str, action: str) -> TaskEntity:
        task = self._repo.get(task_id)
        if task is None:
            raise NotFoundError("Task not found")
        if task["owner"] != caller_id:
            logger.warning("User %s denied %s on task %s", caller_id, action, task_id)
            raise ForbiddenError(f"Not authorized to {action} this task")
        return task

    @staticmethod
    def _resolve_changes(data: TaskUpdate) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for field in _KEEP_IF_EMPTY:
            value = getattr(data, field)
            if value:
                changes[field] = value.value if isinstance(value, (Priority, Status)) else value
        for field in _CLEARABLE:
            if field in data.model_fields_set:
                value = getattr(data, field)
                if field == "description":
                    value = value or ""
                changes[field] = value
        return changes


# PUBLIC_INTERFACE
def get_task_service(repo: Repository = Depends(get_repository)) -> TaskService:
    """FastAPI dependency returning a TaskService over the configured repository."""
    return TaskService(repo)
