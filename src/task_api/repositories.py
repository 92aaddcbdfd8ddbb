from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ConflictError
from .models import Priority, SortKey, Status, TaskEntity, UserEntity
from .settings import get_settings


@dataclass(frozen=True)
class ListQuery:
    """
    Predicate for listing tasks.

    The owner clause is mandatory: a query can only ever see one user's tasks.
    status/priority are optional equality clauses combined with AND, compared
    against the stored text as given: a value that is no enumeration member
    simply matches nothing.
    """
    owner: str
    status: Optional[str] = None
    priority: Optional[str] = None
    sort: SortKey = SortKey.CREATED_AT

    def matches(self, task: TaskEntity) -> bool:
        if task["owner"] != self.owner:
            return False
        if self.status is not None and task["status"] != self.status:
            return False
        if self.priority is not None and task["priority"] != self.priority:
            return False
        return True


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _due_date_key(task: TaskEntity) -> Tuple[int, Any]:
    # Tasks without a due date come first, as in an ascending document-store sort
    due = task["due_date"]
    return (0, 0) if due is None else (1, due)


def _priority_key(task: TaskEntity) -> int:
    return Priority(task["priority"]).rank


def sort_tasks(items: List[TaskEntity], key: SortKey) -> List[TaskEntity]:
    """Order tasks for a listing. sorted() is stable, so ties keep insertion order."""
    if key is SortKey.DUE_DATE:
        return sorted(items, key=_due_date_key)
    if key is SortKey.PRIORITY:
        return sorted(items, key=_priority_key, reverse=True)
    return sorted(items, key=lambda t: t["created_at"], reverse=True)


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for task storage backends."""

    @abstractmethod
    def create(self, fields: Mapping[str, Any]) -> TaskEntity:
        """Store a new task built from fields; assign id and timestamps; return it."""

    @abstractmethod
    def get(self, task_id: str) -> Optional[TaskEntity]:
        """Return a TaskEntity by id, or None if not found."""

    @abstractmethod
    def update(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        """Apply already-resolved field changes. Return updated entity or None if not found."""

    @abstractmethod
    def delete(self, task_id: str) -> bool:
        """Delete a TaskEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def list(self, query: ListQuery) -> List[TaskEntity]:
        """
        Return the tasks matching the query, ordered by its sort key:
        - dueDate ascending, tasks without a due date first
        - priority descending by rank (High, Medium, Low)
        - otherwise created_at descending
        """


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Abstract repository contract for user accounts."""

    @abstractmethod
    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        """Create a user. Raises ConflictError if the email is taken."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[UserEntity]:
        """Return a user by id, or None."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserEntity]:
        """Return a user by (normalized) email, or None."""


# Fields a task update may touch; everything else is owned by the store
UPDATABLE_FIELDS = ("title", "description", "priority", "status", "due_date", "reminder_date")


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory task repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[str, TaskEntity] = {}

    def create(self, fields: Mapping[str, Any]) -> TaskEntity:
        now = utcnow()
        entity: TaskEntity = {
            "id": new_id(),
            "title": fields["title"],
            "description": fields.get("description") or "",
            "owner": fields["owner"],
            "priority": fields.get("priority") or Priority.MEDIUM.value,
            "status": fields.get("status") or Status.PENDING.value,
            "due_date": fields.get("due_date"),
            "reminder_date": fields.get("reminder_date"),
            "created_at": now,
            "updated_at": now,
        }
        with self._lock:
            self._items[entity["id"]] = entity
        return entity.copy()  # type: ignore[return-value]

    def get(self, task_id: str) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()  # type: ignore[return-value]

    def update(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        with self._lock:
            existing = self._items.get(task_id)
            if existing is None:
                return None

            updated = existing.copy()
            for field in UPDATABLE_FIELDS:
                if field in changes:
                    updated[field] = changes[field]  # type: ignore[literal-required]
            updated["updated_at"] = utcnow()

            self._items[task_id] = updated  # type: ignore[assignment]
            return updated.copy()  # type: ignore[return-value]

    def delete(self, task_id: str) -> bool:
        with self._lock:
            return self._items.pop(task_id, None) is not None

    def list(self, query: ListQuery) -> List[TaskEntity]:
        with self._lock:
            items = [t for t in self._items.values() if query.matches(t)]
            # Return copies to avoid external mutation
            return [t.copy() for t in sort_tasks(items, query.sort)]  # type: ignore[misc]


class InMemoryUserRepository(UserRepository):
    """Thread-safe in-memory user store."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._users: Dict[str, UserEntity] = {}

    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        with self._lock:
            if self._find_email(email) is not None:
                raise ConflictError("User already exists")
            user: UserEntity = {
                "id": new_id(),
                "name": name,
                "email": email,
                "password_hash": password_hash,
                "created_at": utcnow(),
            }
            self._users[user["id"]] = user
            return user.copy()  # type: ignore[return-value]

    def get(self, user_id: str) -> Optional[UserEntity]:
        with self._lock:
            user = self._users.get(user_id)
            return None if user is None else user.copy()  # type: ignore[return-value]

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._lock:
            user = self._find_email(email)
            return None if user is None else user.copy()  # type: ignore[return-value]

    def _find_email(self, email: str) -> Optional[UserEntity]:
        return next((u for u in self._users.values() if u["email"] == email), None)


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_repository() -> Repository:
    """
    Return the process-wide task repository configured by settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository
    """
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        return SQLiteRepository(settings.sqlite_db_path)
    return InMemoryRepository()


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    """Return the process-wide user repository configured by settings."""
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteUserRepository

        return SQLiteUserRepository(settings.sqlite_db_path)
    return InMemoryUserRepository()
