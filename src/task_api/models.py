from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, TypedDict

# Filter value meaning "do not filter on this dimension"
ALL = "All"


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @property
    def rank(self) -> int:
        """Ordering weight; higher means more urgent."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.LOW: 1, Priority.MEDIUM: 2, Priority.HIGH: 3}


class Status(str, Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class SortKey(str, Enum):
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    CREATED_AT = "createdAt"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortKey":
        """Map a raw sortBy value to a key; anything unrecognised sorts by creation time."""
        for key in cls:
            if key.value == value:
                return key
        return cls.CREATED_AT


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A task document as held by the storage backends.

    Fields:
    - id: Opaque unique identifier (hex string)
    - title: Short title (trimmed, non-empty)
    - description: Free text, "" when not given
    - owner: Id of the user who created the task; never changes
    - priority: Priority value ("Low", "Medium", "High")
    - status: Status value ("Pending", "In Progress", "Completed")
    - due_date: Optional due datetime (UTC)
    - reminder_date: Optional reminder datetime (UTC)
    - created_at: Creation timestamp (UTC)
    - updated_at: Last update timestamp (UTC)
    """

    id: str
    title: str
    description: str
    owner: str
    priority: str
    status: str
    due_date: Optional[datetime]
    reminder_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """A registered user. password_hash is a bcrypt hash and is never serialized."""

    id: str
    name: str
    email: str
    password_hash: str
    created_at: datetime
