from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import Priority, Status

# Shared type for incoming dates which can be a date, datetime, or ISO8601 string
DateInput = Union[date, datetime, str]

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _parse_datetime(value: Optional[DateInput]) -> Optional[datetime]:
    """
    Internal helper to normalize date input into an aware UTC datetime.
    - None or "" means no date.
    - If value is a string, parse via datetime.fromisoformat; a trailing 'Z' is accepted and
      a bare date is promoted to 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - Naive datetimes are taken to be UTC; aware ones are converted to UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return _as_utc(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
            except ValueError as e:
                raise ValueError(
                    "Invalid date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e
            return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)

    raise ValueError("Invalid type for date; expected date, datetime, or ISO8601 string.")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class _CamelModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _TaskFields(_CamelModel):
    title: Optional[str] = Field(default=None, description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: Optional[Priority] = Field(default=None, description="Low, Medium or High")
    status: Optional[Status] = Field(default=None, description="Pending, In Progress or Completed")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )
    reminder_date: Optional[datetime] = Field(
        default=None,
        description="Reminder date/time. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v

    @field_validator("priority", "status", mode="before")
    @classmethod
    def empty_choice_is_none(cls, v: Any) -> Any:
        """An empty choice is the same as not choosing."""
        return _blank_to_none(v)

    @field_validator("due_date", "reminder_date", mode="before")
    @classmethod
    def parse_dates(cls, v: Optional[DateInput]) -> Optional[datetime]:
        return _parse_datetime(v)


# PUBLIC_INTERFACE
class TaskCreate(_TaskFields):
    """
    Schema for creating a new task.

    Title is checked by the service layer so that a missing or blank title is reported
    as "Task title is required". Any owner field in the payload is ignored.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "priority": "High",
                "status": "Pending",
                "dueDate": "2025-02-01",
                "reminderDate": "2025-01-31T18:00:00Z",
            }
        }
    )


# PUBLIC_INTERFACE
class TaskUpdate(_TaskFields):
    """
    Schema for partially updating a task.

    title/priority/status: empty values are ignored and the stored value kept.
    description/dueDate/reminderDate: any value sent, including null or "", replaces the
    stored one. Keys left out of the body are untouched (see model_fields_set).
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "Completed",
                "dueDate": None,
            }
        }
    )


# PUBLIC_INTERFACE
class TaskOut(_CamelModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "6f1c2d3e4b5a69788796a5b4c3d2e1f0",
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "owner": "0a1b2c3d4e5f60718293a4b5c6d7e8f9",
                "priority": "High",
                "status": "Pending",
                "dueDate": "2025-02-01T00:00:00Z",
                "reminderDate": None,
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-26T09:00:00.000001Z",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Short title for the task")
    description: str = Field(default="", description="Detailed description")
    owner: str = Field(..., description="Id of the user who owns the task")
    priority: Priority = Field(..., description="Task priority")
    status: Status = Field(..., description="Task status")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time as an ISO8601 datetime")
    reminder_date: Optional[datetime] = Field(default=None, description="Reminder date/time as an ISO8601 datetime")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class TaskSummary(_CamelModel):
    """Per-status counters over the caller's tasks."""

    total: int
    pending: int
    in_progress: int
    completed: int


class MessageOut(BaseModel):
    message: str


# PUBLIC_INTERFACE
class UserRegister(BaseModel):
    """Schema for creating an account."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Ada", "email": "ada@example.com", "password": "s3cret!"}
        }
    )

    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=254)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        s = v.strip()
        if not s:
            raise ValueError("name must not be blank")
        return s

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return _normalize_email(v)


# PUBLIC_INTERFACE
class UserLogin(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return v.strip().lower()


def _normalize_email(value: str) -> str:
    s = value.strip().lower()
    if not _EMAIL_RE.match(s):
        raise ValueError("email must be a valid email address")
    return s


# PUBLIC_INTERFACE
class UserOut(_CamelModel):
    id: str
    name: str
    email: str
    created_at: datetime


# PUBLIC_INTERFACE
class AuthOut(BaseModel):
    """Returned by register and login: a bearer token plus the user it belongs to."""

    token: str
    user: UserOut
