from __future__ import annotations


class TaskManagerError(Exception):
    """
    Base class for errors surfaced to API callers.

    Each subclass carries the HTTP status it maps to; the message is safe to
    return to the caller as-is.
    """

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TaskManagerError):
    status_code = 400


class ConflictError(TaskManagerError):
    status_code = 400


class AuthenticationError(TaskManagerError):
    status_code = 401


class ForbiddenError(TaskManagerError):
    status_code = 403


class NotFoundError(TaskManagerError):
    status_code = 404


class StoreError(TaskManagerError):
    """The storage backend failed. The message is for logs only."""

    status_code = 500
