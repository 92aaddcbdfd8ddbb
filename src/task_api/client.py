from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import httpx

from .models import ALL

# Python keyword -> wire field name
_WIRE_NAMES = {
    "title": "title",
    "description": "description",
    "priority": "priority",
    "status": "status",
    "due_date": "dueDate",
    "reminder_date": "reminderDate",
}


class ApiError(Exception):
    """An error response from the API, with its status code and message."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


# PUBLIC_INTERFACE
@dataclass
class Session:
    """
    Identity held by a client: the bearer token and the user it was issued for.

    Can be saved to and restored from a JSON file so a login survives restarts.
    """

    token: Optional[str] = None
    user: Optional[Dict[str, Any]] = None

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def clear(self) -> None:
        self.token = None
        self.user = None

    def save(self, path: Union[str, Path]) -> None:
        Path(path).write_text(json.dumps(asdict(self)), encoding="utf-8")

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Session":
        p = Path(path)
        if not p.exists():
            return cls()
        data = json.loads(p.read_text(encoding="utf-8"))
        return cls(token=data.get("token"), user=data.get("user"))


def _to_wire(fields: Dict[str, Any]) -> Dict[str, Any]:
    body: Dict[str, Any] = {}
    for name, value in fields.items():
        if name not in _WIRE_NAMES:
            raise TypeError(f"unknown task field: {name}")
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        body[_WIRE_NAMES[name]] = value
    return body


# PUBLIC_INTERFACE
class TaskClient:
    """
    Thin client for the task API.

    Wraps an httpx.Client (anything with its interface works, including FastAPI's
    TestClient). Errors come back as ApiError carrying the server's message.
    """

    def __init__(self, http: httpx.Client, session: Optional[Session] = None) -> None:
        self._http = http
        self.session = session or Session()

    @classmethod
    def connect(cls, base_url: str, session: Optional[Session] = None, timeout: float = 10.0) -> "TaskClient":
        return cls(httpx.Client(base_url=base_url, timeout=timeout), session)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "TaskClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # auth

    def register(self, name: str, email: str, password: str) -> Session:
        data = self._request("POST", "/api/auth/register", json={"name": name, "email": email, "password": password})
        return self._start_session(data)

    def login(self, email: str, password: str) -> Session:
        data = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        return self._start_session(data)

    def logout(self) -> None:
        """Forget the token locally; tokens are stateless so there is nothing to revoke."""
        self.session.clear()

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/api/auth/me")

    # tasks

    def list_tasks(self, status: str = ALL, priority: str = ALL, sort_by: str = "createdAt") -> List[Dict[str, Any]]:
        params: Dict[str, str] = {"sortBy": sort_by}
        if status != ALL:
            params["status"] = status
        if priority != ALL:
            params["priority"] = priority
        return self._request("GET", "/api/tasks", params=params)

    def get_task(self, task_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/tasks/{task_id}")

    def create_task(self, title: str, **fields: Any) -> Dict[str, Any]:
        return self._request("POST", "/api/tasks", json=_to_wire({"title": title, **fields}))

    def update_task(self, task_id: str, **fields: Any) -> Dict[str, Any]:
        """Send only the given fields. Passing description=None (or a date as None) clears it."""
        return self._request("PUT", f"/api/tasks/{task_id}", json=_to_wire(fields))

    def delete_task(self, task_id: str) -> str:
        return self._request("DELETE", f"/api/tasks/{task_id}")["message"]

    def stats(self) -> Dict[str, int]:
        return self._request("GET", "/api/tasks/stats")

    def _start_session(self, data: Dict[str, Any]) -> Session:
        self.session.token = data["token"]
        self.session.user = data["user"]
        return self.session

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._http.request(method, path, headers=self.session.auth_headers(), **kwargs)
        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))
        return response.json()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase
