from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generator, List, Mapping, Optional

from .errors import ConflictError, StoreError
from .models import Priority, SortKey, Status, TaskEntity, UserEntity
from .repositories import UPDATABLE_FIELDS, ListQuery, Repository, UserRepository, new_id, utcnow


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    owner: str = "owner"
    priority: str = "priority"
    status: str = "status"
    due_date: str = "due_date"
    reminder_date: str = "reminder_date"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()

_DATE_FIELDS = {"due_date", "reminder_date"}

# Priority rank as SQL so the database can order by it
_PRIORITY_RANK_SQL = "CASE {col} {whens} ELSE 0 END".format(
    col=_COLS.priority,
    whens=" ".join(f"WHEN '{p.value}' THEN {p.rank}" for p in Priority),
)

_ORDER_BY = {
    # NULLs sort first in ascending order in SQLite, matching the in-memory backend
    SortKey.DUE_DATE: f"{_COLS.due_date} ASC, rowid ASC",
    SortKey.PRIORITY: f"{_PRIORITY_RANK_SQL} DESC, rowid ASC",
    SortKey.CREATED_AT: f"{_COLS.created_at} DESC, rowid ASC",
}


def _dt_to_db(value: Optional[datetime]) -> Optional[str]:
    # Fixed-width ISO strings so that text ordering is chronological
    return value.isoformat(timespec="microseconds") if value is not None else None


def _dt_from_db(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value is not None else None


class _SQLiteBase:
    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open database {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            raise StoreError(f"database error: {e}") from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        raise NotImplementedError


class SQLiteRepository(_SQLiteBase, Repository):
    """
    Lightweight SQLite task repository implementing the Repository interface.
    """

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.description} TEXT NOT NULL DEFAULT '',
                    {_COLS.owner} TEXT NOT NULL,
                    {_COLS.priority} TEXT NOT NULL DEFAULT '{Priority.MEDIUM.value}',
                    {_COLS.status} TEXT NOT NULL DEFAULT '{Status.PENDING.value}',
                    {_COLS.due_date} TEXT NULL,
                    {_COLS.reminder_date} TEXT NULL,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
            for col in (_COLS.status, _COLS.priority, _COLS.due_date):
                conn.execute(
                    f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_{_COLS.owner}_{col} "
                    f"ON {_COLS.table}({_COLS.owner}, {col})"
                )

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "description": row[_COLS.description] or "",
            "owner": str(row[_COLS.owner]),
            "priority": str(row[_COLS.priority]),
            "status": str(row[_COLS.status]),
            "due_date": _dt_from_db(row[_COLS.due_date]),
            "reminder_date": _dt_from_db(row[_COLS.reminder_date]),
            "created_at": _dt_from_db(row[_COLS.created_at]),  # type: ignore
            "updated_at": _dt_from_db(row[_COLS.updated_at]),  # type: ignore
        }

    def _select(self, conn: sqlite3.Connection, task_id: str) -> Optional[sqlite3.Row]:
        return conn.execute(f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,)).fetchone()

    def create(self, fields: Mapping[str, Any]) -> TaskEntity:
        task_id = new_id()
        now = _dt_to_db(utcnow())
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.title}, {_COLS.description}, {_COLS.owner},
                    {_COLS.priority}, {_COLS.status}, {_COLS.due_date}, {_COLS.reminder_date},
                    {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task_id,
                    fields["title"],
                    fields.get("description") or "",
                    fields["owner"],
                    fields.get("priority") or Priority.MEDIUM.value,
                    fields.get("status") or Status.PENDING.value,
                    _dt_to_db(fields.get("due_date")),
                    _dt_to_db(fields.get("reminder_date")),
                    now,
                    now,
                ),
            )
            row = self._select(conn, task_id)
            assert row is not None
            return self._row_to_entity(row)

    def get(self, task_id: str) -> Optional[TaskEntity]:
        with self._conn() as conn:
            row = self._select(conn, task_id)
            return self._row_to_entity(row) if row else None

    def update(self, task_id: str, changes: Mapping[str, Any]) -> Optional[TaskEntity]:
        assignments = []
        params: list = []
        for field in UPDATABLE_FIELDS:
            if field in changes:
                value = changes[field]
                assignments.append(f"{getattr(_COLS, field)} = ?")
                params.append(_dt_to_db(value) if field in _DATE_FIELDS else value)
        assignments.append(f"{_COLS.updated_at} = ?")
        params.append(_dt_to_db(utcnow()))

        with self._conn() as conn:
            cur = conn.execute(
                f"UPDATE {_COLS.table} SET {', '.join(assignments)} WHERE {_COLS.id} = ?",
                [*params, task_id],
            )
            if cur.rowcount == 0:
                return None
            row = self._select(conn, task_id)
            assert row is not None
            return self._row_to_entity(row)

    def delete(self, task_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,))
            return cur.rowcount > 0

    def list(self, query: ListQuery) -> List[TaskEntity]:
        clauses = [f"{_COLS.owner} = ?"]
        params: list = [query.owner]

        if query.status is not None:
            clauses.append(f"{_COLS.status} = ?")
            params.append(query.status)

        if query.priority is not None:
            clauses.append(f"{_COLS.priority} = ?")
            params.append(query.priority)

        with self._conn() as conn:
            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                WHERE {' AND '.join(clauses)}
                ORDER BY {_ORDER_BY[query.sort]}
                """,
                params,
            ).fetchall()
            return [self._row_to_entity(r) for r in rows]


class SQLiteUserRepository(_SQLiteBase, UserRepository):
    """SQLite user store; email uniqueness is enforced by the schema."""

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )

    def _row_to_entity(self, row: sqlite3.Row) -> UserEntity:
        return {
            "id": str(row["id"]),
            "name": str(row["name"]),
            "email": str(row["email"]),
            "password_hash": str(row["password_hash"]),
            "created_at": _dt_from_db(row["created_at"]),  # type: ignore
        }

    def create(self, name: str, email: str, password_hash: str) -> UserEntity:
        user_id = new_id()
        with self._conn() as conn:
            try:
                conn.execute(
                    "INSERT INTO users (id, name, email, password_hash, created_at) VALUES (?, ?, ?, ?, ?)",
                    (user_id, name, email, password_hash, _dt_to_db(utcnow())),
                )
            except sqlite3.IntegrityError as e:
                raise ConflictError("User already exists") from e
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            assert row is not None
            return self._row_to_entity(row)

    def get(self, user_id: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._row_to_entity(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
            return self._row_to_entity(row) if row else None
