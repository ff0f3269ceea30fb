from __future__ import annotations

import logging
import os
import sqlite3
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Generator, List, Optional, Tuple

from .errors import PersistenceError
from .models import TaskEntity, TaskPriority, TaskStatus
from .repositories import Repository, TaskFilter, TaskSort, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    name: str = "name"
    due_date: str = "due_date"
    status: str = "status"
    priority: str = "priority"
    is_active: str = "is_active"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()


def _in_list(values) -> str:
    return ", ".join(f"'{v.value}'" for v in values)


def _rank_case(column: str, values) -> str:
    # Enum columns sort by declaration order, not alphabetically
    whens = " ".join(f"WHEN '{v.value}' THEN {i}" for i, v in enumerate(values))
    return f"CASE {column} {whens} END"


_ORDER_EXPR = {
    "name": _COLS.name,
    "due_date": _COLS.due_date,
    "status": _rank_case(_COLS.status, TaskStatus),
    "priority": _rank_case(_COLS.priority, TaskPriority),
    "created_at": _COLS.created_at,
}


def _escape_like(s: str) -> str:
    return s.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLiteRepository(Repository):
    """
    Lightweight SQLite repository implementing the Repository interface.
    Any sqlite3.Error is raised as PersistenceError.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self, operation: str) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as e:
            logger.error("sqlite connect failed: %s", e, extra={"operation": operation})
            raise PersistenceError(operation, str(e)) from e
        conn.row_factory = sqlite3.Row
        # sqlite lower() and LIKE only fold ASCII
        conn.create_function("py_lower", 1, str.lower, deterministic=True)
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.error("sqlite error during %s: %s", operation, e, extra={"operation": operation})
            raise PersistenceError(operation, str(e)) from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn("initialize task store") as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} TEXT PRIMARY KEY,
                    {_COLS.name} TEXT NOT NULL,
                    {_COLS.due_date} TEXT NOT NULL,
                    {_COLS.status} TEXT NOT NULL DEFAULT '{TaskStatus.PENDING.value}'
                        CHECK ({_COLS.status} IN ({_in_list(TaskStatus)})),
                    {_COLS.priority} TEXT NOT NULL DEFAULT '{TaskPriority.NORMAL.value}'
                        CHECK ({_COLS.priority} IN ({_in_list(TaskPriority)})),
                    {_COLS.is_active} INTEGER NOT NULL DEFAULT 1,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
            for col in (_COLS.status, _COLS.priority, _COLS.is_active, _COLS.due_date, _COLS.created_at):
                conn.execute(
                    f"CREATE INDEX IF NOT EXISTS idx_{_COLS.table}_{col} ON {_COLS.table}({col})"
                )

    def _row_to_entity(self, row: sqlite3.Row) -> TaskEntity:
        return {
            "id": str(row[_COLS.id]),
            "name": str(row[_COLS.name]),
            "due_date": date.fromisoformat(row[_COLS.due_date]),
            "status": TaskStatus(row[_COLS.status]),
            "priority": TaskPriority(row[_COLS.priority]),
            "is_active": bool(row[_COLS.is_active]),
            "created_at": datetime.fromisoformat(row[_COLS.created_at]),
            "updated_at": datetime.fromisoformat(row[_COLS.updated_at]),
        }

    def _where(self, criteria: Optional[TaskFilter]) -> Tuple[str, list]:
        clauses = []
        params: list = []
        if criteria is None:
            return "", params

        if criteria.status is not None:
            clauses.append(f"{_COLS.status} = ?")
            params.append(criteria.status.value)
        if criteria.priority is not None:
            clauses.append(f"{_COLS.priority} = ?")
            params.append(criteria.priority.value)
        if criteria.is_active is not None:
            clauses.append(f"{_COLS.is_active} = ?")
            params.append(1 if criteria.is_active else 0)
        if criteria.name_contains:
            clauses.append(f"py_lower({_COLS.name}) LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(criteria.name_contains.lower())}%")

        where_sql = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where_sql, params

    def find_one(self, task_id: str) -> Optional[TaskEntity]:
        with self._conn("fetch task") as conn:
            row = conn.execute(f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (task_id,)).fetchone()
            return self._row_to_entity(row) if row else None

    def find_many_and_count(
        self, criteria: TaskFilter, sort: TaskSort, offset: int, limit: int
    ) -> Tuple[List[TaskEntity], int]:
        where_sql, params = self._where(criteria)
        order_sql = f"ORDER BY {_ORDER_EXPR[sort.field]} {'DESC' if sort.descending else 'ASC'}"

        with self._conn("list tasks") as conn:
            count_row = conn.execute(
                f"SELECT COUNT(*) as cnt FROM {_COLS.table} {where_sql}", params
            ).fetchone()
            total = int(count_row["cnt"]) if count_row else 0
            if offset >= total:
                return [], total

            rows = conn.execute(
                f"""
                SELECT * FROM {_COLS.table}
                {where_sql}
                {order_sql}
                LIMIT ? OFFSET ?
                """,
                [*params, max(limit, 0), max(offset, 0)],
            ).fetchall()
            return [self._row_to_entity(r) for r in rows], total

    def count(self, criteria: Optional[TaskFilter] = None) -> int:
        where_sql, params = self._where(criteria)
        with self._conn("count tasks") as conn:
            row = conn.execute(f"SELECT COUNT(*) as cnt FROM {_COLS.table} {where_sql}", params).fetchone()
            return int(row["cnt"]) if row else 0

    def save(self, task: TaskEntity) -> TaskEntity:
        stored = task.copy()
        now = utcnow()
        if stored["id"] is None:
            stored["id"] = str(uuid.uuid4())
            stored["created_at"] = now
        stored["updated_at"] = now

        with self._conn("save task") as conn:
            conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.id}, {_COLS.name}, {_COLS.due_date}, {_COLS.status},
                    {_COLS.priority}, {_COLS.is_active}, {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT({_COLS.id}) DO UPDATE SET
                    {_COLS.name} = excluded.{_COLS.name},
                    {_COLS.due_date} = excluded.{_COLS.due_date},
                    {_COLS.status} = excluded.{_COLS.status},
                    {_COLS.priority} = excluded.{_COLS.priority},
                    {_COLS.is_active} = excluded.{_COLS.is_active},
                    {_COLS.updated_at} = excluded.{_COLS.updated_at}
                """,
                (
                    stored["id"],
                    stored["name"],
                    stored["due_date"].isoformat(),
                    TaskStatus(stored["status"]).value,
                    TaskPriority(stored["priority"]).value,
                    1 if stored["is_active"] else 0,
                    stored["created_at"].isoformat(timespec="microseconds"),
                    stored["updated_at"].isoformat(timespec="microseconds"),
                ),
            )
            row = conn.execute(
                f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (stored["id"],)
            ).fetchone()
            assert row is not None
            return self._row_to_entity(row)

    def remove(self, task: TaskEntity) -> None:
        with self._conn("delete task") as conn:
            conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (task["id"],))
