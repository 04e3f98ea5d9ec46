"""TaskStore SQLite 实现

只负责行级读写和 JSON 字段编解码；状态流转规则在 TaskService 中实现。
写入方法不自动提交事务，需由调用方（transaction 模块）管理。
"""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any

import aiosqlite

from ..models.activity import LogEntry
from ..models.review import ReviewState
from ..models.scope import SystemScope, UserScope, owner_of
from ..models.task import Task
from .exceptions import TaskVersionConflictError

_COLUMNS = (
    "task_id",
    "title",
    "description",
    "acceptance_criteria",
    "status",
    "priority",
    "context_links",
    "notes",
    "activity_log",
    "review_state",
    "user_id",
    "session_id",
    "scheduled_date",
    "scheduled_start",
    "scheduled_end",
    "is_all_day",
    "created_at",
    "updated_at",
    "completed_at",
    "version",
)

_SELECT = f"SELECT {', '.join(_COLUMNS)} FROM tasks"

# 可通过 write_fields 更新的列（task_id / user_id / created_at / version 除外）
_WRITABLE_COLUMNS = frozenset(_COLUMNS) - {"task_id", "user_id", "created_at", "version"}

_JSON_LIST_COLUMNS = frozenset({"acceptance_criteria", "context_links"})


def _encode(column: str, value: Any) -> Any:
    """将 Python 值编码为 SQLite 列值"""
    if column in _JSON_LIST_COLUMNS:
        return json.dumps(list(value or []), ensure_ascii=False)
    if column == "activity_log":
        return json.dumps(
            [entry.model_dump(mode="json") for entry in value],
            ensure_ascii=False,
        )
    if column == "review_state":
        return value.model_dump_json(by_alias=True) if value is not None else "{}"
    if column == "is_all_day":
        return 1 if value else 0
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def insert_task(self, task: Task) -> None:
        """插入任务记录"""
        values = [_encode(column, getattr(task, column)) for column in _COLUMNS]
        placeholders = ", ".join("?" for _ in _COLUMNS)
        await self._conn.execute(
            f"INSERT INTO tasks ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            values,
        )

    async def get_task(
        self,
        task_id: str,
        scope: UserScope | SystemScope,
    ) -> Task | None:
        """根据 task_id 查询任务，用户作用域下只返回本人的任务"""
        sql = f"{_SELECT} WHERE task_id = ?"
        params: list[Any] = [task_id]
        owner = owner_of(scope)
        if owner is not None:
            sql += " AND user_id = ?"
            params.append(owner)
        cursor = await self._conn.execute(sql, params)
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(
        self,
        scope: UserScope | SystemScope,
        status: str | None = None,
    ) -> list[Task]:
        """查询任务列表，按 priority 正序、created_at 倒序"""
        conditions: list[str] = []
        params: list[Any] = []
        if status:
            conditions.append("status = ?")
            params.append(status)
        return await self._select(
            scope,
            conditions,
            params,
            "priority ASC, created_at DESC",
        )

    async def list_in_date_range(
        self,
        scope: UserScope | SystemScope,
        start_date: date,
        end_date: date,
    ) -> list[Task]:
        """查询排期落在 [start_date, end_date] 内的任务"""
        return await self._select(
            scope,
            [
                "scheduled_date IS NOT NULL",
                "scheduled_date >= ?",
                "scheduled_date <= ?",
            ],
            [start_date.isoformat(), end_date.isoformat()],
            "scheduled_date ASC, scheduled_start ASC, priority ASC",
        )

    async def list_scheduled(self, scope: UserScope | SystemScope) -> list[Task]:
        """查询所有已排期任务"""
        return await self._select(
            scope,
            ["scheduled_date IS NOT NULL"],
            [],
            "scheduled_date ASC, scheduled_start ASC",
        )

    async def list_unscheduled(self, scope: UserScope | SystemScope) -> list[Task]:
        """查询未排期且未完成的任务"""
        return await self._select(
            scope,
            ["scheduled_date IS NULL", "status != 'done'"],
            [],
            "priority ASC, created_at DESC",
        )

    async def write_fields(
        self,
        task_id: str,
        expected_version: int,
        fields: dict[str, Any],
    ) -> None:
        """按乐观锁写入字段，版本号 +1

        Raises:
            TaskVersionConflictError: 任务版本已被推进（或任务已删除）
            ValueError: 包含不可写的列
        """
        unknown = set(fields) - _WRITABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unwritable task columns: {sorted(unknown)}")

        assignments = [f"{column} = ?" for column in fields]
        values = [_encode(column, value) for column, value in fields.items()]
        assignments.append("version = version + 1")

        cursor = await self._conn.execute(
            f"UPDATE tasks SET {', '.join(assignments)} WHERE task_id = ? AND version = ?",
            (*values, task_id, expected_version),
        )
        if cursor.rowcount == 0:
            raise TaskVersionConflictError(task_id, expected_version)

    async def delete_task(self, task_id: str) -> bool:
        """物理删除任务"""
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        return cursor.rowcount > 0

    async def count_tasks(self) -> int:
        cursor = await self._conn.execute("SELECT COUNT(*) FROM tasks")
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def _select(
        self,
        scope: UserScope | SystemScope,
        conditions: list[str],
        params: list[Any],
        order_by: str,
    ) -> list[Task]:
        owner = owner_of(scope)
        if owner is not None:
            conditions = [*conditions, "user_id = ?"]
            params = [*params, owner]
        sql = _SELECT
        if conditions:
            sql += " WHERE " + " AND ".join(conditions)
        sql += f" ORDER BY {order_by}"
        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        data = dict(zip(_COLUMNS, tuple(row), strict=True))
        review_data = json.loads(data["review_state"] or "{}")
        return Task(
            task_id=data["task_id"],
            title=data["title"],
            description=data["description"] or "",
            acceptance_criteria=json.loads(data["acceptance_criteria"] or "[]"),
            status=data["status"],
            priority=data["priority"],
            context_links=json.loads(data["context_links"] or "[]"),
            notes=data["notes"] or "",
            activity_log=[
                LogEntry(**entry) for entry in json.loads(data["activity_log"] or "[]")
            ],
            review_state=ReviewState(**review_data) if review_data else None,
            user_id=data["user_id"],
            session_id=data["session_id"],
            scheduled_date=data["scheduled_date"],
            scheduled_start=data["scheduled_start"],
            scheduled_end=data["scheduled_end"],
            is_all_day=bool(data["is_all_day"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            completed_at=(
                datetime.fromisoformat(data["completed_at"])
                if data["completed_at"]
                else None
            ),
            version=data["version"],
        )
