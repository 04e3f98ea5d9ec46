"""任务写入事务封装

每个写操作在同一 SQLite 事务内完成并提交；失败时回滚后原样抛出，
存储层异常不在此处吞掉或重试。
"""

from typing import Any

import aiosqlite

from ..models.task import Task
from .task_store import SqliteTaskStore


async def commit_new_task(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    task: Task,
) -> None:
    """插入任务（含初始 created 日志）并提交"""
    try:
        await task_store.insert_task(task)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def commit_task_fields(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    task_id: str,
    expected_version: int,
    fields: dict[str, Any],
) -> None:
    """在同一事务内写入任务字段（activity_log / status / review_state 等）并提交

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        task_store: TaskStore 实例
        task_id: 任务 ID
        expected_version: 读取时的版本号，用于乐观锁检查
        fields: 列名 -> 新值

    Raises:
        TaskVersionConflictError: 版本号不符，事务已回滚
    """
    try:
        await task_store.write_fields(task_id, expected_version, fields)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def commit_task_delete(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    task_id: str,
) -> bool:
    """删除任务并提交"""
    try:
        deleted = await task_store.delete_task(task_id)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
    return deleted
