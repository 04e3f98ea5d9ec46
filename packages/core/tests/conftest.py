"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio
from kanban.core.models import Task, TaskStatus, new_log_entry


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def core_db(core_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """核心层已初始化数据库连接"""
    from kanban.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(core_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest.fixture
def make_task():
    """构造内存中的 Task（带一条 created 日志）"""

    def _make(
        task_id: str = "01JTASK0000000000000000001",
        status: TaskStatus = TaskStatus.PLANNED,
        criteria: list[str] | None = None,
        **overrides,
    ) -> Task:
        now = overrides.pop("now", datetime.now(UTC))
        return Task(
            task_id=task_id,
            title=overrides.pop("title", "测试任务"),
            status=status,
            acceptance_criteria=criteria if criteria is not None else [],
            activity_log=[new_log_entry("created", "Task created", ts=now)],
            created_at=now,
            updated_at=now,
            **overrides,
        )

    return _make
