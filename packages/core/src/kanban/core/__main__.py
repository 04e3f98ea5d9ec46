"""CLI 入口模块 -- python -m kanban.core <command>

支持的命令：
  init-db                 在配置的路径上初始化数据库
  list-tasks [status]     列出所有任务（系统作用域）
  show-log <task_id>      打印任务活动日志
"""

import asyncio
import sys

from .config import get_db_path

_USAGE = """用法: python -m kanban.core <command>
命令:
  init-db                 在配置的路径上初始化数据库
  list-tasks [status]     列出所有任务
  show-log <task_id>      打印任务活动日志"""


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print(_USAGE)
        sys.exit(1)

    command = sys.argv[1]
    args = sys.argv[2:]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "list-tasks":
        asyncio.run(list_tasks(args[0] if args else None))
    elif command == "show-log":
        if not args:
            print("缺少参数: <task_id>")
            sys.exit(1)
        found = asyncio.run(show_log(args[0]))
        if not found:
            sys.exit(1)
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, list-tasks, show-log")
        sys.exit(1)


async def init_database() -> None:
    """创建数据库与表结构"""
    from .store import create_store_group

    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    try:
        count = await store_group.task_store.count_tasks()
        print(f"数据库已就绪: {db_path}（{count} 个任务）")
    finally:
        await store_group.conn.close()


async def list_tasks(status: str | None) -> None:
    """按 priority / created_at 顺序打印任务"""
    from .models.scope import SYSTEM_SCOPE
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        tasks = await store_group.task_store.list_tasks(SYSTEM_SCOPE, status)
        for task in tasks:
            print(f"{task.task_id}  {task.status.value:<11}  P{task.priority}  {task.title}")
        print(f"共 {len(tasks)} 个任务")
    finally:
        await store_group.conn.close()


async def show_log(task_id: str) -> bool:
    """打印任务活动日志，任务不存在返回 False"""
    from .models.scope import SYSTEM_SCOPE
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        task = await store_group.task_store.get_task(task_id, SYSTEM_SCOPE)
        if task is None:
            print(f"任务不存在: {task_id}")
            return False
        print(f"{task.title} [{task.status.value}]")
        for entry in task.activity_log:
            print(f"- {entry.timestamp.isoformat()} [{entry.type}] {entry.message}")
        return True
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
