"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、任务默认值、备注拼接分隔符等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("KANBAN_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "KANBAN_DB_PATH",
        str(_get_base_dir() / "sqlite" / "kanban.db"),
    )


# 新建任务默认优先级（1 最高，5 最低）
DEFAULT_PRIORITY: int = 3

MIN_PRIORITY: int = 1
MAX_PRIORITY: int = 5

# complete 时追加备注使用的分隔符
NOTES_SEPARATOR: str = "\n\n---\n\n"

# SQLite busy_timeout（毫秒）
SQLITE_BUSY_TIMEOUT_MS: int = int(
    os.environ.get("KANBAN_SQLITE_BUSY_TIMEOUT_MS", "5000")
)
