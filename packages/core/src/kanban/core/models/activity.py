"""LogEntry Domain Model -- 任务活动日志条目

activity_log 是任务的审计轨迹：只追加，不修改、不删除、不重排。
插入顺序即时间顺序。
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from ulid import ULID

from .enums import LogEntryType


class LogEntry(BaseModel):
    """活动日志条目（写入后不可变）"""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(description="唯一标识，ULID 格式")
    timestamp: datetime = Field(description="写入时间")
    type: str = Field(description="条目类型，开放集合")
    message: str = Field(default="", description="可读消息")
    details: dict[str, Any] = Field(default_factory=dict, description="结构化详情")

    @property
    def kind(self) -> LogEntryType:
        """已知类型归类，未知类型返回 LogEntryType.OTHER"""
        return LogEntryType.classify(self.type)


def new_log_entry(
    entry_type: str,
    message: str,
    details: dict[str, Any] | None = None,
    ts: datetime | None = None,
) -> LogEntry:
    """创建一条新的活动日志条目"""
    return LogEntry(
        entry_id=str(ULID()),
        timestamp=ts or datetime.now(UTC),
        type=str(entry_type),
        message=message,
        details=details or {},
    )
