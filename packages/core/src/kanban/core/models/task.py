"""Task Domain Model

tasks 表的一行即一个 Task。activity_log / review_state 等结构化字段
以 JSON 文本持久化，每次读取时反序列化。
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from ..config import DEFAULT_PRIORITY
from .activity import LogEntry
from .enums import TaskStatus
from .review import ReviewState


class Task(BaseModel):
    """Task 数据模型"""

    task_id: str = Field(description="唯一标识，ULID 格式")
    title: str = Field(description="任务标题")
    description: str = Field(default="", description="描述（Markdown）")
    acceptance_criteria: list[str] = Field(
        default_factory=list,
        description="验收标准，下标即评审时的标识",
    )
    status: TaskStatus = Field(default=TaskStatus.PLANNED, description="当前状态")
    priority: int = Field(default=DEFAULT_PRIORITY, description="优先级，1 最高")
    context_links: list[str] = Field(default_factory=list, description="相关链接")
    notes: str = Field(default="", description="备注")
    activity_log: list[LogEntry] = Field(
        default_factory=list,
        description="活动日志，只追加",
    )
    review_state: ReviewState | None = Field(default=None, description="最近一次评审结果")
    user_id: str | None = Field(default=None, description="owner，None 表示系统创建")
    session_id: str | None = Field(default=None, description="领取任务的会话")
    scheduled_date: date | None = Field(default=None)
    scheduled_start: str | None = Field(default=None, description="HH:MM")
    scheduled_end: str | None = Field(default=None, description="HH:MM")
    is_all_day: bool = Field(default=False)
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    completed_at: datetime | None = Field(default=None, description="完成时间")
    version: int = Field(default=1, description="乐观锁版本号，每次写入 +1")
