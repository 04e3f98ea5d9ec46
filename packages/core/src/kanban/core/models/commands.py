"""TaskService 输入模型

create / update / add_log_entry / schedule / review 的入参。
这里只描述形状，取值合法性（标题非空、优先级范围等）由 HTTP 层校验。
"""

from datetime import date, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from .enums import CriterionStatus, LogEntryType, TaskStatus
from .review import ReviewState


class TaskCreate(BaseModel):
    """创建任务"""

    title: str
    description: str = ""
    acceptance_criteria: list[str] = Field(default_factory=list)
    status: TaskStatus | None = None
    priority: int | None = None
    context_links: list[str] = Field(default_factory=list)
    notes: str = ""


class LogEntryInput(BaseModel):
    """调用方直接附加的自由日志条目"""

    type: str = Field(default=LogEntryType.NOTE.value)
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class TaskPatch(BaseModel):
    """部分更新 -- 只有显式设置的字段会被写入（model_fields_set）"""

    title: str | None = None
    description: str | None = None
    acceptance_criteria: list[str] | None = None
    status: TaskStatus | None = None
    priority: int | None = None
    context_links: list[str] | None = None
    notes: str | None = None
    session_id: str | None = None
    review_state: ReviewState | None = None
    completed_at: datetime | None = None

    # 不落库的控制字段
    status_reason: str | None = None
    log_entry: LogEntryInput | None = None


class ScheduleData(BaseModel):
    """日历排期"""

    scheduled_date: date
    scheduled_start: str | None = None
    scheduled_end: str | None = None
    is_all_day: bool = False


class CriterionInput(BaseModel):
    """单条评审输入"""

    index: int
    status: CriterionStatus
    comment: str | None = None


class ReviewSubmission(BaseModel):
    """评审提交"""

    criteria: list[CriterionInput]
    general_comment: str | None = Field(
        default=None,
        validation_alias=AliasChoices("general_comment", "generalComment"),
    )
