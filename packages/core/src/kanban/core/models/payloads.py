"""LogEntry details 子类型

各类活动日志条目的结构化 details 定义。
写入日志时以 model_dump(mode="json", by_alias=True) 的形式存入 LogEntry.details。
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field

from .enums import TaskStatus


class TaskCreatedPayload(BaseModel):
    """created 条目 details"""

    title: str
    status: TaskStatus
    priority: int


class StatusChangePayload(BaseModel):
    """status_change / blocked / review 条目 details"""

    from_status: TaskStatus = Field(
        serialization_alias="from",
        validation_alias=AliasChoices("from", "from_status"),
    )
    to_status: TaskStatus = Field(
        serialization_alias="to",
        validation_alias=AliasChoices("to", "to_status"),
    )
    reason: str | None = Field(default=None)


class ReviewSubmittedPayload(BaseModel):
    """review_submitted / plan_review_submitted 条目 details"""

    approved: int = Field(description="通过条数")
    needs_work: int = Field(description="需返工条数（仅计入带评论的条目）")
    general_comment: str | None = Field(default=None)
    criteria: list[dict[str, Any]] = Field(
        default_factory=list,
        description="本次提交的原始逐条结果",
    )


class ScheduledPayload(BaseModel):
    """scheduled 条目 details"""

    scheduled_date: str
    scheduled_start: str | None = None
    scheduled_end: str | None = None
    is_all_day: bool = False


class UnscheduledPayload(BaseModel):
    """unscheduled 条目 details"""

    previous_date: str | None = None
    previous_start: str | None = None
    previous_end: str | None = None
