"""ReviewState Domain Model -- 最近一次评审的逐条结果

每次提交评审都整体覆盖 review_state（不与之前的结果合并），
未在本次提交中出现的条目会被丢弃。

序列化（落库与 API 输出）使用 lastReviewAt / reviewType / reviewedAt 键名，
读取时两种写法都接受。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_serializer

from .enums import CriterionStatus, ReviewType


class CriterionReview(BaseModel):
    """单条验收标准的评审结果"""

    model_config = ConfigDict(populate_by_name=True)

    status: CriterionStatus
    comment: str | None = Field(default=None)
    reviewed_at: datetime = Field(alias="reviewedAt")


class ReviewState(BaseModel):
    """任务评审状态"""

    model_config = ConfigDict(populate_by_name=True)

    last_review_at: datetime = Field(alias="lastReviewAt", description="最近一次评审时间")
    review_type: ReviewType | None = Field(
        default=None,
        alias="reviewType",
        description="plan 表示计划评审，None 表示任务评审",
    )
    criteria: dict[int, CriterionReview] = Field(
        default_factory=dict,
        description="验收标准下标 -> 评审结果",
    )

    @model_serializer(mode="wrap")
    def _omit_task_review_type(self, handler):
        # 任务评审不写 reviewType 键
        data = handler(self)
        for key in ("reviewType", "review_type"):
            if key in data and data[key] is None:
                del data[key]
        return data
