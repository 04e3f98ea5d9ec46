"""流转操作结果类型

pick / complete / review 的预期失败（任务不存在、状态不符）以
TransitionError 返回而不是抛异常；存储层异常照常向上传播。
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .task import Task


class TransitionError(BaseModel):
    """流转失败结果"""

    error: str
    status: Literal[400, 404]

    @classmethod
    def not_found(cls) -> "TransitionError":
        return cls(error="Task not found", status=404)

    @classmethod
    def invalid_state(cls, message: str) -> "TransitionError":
        return cls(error=message, status=400)


class ReviewResult(BaseModel):
    """评审提交结果 -- 对外键名 allApproved / needsWork"""

    model_config = ConfigDict(populate_by_name=True)

    task: Task
    all_approved: bool = Field(alias="allApproved")
    approved: int
    needs_work: int = Field(alias="needsWork")
