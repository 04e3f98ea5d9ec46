"""Kanban Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .activity import LogEntry, new_log_entry
from .commands import (
    CriterionInput,
    LogEntryInput,
    ReviewSubmission,
    ScheduleData,
    TaskCreate,
    TaskPatch,
)
from .enums import (
    GUARDED_TRANSITIONS,
    CriterionStatus,
    LogEntryType,
    ReviewType,
    TaskStatus,
    TransitionKind,
    validate_transition,
)
from .payloads import (
    ReviewSubmittedPayload,
    ScheduledPayload,
    StatusChangePayload,
    TaskCreatedPayload,
    UnscheduledPayload,
)
from .results import ReviewResult, TransitionError
from .review import CriterionReview, ReviewState
from .scope import SYSTEM_SCOPE, Scope, SystemScope, UserScope, owner_of
from .task import Task

__all__ = [
    # 枚举
    "TaskStatus",
    "TransitionKind",
    "LogEntryType",
    "CriterionStatus",
    "ReviewType",
    # 状态机
    "GUARDED_TRANSITIONS",
    "validate_transition",
    # Task
    "Task",
    "LogEntry",
    "new_log_entry",
    "ReviewState",
    "CriterionReview",
    # 作用域
    "Scope",
    "UserScope",
    "SystemScope",
    "SYSTEM_SCOPE",
    "owner_of",
    # 输入
    "TaskCreate",
    "TaskPatch",
    "LogEntryInput",
    "ScheduleData",
    "CriterionInput",
    "ReviewSubmission",
    # 结果
    "TransitionError",
    "ReviewResult",
    # Payloads
    "TaskCreatedPayload",
    "StatusChangePayload",
    "ReviewSubmittedPayload",
    "ScheduledPayload",
    "UnscheduledPayload",
]
