"""枚举定义 -- 任务状态机与活动日志类型

包含 TaskStatus 状态机、LogEntryType、CriterionStatus、ReviewType 枚举，
以及 GUARDED_TRANSITIONS 受保护流转映射。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 状态机

    planned -> ready -> in_progress -> review -> done，
    blocked 仅能通过直接状态更新进入。
    """

    PLANNED = "planned"
    READY = "ready"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    REVIEW = "review"
    DONE = "done"


class TransitionKind(StrEnum):
    """带前置状态检查的流转操作"""

    PICK = "pick"
    COMPLETE = "complete"
    REVIEW = "review"
    PLAN_REVIEW = "plan_review"


# 受保护流转：操作 -> (要求的当前状态, 成功后的目标状态)
# 其余状态变化均走 force_set_status，不做前置检查
GUARDED_TRANSITIONS: dict[TransitionKind, tuple[TaskStatus, TaskStatus]] = {
    TransitionKind.PICK: (TaskStatus.READY, TaskStatus.IN_PROGRESS),
    TransitionKind.COMPLETE: (TaskStatus.IN_PROGRESS, TaskStatus.REVIEW),
    TransitionKind.REVIEW: (TaskStatus.REVIEW, TaskStatus.DONE),
    TransitionKind.PLAN_REVIEW: (TaskStatus.PLANNED, TaskStatus.READY),
}


class LogEntryType(StrEnum):
    """活动日志条目类型

    日志 type 字段是开放集合，未知类型统一归类为 OTHER，
    原始字符串仍保留在 LogEntry.type 中。
    """

    CREATED = "created"
    STATUS_CHANGE = "status_change"
    UPDATE = "update"
    NOTE = "note"
    BLOCKED = "blocked"
    REVIEW = "review"
    REVIEW_SUBMITTED = "review_submitted"
    PLAN_REVIEW_SUBMITTED = "plan_review_submitted"
    SCHEDULED = "scheduled"
    UNSCHEDULED = "unscheduled"
    OTHER = "other"

    @classmethod
    def classify(cls, value: str) -> "LogEntryType":
        """将任意 type 字符串归类为已知类型或 OTHER"""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class CriterionStatus(StrEnum):
    """验收标准评审结果"""

    APPROVED = "approved"
    NEEDS_WORK = "needs_work"


class ReviewType(StrEnum):
    """评审类型（任务评审的 review_state 不带类型标记）"""

    PLAN = "plan"


def validate_transition(kind: TransitionKind, current: TaskStatus) -> bool:
    """验证受保护流转的前置状态

    Args:
        kind: 流转操作
        current: 任务当前状态

    Returns:
        True 如果当前状态满足前置条件，否则 False
    """
    required, _ = GUARDED_TRANSITIONS[kind]
    return current == required
