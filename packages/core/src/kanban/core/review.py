"""评审聚合模块 -- 任务评审 / 计划评审的共用算法

submit_review 与 submit_plan_review 只在四个参数上不同：
前置状态、目标状态、未知条目的占位标签前缀、是否写 completed_at。
两者都由 ReviewFlow 参数化，聚合逻辑只在 evaluate_review 中实现一次。
本模块是纯函数，不接触数据库。
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .models.activity import LogEntry, new_log_entry
from .models.commands import CriterionInput, ReviewSubmission
from .models.enums import (
    GUARDED_TRANSITIONS,
    CriterionStatus,
    LogEntryType,
    ReviewType,
    TaskStatus,
    TransitionKind,
)
from .models.payloads import ReviewSubmittedPayload, StatusChangePayload
from .models.review import CriterionReview, ReviewState
from .models.task import Task


@dataclass(frozen=True)
class ReviewFlow:
    """评审流程参数"""

    kind: TransitionKind
    action: str
    label_prefix: str
    sets_completed_at: bool
    entry_type: LogEntryType
    header: str
    approval_message: str
    review_type: ReviewType | None = None

    @property
    def source_status(self) -> TaskStatus:
        return GUARDED_TRANSITIONS[self.kind][0]

    @property
    def target_status(self) -> TaskStatus:
        return GUARDED_TRANSITIONS[self.kind][1]


TASK_REVIEW = ReviewFlow(
    kind=TransitionKind.REVIEW,
    action="submit review for",
    label_prefix="Criterion",
    sets_completed_at=True,
    entry_type=LogEntryType.REVIEW_SUBMITTED,
    header="📋 Review submitted:",
    approval_message="✅ All criteria approved. Task complete!",
)

PLAN_REVIEW = ReviewFlow(
    kind=TransitionKind.PLAN_REVIEW,
    action="submit plan review for",
    label_prefix="Plan item",
    sets_completed_at=False,
    entry_type=LogEntryType.PLAN_REVIEW_SUBMITTED,
    header="📝 Plan review submitted:",
    approval_message="✅ Plan approved! Ready for development.",
    review_type=ReviewType.PLAN,
)


@dataclass
class ReviewOutcome:
    """一次评审提交的计算结果"""

    approved: list[str]
    needs_work: list[tuple[str, str]]
    all_approved: bool
    review_state: ReviewState
    entries: list[LogEntry] = field(default_factory=list)

    def fields_to_write(self, task: Task, flow: ReviewFlow, now: datetime) -> dict[str, Any]:
        """生成需要在同一条 UPDATE 中写入的字段"""
        fields: dict[str, Any] = {
            "activity_log": [*task.activity_log, *self.entries],
            "review_state": self.review_state,
            "updated_at": now,
        }
        if self.all_approved:
            fields["status"] = flow.target_status
            if flow.sets_completed_at:
                fields["completed_at"] = now
        return fields


def criterion_label(task: Task, index: int, prefix: str) -> str:
    """解析验收标准文本；越界或空文本退化为 "<prefix> <index>" 占位标签"""
    if 0 <= index < len(task.acceptance_criteria):
        text = task.acceptance_criteria[index]
        if text:
            return text
    return f"{prefix} {index}"


def render_review_message(
    header: str,
    approved: list[str],
    needs_work: list[tuple[str, str]],
    general_comment: str | None,
) -> str:
    """渲染评审摘要日志消息"""
    message = f"{header}\n"
    if approved:
        message += f"\n✅ Approved ({len(approved)}):\n"
        for text in approved:
            message += f"  • {text}\n"
    if needs_work:
        message += f"\n❌ Needs work ({len(needs_work)}):\n"
        for text, comment in needs_work:
            message += f'  • {text}: "{comment}"\n'
    if general_comment:
        message += f"\n💬 Additional comments:\n{general_comment}\n"
    return message.strip()


def is_all_approved(task: Task, criteria: list[CriterionInput]) -> bool:
    """条数与验收标准总数一致且全部 approved 才视为通过"""
    return len(criteria) == len(task.acceptance_criteria) and all(
        c.status == CriterionStatus.APPROVED for c in criteria
    )


def evaluate_review(
    task: Task,
    submission: ReviewSubmission,
    flow: ReviewFlow,
    now: datetime,
) -> ReviewOutcome:
    """计算评审结果：分组、摘要日志、覆盖式 review_state、是否全部通过

    needs_work 条目没有非空评论时不计入需返工列表，
    但仍会使 all_approved 为 False。
    """
    approved: list[str] = []
    needs_work: list[tuple[str, str]] = []
    for criterion in submission.criteria:
        text = criterion_label(task, criterion.index, flow.label_prefix)
        if criterion.status == CriterionStatus.APPROVED:
            approved.append(text)
        elif criterion.status == CriterionStatus.NEEDS_WORK and criterion.comment:
            needs_work.append((text, criterion.comment))

    summary = new_log_entry(
        flow.entry_type,
        render_review_message(
            flow.header, approved, needs_work, submission.general_comment
        ),
        ReviewSubmittedPayload(
            approved=len(approved),
            needs_work=len(needs_work),
            general_comment=submission.general_comment or None,
            criteria=[c.model_dump(mode="json") for c in submission.criteria],
        ).model_dump(mode="json", by_alias=True),
        ts=now,
    )

    # 只由本次提交构建，之前评审过但未重新提交的条目被丢弃
    review_state = ReviewState(
        last_review_at=now,
        review_type=flow.review_type,
        criteria={
            c.index: CriterionReview(
                status=c.status,
                comment=c.comment or None,
                reviewed_at=now,
            )
            for c in submission.criteria
        },
    )

    all_approved = is_all_approved(task, submission.criteria)
    entries = [summary]
    if all_approved:
        entries.append(
            new_log_entry(
                LogEntryType.STATUS_CHANGE,
                flow.approval_message,
                StatusChangePayload(
                    from_status=flow.source_status,
                    to_status=flow.target_status,
                ).model_dump(mode="json", by_alias=True),
                ts=now,
            )
        )

    return ReviewOutcome(
        approved=approved,
        needs_work=needs_work,
        all_approved=all_approved,
        review_state=review_state,
        entries=entries,
    )
