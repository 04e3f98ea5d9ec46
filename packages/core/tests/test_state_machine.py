"""状态机前置条件单元测试

测试内容：
1. 每个受保护流转只在唯一的前置状态下通过
2. 流转目标状态
3. 评审流程参数与状态机映射一致
"""

import pytest
from kanban.core.models.enums import (
    GUARDED_TRANSITIONS,
    TaskStatus,
    TransitionKind,
    validate_transition,
)
from kanban.core.review import PLAN_REVIEW, TASK_REVIEW


class TestGuardedTransitions:
    """受保护流转验证"""

    @pytest.mark.parametrize(
        "kind,required",
        [
            (TransitionKind.PICK, TaskStatus.READY),
            (TransitionKind.COMPLETE, TaskStatus.IN_PROGRESS),
            (TransitionKind.REVIEW, TaskStatus.REVIEW),
            (TransitionKind.PLAN_REVIEW, TaskStatus.PLANNED),
        ],
    )
    def test_only_required_status_passes(self, kind: TransitionKind, required: TaskStatus):
        """只有要求的前置状态通过，其余状态全部拒绝"""
        for status in TaskStatus:
            assert validate_transition(kind, status) is (status == required), (
                f"{kind} from {status}"
            )

    @pytest.mark.parametrize(
        "kind,target",
        [
            (TransitionKind.PICK, TaskStatus.IN_PROGRESS),
            (TransitionKind.COMPLETE, TaskStatus.REVIEW),
            (TransitionKind.REVIEW, TaskStatus.DONE),
            (TransitionKind.PLAN_REVIEW, TaskStatus.READY),
        ],
    )
    def test_target_status(self, kind: TransitionKind, target: TaskStatus):
        assert GUARDED_TRANSITIONS[kind][1] == target

    def test_blocked_is_never_a_guarded_source_or_target(self):
        """blocked 只能通过直接状态更新进入或离开"""
        for required, target in GUARDED_TRANSITIONS.values():
            assert TaskStatus.BLOCKED not in (required, target)

    def test_done_cannot_be_picked(self):
        assert validate_transition(TransitionKind.PICK, TaskStatus.DONE) is False


class TestReviewFlows:
    def test_task_review_flow(self):
        assert TASK_REVIEW.source_status == TaskStatus.REVIEW
        assert TASK_REVIEW.target_status == TaskStatus.DONE
        assert TASK_REVIEW.sets_completed_at is True

    def test_plan_review_flow(self):
        assert PLAN_REVIEW.source_status == TaskStatus.PLANNED
        assert PLAN_REVIEW.target_status == TaskStatus.READY
        assert PLAN_REVIEW.sets_completed_at is False
