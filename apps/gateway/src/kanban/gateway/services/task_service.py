"""TaskService -- 任务状态机与活动日志

所有写操作遵循同一流程：
1. 获取 task 级别锁（序列化同一任务的读-改-写）
2. 按作用域读取任务，检查前置状态
3. 计算新字段与追加的日志条目
4. 单事务按乐观锁写入
5. 从存储重新读取并返回（不信任内存中的修改结果）

受保护流转（pick / complete / review / plan review）的预期失败以
TransitionError 返回；存储层异常直接向上传播。
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime
from typing import Any

import structlog
from kanban.core.config import DEFAULT_PRIORITY, NOTES_SEPARATOR
from kanban.core.models import (
    GUARDED_TRANSITIONS,
    SYSTEM_SCOPE,
    LogEntry,
    LogEntryType,
    ReviewResult,
    ReviewSubmission,
    ScheduleData,
    ScheduledPayload,
    StatusChangePayload,
    SystemScope,
    Task,
    TaskCreate,
    TaskCreatedPayload,
    TaskPatch,
    TaskStatus,
    TransitionError,
    TransitionKind,
    UnscheduledPayload,
    UserScope,
    new_log_entry,
    owner_of,
    validate_transition,
)
from kanban.core.review import PLAN_REVIEW, TASK_REVIEW, ReviewFlow, evaluate_review
from kanban.core.store import (
    StoreError,
    StoreGroup,
    commit_new_task,
    commit_task_delete,
    commit_task_fields,
)
from ulid import ULID

log = structlog.get_logger()

# TaskPatch 中会落库的字段
_PATCHABLE_FIELDS = (
    "title",
    "description",
    "acceptance_criteria",
    "status",
    "priority",
    "context_links",
    "notes",
    "session_id",
    "review_state",
    "completed_at",
)

# 显式传 None 时写入 NULL 的字段；其余字段的 None 视为未设置
_NULLABLE_FIELDS = frozenset({"session_id", "review_state", "completed_at"})

_STATUS_REASON_MARKERS: dict[TaskStatus, tuple[LogEntryType, str]] = {
    TaskStatus.BLOCKED: (LogEntryType.BLOCKED, "⛔ Blocked"),
    TaskStatus.REVIEW: (LogEntryType.REVIEW, "👀 Review"),
}

Scope = UserScope | SystemScope


def status_change_entry(
    from_status: TaskStatus,
    to_status: TaskStatus,
    reason: str | None,
    ts: datetime,
) -> LogEntry:
    """构建状态变化日志条目

    进入 blocked / review 且带原因时，条目类型改为 blocked / review，
    消息改为带标记的原因，便于按“为何阻塞/为何送审”筛选日志。
    """
    entry_type = LogEntryType.STATUS_CHANGE
    message = f'Status changed from "{from_status}" to "{to_status}"'
    marker = _STATUS_REASON_MARKERS.get(to_status)
    if marker is not None and reason:
        entry_type, prefix = marker
        message = f"{prefix}: {reason}"
    return new_log_entry(
        entry_type,
        message,
        StatusChangePayload(
            from_status=from_status,
            to_status=to_status,
            reason=reason or None,
        ).model_dump(mode="json", by_alias=True),
        ts=ts,
    )


def _invalid_state_message(action: str, current: TaskStatus, required: TaskStatus) -> str:
    return (
        f"Cannot {action} task in '{current}' status. "
        f"Task must be in '{required}' status."
    )


class TaskService:
    """任务业务服务"""

    # task_id -> (锁, 持有或等待中的协程数)；计数归零即移除
    _task_locks: dict[str, tuple[asyncio.Lock, int]] = {}

    def __init__(self, store_group: StoreGroup) -> None:
        self._stores = store_group

    # ---- 查询 ----

    async def get_all(self, scope: Scope, status: TaskStatus | None = None) -> list[Task]:
        """任务列表，按 priority 正序、created_at 倒序"""
        return await self._stores.task_store.list_tasks(
            scope, status.value if status else None
        )

    async def get_by_id(self, task_id: str, scope: Scope) -> Task | None:
        """查询单个任务；用户作用域下他人的任务视为不存在"""
        return await self._stores.task_store.get_task(task_id, scope)

    async def get_for_calendar(
        self, scope: Scope, start_date: date, end_date: date
    ) -> list[Task]:
        """日历视图：排期落在 [start_date, end_date] 内的任务"""
        return await self._stores.task_store.list_in_date_range(scope, start_date, end_date)

    async def get_scheduled(self, scope: Scope) -> list[Task]:
        return await self._stores.task_store.list_scheduled(scope)

    async def get_unscheduled(self, scope: Scope) -> list[Task]:
        return await self._stores.task_store.list_unscheduled(scope)

    # ---- 创建 / 更新 / 删除 ----

    async def create(self, data: TaskCreate, scope: Scope) -> Task:
        """创建任务，activity_log 以一条 created 条目开始"""
        now = datetime.now(UTC)
        task_id = str(ULID())
        status = data.status or TaskStatus.PLANNED
        priority = data.priority or DEFAULT_PRIORITY

        created_entry = new_log_entry(
            LogEntryType.CREATED,
            "Task created",
            TaskCreatedPayload(
                title=data.title,
                status=status,
                priority=priority,
            ).model_dump(mode="json", by_alias=True),
            ts=now,
        )
        task = Task(
            task_id=task_id,
            title=data.title,
            description=data.description,
            acceptance_criteria=data.acceptance_criteria,
            status=status,
            priority=priority,
            context_links=data.context_links,
            notes=data.notes,
            activity_log=[created_entry],
            user_id=owner_of(scope),
            created_at=now,
            updated_at=now,
        )
        await commit_new_task(self._stores.conn, self._stores.task_store, task)

        log.info(
            "task_created",
            task_id=task_id,
            status=status.value,
            priority=priority,
            scope=scope.kind,
        )
        return await self._reload(task_id)

    async def update(self, task_id: str, patch: TaskPatch, scope: Scope) -> Task | None:
        """部分更新任务

        patch 中的 status 不做前置状态检查（管理员修正用的直通路径），
        与 force_set_status 共用同一条状态变化日志规则。
        """
        async with self._task_lock(task_id):
            task = await self._stores.task_store.get_task(task_id, scope)
            if task is None:
                return None
            await self._apply_patch(task, patch, datetime.now(UTC))

        log.info(
            "task_updated",
            task_id=task_id,
            fields=sorted(patch.model_fields_set),
        )
        return await self._reload(task_id)

    async def force_set_status(
        self,
        task_id: str,
        status: TaskStatus,
        reason: str | None,
        scope: Scope,
    ) -> Task | None:
        """直接设置状态，绕过 pick / complete / review 的前置检查"""
        task = await self.update(
            task_id,
            TaskPatch(status=status, status_reason=reason),
            scope,
        )
        if task is not None:
            log.warning(
                "task_status_forced",
                task_id=task_id,
                status=status.value,
                reason=reason,
            )
        return task

    async def delete(self, task_id: str, scope: Scope) -> bool:
        """物理删除任务，不留日志"""
        async with self._task_lock(task_id):
            task = await self._stores.task_store.get_task(task_id, scope)
            if task is None:
                return False
            deleted = await commit_task_delete(
                self._stores.conn, self._stores.task_store, task_id
            )
        log.info("task_deleted", task_id=task_id)
        return deleted

    async def add_log_entry(
        self,
        task_id: str,
        entry_type: str,
        message: str,
        details: dict[str, Any] | None,
        scope: Scope,
    ) -> Task | None:
        """直接追加日志条目，不涉及状态"""
        async with self._task_lock(task_id):
            task = await self._stores.task_store.get_task(task_id, scope)
            if task is None:
                return None
            now = datetime.now(UTC)
            entry = new_log_entry(entry_type, message, details, ts=now)
            await self._write(
                task,
                {"activity_log": [*task.activity_log, entry], "updated_at": now},
            )
        return await self._reload(task_id)

    # ---- 受保护流转 ----

    async def pick(
        self, task_id: str, session_id: str | None, scope: Scope
    ) -> Task | TransitionError:
        """领取任务：ready -> in_progress"""
        async with self._task_lock(task_id):
            task = await self._stores.task_store.get_task(task_id, scope)
            if task is None:
                return TransitionError.not_found()
            rejected = self._check_guard(task, TransitionKind.PICK, "pick")
            if rejected is not None:
                return rejected

            _, target = GUARDED_TRANSITIONS[TransitionKind.PICK]
            changes: dict[str, Any] = {
                "status": target,
                "status_reason": (
                    f"Picked up by {session_id}" if session_id else "Task picked up for work"
                ),
            }
            if session_id:
                changes["session_id"] = session_id
            await self._apply_patch(task, TaskPatch(**changes), datetime.now(UTC))

        log.info("task_picked", task_id=task_id, session_id=session_id)
        return await self._reload(task_id)

    async def complete(
        self, task_id: str, notes: str | None, scope: Scope
    ) -> Task | TransitionError:
        """完成任务并送审：in_progress -> review

        completion 备注追加到已有备注之后（分隔符拼接），不覆盖历史。
        """
        async with self._task_lock(task_id):
            task = await self._stores.task_store.get_task(task_id, scope)
            if task is None:
                return TransitionError.not_found()
            rejected = self._check_guard(task, TransitionKind.COMPLETE, "complete")
            if rejected is not None:
                return rejected

            now = datetime.now(UTC)
            _, target = GUARDED_TRANSITIONS[TransitionKind.COMPLETE]
            changes: dict[str, Any] = {
                "status": target,
                "status_reason": notes or "Task completed",
                "completed_at": now,
            }
            if notes:
                changes["notes"] = (
                    f"{task.notes}{NOTES_SEPARATOR}{notes}" if task.notes else notes
                )
            await self._apply_patch(task, TaskPatch(**changes), now)

        log.info("task_completed", task_id=task_id)
        return await self._reload(task_id)

    async def submit_review(
        self, task_id: str, submission: ReviewSubmission, scope: Scope
    ) -> ReviewResult | TransitionError:
        """任务评审：全部通过时 review -> done 并写 completed_at"""
        return await self._run_review(task_id, submission, scope, TASK_REVIEW)

    async def submit_plan_review(
        self, task_id: str, submission: ReviewSubmission, scope: Scope
    ) -> ReviewResult | TransitionError:
        """计划评审：全部通过时 planned -> ready，不写 completed_at"""
        return await self._run_review(task_id, submission, scope, PLAN_REVIEW)

    # ---- 排期 ----

    async def schedule(
        self, task_id: str, data: ScheduleData, scope: Scope
    ) -> Task | None:
        """设置日历排期（与状态无关）"""
        async with self._task_lock(task_id):
            task = await self._stores.task_store.get_task(task_id, scope)
            if task is None:
                return None

            day = data.scheduled_date.isoformat()
            if data.is_all_day:
                placement = f"{day} (all day)"
            else:
                placement = f"{day} {data.scheduled_start or ''}-{data.scheduled_end or ''}"

            now = datetime.now(UTC)
            entry = new_log_entry(
                LogEntryType.SCHEDULED,
                f"Task scheduled for {placement}",
                ScheduledPayload(
                    scheduled_date=day,
                    scheduled_start=data.scheduled_start or None,
                    scheduled_end=data.scheduled_end or None,
                    is_all_day=data.is_all_day,
                ).model_dump(mode="json", by_alias=True),
                ts=now,
            )
            await self._write(
                task,
                {
                    "scheduled_date": data.scheduled_date,
                    "scheduled_start": data.scheduled_start or None,
                    "scheduled_end": data.scheduled_end or None,
                    "is_all_day": data.is_all_day,
                    "activity_log": [*task.activity_log, entry],
                    "updated_at": now,
                },
            )

        log.info("task_scheduled", task_id=task_id, scheduled_date=day)
        return await self._reload(task_id)

    async def unschedule(self, task_id: str, scope: Scope) -> Task | None:
        """清除日历排期，日志记录原排期"""
        async with self._task_lock(task_id):
            task = await self._stores.task_store.get_task(task_id, scope)
            if task is None:
                return None

            now = datetime.now(UTC)
            entry = new_log_entry(
                LogEntryType.UNSCHEDULED,
                "Task removed from calendar",
                UnscheduledPayload(
                    previous_date=(
                        task.scheduled_date.isoformat() if task.scheduled_date else None
                    ),
                    previous_start=task.scheduled_start,
                    previous_end=task.scheduled_end,
                ).model_dump(mode="json", by_alias=True),
                ts=now,
            )
            await self._write(
                task,
                {
                    "scheduled_date": None,
                    "scheduled_start": None,
                    "scheduled_end": None,
                    "is_all_day": False,
                    "activity_log": [*task.activity_log, entry],
                    "updated_at": now,
                },
            )

        log.info("task_unscheduled", task_id=task_id)
        return await self._reload(task_id)

    # ---- 内部实现 ----

    async def _run_review(
        self,
        task_id: str,
        submission: ReviewSubmission,
        scope: Scope,
        flow: ReviewFlow,
    ) -> ReviewResult | TransitionError:
        """评审共用流程，按 flow 参数区分任务评审与计划评审"""
        async with self._task_lock(task_id):
            task = await self._stores.task_store.get_task(task_id, scope)
            if task is None:
                return TransitionError.not_found()
            rejected = self._check_guard(task, flow.kind, flow.action)
            if rejected is not None:
                return rejected

            now = datetime.now(UTC)
            outcome = evaluate_review(task, submission, flow, now)
            await self._write(task, outcome.fields_to_write(task, flow, now))

        log.info(
            "review_submitted",
            task_id=task_id,
            flow=flow.kind.value,
            all_approved=outcome.all_approved,
            approved=len(outcome.approved),
            needs_work=len(outcome.needs_work),
        )
        return ReviewResult(
            task=await self._reload(task_id),
            all_approved=outcome.all_approved,
            approved=len(outcome.approved),
            needs_work=len(outcome.needs_work),
        )

    def _check_guard(
        self, task: Task, kind: TransitionKind, action: str
    ) -> TransitionError | None:
        if validate_transition(kind, task.status):
            return None
        required, _ = GUARDED_TRANSITIONS[kind]
        log.info(
            "task_transition_rejected",
            task_id=task.task_id,
            transition=kind.value,
            current_status=task.status.value,
        )
        return TransitionError.invalid_state(
            _invalid_state_message(action, task.status, required)
        )

    async def _apply_patch(self, task: Task, patch: TaskPatch, now: datetime) -> None:
        """合并 patch 并写入（调用方需持有 task 锁）"""
        provided = patch.model_fields_set
        entries: list[LogEntry] = []

        if "status" in provided and patch.status is not None and patch.status != task.status:
            entries.append(
                status_change_entry(task.status, patch.status, patch.status_reason, now)
            )

        if patch.log_entry is not None:
            entries.append(
                new_log_entry(
                    patch.log_entry.type or LogEntryType.NOTE,
                    patch.log_entry.message,
                    patch.log_entry.details,
                    ts=now,
                )
            )

        fields: dict[str, Any] = {}
        for name in _PATCHABLE_FIELDS:
            if name not in provided:
                continue
            value = getattr(patch, name)
            if value is None and name not in _NULLABLE_FIELDS:
                continue
            fields[name] = value

        # 普通字段编辑没有其他日志时记一条 update，保证可观测变化都有审计记录
        changed = sorted(
            name
            for name, value in fields.items()
            if name != "status" and getattr(task, name) != value
        )
        if changed and not entries:
            entries.append(
                new_log_entry(
                    LogEntryType.UPDATE,
                    f"Updated {', '.join(changed)}",
                    {"fields": changed},
                    ts=now,
                )
            )

        fields["activity_log"] = [*task.activity_log, *entries]
        fields["updated_at"] = now
        await self._write(task, fields)

    async def _write(self, task: Task, fields: dict[str, Any]) -> None:
        await commit_task_fields(
            self._stores.conn,
            self._stores.task_store,
            task.task_id,
            task.version,
            fields,
        )

    async def _reload(self, task_id: str) -> Task:
        """写入后从存储重新读取"""
        task = await self._stores.task_store.get_task(task_id, SYSTEM_SCOPE)
        if task is None:
            raise StoreError(f"Task {task_id} disappeared after write")
        return task

    @asynccontextmanager
    async def _task_lock(self, task_id: str) -> AsyncIterator[None]:
        """task 级别锁，序列化同一任务的读-改-写

        最后一个持有或等待的协程退出时移除该锁，
        不存在的 task_id 与已结束的任务都不会留下条目。
        """
        locks = self._task_locks
        lock, users = locks.get(task_id, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        locks[task_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            _, users = locks[task_id]
            if users <= 1:
                del locks[task_id]
            else:
                locks[task_id] = (lock, users - 1)
