"""任务 CRUD 路由

GET    /api/tasks            任务列表，支持 status 筛选
POST   /api/tasks            创建任务
GET    /api/tasks/{task_id}  任务详情（含 activity_log / review_state）
PATCH  /api/tasks/{task_id}  部分更新（可带 status_reason / log_entry）
DELETE /api/tasks/{task_id}  删除任务
POST   /api/tasks/{task_id}/log  追加活动日志
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from kanban.core.config import MAX_PRIORITY, MIN_PRIORITY
from kanban.core.models import (
    LogEntryInput,
    LogEntryType,
    Task,
    TaskCreate,
    TaskPatch,
    TaskStatus,
)
from pydantic import BaseModel, Field, StringConstraints

from ..deps import get_scope, get_task_service
from ..errors import task_not_found
from ..services.task_service import TaskService

router = APIRouter()

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Priority = Annotated[int, Field(ge=MIN_PRIORITY, le=MAX_PRIORITY)]


class CreateTaskRequest(BaseModel):
    """创建任务请求体"""

    title: NonEmptyStr
    description: str = ""
    acceptance_criteria: list[str] = Field(default_factory=list)
    status: TaskStatus | None = None
    priority: Priority | None = None
    context_links: list[str] = Field(default_factory=list)
    notes: str = ""


class UpdateTaskRequest(BaseModel):
    """部分更新请求体 -- 未出现的字段保持不变"""

    title: NonEmptyStr | None = None
    description: str | None = None
    acceptance_criteria: list[str] | None = None
    status: TaskStatus | None = None
    priority: Priority | None = None
    context_links: list[str] | None = None
    notes: str | None = None
    session_id: str | None = None
    status_reason: str | None = None
    log_entry: LogEntryInput | None = None


class AddLogRequest(BaseModel):
    """追加日志请求体"""

    type: NonEmptyStr = LogEntryType.NOTE.value
    message: NonEmptyStr
    details: dict[str, Any] = Field(default_factory=dict)


class TaskResponse(BaseModel):
    task: Task


class TaskListResponse(BaseModel):
    tasks: list[Task]


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="按状态筛选"),
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    """查询任务列表，按 priority 正序、created_at 倒序"""
    tasks = await service.get_all(scope, status)
    return TaskListResponse(tasks=tasks)


@router.post("/api/tasks", status_code=201, response_model=TaskResponse)
async def create_task(
    body: CreateTaskRequest,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    """创建任务，默认 planned / priority 3"""
    task = await service.create(TaskCreate(**body.model_dump()), scope)
    return TaskResponse(task=task)


@router.get("/api/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    task = await service.get_by_id(task_id, scope)
    if task is None:
        return task_not_found(task_id)
    return TaskResponse(task=task)


@router.patch("/api/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    body: UpdateTaskRequest,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    """部分更新任务；status 变化会写入状态变化日志"""
    patch = TaskPatch(**body.model_dump(exclude_unset=True))
    task = await service.update(task_id, patch, scope)
    if task is None:
        return task_not_found(task_id)
    return TaskResponse(task=task)


@router.delete("/api/tasks/{task_id}")
async def delete_task(
    task_id: str,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    deleted = await service.delete(task_id, scope)
    if not deleted:
        return task_not_found(task_id)
    return {"success": True, "message": "Task deleted"}


@router.post("/api/tasks/{task_id}/log", response_model=TaskResponse)
async def add_log_entry(
    task_id: str,
    body: AddLogRequest,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    """直接追加活动日志条目"""
    task = await service.add_log_entry(
        task_id, body.type, body.message, body.details, scope
    )
    if task is None:
        return task_not_found(task_id)
    return TaskResponse(task=task)
