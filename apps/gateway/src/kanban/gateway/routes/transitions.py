"""任务流转路由

POST /api/tasks/{task_id}/pick         领取任务（ready -> in_progress）
POST /api/tasks/{task_id}/complete     完成送审（in_progress -> review）
POST /api/tasks/{task_id}/review       任务评审（全部通过 review -> done）
POST /api/tasks/{task_id}/plan-review  计划评审（全部通过 planned -> ready）
POST /api/tasks/{task_id}/status       直接设置状态（不检查前置状态）

- 200: 成功
- 400: 当前状态不满足前置条件（INVALID_STATE）
- 404: 任务不存在（TASK_NOT_FOUND）
"""

from fastapi import APIRouter, Depends, Request
from kanban.core.models import (
    ReviewResult,
    ReviewSubmission,
    Task,
    TaskStatus,
    TransitionError,
)
from pydantic import BaseModel, ConfigDict, Field

from ..deps import get_scope, get_task_service
from ..errors import error_response, task_not_found
from ..services.task_service import TaskService
from .tasks import TaskResponse

router = APIRouter()


class PickRequest(BaseModel):
    session_id: str | None = None


class CompleteRequest(BaseModel):
    notes: str | None = None


class SetStatusRequest(BaseModel):
    status: TaskStatus
    reason: str | None = None


class ReviewResponse(BaseModel):
    """评审提交响应"""

    model_config = ConfigDict(populate_by_name=True)

    task: Task
    all_approved: bool = Field(alias="allApproved")
    approved: int
    needs_work: int = Field(alias="needsWork")


def _transition_error(result: TransitionError):
    code = "TASK_NOT_FOUND" if result.status == 404 else "INVALID_STATE"
    return error_response(result.status, code, result.error)


def _review_response(result: ReviewResult | TransitionError):
    if isinstance(result, TransitionError):
        return _transition_error(result)
    return ReviewResponse(**result.model_dump())


@router.post("/api/tasks/{task_id}/pick", response_model=TaskResponse)
async def pick_task(
    task_id: str,
    request: Request,
    body: PickRequest | None = None,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    """领取任务；session_id 取自请求体，缺省时取 X-Session-ID 请求头"""
    session_id = (body.session_id if body else None) or request.headers.get("x-session-id")
    result = await service.pick(task_id, session_id, scope)
    if isinstance(result, TransitionError):
        return _transition_error(result)
    return TaskResponse(task=result)


@router.post("/api/tasks/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: str,
    body: CompleteRequest | None = None,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    """完成任务并送审，notes 追加到已有备注之后"""
    result = await service.complete(task_id, body.notes if body else None, scope)
    if isinstance(result, TransitionError):
        return _transition_error(result)
    return TaskResponse(task=result)


@router.post("/api/tasks/{task_id}/review", response_model=ReviewResponse)
async def submit_review(
    task_id: str,
    body: ReviewSubmission,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    return _review_response(await service.submit_review(task_id, body, scope))


@router.post("/api/tasks/{task_id}/plan-review", response_model=ReviewResponse)
async def submit_plan_review(
    task_id: str,
    body: ReviewSubmission,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    return _review_response(await service.submit_plan_review(task_id, body, scope))


@router.post("/api/tasks/{task_id}/status", response_model=TaskResponse)
async def set_status(
    task_id: str,
    body: SetStatusRequest,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    """管理员修正：直接设置状态，不做前置状态检查"""
    task = await service.force_set_status(task_id, body.status, body.reason, scope)
    if task is None:
        return task_not_found(task_id)
    return TaskResponse(task=task)
