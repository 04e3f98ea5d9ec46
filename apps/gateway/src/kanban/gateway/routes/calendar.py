"""日历排期路由

POST   /api/tasks/{task_id}/schedule     设置排期
DELETE /api/tasks/{task_id}/schedule     清除排期
GET    /api/calendar/tasks?start=&end=   日期区间内的已排期任务
GET    /api/calendar/tasks/scheduled     全部已排期任务
GET    /api/calendar/tasks/unscheduled   未排期且未完成的任务
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from kanban.core.models import ScheduleData
from pydantic import BaseModel, field_validator, model_validator

from ..deps import get_scope, get_task_service
from ..errors import error_response, task_not_found
from ..services.task_service import TaskService
from .tasks import TaskListResponse, TaskResponse

router = APIRouter()


def _check_clock(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    hours, sep, minutes = value.partition(":")
    if (
        not sep
        or len(hours) != 2
        or len(minutes) != 2
        or not (hours.isdigit() and minutes.isdigit())
        or int(hours) > 23
        or int(minutes) > 59
    ):
        raise ValueError("time must be HH:MM")
    return value


class ScheduleRequest(BaseModel):
    """排期请求体 -- 非全天排期时 start/end 为 HH:MM"""

    scheduled_date: date
    scheduled_start: str | None = None
    scheduled_end: str | None = None
    is_all_day: bool = False

    @field_validator("scheduled_start", "scheduled_end")
    @classmethod
    def _clock(cls, value: str | None) -> str | None:
        return _check_clock(value)

    @model_validator(mode="after")
    def _ordered(self) -> "ScheduleRequest":
        if self.is_all_day:
            self.scheduled_start = None
            self.scheduled_end = None
        elif (
            self.scheduled_start
            and self.scheduled_end
            and self.scheduled_end < self.scheduled_start
        ):
            raise ValueError("scheduled_end must not be before scheduled_start")
        return self


@router.post("/api/tasks/{task_id}/schedule", response_model=TaskResponse)
async def schedule_task(
    task_id: str,
    body: ScheduleRequest,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    task = await service.schedule(task_id, ScheduleData(**body.model_dump()), scope)
    if task is None:
        return task_not_found(task_id)
    return TaskResponse(task=task)


@router.delete("/api/tasks/{task_id}/schedule", response_model=TaskResponse)
async def unschedule_task(
    task_id: str,
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    task = await service.unschedule(task_id, scope)
    if task is None:
        return task_not_found(task_id)
    return TaskResponse(task=task)


@router.get("/api/calendar/tasks", response_model=TaskListResponse)
async def calendar_tasks(
    start: date = Query(description="起始日期（含）"),
    end: date = Query(description="结束日期（含）"),
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    """按日期区间查询，按日期、开始时间、优先级排序"""
    if end < start:
        return error_response(400, "INVALID_RANGE", "end must not be before start")
    return TaskListResponse(tasks=await service.get_for_calendar(scope, start, end))


@router.get("/api/calendar/tasks/scheduled", response_model=TaskListResponse)
async def scheduled_tasks(
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    return TaskListResponse(tasks=await service.get_scheduled(scope))


@router.get("/api/calendar/tasks/unscheduled", response_model=TaskListResponse)
async def unscheduled_tasks(
    scope=Depends(get_scope),
    service: TaskService = Depends(get_task_service),
):
    return TaskListResponse(tasks=await service.get_unscheduled(scope))
