"""生命周期路由

POST /api/tasks/{task_id}/publish: 客户发布任务（draft -> floating）。
POST /api/tasks/{task_id}/start: 已匹配的 provider 开始任务。
POST /api/tasks/{task_id}/complete: 已匹配的 provider 完成任务。
POST /api/tasks/{task_id}/cancel: 客户或已匹配的 provider 取消任务。
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from taskmarket.core.models import Actor, ReasonStr

from ..deps import get_actor, get_task_service, require_customer, require_provider
from ..services.task_service import TaskService
from .tasks import task_body

router = APIRouter()


class CancelRequest(BaseModel):
    """取消请求体"""

    reason: ReasonStr = ""


@router.post("/api/tasks/{task_id}/publish")
async def publish_task(
    task_id: str,
    actor: Actor = Depends(require_customer),
    service: TaskService = Depends(get_task_service),
):
    return task_body(await service.publish_task(task_id, actor.actor_id))


@router.post("/api/tasks/{task_id}/start")
async def start_task(
    task_id: str,
    actor: Actor = Depends(require_provider),
    service: TaskService = Depends(get_task_service),
):
    return task_body(await service.start_task(task_id, actor.actor_id))


@router.post("/api/tasks/{task_id}/complete")
async def complete_task(
    task_id: str,
    actor: Actor = Depends(require_provider),
    service: TaskService = Depends(get_task_service),
):
    return task_body(await service.complete_task(task_id, actor.actor_id))


@router.post("/api/tasks/{task_id}/cancel")
async def cancel_task(
    task_id: str,
    body: CancelRequest | None = None,
    actor: Actor = Depends(get_actor),
    service: TaskService = Depends(get_task_service),
):
    """取消非终态的任务，终态任务返回 409"""
    reason = body.reason if body else ""
    return task_body(await service.cancel_task(task_id, actor, reason))
