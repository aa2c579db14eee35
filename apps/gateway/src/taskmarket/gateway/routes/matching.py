"""撮合路由

POST   /api/tasks/{task_id}/interest: provider 表达意向。
DELETE /api/tasks/{task_id}/interest: provider 撤回意向。
POST   /api/tasks/{task_id}/request-provider: 客户选定 / 邀请 provider。
POST   /api/tasks/{task_id}/accept: 被邀请的 provider 接受。
POST   /api/tasks/{task_id}/decline: 被邀请的 provider 拒绝。
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from taskmarket.core.models import Actor, MessageStr, ReasonStr

from ..deps import get_task_service, require_customer, require_provider
from ..services.task_service import TaskService
from .tasks import task_body

router = APIRouter()


class MessageRequest(BaseModel):
    """可选留言"""

    message: MessageStr = ""


class RequestProviderRequest(BaseModel):
    """邀请 provider 请求体"""

    provider_id: str = Field(min_length=1, description="目标 provider ID")
    message: MessageStr = ""


class DeclineRequest(BaseModel):
    """拒绝邀请请求体"""

    reason: ReasonStr = ""


@router.post("/api/tasks/{task_id}/interest")
async def express_interest(
    task_id: str,
    body: MessageRequest | None = None,
    actor: Actor = Depends(require_provider),
    service: TaskService = Depends(get_task_service),
):
    message = body.message if body else ""
    return task_body(await service.express_interest(task_id, actor.actor_id, message))


@router.delete("/api/tasks/{task_id}/interest")
async def withdraw_interest(
    task_id: str,
    actor: Actor = Depends(require_provider),
    service: TaskService = Depends(get_task_service),
):
    return task_body(await service.withdraw_interest(task_id, actor.actor_id))


@router.post("/api/tasks/{task_id}/request-provider")
async def request_provider(
    task_id: str,
    body: RequestProviderRequest,
    actor: Actor = Depends(require_customer),
    service: TaskService = Depends(get_task_service),
):
    task = await service.request_provider(
        task_id, actor.actor_id, body.provider_id, body.message
    )
    return task_body(task)


@router.post("/api/tasks/{task_id}/accept")
async def accept_request(
    task_id: str,
    body: MessageRequest | None = None,
    actor: Actor = Depends(require_provider),
    service: TaskService = Depends(get_task_service),
):
    message = body.message if body else ""
    return task_body(await service.accept_request(task_id, actor.actor_id, message))


@router.post("/api/tasks/{task_id}/decline")
async def decline_request(
    task_id: str,
    body: DeclineRequest | None = None,
    actor: Actor = Depends(require_provider),
    service: TaskService = Depends(get_task_service),
):
    reason = body.reason if body else ""
    return task_body(await service.decline_request(task_id, actor.actor_id, reason))
