"""任务资源路由

POST   /api/tasks: 客户创建任务（支持 Idempotency-Key）。
GET    /api/tasks: 任务列表，支持 status 筛选。
GET    /api/tasks/{task_id}: 任务详情，含事件历史。
PATCH  /api/tasks/{task_id}: 客户编辑描述性字段。
DELETE /api/tasks/{task_id}: 客户删除尚未匹配的任务。
以及客户 / provider 视角的列表查询。
"""

from fastapi import APIRouter, Depends, Header, Query, Response
from starlette.responses import JSONResponse
from taskmarket.core.models import Actor, Event, Task, TaskDraft, TaskPatch

from ..deps import get_task_service, require_customer, require_provider
from ..services.task_service import TaskService

router = APIRouter()


def task_body(task: Task) -> dict:
    return {"task": task.model_dump(mode="json")}


def task_list_body(tasks: list[Task]) -> dict:
    return {"tasks": [t.model_dump(mode="json") for t in tasks]}


def _event_data(event: Event) -> dict:
    return {
        "event_id": event.event_id,
        "task_seq": event.task_seq,
        "ts": event.ts.isoformat(),
        "type": event.type.value,
        "actor": event.actor.value,
        "actor_id": event.actor_id,
        "payload": event.payload,
    }


@router.post("/api/tasks", status_code=201)
async def create_task(
    body: TaskDraft,
    idempotency_key: str | None = Header(default=None),
    actor: Actor = Depends(require_customer),
    service: TaskService = Depends(get_task_service),
):
    """创建任务

    - 新任务返回 201 Created
    - Idempotency-Key 按客户隔离，已存在返回 200 OK 与首次创建的任务
    - 键对应的任务已删除返回 409 IDEMPOTENCY_KEY_REUSED
    """
    task, created = await service.create_task(actor.actor_id, body, idempotency_key)
    return JSONResponse(
        status_code=201 if created else 200,
        content={**task_body(task), "created": created},
    )


@router.get("/api/tasks")
async def list_tasks(
    status: str | None = Query(default=None, description="按状态筛选"),
    service: TaskService = Depends(get_task_service),
):
    """查询任务列表，按 created_at 倒序"""
    return task_list_body(await service.list_tasks(status))


@router.get("/api/tasks/{task_id}")
async def get_task_detail(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """查询任务详情，包含事件历史"""
    task = await service.require_task(task_id)
    events = await service.get_task_events(task_id)
    return {**task_body(task), "events": [_event_data(e) for e in events]}


@router.patch("/api/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: TaskPatch,
    actor: Actor = Depends(require_customer),
    service: TaskService = Depends(get_task_service),
):
    task = await service.update_task(task_id, actor.actor_id, body)
    return task_body(task)


@router.delete("/api/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    actor: Actor = Depends(require_customer),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(task_id, actor.actor_id)
    return Response(status_code=204)


@router.get("/api/customer/tasks")
async def list_customer_tasks(
    status: str | None = Query(default=None, description="按状态筛选"),
    actor: Actor = Depends(require_customer),
    service: TaskService = Depends(get_task_service),
):
    """当前客户创建的任务"""
    return task_list_body(await service.list_customer_tasks(actor.actor_id, status))


@router.get("/api/floating-tasks")
async def list_floating_tasks(
    actor: Actor = Depends(require_provider),
    service: TaskService = Depends(get_task_service),
):
    """开放给所有 provider 的任务"""
    return task_list_body(await service.list_floating_tasks())


@router.get("/api/provider/tasks")
async def list_provider_tasks(
    status: str | None = Query(default=None, description="按状态筛选，默认 matched + in_progress"),
    actor: Actor = Depends(require_provider),
    service: TaskService = Depends(get_task_service),
):
    """当前 provider 已匹配的任务"""
    return task_list_body(await service.list_provider_tasks(actor.actor_id, status))


@router.get("/api/provider/requests")
async def list_provider_requests(
    actor: Actor = Depends(require_provider),
    service: TaskService = Depends(get_task_service),
):
    """等待当前 provider 答复的定向邀请"""
    return task_list_body(await service.list_requested_tasks(actor.actor_id))
