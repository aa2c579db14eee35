"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store 实例与调用方身份

Store 实例通过 app.state 管理，在 lifespan 中初始化/清理。
调用方身份由上游认证层写入 X-Actor-Role / X-Actor-Id 请求头。
"""

from fastapi import Depends, Header, HTTPException, Request
from taskmarket.core.models import Actor, ActorType
from taskmarket.core.store import StoreGroup

from .services.event_hub import EventHub
from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_event_hub(request: Request) -> EventHub:
    """从 app.state 获取 EventHub 实例"""
    return request.app.state.event_hub


def get_task_service(
    store_group: StoreGroup = Depends(get_store_group),
    event_hub: EventHub = Depends(get_event_hub),
) -> TaskService:
    return TaskService(store_group, event_hub)


def get_actor(
    x_actor_role: str | None = Header(default=None),
    x_actor_id: str | None = Header(default=None),
) -> Actor:
    """解析调用方身份，缺失或不合法返回 401"""
    if not x_actor_role or not x_actor_id:
        raise HTTPException(status_code=401, detail="Missing actor identity headers")
    try:
        role = ActorType(x_actor_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=401, detail=f"Unknown actor role: {x_actor_role}"
        ) from None
    return Actor(role=role, actor_id=x_actor_id)


def require_customer(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != ActorType.CUSTOMER:
        raise HTTPException(status_code=403, detail="Customer role required")
    return actor


def require_provider(actor: Actor = Depends(get_actor)) -> Actor:
    if actor.role != ActorType.PROVIDER:
        raise HTTPException(status_code=403, detail="Provider role required")
    return actor
