"""Provider 目录路由

POST /api/providers: 注册 provider。
GET  /api/providers/{provider_id}: 查询 provider。
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..deps import get_task_service
from ..services.task_service import TaskService

router = APIRouter()


class RegisterProviderRequest(BaseModel):
    """注册请求体，provider_id 缺省时自动生成"""

    display_name: str = Field(min_length=1, max_length=200)
    provider_id: str | None = Field(default=None, min_length=1)


@router.post("/api/providers", status_code=201)
async def register_provider(
    body: RegisterProviderRequest,
    service: TaskService = Depends(get_task_service),
):
    provider = await service.register_provider(body.display_name, body.provider_id)
    return {"provider": provider.model_dump(mode="json")}


@router.get("/api/providers/{provider_id}")
async def get_provider(
    provider_id: str,
    service: TaskService = Depends(get_task_service),
):
    provider = await service.get_provider(provider_id)
    return {"provider": provider.model_dump(mode="json")}
