"""apps/gateway 测试配置 -- FastAPI app + httpx AsyncClient + TaskService"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from taskmarket.core.store import create_store_group
from taskmarket.gateway.services.event_hub import EventHub
from taskmarket.gateway.services.task_service import TaskService


@pytest_asyncio.fixture
async def test_app(tmp_path: Path):
    """测试 app，手动初始化 StoreGroup（绕过 lifespan）"""
    os.environ["TASKMARKET_DB_PATH"] = str(tmp_path / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from taskmarket.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(str(tmp_path / "test.db"))
    app.state.store_group = store_group
    app.state.event_hub = EventHub()

    yield app

    await store_group.close()
    os.environ.pop("TASKMARKET_DB_PATH", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def service(test_app) -> TaskService:
    return TaskService(test_app.state.store_group, test_app.state.event_hub)


@pytest_asyncio.fixture
async def providers(service: TaskService) -> list[str]:
    """注册两个 provider：prov-001 / prov-002"""
    for provider_id, name in (("prov-001", "Kwame Plumbing"), ("prov-002", "Ama Fixes")):
        await service.register_provider(name, provider_id)
    return ["prov-001", "prov-002"]
