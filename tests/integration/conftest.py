"""集成测试共享 fixture"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from taskmarket.core.store import create_store_group
from taskmarket.gateway.services.event_hub import EventHub


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path):
    """集成测试用 FastAPI app"""
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
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def registered_providers(client: AsyncClient) -> list[str]:
    """通过 API 注册三个 provider"""
    provider_ids = ["prov-kwame", "prov-ama", "prov-kofi"]
    for provider_id in provider_ids:
        resp = await client.post(
            "/api/providers",
            json={
                "display_name": provider_id.removeprefix("prov-").title(),
                "provider_id": provider_id,
            },
        )
        assert resp.status_code == 201
    return provider_ids
