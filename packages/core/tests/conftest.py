"""packages/core 测试配置 -- 核心层 fixture

task_in(status) 通过纯函数把一个新任务推进到指定状态，
默认客户 cust-001，默认匹配 provider prov-001。
"""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from taskmarket.core import lifecycle, matching
from taskmarket.core.models import Actor, ActorType, Task, TaskDraft, TaskStatus
from taskmarket.core.store import StoreGroup, create_store_group

CUSTOMER_ID = "cust-001"
PROVIDER_ID = "prov-001"
TASK_ID = "01JTASK0000000000000000001"


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 20, 9, 0, tzinfo=UTC)


@pytest.fixture
def draft(draft_payload: dict) -> TaskDraft:
    return TaskDraft.model_validate(draft_payload)


@pytest.fixture
def new_task(draft: TaskDraft, now: datetime) -> Task:
    return lifecycle.create_task(TASK_ID, CUSTOMER_ID, draft, now).task


@pytest.fixture
def task_in(new_task: Task, now: datetime) -> Callable[[TaskStatus], Task]:
    """构造处于指定状态的任务"""

    def _build(status: TaskStatus) -> Task:
        task = new_task
        if status == TaskStatus.DRAFT:
            return task
        if status == TaskStatus.CANCELLED:
            actor = Actor(role=ActorType.CUSTOMER, actor_id=CUSTOMER_ID)
            return lifecycle.cancel_task(task, actor, "changed plans", now).task

        task = lifecycle.publish_task(task, CUSTOMER_ID, now).task
        if status == TaskStatus.FLOATING:
            return task
        if status == TaskStatus.REQUESTED:
            return matching.request_provider(task, CUSTOMER_ID, PROVIDER_ID, "", now).task

        task = matching.express_interest(task, PROVIDER_ID, "", now).task
        task = matching.request_provider(task, CUSTOMER_ID, PROVIDER_ID, "", now).task
        if status == TaskStatus.MATCHED:
            return task
        task = lifecycle.start_task(task, PROVIDER_ID, now).task
        if status == TaskStatus.IN_PROGRESS:
            return task
        return lifecycle.complete_task(task, PROVIDER_ID, now).task

    return _build


@pytest_asyncio.fixture
async def core_store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """核心层 Store 实例组"""
    store_group = await create_store_group(str(tmp_path / "core_test.db"))
    yield store_group
    await store_group.close()
