"""全局 pytest 配置 -- 临时 SQLite 数据库 fixture + 任务输入样例"""

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio


@pytest_asyncio.fixture
async def tmp_db_path(tmp_path: Path) -> Path:
    """提供临时 SQLite 数据库路径"""
    return tmp_path / "test.db"


@pytest_asyncio.fixture
async def db_conn(tmp_db_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """提供已初始化的临时 SQLite 数据库连接"""
    from taskmarket.core.store.sqlite_init import init_db

    conn = await aiosqlite.connect(str(tmp_db_path))
    await init_db(conn)
    yield conn
    await conn.close()


@pytest.fixture
def draft_payload() -> dict:
    """创建任务请求体（JSON 形式）"""
    return {
        "title": "Fix sink",
        "description": "Kitchen sink is leaking under the cabinet",
        "location": {"address": "12 Ring Road", "city": "Accra", "region": "Greater Accra"},
        "schedule": {
            "priority": "HIGH",
            "preferred_date": "2026-10-27",
            "time_slot": {"start": "10:00", "end": "12:00"},
        },
        "estimated_budget": {"min": 100, "max": 250},
        "category_id": "plumbing",
        "tags": ["Plumbing", "urgent", "plumbing"],
    }
