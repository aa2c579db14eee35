"""ProviderStore SQLite 实现

最小化的 provider 目录，仅用于校验任务操作中引用的 provider 是否存在。
"""

from datetime import datetime

import aiosqlite

from ..models.actor import Provider


class SqliteProviderStore:
    """ProviderStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_provider(self, provider: Provider) -> None:
        """注册 provider 并提交"""
        try:
            await self._conn.execute(
                "INSERT INTO providers (provider_id, display_name, created_at) VALUES (?, ?, ?)",
                (provider.provider_id, provider.display_name, provider.created_at.isoformat()),
            )
            await self._conn.commit()
        except Exception:
            await self._conn.rollback()
            raise

    async def get_provider(self, provider_id: str) -> Provider | None:
        """根据 provider_id 查询"""
        cursor = await self._conn.execute(
            "SELECT provider_id, display_name, created_at FROM providers WHERE provider_id = ?",
            (provider_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return Provider(
            provider_id=row[0],
            display_name=row[1],
            created_at=datetime.fromisoformat(row[2]),
        )

    async def provider_exists(self, provider_id: str) -> bool:
        cursor = await self._conn.execute(
            "SELECT 1 FROM providers WHERE provider_id = ?",
            (provider_id,),
        )
        return await cursor.fetchone() is not None
