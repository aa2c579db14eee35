"""TaskStore SQLite 实现

tasks 表是 events 的物化视图（projection）。
所有写入必须与事件在同一事务内完成（见 transaction.py），此处仅提供数据库操作。
"""

import aiosqlite

from ..models.enums import TaskStatus
from ..models.task import Task

# provider 的"进行中"任务
PROVIDER_ACTIVE_STATES = (TaskStatus.MATCHED, TaskStatus.IN_PROGRESS)


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """插入任务记录"""
        await self._conn.execute(
            """
            INSERT INTO tasks (task_id, customer_id, status, matched_provider_id,
                               requested_provider_id, version, created_at,
                               updated_at, document)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task.task_id,
                task.customer_id,
                task.status.value,
                task.matched_provider_id,
                task.requested_provider_id,
                task.version,
                task.created_at.isoformat(),
                task.updated_at.isoformat(),
                task.model_dump_json(),
            ),
        )

    async def save_task(
        self,
        task: Task,
        expected_status: TaskStatus,
        expected_version: int,
    ) -> bool:
        """条件更新（乐观锁）

        仅当库中状态与版本号仍等于读取时的值才写入。

        Returns:
            True 如果写入成功，False 如果前置条件已失效
        """
        cursor = await self._conn.execute(
            """
            UPDATE tasks
            SET status = ?, matched_provider_id = ?, requested_provider_id = ?,
                version = ?, updated_at = ?, document = ?
            WHERE task_id = ? AND status = ? AND version = ?
            """,
            (
                task.status.value,
                task.matched_provider_id,
                task.requested_provider_id,
                task.version,
                task.updated_at.isoformat(),
                task.model_dump_json(),
                task.task_id,
                expected_status.value,
                expected_version,
            ),
        )
        return cursor.rowcount > 0

    async def delete_task(
        self,
        task_id: str,
        expected_status: TaskStatus,
        expected_version: int,
    ) -> bool:
        """条件删除（乐观锁），语义同 save_task"""
        cursor = await self._conn.execute(
            "DELETE FROM tasks WHERE task_id = ? AND status = ? AND version = ?",
            (task_id, expected_status.value, expected_version),
        )
        return cursor.rowcount > 0

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            "SELECT document FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        """查询任务列表，支持按状态筛选，按 created_at 倒序"""
        if status:
            return await self._fetch(
                "SELECT document FROM tasks WHERE status = ? ORDER BY created_at DESC",
                (status,),
            )
        return await self._fetch("SELECT document FROM tasks ORDER BY created_at DESC")

    async def list_tasks_for_customer(
        self,
        customer_id: str,
        status: str | None = None,
    ) -> list[Task]:
        """查询客户创建的任务"""
        if status:
            return await self._fetch(
                """
                SELECT document FROM tasks
                WHERE customer_id = ? AND status = ?
                ORDER BY created_at DESC
                """,
                (customer_id, status),
            )
        return await self._fetch(
            "SELECT document FROM tasks WHERE customer_id = ? ORDER BY created_at DESC",
            (customer_id,),
        )

    async def list_floating_tasks(self) -> list[Task]:
        """查询开放给所有 provider 的任务"""
        return await self.list_tasks(TaskStatus.FLOATING.value)

    async def list_tasks_for_provider(
        self,
        provider_id: str,
        status: str | None = None,
    ) -> list[Task]:
        """查询 provider 已匹配的任务，默认只返回进行中的（matched / in_progress）"""
        statuses = [status] if status else [s.value for s in PROVIDER_ACTIVE_STATES]
        placeholders = ", ".join("?" for _ in statuses)
        return await self._fetch(
            f"""
            SELECT document FROM tasks
            WHERE matched_provider_id = ? AND status IN ({placeholders})
            ORDER BY updated_at DESC
            """,
            (provider_id, *statuses),
        )

    async def list_requested_for_provider(self, provider_id: str) -> list[Task]:
        """查询等待该 provider 答复的定向邀请"""
        return await self._fetch(
            """
            SELECT document FROM tasks
            WHERE requested_provider_id = ? AND status = ?
            ORDER BY updated_at DESC
            """,
            (provider_id, TaskStatus.REQUESTED.value),
        )

    async def _fetch(self, sql: str, params: tuple = ()) -> list[Task]:
        cursor = await self._conn.execute(sql, params)
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task.model_validate_json(row[0])
