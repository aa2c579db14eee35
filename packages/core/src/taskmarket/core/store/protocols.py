"""Store Protocol 接口定义

定义 TaskStore、EventStore、ProviderStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from typing import Protocol

from ..models.actor import Provider
from ..models.enums import TaskStatus
from ..models.event import Event
from ..models.task import Task


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: Task) -> None:
        """插入任务记录"""
        ...

    async def save_task(
        self,
        task: Task,
        expected_status: TaskStatus,
        expected_version: int,
    ) -> bool:
        """条件更新，前置条件失效时返回 False"""
        ...

    async def delete_task(
        self,
        task_id: str,
        expected_status: TaskStatus,
        expected_version: int,
    ) -> bool:
        """条件删除，前置条件失效时返回 False"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        """查询任务列表，支持按状态筛选"""
        ...

    async def list_tasks_for_customer(
        self,
        customer_id: str,
        status: str | None = None,
    ) -> list[Task]:
        """查询客户创建的任务"""
        ...

    async def list_floating_tasks(self) -> list[Task]:
        """查询 floating 任务"""
        ...

    async def list_tasks_for_provider(
        self,
        provider_id: str,
        status: str | None = None,
    ) -> list[Task]:
        """查询 provider 已匹配的任务"""
        ...

    async def list_requested_for_provider(self, provider_id: str) -> list[Task]:
        """查询等待 provider 答复的任务"""
        ...


class EventStore(Protocol):
    """Event 存储接口

    事件表 append-only：只允许插入，不允许更新或删除。
    """

    async def append_event(self, event: Event) -> None:
        """追加事件（append-only）"""
        ...

    async def get_events_for_task(self, task_id: str) -> list[Event]:
        """查询指定任务的所有事件"""
        ...

    async def get_events_after(
        self,
        task_id: str,
        after_event_id: str,
    ) -> list[Event]:
        """查询指定事件之后的增量事件（用于 SSE 断线重连）"""
        ...

    async def check_idempotency_key(self, key: str) -> str | None:
        """检查幂等键是否已存在，返回关联的 task_id 或 None"""
        ...

    async def get_all_events(self) -> list[Event]:
        """查询所有事件（Projection 重建用）"""
        ...


class ProviderStore(Protocol):
    """Provider 目录接口"""

    async def create_provider(self, provider: Provider) -> None:
        ...

    async def get_provider(self, provider_id: str) -> Provider | None:
        ...

    async def provider_exists(self, provider_id: str) -> bool:
        ...
