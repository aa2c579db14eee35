"""TaskService -- 任务生命周期业务编排

每个操作遵循同一流程：
1. 读取任务快照（不持锁）
2. 调用 lifecycle / matching 纯函数校验并计算新状态
3. 在 write_lock 内以 (status, version) 为前置条件原子提交 projection + 事件
4. 提交成功后尽力广播事件，广播失败不回滚状态
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import structlog
from taskmarket.core import lifecycle, matching
from taskmarket.core.errors import (
    ConcurrentModificationError,
    IdempotencyKeyReusedError,
    ProviderAlreadyExistsError,
    ProviderNotFoundError,
    TaskNotFoundError,
)
from taskmarket.core.lifecycle import TaskChange
from taskmarket.core.models import (
    Actor,
    ActorType,
    Event,
    EventCausality,
    Provider,
    Task,
    TaskDraft,
    TaskPatch,
    TaskPointers,
)
from taskmarket.core.store import StoreGroup
from taskmarket.core.store.transaction import (
    create_task_with_event,
    delete_task_with_event,
    save_task_with_event,
)
from ulid import ULID

from .event_hub import EventHub

log = structlog.get_logger()


def _customer(customer_id: str) -> Actor:
    return Actor(role=ActorType.CUSTOMER, actor_id=customer_id)


def _provider(provider_id: str) -> Actor:
    return Actor(role=ActorType.PROVIDER, actor_id=provider_id)


class TaskService:
    """任务业务服务"""

    def __init__(self, store_group: StoreGroup, event_hub: EventHub | None = None) -> None:
        self._stores = store_group
        self._event_hub = event_hub

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    # ---- 查询 ----

    async def get_task(self, task_id: str) -> Task | None:
        """查询任务详情"""
        return await self._stores.task_store.get_task(task_id)

    async def require_task(self, task_id: str) -> Task:
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def get_task_events(self, task_id: str) -> list[Event]:
        return await self._stores.event_store.get_events_for_task(task_id)

    async def list_tasks(self, status: str | None = None) -> list[Task]:
        """查询任务列表"""
        return await self._stores.task_store.list_tasks(status)

    async def list_customer_tasks(
        self, customer_id: str, status: str | None = None
    ) -> list[Task]:
        return await self._stores.task_store.list_tasks_for_customer(customer_id, status)

    async def list_floating_tasks(self) -> list[Task]:
        return await self._stores.task_store.list_floating_tasks()

    async def list_provider_tasks(
        self, provider_id: str, status: str | None = None
    ) -> list[Task]:
        return await self._stores.task_store.list_tasks_for_provider(provider_id, status)

    async def list_requested_tasks(self, provider_id: str) -> list[Task]:
        return await self._stores.task_store.list_requested_for_provider(provider_id)

    # ---- provider 目录 ----

    async def register_provider(
        self, display_name: str, provider_id: str | None = None
    ) -> Provider:
        provider = Provider(
            provider_id=provider_id or str(ULID()),
            display_name=display_name,
            created_at=self._now(),
        )
        async with self._stores.write_lock:
            if await self._stores.provider_store.provider_exists(provider.provider_id):
                raise ProviderAlreadyExistsError(provider.provider_id)
            await self._stores.provider_store.create_provider(provider)
        log.info("provider_registered", provider_id=provider.provider_id)
        return provider

    async def get_provider(self, provider_id: str) -> Provider:
        provider = await self._stores.provider_store.get_provider(provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id)
        return provider

    # ---- 客户操作 ----

    async def create_task(
        self,
        customer_id: str,
        draft: TaskDraft | Mapping[str, Any],
        idempotency_key: str | None = None,
    ) -> tuple[Task, bool]:
        """创建任务（draft 状态）

        幂等键按客户隔离：不同客户使用相同的键互不影响。

        Returns:
            (task, created) -- created=False 表示键命中，返回首次创建的任务

        Raises:
            IdempotencyKeyReusedError: 键对应的任务已被删除
        """
        scoped_key = f"{customer_id}:{idempotency_key}" if idempotency_key else None
        async with self._stores.write_lock:
            if scoped_key:
                existing_id = await self._stores.event_store.check_idempotency_key(scoped_key)
                if existing_id:
                    existing = await self.get_task(existing_id)
                    if existing is None:
                        raise IdempotencyKeyReusedError(idempotency_key, existing_id)
                    return existing, False

            change = lifecycle.create_task(str(ULID()), customer_id, draft, self._now())
            event = self._build_event(change, _customer(customer_id), scoped_key)
            task = self._with_pointer(change.task, event)
            await create_task_with_event(
                self._stores.conn,
                self._stores.task_store,
                self._stores.event_store,
                task,
                event,
            )

        log.info("task_created", task_id=task.task_id, customer_id=customer_id)
        await self._broadcast(event)
        return task, True

    async def publish_task(self, task_id: str, customer_id: str) -> Task:
        task = await self.require_task(task_id)
        change = lifecycle.publish_task(task, customer_id, self._now())
        return await self._commit(task, change, _customer(customer_id))

    async def update_task(
        self, task_id: str, customer_id: str, patch: TaskPatch | Mapping[str, Any]
    ) -> Task:
        task = await self.require_task(task_id)
        change = lifecycle.update_task(task, customer_id, patch, self._now())
        return await self._commit(task, change, _customer(customer_id))

    async def delete_task(self, task_id: str, customer_id: str) -> None:
        """删除任务：写入 TASK_DELETED 事件并移除 projection 行"""
        task = await self.require_task(task_id)
        change = lifecycle.delete_task(task, customer_id, self._now())
        event = self._build_event(change, _customer(customer_id))

        try:
            async with self._stores.write_lock:
                await delete_task_with_event(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.event_store,
                    event,
                    task.status,
                    task.version,
                )
        except ConcurrentModificationError:
            self._log_conflict(task)
            raise

        log.info("task_deleted", task_id=task_id, customer_id=customer_id)
        await self._broadcast(event)

    async def request_provider(
        self,
        task_id: str,
        customer_id: str,
        provider_id: str,
        message: str = "",
    ) -> Task:
        task = await self.require_task(task_id)
        change = matching.request_provider(task, customer_id, provider_id, message, self._now())
        if not await self._stores.provider_store.provider_exists(provider_id):
            raise ProviderNotFoundError(provider_id)
        return await self._commit(task, change, _customer(customer_id))

    # ---- provider 操作 ----

    async def express_interest(self, task_id: str, provider_id: str, message: str = "") -> Task:
        task = await self.require_task(task_id)
        change = matching.express_interest(task, provider_id, message, self._now())
        return await self._commit(task, change, _provider(provider_id))

    async def withdraw_interest(self, task_id: str, provider_id: str) -> Task:
        task = await self.require_task(task_id)
        change = matching.withdraw_interest(task, provider_id, self._now())
        return await self._commit(task, change, _provider(provider_id))

    async def accept_request(self, task_id: str, provider_id: str, message: str = "") -> Task:
        task = await self.require_task(task_id)
        change = matching.accept_request(task, provider_id, message, self._now())
        return await self._commit(task, change, _provider(provider_id))

    async def decline_request(self, task_id: str, provider_id: str, reason: str = "") -> Task:
        task = await self.require_task(task_id)
        change = matching.decline_request(task, provider_id, reason, self._now())
        return await self._commit(task, change, _provider(provider_id))

    async def start_task(self, task_id: str, provider_id: str) -> Task:
        task = await self.require_task(task_id)
        change = lifecycle.start_task(task, provider_id, self._now())
        return await self._commit(task, change, _provider(provider_id))

    async def complete_task(self, task_id: str, provider_id: str) -> Task:
        task = await self.require_task(task_id)
        change = lifecycle.complete_task(task, provider_id, self._now())
        return await self._commit(task, change, _provider(provider_id))

    # ---- 双方操作 ----

    async def cancel_task(self, task_id: str, actor: Actor, reason: str = "") -> Task:
        task = await self.require_task(task_id)
        change = lifecycle.cancel_task(task, actor, reason, self._now())
        return await self._commit(task, change, actor)

    # ---- 内部 ----

    async def _commit(self, before: Task, change: TaskChange, actor: Actor) -> Task:
        """以读取时的 (status, version) 为前置条件提交变更"""
        if not change.changed:
            return change.task

        event = self._build_event(change, actor)
        task = self._with_pointer(change.task, event)
        try:
            async with self._stores.write_lock:
                await save_task_with_event(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.event_store,
                    task,
                    event,
                    before.status,
                    before.version,
                )
        except ConcurrentModificationError:
            self._log_conflict(before)
            raise

        log.info(
            "task_transition_committed",
            task_id=task.task_id,
            event_type=event.type,
            from_status=before.status,
            to_status=task.status,
            version=task.version,
        )
        await self._broadcast(event)
        return task

    @staticmethod
    def _build_event(
        change: TaskChange,
        actor: Actor,
        idempotency_key: str | None = None,
    ) -> Event:
        task = change.task
        return Event(
            event_id=str(ULID()),
            task_id=task.task_id,
            task_seq=task.version,
            ts=task.updated_at,
            type=change.event_type,
            actor=actor.role,
            actor_id=actor.actor_id,
            payload=change.payload,
            trace_id=f"trace-{task.task_id}",
            causality=EventCausality(
                parent_event_id=task.pointers.latest_event_id,
                idempotency_key=idempotency_key,
            ),
        )

    @staticmethod
    def _with_pointer(task: Task, event: Event) -> Task:
        return task.model_copy(update={"pointers": TaskPointers(latest_event_id=event.event_id)})

    @staticmethod
    def _log_conflict(task: Task) -> None:
        log.warning(
            "task_concurrent_modification",
            task_id=task.task_id,
            expected_status=task.status,
            expected_version=task.version,
        )

    async def _broadcast(self, event: Event) -> None:
        """广播事件（尽力而为）"""
        if self._event_hub is None:
            return
        try:
            await self._event_hub.broadcast(event.task_id, event)
        except Exception:
            log.warning(
                "event_broadcast_failed",
                task_id=event.task_id,
                event_type=event.type,
                exc_info=True,
            )
