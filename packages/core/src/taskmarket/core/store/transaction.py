"""事件 + Projection 原子事务封装

每次生命周期操作在同一 SQLite 事务内提交一条事件和 Task projection 的变更。
projection 的更新带 (status, version) 前置条件，失效时整个事务回滚并抛出
ConcurrentModificationError。
"""

import aiosqlite

from ..errors import ConcurrentModificationError
from ..models.enums import TaskStatus
from ..models.event import Event
from ..models.task import Task
from .protocols import EventStore, TaskStore


async def create_task_with_event(
    conn: aiosqlite.Connection,
    task_store: TaskStore,
    event_store: EventStore,
    task: Task,
    event: Event,
) -> None:
    """在同一事务内写入新任务及其 TASK_CREATED 事件

    Raises:
        Exception: 如果事务提交失败，自动回滚
    """
    try:
        await task_store.create_task(task)
        await event_store.append_event(event)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def save_task_with_event(
    conn: aiosqlite.Connection,
    task_store: TaskStore,
    event_store: EventStore,
    task: Task,
    event: Event,
    expected_status: TaskStatus,
    expected_version: int,
) -> None:
    """在同一事务内条件更新 Task 并追加事件

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        task_store: TaskStore 实例
        event_store: EventStore 实例
        task: 新的 Task 快照
        event: 要写入的事件
        expected_status: 读取时的状态
        expected_version: 读取时的版本号

    Raises:
        ConcurrentModificationError: 前置条件失效（任务已被其他调用修改）
    """
    try:
        saved = await task_store.save_task(task, expected_status, expected_version)
        if not saved:
            raise ConcurrentModificationError(task.task_id, expected_status, expected_version)
        await event_store.append_event(event)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise


async def delete_task_with_event(
    conn: aiosqlite.Connection,
    task_store: TaskStore,
    event_store: EventStore,
    event: Event,
    expected_status: TaskStatus,
    expected_version: int,
) -> None:
    """在同一事务内追加 TASK_DELETED 事件并删除 projection 行

    Raises:
        ConcurrentModificationError: 前置条件失效
    """
    try:
        deleted = await task_store.delete_task(event.task_id, expected_status, expected_version)
        if not deleted:
            raise ConcurrentModificationError(event.task_id, expected_status, expected_version)
        await event_store.append_event(event)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise
