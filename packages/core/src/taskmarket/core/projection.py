"""Projection 重建模块

从 events 表重建 tasks 表（物化视图），确保事件溯源的一致性。
支持单事件应用和全量重建两种模式。
"""

import time
from typing import Any

import aiosqlite
import structlog

from .matching import MATCH_VIA_INTEREST
from .models.enums import EventType
from .models.event import Event
from .models.task import Task, TaskPointers
from .store.protocols import EventStore, TaskStore

log = structlog.get_logger()

_TIMESTAMP_FIELDS: dict[EventType, str] = {
    EventType.TASK_PUBLISHED: "published_at",
    EventType.TASK_MATCHED: "matched_at",
    EventType.TASK_STARTED: "started_at",
    EventType.TASK_COMPLETED: "completed_at",
    EventType.TASK_CANCELLED: "cancelled_at",
}


def _updates_for(task: Task, event: Event) -> dict[str, Any]:
    """根据事件类型计算字段变更（JSON 形式，由 Task 重新校验）"""
    payload = event.payload
    updates: dict[str, Any] = {}

    if "to_status" in payload:
        updates["status"] = payload["to_status"]
    if event.type in _TIMESTAMP_FIELDS:
        updates[_TIMESTAMP_FIELDS[event.type]] = event.ts

    if event.type == EventType.TASK_UPDATED:
        updates.update(payload.get("changes", {}))
    elif event.type == EventType.INTEREST_EXPRESSED:
        updates["interested_providers"] = [
            *(i.model_dump() for i in task.interested_providers),
            {
                "provider_id": payload["provider_id"],
                "expressed_at": event.ts,
                "message": payload.get("message", ""),
            },
        ]
    elif event.type == EventType.INTEREST_WITHDRAWN:
        updates["interested_providers"] = [
            i.model_dump()
            for i in task.interested_providers
            if i.provider_id != payload["provider_id"]
        ]
    elif event.type == EventType.PROVIDER_REQUESTED:
        updates["requested_provider"] = {
            "provider_id": payload["provider_id"],
            "requested_at": event.ts,
            "message": payload.get("message", ""),
        }
    elif event.type == EventType.REQUEST_DECLINED:
        updates["requested_provider"] = None
        updates["decline_reason"] = payload.get("reason", "")
    elif event.type == EventType.TASK_MATCHED:
        updates["matched_provider_id"] = payload["provider_id"]
        if payload.get("via") == MATCH_VIA_INTEREST:
            updates["requested_provider"] = None
        else:
            updates["provider_message"] = payload.get("message", "")
    elif event.type == EventType.TASK_CANCELLED:
        updates["cancelled_by"] = payload.get("cancelled_by")
        updates["cancel_reason"] = payload.get("reason", "")

    return updates


def apply_event(tasks: dict[str, Task], event: Event) -> None:
    """将单个事件应用到 Task 状态（内存中操作）

    Args:
        tasks: task_id -> Task 的映射表（会被就地修改）
        event: 要应用的事件
    """
    task_id = event.task_id

    if event.type == EventType.TASK_CREATED:
        payload = event.payload
        tasks[task_id] = Task.model_validate(
            {
                **payload,
                "task_id": task_id,
                "created_at": event.ts,
                "updated_at": event.ts,
                "version": event.task_seq,
                "pointers": TaskPointers(latest_event_id=event.event_id),
            }
        )
        return

    if event.type == EventType.TASK_DELETED:
        tasks.pop(task_id, None)
        return

    task = tasks.get(task_id)
    if task is None:
        log.warning("projection_orphan_event", task_id=task_id, event_id=event.event_id)
        return

    tasks[task_id] = Task.model_validate(
        {
            **task.model_dump(),
            **_updates_for(task, event),
            "version": event.task_seq,
            "updated_at": event.ts,
            "pointers": TaskPointers(latest_event_id=event.event_id),
        }
    )


async def rebuild_all(
    conn: aiosqlite.Connection,
    event_store: EventStore,
    task_store: TaskStore,
) -> int:
    """从 events 表重建 tasks 表

    流程：
    1. 读取所有事件（按 task_id, task_seq 排序）
    2. 在内存中应用所有事件，构建 Task 状态
    3. 清空 tasks 表并写入重建后的所有 Task（同一事务）

    Returns:
        处理的事件总数
    """
    start_time = time.monotonic()

    events = await event_store.get_all_events()
    event_count = len(events)

    await log.ainfo(
        "projection_rebuild_started",
        event_count=event_count,
    )

    tasks: dict[str, Task] = {}
    for event in events:
        apply_event(tasks, event)

    try:
        await conn.execute("DELETE FROM tasks")
        for task in tasks.values():
            await task_store.create_task(task)
        await conn.commit()
    except Exception:
        await conn.rollback()
        raise

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    await log.ainfo(
        "projection_rebuild_completed",
        event_count=event_count,
        task_count=len(tasks),
        elapsed_ms=elapsed_ms,
    )

    return event_count
