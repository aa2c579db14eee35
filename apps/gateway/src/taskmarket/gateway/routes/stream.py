"""SSE 事件流路由

GET /api/stream/task/{task_id}: SSE 实时推送指定任务的生命周期事件。
支持历史事件推送、实时新事件推送、Last-Event-ID 断线重连、心跳保活。
"""

import asyncio
import json

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse
from taskmarket.core.config import SSE_HEARTBEAT_INTERVAL
from taskmarket.core.errors import TaskNotFoundError
from taskmarket.core.models import FINAL_EVENT_TYPES
from taskmarket.core.models.event import Event

from ..deps import get_event_hub, get_store_group

router = APIRouter()


def _event_to_sse(event: Event) -> dict:
    """将 Event 模型转换为 SSE 消息"""
    is_final = event.type in FINAL_EVENT_TYPES
    data = {
        "event_id": event.event_id,
        "task_id": event.task_id,
        "task_seq": event.task_seq,
        "ts": event.ts.isoformat(),
        "type": event.type,
        "actor": event.actor,
        "actor_id": event.actor_id,
        "payload": event.payload,
        "final": is_final,
    }
    return {
        "id": event.event_id,
        "event": event.type,
        "data": json.dumps(data, ensure_ascii=False),
    }


@router.get("/api/stream/task/{task_id}")
async def stream_task_events(
    task_id: str,
    request: Request,
    store_group=Depends(get_store_group),
    event_hub=Depends(get_event_hub),
):
    """SSE 事件流端点

    1. 先推送历史事件
    2. 注册到 EventHub 监听新事件
    3. 完成 / 取消 / 删除事件携带 final: true 并结束流
    4. 支持 Last-Event-ID 断线重连
    5. 心跳保活
    """
    task = await store_group.task_store.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)

    last_event_id = request.headers.get("last-event-id")

    async def event_generator():
        # 先订阅再读历史，避免两者之间提交的事件丢失
        queue = await event_hub.subscribe(task_id)
        try:
            if last_event_id:
                events = await store_group.event_store.get_events_after(task_id, last_event_id)
            else:
                events = await store_group.event_store.get_events_for_task(task_id)

            last_seq = 0
            for event in events:
                last_seq = event.task_seq
                yield _event_to_sse(event)
                if event.type in FINAL_EVENT_TYPES:
                    return

            if task.is_terminal:
                return

            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=SSE_HEARTBEAT_INTERVAL)
                except TimeoutError:
                    yield {"comment": "heartbeat"}
                    continue
                if event.task_seq <= last_seq:
                    continue
                yield _event_to_sse(event)
                if event.type in FINAL_EVENT_TYPES:
                    return
        finally:
            await event_hub.unsubscribe(task_id, queue)

    return EventSourceResponse(event_generator())
