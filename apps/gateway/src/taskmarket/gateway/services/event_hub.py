"""EventHub -- 内存中事件广播器

生命周期事件提交后推送给订阅者（SSE 流等下游通知渠道）。
每个订阅者持有一个 asyncio.Queue，支持 subscribe/unsubscribe/broadcast。
"""

import asyncio
from collections import defaultdict

import structlog
from taskmarket.core.models.event import Event

log = structlog.get_logger()


class EventHub:
    """事件广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(self, queue_maxsize: int = 100) -> None:
        # task_id -> set of asyncio.Queue
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)
        self._queue_maxsize = queue_maxsize

    async def subscribe(self, task_id: str) -> asyncio.Queue:
        """订阅指定任务的事件流

        Returns:
            asyncio.Queue 实例，新事件会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        self._subscribers[task_id].add(queue)
        return queue

    async def unsubscribe(self, task_id: str, queue: asyncio.Queue) -> None:
        """取消订阅"""
        subscribers = self._subscribers.get(task_id)
        if subscribers is None:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._subscribers[task_id]

    def subscriber_count(self, task_id: str) -> int:
        return len(self._subscribers.get(task_id, ()))

    async def broadcast(self, task_id: str, event: Event) -> None:
        """向指定任务的所有订阅者广播事件

        消费过慢（队列已满）的订阅者会被移除。
        """
        dead_queues = []
        for queue in self._subscribers.get(task_id, set()):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                dead_queues.append(queue)

        for q in dead_queues:
            self._subscribers[task_id].discard(q)
            log.warning("event_subscriber_dropped", task_id=task_id)
        if task_id in self._subscribers and not self._subscribers[task_id]:
            del self._subscribers[task_id]
