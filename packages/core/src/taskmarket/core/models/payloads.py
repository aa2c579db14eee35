"""Event Payload 子类型

所有事件的结构化 payload 定义。projection 依赖这些字段重放任务状态，
新增字段必须带默认值以保证旧事件可反序列化。
"""

from typing import Any

from pydantic import BaseModel, Field

from .enums import ActorType, TaskStatus
from .task import Budget, TaskLocation, TaskSchedule


class TaskCreatedPayload(BaseModel):
    """TASK_CREATED 事件 payload（完整的描述性快照）"""

    customer_id: str
    title: str
    description: str = ""
    location: TaskLocation
    schedule: TaskSchedule
    estimated_budget: Budget | None = None
    category_id: str | None = None
    tags: list[str] = Field(default_factory=list)


class TaskUpdatedPayload(BaseModel):
    """TASK_UPDATED 事件 payload"""

    changes: dict[str, Any] = Field(description="字段名 -> 新值（JSON 形式）")


class StateTransitionPayload(BaseModel):
    """状态流转类事件的公共 payload"""

    from_status: TaskStatus
    to_status: TaskStatus
    reason: str = Field(default="")


class TaskPublishedPayload(StateTransitionPayload):
    """TASK_PUBLISHED 事件 payload"""


class ProviderRequestedPayload(StateTransitionPayload):
    """PROVIDER_REQUESTED 事件 payload"""

    provider_id: str
    message: str = ""


class TaskMatchedPayload(StateTransitionPayload):
    """TASK_MATCHED 事件 payload

    via: "accept" 表示 provider 接受邀请，"interest" 表示客户直接选中已表达意向的 provider。
    """

    provider_id: str
    via: str = Field(default="accept")
    message: str = ""


class RequestDeclinedPayload(StateTransitionPayload):
    """REQUEST_DECLINED 事件 payload"""

    provider_id: str


class TaskStartedPayload(StateTransitionPayload):
    """TASK_STARTED 事件 payload"""


class TaskCompletedPayload(StateTransitionPayload):
    """TASK_COMPLETED 事件 payload"""


class TaskCancelledPayload(StateTransitionPayload):
    """TASK_CANCELLED 事件 payload"""

    cancelled_by: ActorType


class InterestExpressedPayload(BaseModel):
    """INTEREST_EXPRESSED 事件 payload"""

    provider_id: str
    message: str = ""


class InterestWithdrawnPayload(BaseModel):
    """INTEREST_WITHDRAWN 事件 payload"""

    provider_id: str


class TaskDeletedPayload(BaseModel):
    """TASK_DELETED 事件 payload"""

    deleted_by: str
