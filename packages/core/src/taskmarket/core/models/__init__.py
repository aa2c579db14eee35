"""TaskMarket Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .actor import Actor, Provider
from .enums import (
    EDITABLE_STATES,
    FINAL_EVENT_TYPES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    ActorType,
    EventType,
    TaskPriority,
    TaskStatus,
    validate_transition,
)
from .event import Event, EventCausality
from .payloads import (
    InterestExpressedPayload,
    InterestWithdrawnPayload,
    ProviderRequestedPayload,
    RequestDeclinedPayload,
    StateTransitionPayload,
    TaskCancelledPayload,
    TaskCompletedPayload,
    TaskCreatedPayload,
    TaskDeletedPayload,
    TaskMatchedPayload,
    TaskPublishedPayload,
    TaskStartedPayload,
    TaskUpdatedPayload,
)
from .task import (
    DRAFT_EDITABLE_FIELDS,
    FLOATING_EDITABLE_FIELDS,
    Budget,
    MessageStr,
    ProviderInterest,
    ProviderRequest,
    ReasonStr,
    Task,
    TaskDraft,
    TaskLocation,
    TaskPatch,
    TaskPointers,
    TaskSchedule,
    TimeSlot,
)

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "EventType",
    "ActorType",
    # 状态机
    "VALID_TRANSITIONS",
    "TERMINAL_STATES",
    "EDITABLE_STATES",
    "FINAL_EVENT_TYPES",
    "validate_transition",
    # Task
    "Task",
    "TaskDraft",
    "TaskPatch",
    "TaskLocation",
    "TaskSchedule",
    "TimeSlot",
    "Budget",
    "ProviderInterest",
    "ProviderRequest",
    "TaskPointers",
    "DRAFT_EDITABLE_FIELDS",
    "FLOATING_EDITABLE_FIELDS",
    "MessageStr",
    "ReasonStr",
    # Actor
    "Actor",
    "Provider",
    # Event
    "Event",
    "EventCausality",
    # Payloads
    "TaskCreatedPayload",
    "TaskUpdatedPayload",
    "StateTransitionPayload",
    "TaskPublishedPayload",
    "ProviderRequestedPayload",
    "TaskMatchedPayload",
    "RequestDeclinedPayload",
    "TaskStartedPayload",
    "TaskCompletedPayload",
    "TaskCancelledPayload",
    "InterestExpressedPayload",
    "InterestWithdrawnPayload",
    "TaskDeletedPayload",
]
