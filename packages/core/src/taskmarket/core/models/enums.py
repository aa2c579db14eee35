"""枚举定义

包含 TaskStatus 状态机、TaskPriority、EventType、ActorType 枚举，
以及 VALID_TRANSITIONS 合法流转映射和 TERMINAL_STATES 终态集合。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 生命周期状态"""

    DRAFT = "draft"
    # 已发布、未匹配，任何 provider 可表达意向
    FLOATING = "floating"
    # 客户定向邀请某个 provider，等待其答复
    REQUESTED = "requested"
    MATCHED = "matched"
    IN_PROGRESS = "in_progress"

    # 终态
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# 合法状态流转（意向表达不改变状态，不在此表中）
VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.DRAFT: {TaskStatus.FLOATING, TaskStatus.CANCELLED},
    TaskStatus.FLOATING: {
        TaskStatus.REQUESTED,
        TaskStatus.MATCHED,
        TaskStatus.CANCELLED,
    },
    TaskStatus.REQUESTED: {
        # 客户改为邀请另一个 provider
        TaskStatus.REQUESTED,
        TaskStatus.MATCHED,
        # provider 拒绝，任务重新开放
        TaskStatus.FLOATING,
        TaskStatus.CANCELLED,
    },
    TaskStatus.MATCHED: {TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    # 终态不可再流转
    TaskStatus.COMPLETED: set(),
    TaskStatus.CANCELLED: set(),
}

TERMINAL_STATES: set[TaskStatus] = {
    TaskStatus.COMPLETED,
    TaskStatus.CANCELLED,
}

# 允许客户编辑/删除的状态
EDITABLE_STATES: set[TaskStatus] = {TaskStatus.DRAFT, TaskStatus.FLOATING}


class TaskPriority(StrEnum):
    """任务紧急程度"""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class EventType(StrEnum):
    """领域事件类型"""

    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_PUBLISHED = "TASK_PUBLISHED"
    INTEREST_EXPRESSED = "INTEREST_EXPRESSED"
    INTEREST_WITHDRAWN = "INTEREST_WITHDRAWN"
    PROVIDER_REQUESTED = "PROVIDER_REQUESTED"
    REQUEST_DECLINED = "REQUEST_DECLINED"
    TASK_MATCHED = "TASK_MATCHED"
    TASK_STARTED = "TASK_STARTED"
    TASK_COMPLETED = "TASK_COMPLETED"
    TASK_CANCELLED = "TASK_CANCELLED"
    TASK_DELETED = "TASK_DELETED"


# 标识事件流结束的事件类型
FINAL_EVENT_TYPES: set[EventType] = {
    EventType.TASK_COMPLETED,
    EventType.TASK_CANCELLED,
    EventType.TASK_DELETED,
}


class ActorType(StrEnum):
    """操作者类型"""

    CUSTOMER = "customer"
    PROVIDER = "provider"
    SYSTEM = "system"


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果流转合法，否则 False
    """
    allowed = VALID_TRANSITIONS.get(from_status, set())
    return to_status in allowed
