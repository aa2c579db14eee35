"""任务生命周期状态机

纯函数：输入当前 Task 快照，校验权限与状态，返回新的 Task 快照与待写入的事件。
不做任何 I/O，持久化与广播由调用方（TaskService）完成。

校验顺序：存在性（调用方）-> 终态 -> 所有权 -> 状态守卫 -> provider 角色。
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, Field, ValidationError

from .errors import (
    InvalidTransitionError,
    NotMatchedProviderError,
    NotTaskOwnerError,
    TaskAlreadyPublishedError,
    TaskNotEditableError,
    TaskTerminalStateError,
    TaskValidationError,
    UnauthorizedError,
)
from .models import (
    DRAFT_EDITABLE_FIELDS,
    EDITABLE_STATES,
    FLOATING_EDITABLE_FIELDS,
    Actor,
    ActorType,
    EventType,
    Task,
    TaskCancelledPayload,
    TaskCompletedPayload,
    TaskCreatedPayload,
    TaskDeletedPayload,
    TaskDraft,
    TaskPatch,
    TaskPublishedPayload,
    TaskStartedPayload,
    TaskStatus,
    TaskUpdatedPayload,
    validate_transition,
)


class TaskChange(BaseModel):
    """一次生命周期操作的结果

    changed 为 False 表示幂等 no-op：task 原样返回，不写事件。
    """

    task: Task
    event_type: EventType | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    changed: bool = True

    @classmethod
    def unchanged(cls, task: Task) -> "TaskChange":
        return cls(task=task, changed=False)


InputModel = TypeVar("InputModel", bound=BaseModel)


def parse_input(model: type[InputModel], data: InputModel | Mapping[str, Any]) -> InputModel:
    """校验调用方输入，pydantic 校验失败转换为 TaskValidationError"""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise TaskValidationError(
            f"Invalid {model.__name__}: {e.error_count()} validation error(s)",
            e.errors(include_url=False),
        ) from e


def ensure_not_terminal(task: Task) -> None:
    if task.is_terminal:
        raise TaskTerminalStateError(task.task_id, task.status)


def ensure_owner(task: Task, customer_id: str) -> None:
    if task.customer_id != customer_id:
        raise NotTaskOwnerError(task.task_id, customer_id)


def ensure_matched_provider(task: Task, provider_id: str) -> None:
    if task.matched_provider_id != provider_id:
        raise NotMatchedProviderError(task.task_id, provider_id)


def bump(task: Task, now: datetime, **updates: Any) -> Task:
    """不改变状态的修改：版本号 +1"""
    return task.model_copy(
        update={"version": task.version + 1, "updated_at": now, **updates}
    )


def transition(task: Task, to_status: TaskStatus, now: datetime, **updates: Any) -> Task:
    """唯一的状态流转入口，非法流转抛出 InvalidTransitionError"""
    if not validate_transition(task.status, to_status):
        raise InvalidTransitionError(
            f"Cannot transition task {task.task_id} from {task.status} to {to_status}"
        )
    return bump(task, now, status=to_status, **updates)


def create_task(
    task_id: str,
    customer_id: str,
    draft: TaskDraft | Mapping[str, Any],
    now: datetime,
) -> TaskChange:
    """在 draft 状态创建任务"""
    fields = parse_input(TaskDraft, draft).model_dump()
    task = Task(
        task_id=task_id,
        customer_id=customer_id,
        created_at=now,
        updated_at=now,
        **fields,
    )
    payload = TaskCreatedPayload(customer_id=customer_id, **fields)
    return TaskChange(
        task=task,
        event_type=EventType.TASK_CREATED,
        payload=payload.model_dump(mode="json"),
    )


def publish_task(task: Task, customer_id: str, now: datetime) -> TaskChange:
    """draft -> floating"""
    ensure_not_terminal(task)
    ensure_owner(task, customer_id)
    if task.status != TaskStatus.DRAFT:
        raise TaskAlreadyPublishedError(task.task_id, task.status)

    updated = transition(task, TaskStatus.FLOATING, now, published_at=now)
    payload = TaskPublishedPayload(from_status=task.status, to_status=updated.status)
    return TaskChange(
        task=updated,
        event_type=EventType.TASK_PUBLISHED,
        payload=payload.model_dump(mode="json"),
    )


def update_task(
    task: Task,
    customer_id: str,
    patch: TaskPatch | Mapping[str, Any],
    now: datetime,
) -> TaskChange:
    """修改描述性字段，仅 draft / floating 可编辑

    floating 状态下标题与地点已对 provider 可见，不允许再修改。
    与当前值相同的字段会被忽略；没有实际变化时为 no-op。
    """
    ensure_not_terminal(task)
    ensure_owner(task, customer_id)
    if task.status not in EDITABLE_STATES:
        raise TaskNotEditableError(
            f"Task {task.task_id} cannot be edited in status {task.status}"
        )

    patch = parse_input(TaskPatch, patch)
    allowed = DRAFT_EDITABLE_FIELDS if task.status == TaskStatus.DRAFT else FLOATING_EDITABLE_FIELDS
    requested = patch.changes()
    forbidden = sorted(set(requested) - allowed)
    if forbidden:
        raise TaskNotEditableError(
            f"Fields {', '.join(forbidden)} cannot be edited in status {task.status}"
        )

    changes = {
        name: value for name, value in requested.items() if getattr(task, name) != value
    }
    if not changes:
        return TaskChange.unchanged(task)

    payload = TaskUpdatedPayload(
        changes=patch.model_dump(mode="json", include=set(changes)),
    )
    return TaskChange(
        task=bump(task, now, **changes),
        event_type=EventType.TASK_UPDATED,
        payload=payload.model_dump(mode="json"),
    )


def delete_task(task: Task, customer_id: str, now: datetime) -> TaskChange:
    """删除任务，仅限尚未匹配的 draft / floating 任务

    返回的 task 携带删除事件对应的版本号，调用方据此写入 TASK_DELETED 后删除投影行。
    """
    ensure_not_terminal(task)
    ensure_owner(task, customer_id)
    if task.status not in EDITABLE_STATES or task.matched_provider_id is not None:
        raise InvalidTransitionError(
            f"Task {task.task_id} in status {task.status} cannot be deleted, cancel it instead"
        )

    payload = TaskDeletedPayload(deleted_by=customer_id)
    return TaskChange(
        task=bump(task, now),
        event_type=EventType.TASK_DELETED,
        payload=payload.model_dump(mode="json"),
    )


def start_task(task: Task, provider_id: str, now: datetime) -> TaskChange:
    """matched -> in_progress，仅限已匹配的 provider"""
    ensure_not_terminal(task)
    if task.status != TaskStatus.MATCHED:
        raise InvalidTransitionError(
            f"Task {task.task_id} must be matched before it can start (status: {task.status})"
        )
    ensure_matched_provider(task, provider_id)

    updated = transition(task, TaskStatus.IN_PROGRESS, now, started_at=now)
    payload = TaskStartedPayload(from_status=task.status, to_status=updated.status)
    return TaskChange(
        task=updated,
        event_type=EventType.TASK_STARTED,
        payload=payload.model_dump(mode="json"),
    )


def complete_task(task: Task, provider_id: str, now: datetime) -> TaskChange:
    """in_progress -> completed，仅限已匹配的 provider"""
    ensure_not_terminal(task)
    if task.status != TaskStatus.IN_PROGRESS:
        raise InvalidTransitionError(
            f"Task {task.task_id} must be in progress before it can complete "
            f"(status: {task.status})"
        )
    ensure_matched_provider(task, provider_id)

    updated = transition(task, TaskStatus.COMPLETED, now, completed_at=now)
    payload = TaskCompletedPayload(from_status=task.status, to_status=updated.status)
    return TaskChange(
        task=updated,
        event_type=EventType.TASK_COMPLETED,
        payload=payload.model_dump(mode="json"),
    )


def _authorize_cancel(task: Task, actor: Actor) -> None:
    if actor.role == ActorType.CUSTOMER:
        ensure_owner(task, actor.actor_id)
    elif actor.role == ActorType.PROVIDER:
        ensure_matched_provider(task, actor.actor_id)
    else:
        raise UnauthorizedError(f"Actor role {actor.role} cannot cancel task {task.task_id}")


def cancel_task(task: Task, actor: Actor, reason: str, now: datetime) -> TaskChange:
    """任意非终态 -> cancelled

    允许所属客户或已匹配的 provider 取消。
    """
    ensure_not_terminal(task)
    _authorize_cancel(task, actor)

    updated = transition(
        task,
        TaskStatus.CANCELLED,
        now,
        cancelled_at=now,
        cancelled_by=actor.role,
        cancel_reason=reason,
    )
    payload = TaskCancelledPayload(
        from_status=task.status,
        to_status=updated.status,
        reason=reason,
        cancelled_by=actor.role,
    )
    return TaskChange(
        task=updated,
        event_type=EventType.TASK_CANCELLED,
        payload=payload.model_dump(mode="json"),
    )
