"""撮合子系统

两条撮合路径汇聚到同一个 matched 状态：
- floating 任务上任意 provider 表达意向，客户从中选定即直接 matched；
- 客户定向邀请某个 provider（requested），由该 provider 接受或拒绝。
"""

from datetime import datetime

from .errors import InvalidTransitionError, NotRequestedProviderError, TaskNotFloatingError
from .lifecycle import TaskChange, bump, ensure_not_terminal, ensure_owner, transition
from .models import (
    EventType,
    InterestExpressedPayload,
    InterestWithdrawnPayload,
    ProviderInterest,
    ProviderRequest,
    ProviderRequestedPayload,
    RequestDeclinedPayload,
    Task,
    TaskMatchedPayload,
    TaskStatus,
)

MATCH_VIA_INTEREST = "interest"
MATCH_VIA_ACCEPT = "accept"


def _ensure_floating(task: Task) -> None:
    if task.status != TaskStatus.FLOATING:
        raise TaskNotFloatingError(task.task_id, task.status)


def express_interest(task: Task, provider_id: str, message: str, now: datetime) -> TaskChange:
    """provider 对 floating 任务表达意向，重复表达为 no-op"""
    ensure_not_terminal(task)
    _ensure_floating(task)
    if task.is_interested(provider_id):
        return TaskChange.unchanged(task)

    interest = ProviderInterest(provider_id=provider_id, expressed_at=now, message=message)
    payload = InterestExpressedPayload(provider_id=provider_id, message=message)
    return TaskChange(
        task=bump(task, now, interested_providers=[*task.interested_providers, interest]),
        event_type=EventType.INTEREST_EXPRESSED,
        payload=payload.model_dump(mode="json"),
    )


def withdraw_interest(task: Task, provider_id: str, now: datetime) -> TaskChange:
    """provider 撤回意向，仅 floating 状态；未表达过意向时为 no-op"""
    ensure_not_terminal(task)
    _ensure_floating(task)
    if not task.is_interested(provider_id):
        return TaskChange.unchanged(task)

    remaining = [i for i in task.interested_providers if i.provider_id != provider_id]
    payload = InterestWithdrawnPayload(provider_id=provider_id)
    return TaskChange(
        task=bump(task, now, interested_providers=remaining),
        event_type=EventType.INTEREST_WITHDRAWN,
        payload=payload.model_dump(mode="json"),
    )


def request_provider(
    task: Task,
    customer_id: str,
    provider_id: str,
    message: str,
    now: datetime,
) -> TaskChange:
    """客户选定 provider

    - 已表达意向的 provider：直接 matched，requested_provider 清空；
    - 其他 provider：进入 requested，等待该 provider 答复；
      requested 状态下改邀另一个 provider 会替换原邀请；
    - 重复邀请同一个 provider 为 no-op。
    provider 是否存在由调用方校验。
    """
    ensure_not_terminal(task)
    ensure_owner(task, customer_id)
    if task.status not in (TaskStatus.FLOATING, TaskStatus.REQUESTED):
        raise InvalidTransitionError(
            f"Cannot request a provider for task {task.task_id} in status {task.status}"
        )
    if task.requested_provider_id == provider_id:
        return TaskChange.unchanged(task)

    if task.is_interested(provider_id):
        updated = transition(
            task,
            TaskStatus.MATCHED,
            now,
            matched_provider_id=provider_id,
            matched_at=now,
            requested_provider=None,
        )
        matched = TaskMatchedPayload(
            from_status=task.status,
            to_status=updated.status,
            provider_id=provider_id,
            via=MATCH_VIA_INTEREST,
            message=message,
        )
        return TaskChange(
            task=updated,
            event_type=EventType.TASK_MATCHED,
            payload=matched.model_dump(mode="json"),
        )

    request = ProviderRequest(provider_id=provider_id, requested_at=now, message=message)
    updated = transition(task, TaskStatus.REQUESTED, now, requested_provider=request)
    requested = ProviderRequestedPayload(
        from_status=task.status,
        to_status=updated.status,
        provider_id=provider_id,
        message=message,
    )
    return TaskChange(
        task=updated,
        event_type=EventType.PROVIDER_REQUESTED,
        payload=requested.model_dump(mode="json"),
    )


def _ensure_addressed(task: Task, provider_id: str) -> None:
    ensure_not_terminal(task)
    if task.status != TaskStatus.REQUESTED:
        raise InvalidTransitionError(
            f"Task {task.task_id} has no pending provider request (status: {task.status})"
        )
    if task.requested_provider_id != provider_id:
        raise NotRequestedProviderError(task.task_id, provider_id)


def accept_request(task: Task, provider_id: str, message: str, now: datetime) -> TaskChange:
    """被邀请的 provider 接受：requested -> matched

    requested_provider 保留作为邀请记录。
    """
    _ensure_addressed(task, provider_id)

    updated = transition(
        task,
        TaskStatus.MATCHED,
        now,
        matched_provider_id=provider_id,
        matched_at=now,
        provider_message=message,
    )
    payload = TaskMatchedPayload(
        from_status=task.status,
        to_status=updated.status,
        provider_id=provider_id,
        via=MATCH_VIA_ACCEPT,
        message=message,
    )
    return TaskChange(
        task=updated,
        event_type=EventType.TASK_MATCHED,
        payload=payload.model_dump(mode="json"),
    )


def decline_request(task: Task, provider_id: str, reason: str, now: datetime) -> TaskChange:
    """被邀请的 provider 拒绝：requested -> floating，任务重新开放"""
    _ensure_addressed(task, provider_id)

    updated = transition(
        task,
        TaskStatus.FLOATING,
        now,
        requested_provider=None,
        decline_reason=reason,
    )
    payload = RequestDeclinedPayload(
        from_status=task.status,
        to_status=updated.status,
        provider_id=provider_id,
        reason=reason,
    )
    return TaskChange(
        task=updated,
        event_type=EventType.REQUEST_DECLINED,
        payload=payload.model_dump(mode="json"),
    )
