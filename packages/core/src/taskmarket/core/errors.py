"""领域异常体系

所有生命周期操作失败都以 TaskError 子类抛出，
code 为稳定的错误码，供 HTTP 层映射状态码。
"""


class TaskError(Exception):
    """任务领域基础异常"""

    code = "TASK_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TaskValidationError(TaskError):
    """输入字段缺失或不合法，调用方修正输入后可重试

    errors 为逐字段的校验明细（pydantic errors() 格式）。
    """

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotFoundError(TaskError):
    """引用的实体不存在"""

    code = "NOT_FOUND"


class TaskNotFoundError(NotFoundError):
    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} does not exist")
        self.task_id = task_id


class ProviderNotFoundError(NotFoundError):
    code = "PROVIDER_NOT_FOUND"

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Provider with id {provider_id} does not exist")
        self.provider_id = provider_id


class UnauthorizedError(TaskError):
    """调用方不具备执行该操作的角色"""

    code = "UNAUTHORIZED"


class NotTaskOwnerError(UnauthorizedError):
    code = "NOT_TASK_OWNER"

    def __init__(self, task_id: str, customer_id: str) -> None:
        super().__init__(f"Customer {customer_id} does not own task {task_id}")


class NotMatchedProviderError(UnauthorizedError):
    code = "NOT_MATCHED_PROVIDER"

    def __init__(self, task_id: str, provider_id: str) -> None:
        super().__init__(
            f"Provider {provider_id} is not the matched provider of task {task_id}"
        )


class NotRequestedProviderError(UnauthorizedError):
    code = "NOT_REQUESTED_PROVIDER"

    def __init__(self, task_id: str, provider_id: str) -> None:
        super().__init__(
            f"Provider {provider_id} was not requested for task {task_id}"
        )


class InvalidTransitionError(TaskError):
    """当前状态下不允许该操作"""

    code = "INVALID_TRANSITION"


class TaskTerminalStateError(InvalidTransitionError):
    code = "TASK_TERMINAL_STATE"

    def __init__(self, task_id: str, status: str) -> None:
        super().__init__(f"Task {task_id} is already in terminal state: {status}")


class TaskNotFloatingError(InvalidTransitionError):
    code = "TASK_NOT_FLOATING"

    def __init__(self, task_id: str, status: str) -> None:
        super().__init__(
            f"Task {task_id} is not open for interest (status: {status})"
        )


class TaskAlreadyPublishedError(InvalidTransitionError):
    code = "TASK_ALREADY_PUBLISHED"

    def __init__(self, task_id: str, status: str) -> None:
        super().__init__(f"Task {task_id} is already published (status: {status})")


class TaskNotEditableError(InvalidTransitionError):
    code = "TASK_NOT_EDITABLE"


class ConcurrentModificationError(TaskError):
    """乐观并发前置条件失效

    调用方应重新读取任务并判断操作是否仍然有意义，不应盲目重试。
    """

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, task_id: str, expected_status: str, expected_version: int) -> None:
        super().__init__(
            f"Task {task_id} changed concurrently "
            f"(expected status {expected_status}, version {expected_version})"
        )
        self.task_id = task_id
        self.expected_status = expected_status
        self.expected_version = expected_version


class ProviderAlreadyExistsError(TaskError):
    code = "PROVIDER_ALREADY_EXISTS"

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Provider with id {provider_id} already exists")


class IdempotencyKeyReusedError(TaskError):
    """幂等键对应的任务已被删除，不能再重放"""

    code = "IDEMPOTENCY_KEY_REUSED"

    def __init__(self, idempotency_key: str, task_id: str) -> None:
        super().__init__(
            f"Idempotency key {idempotency_key} belongs to deleted task {task_id}"
        )
        self.idempotency_key = idempotency_key
        self.task_id = task_id
