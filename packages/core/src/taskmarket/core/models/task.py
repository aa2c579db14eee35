"""Task Domain Model

tasks 表是 events 的物化视图（projection），
所有状态更新必须与一条事件在同一事务内写入。
"""

from datetime import date, datetime, time
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
)

from ..config import (
    DEFAULT_CURRENCY,
    DESCRIPTION_MAX_LENGTH,
    MESSAGE_MAX_LENGTH,
    REASON_MAX_LENGTH,
    TITLE_MAX_LENGTH,
)
from .enums import TERMINAL_STATES, ActorType, TaskPriority, TaskStatus

TitleStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=TITLE_MAX_LENGTH),
]
DescriptionStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, max_length=DESCRIPTION_MAX_LENGTH),
]
MessageStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, max_length=MESSAGE_MAX_LENGTH),
]
ReasonStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, max_length=REASON_MAX_LENGTH),
]


class TaskLocation(BaseModel):
    """客户提供的服务地点"""

    address: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)] = (
        Field(description="地址描述")
    )
    locality: str = Field(default="", description="街区")
    city: str = Field(default="", description="城市")
    region: str = Field(default="", description="大区")
    gps_address: str = Field(default="", description="GhanaPost GPS 数字地址")


class TimeSlot(BaseModel):
    """期望时间段"""

    start: time
    end: time

    @model_validator(mode="after")
    def _check_order(self) -> "TimeSlot":
        if self.start >= self.end:
            raise ValueError("time slot start must be before end")
        return self


class TaskSchedule(BaseModel):
    """任务排期"""

    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="紧急程度")
    preferred_date: date | None = Field(default=None, description="期望日期")
    flexible_dates: bool = Field(default=False, description="日期是否可调整")
    time_slot: TimeSlot | None = Field(default=None, description="期望时间段")


class Budget(BaseModel):
    """预估预算"""

    min: float | None = Field(default=None, ge=0)
    max: float | None = Field(default=None, ge=0)
    currency: str = Field(default=DEFAULT_CURRENCY)

    @model_validator(mode="after")
    def _check_range(self) -> "Budget":
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("minimum budget cannot be greater than maximum budget")
        return self


class ProviderInterest(BaseModel):
    """provider 对 floating 任务的意向记录"""

    provider_id: str
    expressed_at: datetime
    message: str = ""


class ProviderRequest(BaseModel):
    """客户对某个 provider 的定向邀请"""

    provider_id: str
    requested_at: datetime
    message: str = ""


class TaskPointers(BaseModel):
    """Task 指针信息"""

    latest_event_id: str | None = Field(default=None, description="最新事件 ID")


def _normalize_tags(tags: list[str]) -> list[str]:
    """小写、去空白、保序去重"""
    seen: list[str] = []
    for tag in tags:
        cleaned = tag.strip().lower()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


class TaskDraft(BaseModel):
    """创建任务的输入，未知字段直接拒绝"""

    model_config = ConfigDict(extra="forbid")

    title: TitleStr
    description: DescriptionStr = ""
    location: TaskLocation
    schedule: TaskSchedule
    estimated_budget: Budget | None = None
    category_id: str | None = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags")
    @classmethod
    def _tags(cls, value: list[str]) -> list[str]:
        return _normalize_tags(value)


# 各可编辑状态下允许修改的字段
DRAFT_EDITABLE_FIELDS: frozenset[str] = frozenset(
    {
        "title",
        "description",
        "location",
        "schedule",
        "estimated_budget",
        "category_id",
        "tags",
    }
)
FLOATING_EDITABLE_FIELDS: frozenset[str] = DRAFT_EDITABLE_FIELDS - {"title", "location"}

# 不允许显式置空的字段
_NON_NULLABLE_PATCH_FIELDS = {"title", "description", "location", "schedule", "tags"}


class TaskPatch(BaseModel):
    """更新任务描述性字段的输入

    只有显式给出的字段会被应用；estimated_budget / category_id 可显式置为 null 以清除。
    """

    model_config = ConfigDict(extra="forbid")

    title: TitleStr | None = None
    description: DescriptionStr | None = None
    location: TaskLocation | None = None
    schedule: TaskSchedule | None = None
    estimated_budget: Budget | None = None
    category_id: str | None = None
    tags: list[str] | None = None

    @field_validator("tags")
    @classmethod
    def _tags(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_tags(value) if value is not None else None

    @model_validator(mode="after")
    def _check_nulls(self) -> "TaskPatch":
        for name in self.model_fields_set & _NON_NULLABLE_PATCH_FIELDS:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """显式给出的字段 -> 新值（模型对象保持为模型）"""
        return {name: getattr(self, name) for name in self.model_fields_set}


class Task(BaseModel):
    """Task 数据模型

    version 与最新事件的 task_seq 一致，用于乐观并发控制。
    """

    task_id: str = Field(description="唯一标识，ULID 格式")
    customer_id: str = Field(description="创建者（客户）ID，创建后不可变")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    status: TaskStatus = Field(default=TaskStatus.DRAFT, description="当前状态")
    version: int = Field(default=1, ge=1, description="乐观锁版本号")

    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    location: TaskLocation = Field(description="服务地点")
    schedule: TaskSchedule = Field(description="排期")
    estimated_budget: Budget | None = Field(default=None, description="预估预算")
    category_id: str | None = Field(default=None, description="分类 ID")
    tags: list[str] = Field(default_factory=list, description="标签")

    interested_providers: list[ProviderInterest] = Field(
        default_factory=list,
        description="表达过意向的 provider（按时间顺序，匹配后仍保留）",
    )
    requested_provider: ProviderRequest | None = Field(
        default=None, description="客户定向邀请的 provider"
    )
    matched_provider_id: str | None = Field(default=None, description="已匹配的 provider")
    provider_message: str = Field(default="", description="provider 接受邀请时的留言")
    decline_reason: str = Field(default="", description="最近一次拒绝邀请的原因")

    published_at: datetime | None = None
    matched_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: ActorType | None = None
    cancel_reason: str = ""

    pointers: TaskPointers = Field(default_factory=TaskPointers, description="指针信息")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def interested_provider_ids(self) -> list[str]:
        return [interest.provider_id for interest in self.interested_providers]

    @property
    def requested_provider_id(self) -> str | None:
        if self.requested_provider is None:
            return None
        return self.requested_provider.provider_id

    def is_interested(self, provider_id: str) -> bool:
        return provider_id in self.interested_provider_ids
