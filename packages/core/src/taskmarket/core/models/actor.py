"""Actor / Provider Domain Model

Actor 是经过认证的调用方（角色 + ID），由身份中间件解析后传入。
Provider 是最小化的 provider 目录条目，仅用于校验 provider 引用。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import ActorType


class Actor(BaseModel):
    """调用方身份"""

    role: ActorType = Field(description="调用方角色")
    actor_id: str = Field(min_length=1, description="customerId 或 providerProfileId")


class Provider(BaseModel):
    """provider 目录条目"""

    provider_id: str = Field(description="唯一标识，ULID 格式")
    display_name: str = Field(description="展示名称")
    created_at: datetime = Field(description="注册时间")
