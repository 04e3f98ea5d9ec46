"""访问作用域 -- 用户作用域 / 系统作用域

系统作用域（API Key 访问）跨用户可见所有任务；
用户作用域只能访问 user_id 匹配的任务。
两者显式区分，避免未初始化的用户 ID 意外获得系统权限。
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class UserScope(BaseModel):
    """用户作用域"""

    kind: Literal["user"] = "user"
    user_id: str = Field(min_length=1, description="用户 ID")


class SystemScope(BaseModel):
    """系统作用域 -- 不做 owner 过滤"""

    kind: Literal["system"] = "system"


Scope = Annotated[UserScope | SystemScope, Field(discriminator="kind")]

SYSTEM_SCOPE = SystemScope()


def owner_of(scope: UserScope | SystemScope) -> str | None:
    """返回作用域对应的 owner 过滤值，系统作用域返回 None"""
    if isinstance(scope, UserScope):
        return scope.user_id
    return None
