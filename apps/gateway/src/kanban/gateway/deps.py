"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store / Service / 访问作用域

Store 实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

import secrets

import structlog
from fastapi import Depends, Request
from kanban.core.models import SYSTEM_SCOPE, SystemScope, UserScope
from kanban.core.store import StoreGroup

from .config import GatewayConfig
from .errors import AuthRequiredError, InvalidApiKeyError
from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_gateway_config(request: Request) -> GatewayConfig:
    """从 app.state 获取 GatewayConfig"""
    return request.app.state.gateway_config


def get_task_service(store_group: StoreGroup = Depends(get_store_group)) -> TaskService:
    return TaskService(store_group)


def get_scope(
    request: Request,
    config: GatewayConfig = Depends(get_gateway_config),
) -> UserScope | SystemScope:
    """解析访问作用域

    - Authorization: Bearer <api_key> -> 系统作用域
    - 上游注入的用户 ID 请求头 -> 用户作用域（trust_user_header 关闭时忽略）
    - 均无 -> 401
    """
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):]
        expected = config.api_key.get_secret_value()
        if expected and secrets.compare_digest(token, expected):
            structlog.contextvars.bind_contextvars(auth="api_key")
            return SYSTEM_SCOPE
        raise InvalidApiKeyError()

    if not config.trust_user_header:
        raise AuthRequiredError()
    user_id = request.headers.get(config.user_header, "").strip()
    if not user_id:
        raise AuthRequiredError()
    structlog.contextvars.bind_contextvars(auth="user", user_id=user_id)
    return UserScope(user_id=user_id)
