"""GatewayConfig -- Gateway 访问控制配置加载

从环境变量加载配置。
"""

import os

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()

_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


class GatewayConfig(BaseModel):
    """Gateway 配置 -- 从环境变量加载

    环境变量:
        KANBAN_API_KEY: 系统级访问密钥（Bearer token，跨用户可见所有任务）
        KANBAN_USER_HEADER: 上游身份代理注入用户 ID 的请求头（默认 X-User-ID）
        KANBAN_TRUST_USER_HEADER: 是否信任该请求头（false 时只接受 Bearer）
    """

    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="系统级 API Key，为空时禁用 Bearer 访问",
    )
    user_header: str = Field(
        default="X-User-ID",
        min_length=1,
        description="携带用户 ID 的请求头",
    )
    trust_user_header: bool = Field(
        default=True,
        description="信任用户 ID 请求头；没有上游身份代理时应关闭",
    )


def load_gateway_config() -> GatewayConfig:
    """从环境变量加载 Gateway 配置

    环境变量映射:
        KANBAN_API_KEY -> api_key (默认 "")
        KANBAN_USER_HEADER -> user_header (默认 "X-User-ID")
        KANBAN_TRUST_USER_HEADER -> trust_user_header (默认 true；false / 0 / no / off 关闭)

    Returns:
        GatewayConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("KANBAN_API_KEY"):
        kwargs["api_key"] = SecretStr(val)
    else:
        log.warning(
            "api_key_not_configured",
            env_var="KANBAN_API_KEY",
            message="未配置 API Key，系统级访问不可用",
        )

    if val := os.environ.get("KANBAN_USER_HEADER"):
        kwargs["user_header"] = val

    if val := os.environ.get("KANBAN_TRUST_USER_HEADER"):
        kwargs["trust_user_header"] = val.strip().lower() not in _FALSE_VALUES

    return GatewayConfig(**kwargs)
