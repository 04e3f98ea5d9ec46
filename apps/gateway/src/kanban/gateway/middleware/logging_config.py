"""logging_config -- Kanban Gateway 的 structlog 配置

所有事件都带 service="kanban-gateway"，并在渲染前遮蔽凭据类字段
（authorization / api_key / token），避免 Bearer 密钥进入日志。

KANBAN_LOG_FORMAT=json 输出结构化 JSON，其余取值为终端可读格式。
Logfire APM 由 LOGFIRE_SEND_TO_LOGFIRE 控制，关闭时只写本地日志。
"""

import logging
import os

import structlog
from fastapi import FastAPI
from structlog.types import EventDict, WrappedLogger

SERVICE_NAME = "kanban-gateway"

_SECRET_KEYS = frozenset({"authorization", "api_key", "token"})
_REDACTED = "***"


def add_service_name(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def redact_secrets(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """遮蔽凭据字段的值，保留键名便于排查"""
    for key in event_dict.keys() & _SECRET_KEYS:
        if event_dict[key]:
            event_dict[key] = _REDACTED
    return event_dict


def setup_logging() -> None:
    """初始化 structlog，并让 uvicorn / aiosqlite 的标准库日志共用同一渲染器"""
    log_format = os.environ.get("KANBAN_LOG_FORMAT", "dev")
    log_level = os.environ.get("KANBAN_LOG_LEVEL", "INFO")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def setup_logfire(app: FastAPI) -> None:
    """LOGFIRE_SEND_TO_LOGFIRE=true 时接入 Logfire（需要 LOGFIRE_TOKEN）"""
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower() != "true":
        return
    try:
        import logfire

        logfire.configure(service_name=SERVICE_NAME)
        logfire.instrument_fastapi(app)
    except Exception:
        structlog.get_logger().warning(
            "logfire_init_failed",
            message="Logfire 初始化失败，降级为纯本地日志",
        )
