"""FastAPI 应用主文件

app 创建时加载访问配置；lifespan 管理 DB 初始化/关闭。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from kanban.core.config import get_db_path
from kanban.core.store import create_store_group

from .config import load_gateway_config
from .errors import ApiError, api_error_handler
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import calendar, health, tasks, transitions

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB，关闭时清理连接"""
    db_path = get_db_path()
    app.state.store_group = await create_store_group(db_path)
    log.info("gateway_started", db_path=db_path)

    yield

    if getattr(app.state, "store_group", None) is not None:
        await app.state.store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Kanban Gateway",
        version="0.1.0",
        description="看板任务引擎 API：状态机、评审与活动日志",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(ApiError, api_error_handler)
    app.state.gateway_config = load_gateway_config()

    # 初始化日志
    setup_logging()
    setup_logfire(app)

    # 注册路由
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(transitions.router, tags=["transitions"])
    app.include_router(calendar.router, tags=["calendar"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
