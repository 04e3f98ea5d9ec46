"""LoggingMiddleware -- 请求日志与 request_id 传递

上游代理已分配 X-Request-ID 时沿用该值（限 64 个 [A-Za-z0-9._-] 字符），
否则生成 ULID。request_id 绑定到 structlog contextvars，并在响应头中回传。
"""

import re
import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9._-]{1,64}")


def resolve_request_id(inbound: str | None) -> str:
    if inbound and _REQUEST_ID_RE.fullmatch(inbound):
        return inbound
    return str(ULID())


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        started = time.monotonic()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        log = structlog.get_logger()
        await log.ainfo(
            "request_started",
            client=request.client.host if request.client else None,
        )

        response = await call_next(request)

        # 失败请求记 warning，便于按级别筛出 4xx / 5xx
        log_method = log.ainfo if response.status_code < 400 else log.awarning
        await log_method(
            "request_completed",
            status_code=response.status_code,
            elapsed_ms=round((time.monotonic() - started) * 1000, 1),
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
