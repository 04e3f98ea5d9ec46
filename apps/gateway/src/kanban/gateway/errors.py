"""Gateway 异常体系

依赖注入阶段（鉴权等）无法直接返回 JSONResponse，
以 ApiError 抛出，由 create_app 注册的处理器转换为统一错误体：
{"error": {"code": ..., "message": ...}}
"""

from fastapi import Request
from starlette.responses import JSONResponse


class ApiError(Exception):
    """Gateway 基础异常"""

    def __init__(self, status_code: int, code: str, message: str) -> None:
        """
        Args:
            status_code: HTTP 状态码
            code: 机器可读错误码
            message: 错误描述
        """
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class AuthRequiredError(ApiError):
    """未携带任何身份信息"""

    def __init__(self) -> None:
        super().__init__(401, "AUTH_REQUIRED", "Authentication required")


class InvalidApiKeyError(ApiError):
    """Bearer token 与配置的 API Key 不符"""

    def __init__(self) -> None:
        super().__init__(401, "INVALID_API_KEY", "Invalid API key")


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    """构建统一错误响应"""
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def task_not_found(task_id: str) -> JSONResponse:
    return error_response(404, "TASK_NOT_FOUND", f"Task with id {task_id} does not exist")


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """ApiError -> 统一错误体"""
    return error_response(exc.status_code, exc.code, exc.message)
