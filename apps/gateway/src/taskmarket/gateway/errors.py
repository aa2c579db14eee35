"""错误响应映射

领域异常统一转换为 {"error": {"code", "message"}} 信封，
HTTPException 与请求体校验错误使用相同信封。
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse
from taskmarket.core.errors import (
    ConcurrentModificationError,
    IdempotencyKeyReusedError,
    InvalidTransitionError,
    NotFoundError,
    ProviderAlreadyExistsError,
    TaskError,
    TaskValidationError,
    UnauthorizedError,
)

log = structlog.get_logger()

# 按 MRO 匹配，子类继承父类的状态码
_STATUS_CODES: dict[type[TaskError], int] = {
    TaskValidationError: 422,
    NotFoundError: 404,
    UnauthorizedError: 403,
    InvalidTransitionError: 409,
    ConcurrentModificationError: 409,
    ProviderAlreadyExistsError: 409,
    IdempotencyKeyReusedError: 409,
}

_HTTP_ERROR_CODES: dict[int, str] = {
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, **extra}},
    )


def status_code_for(exc: TaskError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_CODES:
            return _STATUS_CODES[cls]
    return 400


async def task_error_handler(request: Request, exc: TaskError) -> JSONResponse:
    status_code = status_code_for(exc)
    log.info("task_operation_rejected", code=exc.code, status_code=status_code)
    if isinstance(exc, TaskValidationError) and exc.errors:
        return error_response(
            status_code, exc.code, exc.message, details=jsonable_encoder(exc.errors)
        )
    return error_response(status_code, exc.code, exc.message)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    response = error_response(exc.status_code, code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return error_response(
        422,
        TaskValidationError.code,
        "Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskError, task_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
