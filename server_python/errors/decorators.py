"""
Decorators - 에러 핸들링 데코레이터

함수에 적용하여 자동으로 에러를 처리하는 데코레이터와
FastAPI 예외 핸들러 등록 함수입니다.
"""

import functools
import logging
from typing import Any, Callable, Tuple, Type, TypeVar

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .exceptions import AgentTaskError
from .error_response import ErrorResponse


T = TypeVar('T')

logger = logging.getLogger(__name__)


def async_handle_errors(
    default_return: Any = None,
    log_errors: bool = True,
    reraise: bool = False,
    error_types: Tuple[Type[BaseException], ...] = (Exception,),
):
    """
    비동기 함수용 에러 핸들링 데코레이터

    Args:
        default_return: 에러 발생 시 반환할 기본값
        log_errors: 에러 로깅 여부
        reraise: 에러 재발생 여부
        error_types: 처리할 예외 타입 (그 외 예외는 그대로 전파)

    Example:
        @async_handle_errors(default_return=None)
        async def retrieve(query):
            ...
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            try:
                return await func(*args, **kwargs)
            except error_types as e:
                if log_errors:
                    _log_error(func.__name__, e)
                if reraise:
                    raise
                return default_return
        return wrapper
    return decorator


def _log_error(func_name: str, error: BaseException) -> None:
    if isinstance(error, AgentTaskError):
        logger.warning(f"[{func_name}] Error: {error.code} - {error.message}")
    else:
        logger.exception(f"[{func_name}] Unexpected error: {error}")


def register_exception_handlers(app: FastAPI) -> None:
    """
    FastAPI 예외 핸들러 등록

    AgentTaskError 계열, pydantic 요청 검증 에러, 예상치 못한 예외를 ErrorResponse JSON으로 변환합니다.

    Args:
        app: FastAPI 앱
    """

    @app.exception_handler(AgentTaskError)
    async def _agent_task_error_handler(request: Request, exc: AgentTaskError):
        response = ErrorResponse.from_exception(exc)
        if response.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.code} - {exc.message}")
        return JSONResponse(status_code=response.status_code, content=response.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors()
        ]
        response = ErrorResponse.validation_error("Request validation failed", errors=errors)
        return JSONResponse(status_code=response.status_code, content=response.to_dict())

    @app.exception_handler(Exception)
    async def _unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} failed: {exc}")
        response = ErrorResponse.from_exception(exc)
        return JSONResponse(status_code=response.status_code, content=response.to_dict())
