"""
Errors - 에러 처리 모듈

표준화된 에러 처리 및 응답 형식을 제공합니다.
"""

from .exceptions import (
    AgentTaskError,
    ValidationError,
    SessionNotFoundError,
    ResourceNotFoundError,
    ServiceUnavailableError,
    ProviderTimeoutError,
    LLMError,
    AgentExecutionError,
    ExecutionCancelledError,
    ContentSafetyViolationError,
)

from .error_response import ErrorResponse, ErrorType, ErrorSeverity

from .decorators import async_handle_errors, register_exception_handlers

__all__ = [
    # Exceptions
    "AgentTaskError",
    "ValidationError",
    "SessionNotFoundError",
    "ResourceNotFoundError",
    "ServiceUnavailableError",
    "ProviderTimeoutError",
    "LLMError",
    "AgentExecutionError",
    "ExecutionCancelledError",
    "ContentSafetyViolationError",

    # Response
    "ErrorResponse",
    "ErrorType",
    "ErrorSeverity",

    # Decorators
    "async_handle_errors",
    "register_exception_handlers",
]
