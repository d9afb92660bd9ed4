"""
ErrorResponse - 표준 에러 응답 형식

API 응답에서 사용하는 표준화된 에러 응답 클래스입니다.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List
from uuid import uuid4


class ErrorType(str, Enum):
    """에러 유형"""
    NETWORK = "network"
    VALIDATION = "validation"
    BUSINESS = "business"
    RESILIENCE = "resilience"
    SAFETY = "safety"
    SYSTEM = "system"


class ErrorSeverity(str, Enum):
    """에러 심각도"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# 에러 코드 → (유형, 심각도, HTTP 상태 코드)
_CODE_MAPPING = {
    "VALIDATION_ERROR": (ErrorType.VALIDATION, ErrorSeverity.WARNING, 400),
    "SESSION_NOT_FOUND": (ErrorType.BUSINESS, ErrorSeverity.WARNING, 404),
    "NOT_FOUND": (ErrorType.BUSINESS, ErrorSeverity.WARNING, 404),
    "SERVICE_UNAVAILABLE": (ErrorType.RESILIENCE, ErrorSeverity.ERROR, 503),
    "CIRCUIT_OPEN": (ErrorType.RESILIENCE, ErrorSeverity.ERROR, 503),
    "PROVIDER_TIMEOUT": (ErrorType.RESILIENCE, ErrorSeverity.ERROR, 503),
    "LLM_ERROR": (ErrorType.NETWORK, ErrorSeverity.ERROR, 502),
    "CONTENT_SAFETY_VIOLATION": (ErrorType.SAFETY, ErrorSeverity.WARNING, 400),
    "EXECUTION_CANCELLED": (ErrorType.BUSINESS, ErrorSeverity.INFO, 499),
    "AGENT_EXECUTION_FAILED": (ErrorType.SYSTEM, ErrorSeverity.ERROR, 500),
}


@dataclass
class ErrorResponse:
    """표준 에러 응답"""
    error_code: str
    message: str
    error_type: ErrorType = ErrorType.SYSTEM
    severity: ErrorSeverity = ErrorSeverity.ERROR
    status_code: int = 500
    details: Optional[Dict[str, Any]] = None
    retryable: bool = False
    trace_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        """딕셔너리로 변환"""
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "type": self.error_type.value,
                "severity": self.severity.value,
                "message": self.message,
                "details": self.details,
                "retryable": self.retryable,
                "traceId": self.trace_id,
                "timestamp": self.timestamp.isoformat()
            }
        }

    @classmethod
    def from_exception(cls, exception: Exception, trace_id: Optional[str] = None):
        """예외로부터 ErrorResponse 생성"""
        from .exceptions import AgentTaskError

        if isinstance(exception, AgentTaskError):
            error_type, severity, status_code = _CODE_MAPPING.get(
                exception.code,
                (ErrorType.SYSTEM, ErrorSeverity.ERROR, 500)
            )
            return cls(
                error_code=exception.code,
                message=exception.message,
                error_type=error_type,
                severity=severity,
                status_code=status_code,
                details=exception.details,
                retryable=exception.retryable,
                trace_id=trace_id or str(uuid4())
            )

        # 일반 예외
        return cls(
            error_code="INTERNAL_ERROR",
            message=str(exception),
            error_type=ErrorType.SYSTEM,
            severity=ErrorSeverity.ERROR,
            trace_id=trace_id or str(uuid4())
        )

    @classmethod
    def validation_error(
        cls,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
    ):
        """검증 에러 생성 (필드 단위 상세 포함)"""
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if errors:
            details["errors"] = errors
        return cls(
            error_code="VALIDATION_ERROR",
            message=message,
            error_type=ErrorType.VALIDATION,
            severity=ErrorSeverity.WARNING,
            status_code=422 if errors else 400,
            details=details or None
        )

