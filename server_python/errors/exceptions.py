"""
Exceptions - 커스텀 예외 클래스

프로젝트 전체에서 사용하는 표준화된 예외 클래스입니다.
"""

from typing import Optional, Dict, Any, List


class AgentTaskError(Exception):
    """Agentic Task Server 기본 에러 클래스"""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            message: 에러 메시지
            code: 에러 코드
            details: 추가 상세 정보
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        """에러를 딕셔너리로 변환"""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class ValidationError(AgentTaskError):
    """입력 검증 실패 시 발생"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field": field} if field else {}
        )
        self.field = field


class SessionNotFoundError(AgentTaskError):
    """세션을 찾을 수 없을 때 발생"""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Session '{session_id}' not found",
            code="SESSION_NOT_FOUND",
            details={"session_id": session_id}
        )


class ResourceNotFoundError(AgentTaskError):
    """요청한 리소스(메모리 항목, 스냅샷, Circuit)를 찾을 수 없을 때 발생"""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} '{identifier}' not found",
            code="NOT_FOUND",
            details={"resource": resource, "id": identifier}
        )


class ServiceUnavailableError(AgentTaskError):
    """외부 의존성을 일시적으로 사용할 수 없을 때 발생 (재시도 가능)"""

    retryable = True

    def __init__(
        self,
        message: str,
        code: str = "SERVICE_UNAVAILABLE",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message=message, code=code, details=details)


class ProviderTimeoutError(ServiceUnavailableError):
    """외부 호출이 제한 시간을 초과했을 때 발생"""

    def __init__(self, circuit_name: str, timeout_seconds: float):
        super().__init__(
            message=f"Operation timeout after {int(timeout_seconds * 1000)}ms ({circuit_name})",
            code="PROVIDER_TIMEOUT",
            details={"circuit": circuit_name, "timeout_seconds": timeout_seconds}
        )


class LLMError(AgentTaskError):
    """LLM 호출 관련 에러"""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(
            message=message,
            code="LLM_ERROR",
            details={
                "provider": provider,
                "model": model,
                "status_code": status_code
            }
        )
        self.status_code = status_code


class AgentExecutionError(AgentTaskError):
    """추론 루프 실행 실패 (원본 메시지 보존)"""

    def __init__(self, message: str, session_id: Optional[str] = None):
        super().__init__(
            message=f"Agent execution failed: {message}",
            code="AGENT_EXECUTION_FAILED",
            details={"session_id": session_id} if session_id else {}
        )
        self.original_message = message


class ExecutionCancelledError(AgentTaskError):
    """클라이언트가 실행을 취소했을 때 발생"""

    def __init__(self, session_id: str):
        super().__init__(
            message="Execution cancelled by client",
            code="EXECUTION_CANCELLED",
            details={"session_id": session_id}
        )


class ContentSafetyViolationError(AgentTaskError):
    """콘텐츠 안전 정책 위반 시 발생"""

    def __init__(self, violations: List[Dict[str, Any]]):
        categories = ", ".join(v.get("category", "unknown") for v in violations)
        super().__init__(
            message=f"Content safety violation detected: {categories}",
            code="CONTENT_SAFETY_VIOLATION",
            details={"violations": violations}
        )
        self.violations = violations

