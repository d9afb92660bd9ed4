"""
Agent Result Types - Role Execution Contract
Each role invocation in a multi-agent run reports its outcome as a RoleResult;
the coordinator aggregates them according to the coordination mode.
"""
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List


class RoleStatus(str, Enum):
    """Outcome of a single role invocation"""
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class RoleResult:
    """
    Role execution result - the contract between a role run and the coordinator

    A failed role keeps its error message and an empty output. Failures are
    recorded per role rather than raised, so the coordinator decides whether
    to abort (sequential, debate) or keep aggregating (parallel).
    """
    role_id: str
    role_name: str
    output: str = ""
    tools_used: List[str] = field(default_factory=list)
    duration_ms: float = 0.0
    error: Optional[str] = None
    # Exception behind a failure, kept so the coordinator can re-raise it
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    @property
    def status(self) -> RoleStatus:
        return RoleStatus.FAILED if self.error is not None else RoleStatus.COMPLETED

    def is_completed(self) -> bool:
        """Check if the role completed successfully"""
        return self.error is None

    def is_failed(self) -> bool:
        """Check if the role failed"""
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization"""
        result = {
            "roleId": self.role_id,
            "roleName": self.role_name,
            "status": self.status.value,
            "output": self.output,
            "toolsUsed": self.tools_used,
            "durationMs": round(self.duration_ms, 2),
        }
        if self.error is not None:
            result["error"] = self.error
        return result


# Helper functions for creating RoleResults

def completed(role_id: str, role_name: str, output: str,
              tools_used: Optional[List[str]] = None,
              duration_ms: float = 0.0) -> RoleResult:
    """Create a successful result"""
    return RoleResult(
        role_id=role_id,
        role_name=role_name,
        output=output,
        tools_used=list(tools_used or []),
        duration_ms=duration_ms,
    )


def failed(role_id: str, role_name: str, error_message: str,
           duration_ms: float = 0.0) -> RoleResult:
    """Create a failed result"""
    return RoleResult(
        role_id=role_id,
        role_name=role_name,
        duration_ms=duration_ms,
        error=error_message,
    )


def failed_with(role_id: str, role_name: str, exception: BaseException,
                duration_ms: float = 0.0) -> RoleResult:
    """Create a failed result from an exception (unwrapping execution failures)"""
    result = failed(role_id, role_name,
                    getattr(exception, "original_message", None) or str(exception),
                    duration_ms)
    result.exception = exception
    return result
