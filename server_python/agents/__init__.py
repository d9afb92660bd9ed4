from .agent_result import RoleResult, RoleStatus, completed, failed, failed_with

__all__ = [
    "RoleResult",
    "RoleStatus",
    "completed",
    "failed",
    "failed_with",
]
