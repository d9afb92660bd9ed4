from .execution import (
    CoordinationModeName,
    AgentRoleModel,
    AgenticTaskRequest,
    IntermediateStep,
    AgenticTaskResponse,
    RoleResultModel,
    MultiAgentResponse,
)
from .memory import (
    MemoryImportRequest,
    MemoryPruneRequest,
    LongTermMemoryCreate,
)

__all__ = [
    # Execution
    "CoordinationModeName",
    "AgentRoleModel",
    "AgenticTaskRequest",
    "IntermediateStep",
    "AgenticTaskResponse",
    "RoleResultModel",
    "MultiAgentResponse",
    # Memory
    "MemoryImportRequest",
    "MemoryPruneRequest",
    "LongTermMemoryCreate",
]
