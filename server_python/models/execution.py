from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator


class CoordinationModeName(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    DEBATE = "debate"
    ROUTER = "router"


class AgentRoleModel(BaseModel):
    id: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    systemPrompt: Optional[str] = Field(default=None, max_length=2000)
    enabledToolCategories: Optional[List[str]] = Field(default=None, max_length=20)
    specificTools: Optional[List[str]] = Field(default=None, max_length=50)


class AgenticTaskRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=10000)
    sessionId: Optional[str] = Field(default=None, pattern=r"^[a-zA-Z0-9_-]{3,50}$")
    model: Optional[str] = Field(default=None, max_length=100)
    temperature: Optional[float] = Field(default=None, ge=0, le=1)
    maxIterations: Optional[int] = Field(default=None, ge=1, le=20)
    enabledToolCategories: Optional[List[str]] = Field(default=None, max_length=20)
    specificTools: Optional[List[str]] = Field(default=None, max_length=50)

    # 실행 옵션
    useGraph: bool = False
    enableRAG: bool = False
    stream: bool = False

    # 멀티 에이전트
    multiAgent: bool = False
    agents: Optional[List[AgentRoleModel]] = Field(default=None, min_length=1, max_length=10)
    mode: Optional[CoordinationModeName] = None
    maxRounds: Optional[int] = Field(default=None, ge=1, le=10)

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt must not be blank")
        return v

    @model_validator(mode="after")
    def _multi_agent_requires_agents(self) -> "AgenticTaskRequest":
        if self.multiAgent and not self.agents:
            raise ValueError("agents are required when multiAgent is true")
        return self


class IntermediateStep(BaseModel):
    tool: str
    input: Dict[str, Any] = Field(default_factory=dict)
    output: Optional[str] = None
    error: Optional[str] = None
    duration: Optional[float] = None  # ms


class AgenticTaskResponse(BaseModel):
    output: str
    model: str
    sessionId: str
    toolsUsed: List[str] = Field(default_factory=list)
    intermediateSteps: List[IntermediateStep] = Field(default_factory=list)
    executionTime: Optional[float] = None  # ms


class RoleResultModel(BaseModel):
    roleId: str
    roleName: str
    status: str
    output: str = ""
    toolsUsed: List[str] = Field(default_factory=list)
    durationMs: float = 0
    error: Optional[str] = None


class MultiAgentResponse(BaseModel):
    output: str
    mode: CoordinationModeName
    sessionId: str
    agentResults: List[RoleResultModel] = Field(default_factory=list)
    totalDurationMs: float = 0
    rounds: int = 1
