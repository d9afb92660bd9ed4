#!/usr/bin/env python3
"""
Orchestration Module - 실행 조정 시스템

모듈 구성:
- circuit_breaker: 외부 호출 보호 (closed / open / half_open)
- events: 스트림 이벤트 타입
- cancellation: 협조적 취소 토큰
- retrieval: RAG 컨텍스트 검색
- content_safety: 입력/출력 안전성 검사
- orchestrator: 단일 에이전트 스트리밍 실행
- parallel_executor: 병렬 Role 실행
- coordinator: 멀티 에이전트 조정
"""

from .circuit_breaker import (
    CircuitBreaker,
    CircuitConfig,
    CircuitOpenError,
    CircuitState,
    CircuitStats,
)

from .events import StreamEvent, StreamEventType, TERMINAL_EVENT_TYPES

from .cancellation import CancellationToken

from .retrieval import Retriever, LongTermMemoryRetriever

from .content_safety import (
    ContentSafetyChecker,
    AzureContentSafetyChecker,
    SafetyVerdict,
)

from .orchestrator import ExecutionOrchestrator, ExecutionRequest, ExecutionResult

from .parallel_executor import ParallelExecutor

from .coordinator import (
    AgentRole,
    CoordinationMode,
    CoordinationRun,
    CoordinationResult,
    MultiAgentCoordinator,
)

__all__ = [
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitConfig",
    "CircuitOpenError",
    "CircuitState",
    "CircuitStats",
    # Events
    "StreamEvent",
    "StreamEventType",
    "TERMINAL_EVENT_TYPES",
    "CancellationToken",
    # Collaborators
    "Retriever",
    "LongTermMemoryRetriever",
    "ContentSafetyChecker",
    "AzureContentSafetyChecker",
    "SafetyVerdict",
    # Execution
    "ExecutionOrchestrator",
    "ExecutionRequest",
    "ExecutionResult",
    "ParallelExecutor",
    # Coordination
    "AgentRole",
    "CoordinationMode",
    "CoordinationRun",
    "CoordinationResult",
    "MultiAgentCoordinator",
]
