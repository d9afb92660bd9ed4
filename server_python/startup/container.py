"""
AppContainer - 프로세스 단위 싱글톤 구성

Circuit Breaker, Context Cache, MemoryStore 등 공유 상태를 시작 시 한 번 생성하고
FastAPI lifespan에서 startup()/shutdown()으로 수명을 관리합니다.
"""

import logging
from datetime import timedelta
from typing import Optional

from agentic import LLMClient, ReasoningLoop, ToolCallingLoop
from agents.orchestration import (
    AzureContentSafetyChecker,
    CircuitBreaker,
    CircuitConfig,
    ContentSafetyChecker,
    ExecutionOrchestrator,
    LongTermMemoryRetriever,
    MultiAgentCoordinator,
    ParallelExecutor,
)
from context import ContextCache, MemoryStore, SnapshotRepository, create_snapshot_repository
from tools import ToolRegistry
from tools.builtin import register_all_builtin_tools

from .settings import Settings

logger = logging.getLogger(__name__)


class AppContainer:
    """
    애플리케이션 의존성 컨테이너

    책임:
    - 설정에 따라 공유 인스턴스 생성 및 연결
    - 백그라운드 작업 시작 (세션 sweeper)
    - 종료 시 HTTP 세션/저장소 정리
    """

    def __init__(
        self,
        settings: Settings,
        reasoning_loop: Optional[ReasoningLoop] = None,
        safety_checker: Optional[ContentSafetyChecker] = None,
        snapshot_repository: Optional[SnapshotRepository] = None,
    ):
        """
        Args:
            settings: 서버 설정
            reasoning_loop: 추론 루프 (없으면 LLM 기반 ToolCallingLoop)
            safety_checker: 콘텐츠 안전성 검사기 (없으면 설정에 따라 생성)
            snapshot_repository: 스냅샷 저장소 (없으면 설정에 따라 생성)
        """
        self.settings = settings

        self.circuit_breaker = CircuitBreaker(CircuitConfig(
            failure_threshold=settings.circuit_failure_threshold,
            success_threshold=settings.circuit_success_threshold,
            timeout_seconds=settings.circuit_timeout_seconds,
            reset_timeout_seconds=settings.circuit_reset_timeout_seconds,
        ))
        self.context_cache: ContextCache = ContextCache(
            ttl_seconds=settings.cache_ttl_seconds,
            max_size=settings.cache_max_size,
        )
        self.memory_store = MemoryStore(
            inactivity_timeout=timedelta(seconds=settings.memory_session_timeout_seconds),
        )

        self.tool_registry = ToolRegistry()
        register_all_builtin_tools(self.tool_registry)

        self.llm_client = LLMClient(
            api_url=settings.llm_api_url,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )
        self.reasoning_loop = reasoning_loop or ToolCallingLoop(self.llm_client, self.circuit_breaker)

        self.retriever = LongTermMemoryRetriever(self.memory_store, cache=self.context_cache)
        self.safety_checker = safety_checker if safety_checker is not None else self._create_safety_checker()
        self.snapshot_repository = snapshot_repository or create_snapshot_repository(
            settings.memory_snapshot_backend,
            storage_dir=settings.memory_snapshot_dir,
            url=settings.redis_url,
        )

        self.orchestrator = ExecutionOrchestrator(
            reasoning_loop=self.reasoning_loop,
            tool_registry=self.tool_registry,
            memory_store=self.memory_store,
            retriever=self.retriever,
            safety_checker=self.safety_checker,
            default_model=settings.llm_model,
            default_temperature=settings.llm_temperature,
            default_max_iterations=settings.agent_max_iterations,
        )
        self.coordinator = MultiAgentCoordinator(self.orchestrator, ParallelExecutor())

    def _create_safety_checker(self) -> Optional[AzureContentSafetyChecker]:
        if not self.settings.content_safety_configured:
            logger.info("[AppContainer] Content safety disabled")
            return None

        logger.info("[AppContainer] Content safety enabled (Azure)")
        return AzureContentSafetyChecker(
            endpoint=self.settings.content_safety_endpoint,
            api_key=self.settings.content_safety_api_key,
            thresholds=self.settings.content_safety_thresholds,
        )

    async def startup(self) -> None:
        """백그라운드 작업 시작"""
        self.memory_store.start_sweeper(self.settings.memory_sweep_interval_seconds)
        logger.info(
            f"[AppContainer] Started: model={self.settings.llm_model}, "
            f"tools={len(self.tool_registry)}, snapshots={self.settings.memory_snapshot_backend}"
        )

    async def shutdown(self) -> None:
        """리소스 정리"""
        await self.memory_store.stop_sweeper()
        await self.llm_client.close()
        close_checker = getattr(self.safety_checker, "close", None)
        if close_checker is not None:
            await close_checker()
        await self.snapshot_repository.close()
        logger.info("[AppContainer] Shut down")
