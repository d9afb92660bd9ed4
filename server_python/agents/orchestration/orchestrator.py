#!/usr/bin/env python3
"""
Execution Orchestrator - 단일 에이전트 실행을 이벤트 스트림으로 변환

추론 루프의 청크를 RUN_STARTED ... RUN_FINISHED 형태의 순서 있는 이벤트로 바꾸고,
RAG 컨텍스트 주입, 콘텐츠 안전성 검사, 세션 메모리 기록, 협조적 취소를 담당합니다.
"""

import logging
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional

from agentic.reasoning_loop import (
    FinalMessage,
    ReasoningLoop,
    TextDelta,
    ToolCallFinished,
    ToolCallStarted,
)
from context.memory import MemoryStore, TurnRole
from errors import (
    AgentExecutionError,
    AgentTaskError,
    ContentSafetyViolationError,
    ExecutionCancelledError,
    async_handle_errors,
)
from tools.base_tool import BaseTool
from tools.tool_registry import ToolRegistry

from .cancellation import CancellationToken
from .content_safety import ContentSafetyChecker
from .events import StreamEvent, StreamEventType
from .retrieval import Retriever

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10

CONTEXT_PROMPT_TEMPLATE = "Context from knowledge base:\n{context}\n\nUser question: {prompt}"

SAFETY_REPLACEMENT_MESSAGE = (
    "I'm sorry, but I cannot provide that response as it violates content safety "
    "policies. Please rephrase your request."
)

_ROLE_TO_CHAT = {
    TurnRole.HUMAN: "user",
    TurnRole.AGENT: "assistant",
    TurnRole.SYSTEM: "system",
}


@dataclass
class ExecutionRequest:
    """단일 에이전트 실행 요청"""
    prompt: str
    session_id: str
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_iterations: Optional[int] = None
    enabled_tool_categories: Optional[List[str]] = None
    specific_tools: Optional[List[str]] = None
    use_graph: bool = False
    enable_rag: bool = False
    system_prompt: Optional[str] = None
    # 멀티 에이전트 Role 실행은 세션 히스토리를 읽거나 쓰지 않음
    include_history: bool = True
    persist: bool = True


@dataclass
class ExecutionResult:
    """비스트리밍 실행 결과"""
    output: str
    model: str
    session_id: str
    tools_used: List[str] = field(default_factory=list)
    intermediate_steps: List[Dict[str, Any]] = field(default_factory=list)
    execution_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output": self.output,
            "model": self.model,
            "sessionId": self.session_id,
            "toolsUsed": self.tools_used,
            "intermediateSteps": self.intermediate_steps,
            "executionTime": round(self.execution_time_ms, 2),
        }


class ExecutionOrchestrator:
    """
    실행 Orchestrator

    책임:
    - 도구 선택 (specific_tools > enabled_tool_categories > 전체)
    - 세션 히스토리 + RAG 컨텍스트로 메시지 구성
    - 입력/출력 콘텐츠 안전성 검사 (검사기 오류는 fail-open)
    - 추론 루프 청크 -> StreamEvent 변환
    - 청크마다 취소 확인, 정확히 하나의 종료 이벤트 보장
    - 성공 시 사람/에이전트 턴 기록 및 세션 컨텍스트 갱신
    """

    def __init__(
        self,
        reasoning_loop: ReasoningLoop,
        tool_registry: ToolRegistry,
        memory_store: MemoryStore,
        retriever: Optional[Retriever] = None,
        safety_checker: Optional[ContentSafetyChecker] = None,
        default_model: str = "gpt-4o-mini",
        default_temperature: float = 0.7,
        default_max_iterations: int = 10,
    ):
        """
        Args:
            reasoning_loop: 추론 루프 (TextDelta/ToolCall*/FinalMessage 청크 생성)
            tool_registry: 도구 레지스트리
            memory_store: 세션 메모리
            retriever: RAG 검색기 (선택)
            safety_checker: 콘텐츠 안전성 검사기 (선택)
            default_model: 기본 모델
            default_temperature: 기본 temperature
            default_max_iterations: 기본 최대 반복 수
        """
        self.reasoning_loop = reasoning_loop
        self.tool_registry = tool_registry
        self.memory_store = memory_store
        self.retriever = retriever
        self.safety_checker = safety_checker
        self.default_model = default_model
        self.default_temperature = default_temperature
        self.default_max_iterations = default_max_iterations

    # =========================================================================
    # Streaming
    # =========================================================================

    async def run(
        self,
        request: ExecutionRequest,
        cancellation: Optional[CancellationToken] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        실행을 이벤트 스트림으로 진행

        Args:
            request: 실행 요청
            cancellation: 취소 토큰 (청크 처리 전마다 확인)

        Yields:
            StreamEvent (RUN_STARTED로 시작, 종료 이벤트 하나로 끝남)
        """
        cancellation = cancellation or CancellationToken()
        session_id = request.session_id
        model = request.model or self.default_model
        start_time = time.monotonic()

        logger.info(f"[ExecutionOrchestrator] Run started: session={session_id}, model={model}")
        yield StreamEvent.run_started(session_id, request.prompt, model)

        message_id = f"{session_id}-msg-0"
        content = ""
        final_output: Optional[str] = None
        tools_used: List[str] = []
        open_calls: Dict[str, str] = {}
        tool_call_count = 0

        try:
            tools = self.resolve_tools(request)
            messages = self._build_messages(request)

            prompt = request.prompt
            if request.enable_rag and self.retriever is not None:
                context = await self._retrieve_context(request.prompt)
                if context:
                    yield StreamEvent.context(context)
                    prompt = CONTEXT_PROMPT_TEMPLATE.format(context=context, prompt=request.prompt)

            await self._check_inbound(request.prompt)
            messages.append({"role": "user", "content": prompt})

            chunks = self.reasoning_loop.stream(
                messages,
                tools,
                model=model,
                temperature=request.temperature if request.temperature is not None else self.default_temperature,
                max_iterations=request.max_iterations or self.default_max_iterations,
                use_graph=request.use_graph,
            )
            try:
                async for chunk in chunks:
                    if cancellation.observe():
                        logger.warning(f"[ExecutionOrchestrator] Run cancelled: session={session_id}")
                        yield StreamEvent.run_cancelled(session_id)
                        return

                    if isinstance(chunk, TextDelta):
                        content += chunk.text
                        yield StreamEvent.text_content(message_id, chunk.text, content)

                    elif isinstance(chunk, ToolCallStarted):
                        tool_call_count += 1
                        tool_call_id = f"{session_id}-tool-{tool_call_count}"
                        open_calls[chunk.call_id] = tool_call_id
                        if chunk.tool not in tools_used:
                            tools_used.append(chunk.tool)
                        yield StreamEvent.tool_call_start(tool_call_id, chunk.tool, chunk.arguments)

                    elif isinstance(chunk, ToolCallFinished):
                        tool_call_id = open_calls.pop(chunk.call_id, None)
                        if tool_call_id is None:
                            tool_call_count += 1
                            tool_call_id = f"{session_id}-tool-{tool_call_count}"
                        yield StreamEvent.tool_complete(
                            tool_call_id,
                            chunk.tool,
                            chunk.duration_ms,
                            output=chunk.output,
                            error=chunk.error,
                        )

                    elif isinstance(chunk, FinalMessage):
                        final_output = chunk.text
            finally:
                aclose = getattr(chunks, "aclose", None)
                if aclose is not None:
                    await aclose()

            if cancellation.observe():
                logger.warning(f"[ExecutionOrchestrator] Run cancelled: session={session_id}")
                yield StreamEvent.run_cancelled(session_id)
                return

            output = final_output if final_output is not None else content
            output = await self._check_outbound(output)

            execution_time_ms = (time.monotonic() - start_time) * 1000
            if request.persist:
                self.memory_store.add_turn(session_id, TurnRole.HUMAN, request.prompt)
                self.memory_store.add_turn(session_id, TurnRole.AGENT, output)
                self.memory_store.update_context(session_id, {
                    "lastExecutionTime": round(execution_time_ms, 2),
                    "lastToolsUsed": list(tools_used),
                    "lastModel": model,
                    "lastExecutedAt": datetime.now().isoformat(),
                })

        except Exception as e:
            logger.error(f"[ExecutionOrchestrator] Run failed: session={session_id} - {e}")
            yield StreamEvent.run_error(str(e), session_id, exception=e)
            return

        logger.info(
            f"[ExecutionOrchestrator] Run finished: session={session_id}, "
            f"tools={tools_used}, time={execution_time_ms:.0f}ms"
        )
        yield StreamEvent.run_finished(output, tools_used, session_id, execution_time_ms)

    # =========================================================================
    # Non-streaming
    # =========================================================================

    async def execute(
        self,
        request: ExecutionRequest,
        cancellation: Optional[CancellationToken] = None,
    ) -> ExecutionResult:
        """
        실행을 끝까지 소비하고 결과 반환

        Raises:
            AgentExecutionError: RUN_ERROR (원본 메시지 보존)
            AgentTaskError: RUN_ERROR의 원인이 도메인 에러이면 그대로 재발생
            ExecutionCancelledError: RUN_CANCELLED
        """
        model = request.model or self.default_model
        steps: Dict[str, Dict[str, Any]] = {}

        async with aclosing(self.run(request, cancellation)) as events:
            async for event in events:
                data = event.data

                if event.type == StreamEventType.TOOL_CALL_START:
                    steps[data["toolCallId"]] = {
                        "tool": data["tool"],
                        "input": data["input"],
                        "output": None,
                        "error": None,
                        "duration": None,
                    }

                elif event.type == StreamEventType.TOOL_COMPLETE:
                    step = steps.setdefault(data["toolCallId"], {"tool": data["tool"], "input": {}})
                    step["output"] = data.get("output")
                    step["error"] = data.get("error")
                    step["duration"] = data["duration"]

                elif event.type == StreamEventType.RUN_FINISHED:
                    return ExecutionResult(
                        output=data["output"],
                        model=model,
                        session_id=data["sessionId"],
                        tools_used=data["toolsUsed"],
                        intermediate_steps=list(steps.values()),
                        execution_time_ms=data["executionTime"],
                    )

                elif event.type == StreamEventType.RUN_CANCELLED:
                    raise ExecutionCancelledError(request.session_id)

                elif event.type == StreamEventType.RUN_ERROR:
                    if isinstance(event.exception, AgentTaskError):
                        raise event.exception
                    raise AgentExecutionError(data["error"], session_id=request.session_id)

        raise AgentExecutionError("Run ended without a terminal event", session_id=request.session_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    def resolve_tools(self, request: ExecutionRequest) -> List[BaseTool]:
        """specific_tools > enabled_tool_categories > 전체 카탈로그"""
        return self.tool_registry.filter_tools(
            allowed_tools=request.specific_tools or None,
            allowed_categories=request.enabled_tool_categories or None,
        )

    def _build_messages(self, request: ExecutionRequest) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})

        if request.include_history:
            for turn in self.memory_store.recent_history(request.session_id, HISTORY_LIMIT):
                messages.append({"role": _ROLE_TO_CHAT[turn.role], "content": turn.content})

        return messages

    @async_handle_errors(default_return=None)
    async def _retrieve_context(self, prompt: str) -> Optional[str]:
        """검색 실패는 컨텍스트 없음으로 처리"""
        return await self.retriever.retrieve(prompt)

    async def _check_inbound(self, prompt: str) -> None:
        """입력 검사. 위반 시 ContentSafetyViolationError, 검사기 오류는 통과"""
        if self.safety_checker is None:
            return
        try:
            verdict = await self.safety_checker.check(prompt)
        except Exception as e:
            logger.warning(f"[ExecutionOrchestrator] Inbound safety check failed, allowing: {e}")
            return
        if not verdict.safe:
            raise ContentSafetyViolationError(verdict.violations)

    async def _check_outbound(self, output: str) -> str:
        """출력 검사. 위반 시 안내 문구로 대체, 검사기 오류는 통과"""
        if self.safety_checker is None or not output:
            return output
        try:
            verdict = await self.safety_checker.check(output)
        except Exception as e:
            logger.warning(f"[ExecutionOrchestrator] Outbound safety check failed, allowing: {e}")
            return output
        if not verdict.safe:
            logger.warning(f"[ExecutionOrchestrator] Output replaced by safety policy: {verdict.violations}")
            return SAFETY_REPLACEMENT_MESSAGE
        return output
