"""
Agent 실행 API 엔드포인트
"""
import json
import logging
from contextlib import aclosing
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from agents.orchestration import (
    AgentRole,
    CancellationToken,
    CoordinationRun,
    ExecutionOrchestrator,
    ExecutionRequest,
)
from models.execution import AgenticTaskRequest, AgenticTaskResponse, MultiAgentResponse

from .dependencies import get_container, new_session_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/agent", tags=["agent"])


def _to_execution_request(body: AgenticTaskRequest, session_id: str) -> ExecutionRequest:
    return ExecutionRequest(
        prompt=body.prompt,
        session_id=session_id,
        model=body.model,
        temperature=body.temperature,
        max_iterations=body.maxIterations,
        enabled_tool_categories=body.enabledToolCategories,
        specific_tools=body.specificTools,
        use_graph=body.useGraph,
        enable_rag=body.enableRAG,
    )


def _to_coordination_run(body: AgenticTaskRequest, session_id: str) -> CoordinationRun:
    run = CoordinationRun(
        prompt=body.prompt,
        agents=[
            AgentRole(
                id=agent.id,
                name=agent.name,
                description=agent.description,
                enabled_tool_categories=agent.enabledToolCategories,
                specific_tools=agent.specificTools,
                system_prompt=agent.systemPrompt,
            )
            for agent in body.agents or []
        ],
        session_id=session_id,
        model=body.model,
        temperature=body.temperature,
    )
    if body.mode is not None:
        run.mode = body.mode.value
    if body.maxRounds is not None:
        run.max_rounds = body.maxRounds
    return run


def _sse_response(
    orchestrator: ExecutionOrchestrator,
    execution_request: ExecutionRequest,
    request: Request,
    cancellation: Optional[CancellationToken] = None,
) -> StreamingResponse:
    """
    실행 이벤트를 SSE로 전송

    클라이언트 연결이 끊기면 취소 토큰을 설정하고, 종료 이벤트까지 전송 없이 소비합니다.
    """
    cancellation = cancellation or CancellationToken()

    async def event_stream():
        async with aclosing(orchestrator.run(execution_request, cancellation)) as events:
            async for event in events:
                if not cancellation.observe() and await request.is_disconnected():
                    logger.warning(f"[AgentAPI] Client disconnected: session={execution_request.session_id}")
                    cancellation.cancel()
                if cancellation.observe():
                    continue
                yield f"data: {json.dumps(event.to_dict(), ensure_ascii=False, default=str)}\n\n"

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/execute")
async def execute_task(body: AgenticTaskRequest, request: Request, container=Depends(get_container)):
    """에이전트 작업 실행 (동기, SSE, 멀티 에이전트)"""
    session_id = body.sessionId or new_session_id()

    if body.multiAgent:
        if body.stream:
            logger.info("[AgentAPI] Multi-agent runs are not streamed; serving synchronously")
        result = await container.coordinator.coordinate(_to_coordination_run(body, session_id))
        return MultiAgentResponse(**result.to_dict())

    execution_request = _to_execution_request(body, session_id)
    if body.stream:
        return _sse_response(container.orchestrator, execution_request, request)

    result = await container.orchestrator.execute(execution_request)
    return AgenticTaskResponse(**result.to_dict())


@router.post("/stream")
async def stream_task(body: AgenticTaskRequest, request: Request, container=Depends(get_container)):
    """단일 에이전트 실행을 항상 SSE로 스트리밍"""
    session_id = body.sessionId or new_session_id()
    return _sse_response(container.orchestrator, _to_execution_request(body, session_id), request)


@router.get("/tools")
async def list_tools(container=Depends(get_container)):
    """사용 가능한 도구 카탈로그 (카테고리별)"""
    return container.tool_registry.get_tool_info()
