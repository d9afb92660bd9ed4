#!/usr/bin/env python3
"""
Multi-Agent Coordinator - 여러 Role을 조정 모드에 따라 실행

지원 모드:
- sequential: Role을 순서대로 실행, 이전 Role의 출력을 다음 Role에 전달
- parallel: 모든 Role을 동시에 실행하고 결과를 합침
- debate: 라운드마다 다른 Role의 최신 응답을 보여주며 수렴할 때까지 반복
- router: 프롬프트와 가장 관련 있는 Role 하나만 실행
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from context.memory import TurnRole
from errors import AgentExecutionError, AgentTaskError, ValidationError

from ..agent_result import RoleResult, completed, failed_with
from .orchestrator import ExecutionOrchestrator, ExecutionRequest
from .parallel_executor import ParallelExecutor
from .retrieval import tokenize

logger = logging.getLogger(__name__)

SEQUENTIAL_PROMPT_TEMPLATE = "Previous agent ({name}) said: {output}\n\nNow continue with: {prompt}"


class CoordinationMode(str, Enum):
    """멀티 에이전트 조정 모드"""
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    DEBATE = "debate"
    ROUTER = "router"


@dataclass
class AgentRole:
    """조정에 참여하는 Role 정의"""
    id: str
    name: str
    description: str = ""
    enabled_tool_categories: Optional[List[str]] = None
    specific_tools: Optional[List[str]] = None
    system_prompt: Optional[str] = None


@dataclass
class CoordinationRun:
    """멀티 에이전트 실행 요청"""
    prompt: str
    agents: List[AgentRole]
    session_id: str
    mode: Union[CoordinationMode, str] = CoordinationMode.SEQUENTIAL
    max_rounds: int = 3
    model: Optional[str] = None
    temperature: Optional[float] = None


@dataclass
class CoordinationResult:
    """멀티 에이전트 실행 결과"""
    output: str
    role_results: List[RoleResult]
    mode: CoordinationMode
    session_id: str
    total_duration_ms: float = 0.0
    rounds: int = 1

    @property
    def tools_used(self) -> List[str]:
        tools: List[str] = []
        for result in self.role_results:
            for tool in result.tools_used:
                if tool not in tools:
                    tools.append(tool)
        return tools

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output": self.output,
            "mode": self.mode.value,
            "sessionId": self.session_id,
            "agentResults": [r.to_dict() for r in self.role_results],
            "totalDurationMs": round(self.total_duration_ms, 2),
            "rounds": self.rounds,
        }


class MultiAgentCoordinator:
    """
    멀티 에이전트 Coordinator

    책임:
    - 요청 검증 (Role 1개 이상, 유효한 모드)
    - 모드별 실행 전략 적용
    - Role 실행은 Orchestrator.execute()에 위임 (히스토리 미사용, 기록 안 함)
    - 최종 결과를 세션에 한 번만 기록
    """

    def __init__(
        self,
        orchestrator: ExecutionOrchestrator,
        parallel_executor: Optional[ParallelExecutor] = None,
    ):
        """
        Args:
            orchestrator: 단일 Role 실행에 사용할 Orchestrator
            parallel_executor: parallel/debate 모드용 병렬 실행기
        """
        self.orchestrator = orchestrator
        self.parallel_executor = parallel_executor or ParallelExecutor()

    async def coordinate(self, run: CoordinationRun) -> CoordinationResult:
        """
        멀티 에이전트 실행

        Args:
            run: 실행 요청

        Returns:
            CoordinationResult

        Raises:
            ValidationError: Role이 없거나 모드가 잘못된 경우
            AgentExecutionError: 성공한 Role이 없는 경우
        """
        mode = self._validate(run)
        start_time = time.monotonic()

        logger.info(
            f"[MultiAgentCoordinator] Coordination started: mode={mode.value}, "
            f"agents={[a.name for a in run.agents]}, session={run.session_id}"
        )

        rounds = 1
        if mode == CoordinationMode.SEQUENTIAL:
            output, role_results = await self._run_sequential(run)
        elif mode == CoordinationMode.PARALLEL:
            output, role_results = await self._run_parallel(run)
        elif mode == CoordinationMode.DEBATE:
            output, role_results, rounds = await self._run_debate(run)
        else:
            output, role_results = await self._run_router(run)

        total_duration_ms = (time.monotonic() - start_time) * 1000
        result = CoordinationResult(
            output=output,
            role_results=role_results,
            mode=mode,
            session_id=run.session_id,
            total_duration_ms=total_duration_ms,
            rounds=rounds,
        )
        self._persist(run, result)

        logger.info(
            f"[MultiAgentCoordinator] Coordination finished: mode={mode.value}, "
            f"rounds={rounds}, time={total_duration_ms:.0f}ms"
        )
        return result

    # =========================================================================
    # Modes
    # =========================================================================

    async def _run_sequential(self, run: CoordinationRun):
        role_results: List[RoleResult] = []
        last_success: Optional[RoleResult] = None

        for role in run.agents:
            prompt = run.prompt
            if last_success is not None:
                prompt = SEQUENTIAL_PROMPT_TEMPLATE.format(
                    name=last_success.role_name,
                    output=last_success.output,
                    prompt=run.prompt,
                )

            result = await self._safe_execute_role(run, role, prompt)
            role_results.append(result)

            if result.is_failed():
                logger.warning(f"[MultiAgentCoordinator] Sequential chain aborted at {role.name}: {result.error}")
                break
            last_success = result

        if last_success is None:
            self._raise_failure(role_results, run.session_id)

        return last_success.output, role_results

    async def _run_parallel(self, run: CoordinationRun):
        role_results = await self.parallel_executor.execute_parallel(
            run.agents,
            lambda role: self._execute_role(run, role, run.prompt),
        )

        successes = [r for r in role_results if r.is_completed()]
        if not successes:
            self._raise_failure(role_results, run.session_id)

        output = "\n\n".join(f"**{r.role_name}**:\n{r.output}" for r in successes)
        return output, role_results

    async def _run_debate(self, run: CoordinationRun):
        role_results: List[RoleResult] = []
        latest: Optional[List[RoleResult]] = None
        rounds = 0

        for round_number in range(1, run.max_rounds + 1):
            round_results = await self.parallel_executor.execute_parallel(
                run.agents,
                lambda role, previous=latest: self._execute_role(
                    run, role, self._debate_prompt(run.prompt, role, previous)
                ),
            )
            role_results.extend(round_results)

            failures = [r for r in round_results if r.is_failed()]
            if failures:
                logger.warning(
                    f"[MultiAgentCoordinator] Debate aborted in round {round_number}: "
                    f"{failures[0].role_name} - {failures[0].error}"
                )
                break

            latest = round_results
            rounds = round_number

            if self._has_converged(round_results):
                logger.info(f"[MultiAgentCoordinator] Debate converged after {round_number} round(s)")
                break

        if latest is None:
            self._raise_failure(role_results, run.session_id)

        positions = "\n\n".join(f"**{r.role_name}**: {r.output}" for r in latest)
        output = f"Final positions after {rounds} round(s):\n\n{positions}"
        return output, role_results, rounds

    async def _run_router(self, run: CoordinationRun):
        role = self.select_role(run.prompt, run.agents)
        logger.info(f"[MultiAgentCoordinator] Routed to {role.name}")

        result = await self._safe_execute_role(run, role, run.prompt)
        if result.is_failed():
            self._raise_failure([result], run.session_id)

        return result.output, [result]

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def select_role(prompt: str, roles: List[AgentRole]) -> AgentRole:
        """
        프롬프트와 겹치는 단어가 가장 많은 Role 선택

        동점이거나 모두 0점이면 첫 번째 Role
        """
        prompt_tokens = tokenize(prompt)
        best_role = roles[0]
        best_score = 0

        for role in roles:
            score = len(prompt_tokens & tokenize(f"{role.name} {role.description}"))
            if score > best_score:
                best_role = role
                best_score = score

        return best_role

    @staticmethod
    def _debate_prompt(prompt: str, role: AgentRole, latest: Optional[List[RoleResult]]) -> str:
        """첫 라운드는 원래 프롬프트, 이후에는 다른 Role들의 최신 응답을 덧붙임"""
        others = [r for r in latest or [] if r.role_id != role.id]
        if not others:
            return prompt
        responses = "\n".join(f"- {r.role_name}: {r.output}" for r in others)
        return (
            f"{prompt}\n\nOther agents' latest responses:\n{responses}"
            f"\n\nConsider these perspectives and refine your answer."
        )

    @staticmethod
    def _has_converged(results: List[RoleResult]) -> bool:
        return len({r.output.strip() for r in results}) <= 1

    async def _execute_role(self, run: CoordinationRun, role: AgentRole, prompt: str) -> RoleResult:
        """Role 하나 실행 (실패 시 예외 전파)"""
        start_time = time.monotonic()
        result = await self.orchestrator.execute(ExecutionRequest(
            prompt=prompt,
            session_id=run.session_id,
            model=run.model,
            temperature=run.temperature,
            enabled_tool_categories=role.enabled_tool_categories,
            specific_tools=role.specific_tools,
            system_prompt=role.system_prompt,
            include_history=False,
            persist=False,
        ))
        return completed(
            role.id,
            role.name,
            result.output,
            tools_used=result.tools_used,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )

    async def _safe_execute_role(self, run: CoordinationRun, role: AgentRole, prompt: str) -> RoleResult:
        """Role 하나 실행 (실패를 RoleResult로 기록)"""
        start_time = time.monotonic()
        try:
            return await self._execute_role(run, role, prompt)
        except Exception as e:
            logger.warning(f"[MultiAgentCoordinator] Agent {role.name} failed: {e}")
            return failed_with(role.id, role.name, e, (time.monotonic() - start_time) * 1000)

    @staticmethod
    def _raise_failure(role_results: List[RoleResult], session_id: str) -> None:
        """
        성공한 Role이 없을 때의 에러 발생

        실패한 Role들이 모두 같은 도메인 에러 코드이면 원래 예외를 그대로 발생시키고
        (예: CIRCUIT_OPEN은 재시도 가능한 503 유지), 그 외에는 Role별 메시지를 묶습니다.
        """
        failures = [r for r in role_results if r.is_failed()]
        first = failures[0].exception
        codes = {getattr(r.exception, "code", None) for r in failures}
        if isinstance(first, AgentTaskError) and len(codes) == 1:
            if len(failures) == 1 or not isinstance(first, AgentExecutionError):
                raise first

        if len(failures) == 1:
            raise AgentExecutionError(f"{failures[0].role_name}: {failures[0].error}", session_id=session_id)
        errors = "; ".join(f"{r.role_name}: {r.error}" for r in failures)
        raise AgentExecutionError(f"All agents failed ({errors})", session_id=session_id)

    @staticmethod
    def _validate(run: CoordinationRun) -> CoordinationMode:
        if not run.agents:
            raise ValidationError("At least one agent role is required", field="agents")
        if run.max_rounds < 1:
            raise ValidationError("maxRounds must be at least 1", field="maxRounds")
        try:
            return CoordinationMode(run.mode)
        except ValueError:
            raise ValidationError(f"Invalid coordination mode: {run.mode}", field="mode")

    def _persist(self, run: CoordinationRun, result: CoordinationResult) -> None:
        memory_store = self.orchestrator.memory_store
        memory_store.add_turn(run.session_id, TurnRole.HUMAN, run.prompt)
        memory_store.add_turn(run.session_id, TurnRole.AGENT, result.output)
        memory_store.update_context(run.session_id, {
            "lastCoordinationMode": result.mode.value,
            "lastExecutionTime": round(result.total_duration_ms, 2),
            "lastToolsUsed": result.tools_used,
            "lastExecutedAt": datetime.now().isoformat(),
        })
