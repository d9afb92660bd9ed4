#!/usr/bin/env python3
"""
Parallel Executor - 병렬 Role 실행

멀티 에이전트 parallel/debate 모드에서 독립적인 Role들을 동시에 실행합니다.
모든 실행이 완료(성공 또는 실패)된 뒤에 결과를 반환합니다.
"""

import asyncio
import logging
import time
from typing import List, Any, Optional, Callable, Awaitable, Protocol

from ..agent_result import RoleResult, failed, failed_with

logger = logging.getLogger(__name__)


class RoleLike(Protocol):
    id: str
    name: str


class ParallelExecutor:
    """
    병렬 Role 실행기

    책임:
    - 독립적인 Role들을 동시 실행 (세마포어로 동시 실행 수 제한)
    - 타임아웃 관리
    - 실패를 Role별 결과로 기록하고 원래 순서대로 정렬
    """

    def __init__(
        self,
        max_concurrency: int = 5,
        default_timeout: Optional[float] = 300.0
    ):
        """
        Args:
            max_concurrency: 최대 동시 실행 수
            default_timeout: 기본 타임아웃 (초, None이면 무제한)
        """
        self._max_concurrency = max_concurrency
        self._default_timeout = default_timeout
        self._semaphore = asyncio.Semaphore(max_concurrency)

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    async def execute_parallel(
        self,
        roles: List[RoleLike],
        executor_func: Callable[[RoleLike], Awaitable[RoleResult]],
        timeout: Optional[float] = None
    ) -> List[RoleResult]:
        """
        여러 Role을 병렬 실행

        Args:
            roles: 실행할 Role 목록
            executor_func: 각 Role을 실행할 함수
            timeout: 타임아웃 (초)

        Returns:
            입력 순서와 같은 순서의 실행 결과 목록
        """
        timeout = timeout if timeout is not None else self._default_timeout

        tasks = [
            self._execute_with_semaphore(role, executor_func, timeout)
            for role in roles
        ]

        results = await asyncio.gather(*tasks, return_exceptions=True)

        return self._process_results(roles, results)

    async def _execute_with_semaphore(
        self,
        role: RoleLike,
        executor_func: Callable[[RoleLike], Awaitable[RoleResult]],
        timeout: Optional[float]
    ) -> RoleResult:
        """세마포어를 사용한 단일 실행"""
        async with self._semaphore:
            start_time = time.monotonic()
            try:
                return await asyncio.wait_for(executor_func(role), timeout=timeout)

            except asyncio.TimeoutError:
                execution_time = (time.monotonic() - start_time) * 1000
                logger.warning(f"[ParallelExecutor] Role timed out: {role.name}")
                return failed(role.id, role.name, f"Timeout after {timeout}s", execution_time)

            except Exception as e:
                execution_time = (time.monotonic() - start_time) * 1000
                logger.warning(f"[ParallelExecutor] Role failed: {role.name} - {e}")
                return failed_with(role.id, role.name, e, execution_time)

    def _process_results(
        self,
        roles: List[RoleLike],
        results: List[Any]
    ) -> List[RoleResult]:
        """결과 처리 (gather 순서 = 입력 순서)"""
        processed = []

        for role, result in zip(roles, results):
            if isinstance(result, RoleResult):
                processed.append(result)
            elif isinstance(result, BaseException):
                # gather에서 예외가 발생한 경우
                processed.append(failed_with(role.id, role.name, result))

        return processed
