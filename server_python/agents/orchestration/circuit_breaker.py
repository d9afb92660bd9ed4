#!/usr/bin/env python3
"""
Circuit Breaker - 외부 의존성 보호 래퍼

LLM 제공자 등 외부 호출을 감싸 연속 실패 시 빠르게 차단하고,
일정 시간 후 자동으로 복구를 시도합니다.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Dict, Any, Optional, Callable, Awaitable
from dataclasses import dataclass
from enum import Enum

from errors import ServiceUnavailableError, ProviderTimeoutError

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit 상태"""
    CLOSED = "closed"        # 정상 동작
    OPEN = "open"            # 차단됨 (실패 임계치 도달)
    HALF_OPEN = "half_open"  # 복구 테스트 중


@dataclass
class CircuitConfig:
    """Circuit Breaker 설정"""
    failure_threshold: int = 5          # OPEN 전환 연속 실패 횟수
    success_threshold: int = 2          # HALF_OPEN → CLOSED 연속 성공 횟수
    timeout_seconds: float = 60.0       # 호출당 제한 시간
    reset_timeout_seconds: float = 30.0  # OPEN 상태 유지 시간


@dataclass
class CircuitStats:
    """Circuit 상태 및 통계"""
    name: str
    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0              # 연속 실패
    success_count: int = 0              # 연속 성공
    total_requests: int = 0
    total_failures: int = 0
    total_successes: int = 0
    last_failure_time: Optional[datetime] = None
    last_success_time: Optional[datetime] = None
    opened_at: Optional[float] = None   # monotonic 초

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "failureCount": self.failure_count,
            "successCount": self.success_count,
            "totalRequests": self.total_requests,
            "totalFailures": self.total_failures,
            "totalSuccesses": self.total_successes,
            "lastFailureTime": self.last_failure_time.isoformat() if self.last_failure_time else None,
            "lastSuccessTime": self.last_success_time.isoformat() if self.last_success_time else None,
        }


class CircuitOpenError(ServiceUnavailableError):
    """Circuit이 OPEN 상태일 때 발생하는 예외 (호출자가 재시도 여부 결정)"""

    def __init__(self, circuit_name: str):
        super().__init__(
            message=f"Circuit breaker is OPEN for {circuit_name}. Service unavailable.",
            code="CIRCUIT_OPEN",
            details={"circuit": circuit_name}
        )
        self.circuit_name = circuit_name


class CircuitBreaker:
    """
    Circuit Breaker 패턴 구현

    책임:
    - 이름별 Circuit의 연속 실패/성공 추적
    - 실패 임계치 도달 시 차단 (fallback 또는 CircuitOpenError)
    - reset timeout 경과 후 다음 호출에서 HALF_OPEN 전환
    - 호출별 timeout 경쟁 (초과 시 실패로 집계)
    """

    def __init__(
        self,
        config: Optional[CircuitConfig] = None,
        configs: Optional[Dict[str, CircuitConfig]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            config: 기본 Circuit 설정
            configs: Circuit 이름별 설정 (기본 설정보다 우선)
            clock: 경과 시간 측정용 시계
        """
        self._config = config or CircuitConfig()
        self._configs: Dict[str, CircuitConfig] = dict(configs or {})
        self._circuits: Dict[str, CircuitStats] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._clock = clock

    def configure(self, name: str, config: CircuitConfig) -> None:
        """특정 Circuit 설정 등록"""
        self._configs[name] = config

    def get_config(self, name: str) -> CircuitConfig:
        return self._configs.get(name, self._config)

    def _get_circuit(self, name: str) -> CircuitStats:
        if name not in self._circuits:
            self._circuits[name] = CircuitStats(name=name)
        return self._circuits[name]

    def _get_lock(self, name: str) -> asyncio.Lock:
        if name not in self._locks:
            self._locks[name] = asyncio.Lock()
        return self._locks[name]

    def get_state(self, name: str) -> CircuitState:
        """Circuit 상태 조회"""
        return self._get_circuit(name).state

    def get_stats(self, name: Optional[str] = None) -> Any:
        """
        Circuit 통계 조회

        Args:
            name: Circuit 이름 (없으면 전체)

        Returns:
            단일 Circuit 통계 dict, 또는 이름 → 통계 dict
        """
        if name is not None:
            circuit = self._circuits.get(name)
            return circuit.to_dict() if circuit else None
        return {key: circuit.to_dict() for key, circuit in self._circuits.items()}

    async def execute(
        self,
        name: str,
        operation: Callable[[], Awaitable[Any]],
        fallback: Optional[Callable[[], Awaitable[Any]]] = None,
    ) -> Any:
        """
        Circuit Breaker를 통한 호출

        Args:
            name: Circuit 이름
            operation: 호출할 비동기 함수 (인자 없음)
            fallback: 차단/실패 시 대체 함수

        Returns:
            operation 또는 fallback 실행 결과

        Raises:
            CircuitOpenError: OPEN 상태이고 fallback이 없을 때
            ProviderTimeoutError: 호출이 timeout을 초과했고 fallback이 없을 때
        """
        config = self.get_config(name)

        async with self._get_lock(name):
            circuit = self._get_circuit(name)
            circuit.total_requests += 1

            if circuit.state == CircuitState.OPEN and self._should_attempt_reset(circuit, config):
                self._transition(circuit, CircuitState.HALF_OPEN)

            rejected = circuit.state == CircuitState.OPEN

        if rejected:
            logger.warning(f"[CircuitBreaker] {name}: OPEN, call rejected")
            if fallback:
                return await fallback()
            raise CircuitOpenError(name)

        try:
            result = await asyncio.wait_for(operation(), timeout=config.timeout_seconds)
        except asyncio.TimeoutError:
            await self._record_failure(name, config)
            if fallback:
                return await fallback()
            raise ProviderTimeoutError(name, config.timeout_seconds)
        except Exception:
            await self._record_failure(name, config)
            if fallback:
                return await fallback()
            raise

        await self._record_success(name, config)
        return result

    def _should_attempt_reset(self, circuit: CircuitStats, config: CircuitConfig) -> bool:
        """OPEN 상태에서 HALF_OPEN으로 전환 시도 여부"""
        if circuit.opened_at is None:
            return True
        return self._clock() - circuit.opened_at >= config.reset_timeout_seconds

    def _transition(self, circuit: CircuitStats, new_state: CircuitState) -> None:
        """상태 전환 및 로깅"""
        old_state = circuit.state
        circuit.state = new_state

        if new_state == CircuitState.OPEN:
            circuit.opened_at = self._clock()
            circuit.success_count = 0
            logger.warning(
                f"[CircuitBreaker] {circuit.name}: {old_state.value} → open "
                f"(failures: {circuit.failure_count})"
            )
        elif new_state == CircuitState.HALF_OPEN:
            circuit.success_count = 0
            logger.info(f"[CircuitBreaker] {circuit.name}: open → half_open")
        else:
            circuit.failure_count = 0
            circuit.opened_at = None
            logger.info(f"[CircuitBreaker] {circuit.name}: {old_state.value} → closed (recovered)")

    async def _record_success(self, name: str, config: CircuitConfig) -> None:
        """성공 처리"""
        async with self._get_lock(name):
            circuit = self._get_circuit(name)
            circuit.total_successes += 1
            circuit.success_count += 1
            circuit.failure_count = 0
            circuit.last_success_time = datetime.now()

            if (
                circuit.state == CircuitState.HALF_OPEN
                and circuit.success_count >= config.success_threshold
            ):
                self._transition(circuit, CircuitState.CLOSED)

    async def _record_failure(self, name: str, config: CircuitConfig) -> None:
        """실패 처리"""
        async with self._get_lock(name):
            circuit = self._get_circuit(name)
            circuit.total_failures += 1
            circuit.failure_count += 1
            circuit.success_count = 0
            circuit.last_failure_time = datetime.now()

            if circuit.state == CircuitState.HALF_OPEN:
                # HALF_OPEN에서 실패 시 즉시 OPEN
                self._transition(circuit, CircuitState.OPEN)
            elif (
                circuit.state == CircuitState.CLOSED
                and circuit.failure_count >= config.failure_threshold
            ):
                self._transition(circuit, CircuitState.OPEN)

    def reset(self, name: str) -> bool:
        """특정 Circuit 리셋"""
        if name not in self._circuits:
            return False
        self._circuits[name] = CircuitStats(name=name)
        logger.info(f"[CircuitBreaker] {name}: Reset to CLOSED")
        return True

    def get_summary(self) -> Dict[str, Any]:
        """전체 Circuit 상태 요약"""
        summary = {state.value: 0 for state in CircuitState}
        for circuit in self._circuits.values():
            summary[circuit.state.value] += 1
        return {
            "total": len(self._circuits),
            "states": summary,
        }
