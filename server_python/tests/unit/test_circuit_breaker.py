"""
Circuit Breaker Unit Tests

외부 의존성 보호 래퍼(Circuit Breaker)의 단위 테스트입니다.
"""

import pytest
import asyncio
from unittest.mock import AsyncMock

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from agents.orchestration.circuit_breaker import (
    CircuitBreaker,
    CircuitState,
    CircuitConfig,
    CircuitOpenError,
)
from errors import ProviderTimeoutError, ServiceUnavailableError


async def fail_func():
    raise RuntimeError("Test failure")


async def success_func():
    return "success"


class TestCircuitBreaker:
    """CircuitBreaker 테스트"""

    @pytest.fixture
    def circuit_breaker(self):
        """테스트용 짧은 타임아웃 설정의 CircuitBreaker 인스턴스"""
        config = CircuitConfig(
            failure_threshold=3,
            success_threshold=2,
            timeout_seconds=0.5,
            reset_timeout_seconds=0.1,
        )
        return CircuitBreaker(config)

    async def _open_circuit(self, circuit_breaker, name="llm"):
        for _ in range(3):
            with pytest.raises(RuntimeError):
                await circuit_breaker.execute(name, fail_func)

    @pytest.mark.asyncio
    async def test_initial_state_is_closed(self, circuit_breaker):
        """초기 상태는 CLOSED"""
        assert circuit_breaker.get_state("llm") == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_successful_call_keeps_closed(self, circuit_breaker):
        """성공적인 호출은 CLOSED 상태 유지"""
        result = await circuit_breaker.execute("llm", success_func)

        assert result == "success"
        assert circuit_breaker.get_state("llm") == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_failures_open_circuit(self, circuit_breaker):
        """연속 실패가 threshold에 도달하면 OPEN"""
        await self._open_circuit(circuit_breaker)

        assert circuit_breaker.get_state("llm") == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_open_circuit_fails_fast_without_calling(self, circuit_breaker):
        """OPEN 상태에서는 함수를 호출하지 않고 CircuitOpenError 발생"""
        await self._open_circuit(circuit_breaker)
        operation = AsyncMock(return_value="never")

        with pytest.raises(CircuitOpenError) as exc_info:
            await circuit_breaker.execute("llm", operation)

        operation.assert_not_called()
        assert "Circuit breaker is OPEN for llm" in str(exc_info.value)
        assert isinstance(exc_info.value, ServiceUnavailableError)
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_open_circuit_uses_fallback(self, circuit_breaker):
        """OPEN 상태에서 fallback이 있으면 fallback 결과 반환"""
        await self._open_circuit(circuit_breaker)
        fallback = AsyncMock(return_value="fallback result")

        result = await circuit_breaker.execute("llm", success_func, fallback=fallback)

        assert result == "fallback result"
        fallback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_with_fallback_returns_fallback(self, circuit_breaker):
        """CLOSED 상태 실패 시 fallback이 있으면 fallback 결과 반환"""
        fallback = AsyncMock(return_value="fallback")

        result = await circuit_breaker.execute("llm", fail_func, fallback=fallback)

        assert result == "fallback"
        assert circuit_breaker.get_stats("llm")["failureCount"] == 1

    @pytest.mark.asyncio
    async def test_reset_timeout_transitions_to_half_open(self, circuit_breaker):
        """reset timeout 이후 다음 호출은 HALF_OPEN에서 실제로 실행"""
        await self._open_circuit(circuit_breaker)
        await asyncio.sleep(0.15)

        operation = AsyncMock(return_value="trial")
        result = await circuit_breaker.execute("llm", operation)

        assert result == "trial"
        operation.assert_awaited_once()
        assert circuit_breaker.get_state("llm") == CircuitState.HALF_OPEN

    @pytest.mark.asyncio
    async def test_half_open_closes_after_success_threshold(self, circuit_breaker):
        """HALF_OPEN에서 success_threshold번 연속 성공 시 CLOSED"""
        await self._open_circuit(circuit_breaker)
        await asyncio.sleep(0.15)

        await circuit_breaker.execute("llm", success_func)
        assert circuit_breaker.get_state("llm") == CircuitState.HALF_OPEN

        await circuit_breaker.execute("llm", success_func)
        assert circuit_breaker.get_state("llm") == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_half_open_failure_reopens(self, circuit_breaker):
        """HALF_OPEN에서 단 한 번의 실패로 다시 OPEN"""
        await self._open_circuit(circuit_breaker)
        await asyncio.sleep(0.15)

        with pytest.raises(RuntimeError):
            await circuit_breaker.execute("llm", fail_func)

        assert circuit_breaker.get_state("llm") == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self, circuit_breaker):
        """timeout 초과는 실패로 집계"""
        async def slow_func():
            await asyncio.sleep(1)

        with pytest.raises(ProviderTimeoutError):
            await circuit_breaker.execute("llm", slow_func)

        stats = circuit_breaker.get_stats("llm")
        assert stats["failureCount"] == 1
        assert stats["totalFailures"] == 1

    @pytest.mark.asyncio
    async def test_success_resets_failure_counter(self, circuit_breaker):
        """성공은 연속 실패 카운트를, 실패는 연속 성공 카운트를 리셋"""
        with pytest.raises(RuntimeError):
            await circuit_breaker.execute("llm", fail_func)
        with pytest.raises(RuntimeError):
            await circuit_breaker.execute("llm", fail_func)

        await circuit_breaker.execute("llm", success_func)
        stats = circuit_breaker.get_stats("llm")
        assert stats["failureCount"] == 0
        assert stats["successCount"] == 1

        with pytest.raises(RuntimeError):
            await circuit_breaker.execute("llm", fail_func)
        stats = circuit_breaker.get_stats("llm")
        assert stats["successCount"] == 0
        assert circuit_breaker.get_state("llm") == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_total_counters_include_rejected_calls(self, circuit_breaker):
        """차단된 호출을 포함해 모든 호출이 total_requests에 집계"""
        await self._open_circuit(circuit_breaker)
        with pytest.raises(CircuitOpenError):
            await circuit_breaker.execute("llm", success_func)

        stats = circuit_breaker.get_stats("llm")
        assert stats["totalRequests"] == 4
        assert stats["totalFailures"] == 3
        assert stats["totalSuccesses"] == 0

    @pytest.mark.asyncio
    async def test_different_circuits_independent(self, circuit_breaker):
        """서로 다른 Circuit은 독립적"""
        await self._open_circuit(circuit_breaker, "llm:a")

        assert circuit_breaker.get_state("llm:a") == CircuitState.OPEN
        assert circuit_breaker.get_state("llm:b") == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_per_circuit_config(self):
        """Circuit별 설정이 기본 설정보다 우선"""
        breaker = CircuitBreaker(
            CircuitConfig(failure_threshold=5),
            configs={"strict": CircuitConfig(failure_threshold=1)},
        )

        with pytest.raises(RuntimeError):
            await breaker.execute("strict", fail_func)
        with pytest.raises(RuntimeError):
            await breaker.execute("lenient", fail_func)

        assert breaker.get_state("strict") == CircuitState.OPEN
        assert breaker.get_state("lenient") == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_reset(self, circuit_breaker):
        """리셋 후 CLOSED 상태"""
        await self._open_circuit(circuit_breaker)

        assert circuit_breaker.reset("llm") is True
        assert circuit_breaker.get_state("llm") == CircuitState.CLOSED
        assert circuit_breaker.reset("unknown") is False

    @pytest.mark.asyncio
    async def test_summary_and_stats(self, circuit_breaker):
        """상태 요약 및 전체 통계"""
        await self._open_circuit(circuit_breaker, "a")
        await circuit_breaker.execute("b", success_func)

        summary = circuit_breaker.get_summary()
        assert summary["total"] == 2
        assert summary["states"]["open"] == 1
        assert summary["states"]["closed"] == 1

        all_stats = circuit_breaker.get_stats()
        assert set(all_stats.keys()) == {"a", "b"}
        assert all_stats["a"]["state"] == "open"
