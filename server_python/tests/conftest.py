"""
Pytest Configuration and Fixtures

테스트 전역 설정 및 공유 fixtures입니다.
"""

import pytest
from typing import Any, Callable, Dict, List, Optional

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from agents.orchestration import ExecutionOrchestrator
from context import MemoryStore
from tools import ToolRegistry
from tools.builtin import register_all_builtin_tools


class ScriptedReasoningLoop:
    """
    스크립트 재생용 추론 루프

    각 stream() 호출은 다음 스크립트를 재생합니다 (마지막 스크립트는 반복).
    스크립트는 청크 목록이거나 messages를 받아 목록을 반환하는 함수입니다.
    목록 안의 Exception은 발생시키고, 호출 가능 객체는 부수효과로 실행합니다.
    """

    def __init__(self, *scripts):
        self.scripts = list(scripts)
        self.calls: List[Dict[str, Any]] = []

    async def stream(self, messages, tools, *, model=None, temperature=None,
                     max_iterations=10, use_graph=False):
        self.calls.append({
            "messages": list(messages),
            "tools": [tool.name for tool in tools],
            "model": model,
            "temperature": temperature,
            "max_iterations": max_iterations,
            "use_graph": use_graph,
        })

        script = self.scripts[min(len(self.calls), len(self.scripts)) - 1] if self.scripts else []
        if callable(script):
            script = script(messages)

        for item in script:
            if isinstance(item, Exception):
                raise item
            if callable(item):
                item()
                continue
            yield item


class FakeSafetyChecker:
    """검사 결과를 텍스트별로 지정하는 안전성 검사기"""

    def __init__(self, unsafe_texts=(), error: Optional[Exception] = None):
        self.unsafe_texts = set(unsafe_texts)
        self.error = error
        self.checked: List[str] = []

    async def check(self, text):
        from agents.orchestration import SafetyVerdict

        self.checked.append(text)
        if self.error is not None:
            raise self.error
        if text in self.unsafe_texts:
            return SafetyVerdict(
                safe=False,
                violations=[{"category": "Violence", "severity": 6, "threshold": 4}],
            )
        return SafetyVerdict(safe=True)


@pytest.fixture
def scripted_loop() -> Callable[..., ScriptedReasoningLoop]:
    """ScriptedReasoningLoop 생성 함수"""
    return ScriptedReasoningLoop


@pytest.fixture
def safety_checker() -> Callable[..., FakeSafetyChecker]:
    """FakeSafetyChecker 생성 함수"""
    return FakeSafetyChecker


@pytest.fixture
def tool_registry() -> ToolRegistry:
    """빌트인 도구가 등록된 레지스트리"""
    registry = ToolRegistry()
    register_all_builtin_tools(registry)
    return registry


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_orchestrator(tool_registry, memory_store) -> Callable[..., ExecutionOrchestrator]:
    """주어진 추론 루프로 Orchestrator 생성"""
    def factory(loop, **kwargs) -> ExecutionOrchestrator:
        return ExecutionOrchestrator(
            reasoning_loop=loop,
            tool_registry=tool_registry,
            memory_store=memory_store,
            **kwargs,
        )
    return factory
