"""
HTTP API Integration Tests

AppContainer + FastAPI 앱을 스크립트 추론 루프로 구성해 엔드포인트를 검증합니다.
"""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from agentic.reasoning_loop import FinalMessage, TextDelta, ToolCallFinished, ToolCallStarted
from agents.orchestration import CancellationToken, CircuitOpenError, ExecutionRequest
from api.agent import _sse_response
from context import InMemorySnapshotRepository
from startup import AppContainer, Settings, create_fastapi_app

SESSION = "api-session"

CALCULATOR_SCRIPT = [
    TextDelta("Computing."),
    ToolCallStarted("c1", "calculator", {"expression": "2 + 3"}),
    ToolCallFinished("c1", "calculator", output="The result of 2 + 3 is 5", duration_ms=1.5),
    TextDelta("\n\nThe answer is 5."),
    FinalMessage("The answer is 5."),
]


@pytest.fixture
def loop(scripted_loop):
    return scripted_loop(CALCULATOR_SCRIPT)


@pytest.fixture
def container(loop):
    return AppContainer(Settings(), reasoning_loop=loop)


@pytest.fixture
def client(container):
    with TestClient(create_fastapi_app(container)) as client:
        yield client


def read_events(response):
    """SSE 본문을 이벤트 목록으로 변환"""
    return [
        json.loads(line[len("data: "):])
        for line in response.text.split("\n\n")
        if line.startswith("data: ")
    ]


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["model"] == "gpt-4o-mini"
        assert body["contentSafety"] is False
        assert body["sessions"] == 0


class TestExecute:

    def test_sync_execution(self, client, loop):
        response = client.post("/api/agent/execute", json={
            "prompt": "What is 2 + 3?",
            "sessionId": SESSION,
            "temperature": 0.2,
            "maxIterations": 3,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["output"] == "The answer is 5."
        assert body["sessionId"] == SESSION
        assert body["model"] == "gpt-4o-mini"
        assert body["toolsUsed"] == ["calculator"]
        assert body["intermediateSteps"][0]["tool"] == "calculator"
        assert body["intermediateSteps"][0]["input"] == {"expression": "2 + 3"}
        assert body["executionTime"] >= 0

        call = loop.calls[0]
        assert call["temperature"] == 0.2
        assert call["max_iterations"] == 3

    def test_generates_session_id(self, client):
        response = client.post("/api/agent/execute", json={"prompt": "hello"})

        assert response.status_code == 200
        assert response.json()["sessionId"].startswith("session-")

    @pytest.mark.parametrize("body", [
        {"prompt": "   "},
        {"prompt": ""},
        {"prompt": "hi", "temperature": 1.5},
        {"prompt": "hi", "maxIterations": 0},
        {"prompt": "hi", "sessionId": "bad id!"},
        {"prompt": "hi", "multiAgent": True},
    ])
    def test_invalid_requests(self, client, body):
        response = client.post("/api/agent/execute", json=body)

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["errors"]

    def test_loop_failure_maps_to_error_response(self, scripted_loop):
        container = AppContainer(Settings(), reasoning_loop=scripted_loop([RuntimeError("model down")]))

        with TestClient(create_fastapi_app(container)) as client:
            response = client.post("/api/agent/execute", json={"prompt": "hi", "sessionId": SESSION})

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "AGENT_EXECUTION_FAILED"
        assert "model down" in error["message"]

    def test_open_circuit_maps_to_retryable_503(self, scripted_loop):
        container = AppContainer(Settings(), reasoning_loop=scripted_loop([CircuitOpenError("llm:m1")]))

        with TestClient(create_fastapi_app(container)) as client:
            response = client.post("/api/agent/execute", json={"prompt": "2 + 2?", "model": "m1"})

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "CIRCUIT_OPEN"
        assert error["retryable"] is True

    def test_unsafe_prompt_maps_to_400(self, scripted_loop, safety_checker):
        loop = scripted_loop([FinalMessage("never")])
        container = AppContainer(
            Settings(),
            reasoning_loop=loop,
            safety_checker=safety_checker(unsafe_texts={"bad prompt"}),
        )

        with TestClient(create_fastapi_app(container)) as client:
            response = client.post("/api/agent/execute", json={"prompt": "bad prompt", "sessionId": SESSION})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "CONTENT_SAFETY_VIOLATION"
        assert loop.calls == []

    def test_rag_context_reaches_loop(self, client, container, loop):
        created = client.post("/api/memory/long-term", json={
            "content": "The deployment region is westeurope",
            "importance": 0.9,
        })
        assert created.status_code == 201

        response = client.post("/api/agent/execute", json={
            "prompt": "Which deployment region do we use?",
            "enableRAG": True,
        })

        assert response.status_code == 200
        prompt = loop.calls[0]["messages"][-1]["content"]
        assert prompt.startswith("Context from knowledge base:\n[1] The deployment region is westeurope")
        assert container.context_cache.get_stats()["size"] == 1


class TestStreaming:

    def test_stream_endpoint(self, client):
        response = client.post("/api/agent/stream", json={"prompt": "2 + 3?", "sessionId": SESSION})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")

        events = read_events(response)
        assert [e["type"] for e in events] == [
            "RUN_STARTED",
            "TEXT_MESSAGE_CONTENT",
            "TOOL_CALL_START",
            "TOOL_COMPLETE",
            "TEXT_MESSAGE_CONTENT",
            "RUN_FINISHED",
        ]
        assert events[2]["data"]["toolCallId"] == events[3]["data"]["toolCallId"]
        assert events[4]["data"]["content"] == "Computing.\n\nThe answer is 5."
        assert events[-1]["data"]["output"] == "The answer is 5."

    def test_execute_with_stream_flag(self, client):
        response = client.post("/api/agent/execute", json={"prompt": "2 + 3?", "stream": True})

        assert response.headers["content-type"].startswith("text/event-stream")
        assert read_events(response)[-1]["type"] == "RUN_FINISHED"

    def test_stream_error_event(self, scripted_loop):
        container = AppContainer(Settings(), reasoning_loop=scripted_loop([RuntimeError("model down")]))

        with TestClient(create_fastapi_app(container)) as client:
            response = client.post("/api/agent/stream", json={"prompt": "hi", "sessionId": SESSION})

        events = read_events(response)
        assert [e["type"] for e in events] == ["RUN_STARTED", "RUN_ERROR"]
        assert events[-1]["data"] == {"error": "model down", "sessionId": SESSION}

    @pytest.mark.asyncio
    async def test_disconnect_cancels_run(self, scripted_loop, make_orchestrator, memory_store):
        class DisconnectingRequest:
            """첫 확인 이후 연결이 끊긴 것으로 보고하는 요청"""

            def __init__(self):
                self.checks = 0

            async def is_disconnected(self):
                self.checks += 1
                return self.checks > 1

        reached_end = []
        orchestrator = make_orchestrator(scripted_loop([
            TextDelta("Computing."),
            TextDelta(" still going"),
            lambda: reached_end.append(True),
            FinalMessage("The answer is 5."),
        ]))
        cancellation = CancellationToken()

        response = _sse_response(
            orchestrator,
            ExecutionRequest(prompt="2 + 3?", session_id=SESSION),
            DisconnectingRequest(),
            cancellation,
        )
        frames = [frame async for frame in response.body_iterator]

        assert len(frames) == 1
        assert json.loads(frames[0][len("data: "):])["type"] == "RUN_STARTED"
        assert cancellation.observe() is True
        assert reached_end == []
        assert memory_store.recent_history(SESSION, 10) == []
        assert not memory_store.has_session(SESSION)


class TestMultiAgent:

    def test_parallel_run(self, scripted_loop):
        def script(messages):
            return [FinalMessage(f"{messages[0]['content']} view")]

        container = AppContainer(Settings(), reasoning_loop=scripted_loop(script))
        with TestClient(create_fastapi_app(container)) as client:
            response = client.post("/api/agent/execute", json={
                "prompt": "Review the plan",
                "sessionId": SESSION,
                "multiAgent": True,
                "mode": "parallel",
                "agents": [
                    {"id": "sec", "name": "Security", "systemPrompt": "security"},
                    {"id": "perf", "name": "Performance", "systemPrompt": "performance"},
                ],
            })

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "parallel"
        assert body["output"] == "**Security**:\nsecurity view\n\n**Performance**:\nperformance view"
        assert [r["roleId"] for r in body["agentResults"]] == ["sec", "perf"]
        assert all(r["status"] == "COMPLETED" for r in body["agentResults"])
        assert container.memory_store.get_context(SESSION)["lastCoordinationMode"] == "parallel"

    def test_invalid_mode(self, client):
        response = client.post("/api/agent/execute", json={
            "prompt": "hi",
            "multiAgent": True,
            "mode": "consensus",
            "agents": [{"id": "a", "name": "A"}],
        })

        assert response.status_code == 422


class TestSessions:

    def test_session_lifecycle(self, client):
        client.post("/api/agent/execute", json={"prompt": "What is 2 + 3?", "sessionId": SESSION})

        listing = client.get("/api/sessions").json()
        assert listing["total"] == 1
        assert listing["sessions"][0]["sessionId"] == SESSION

        history = client.get(f"/api/sessions/{SESSION}/history", params={"limit": 5}).json()
        assert [turn["role"] for turn in history["history"]] == ["human", "agent"]
        assert history["history"][1]["content"] == "The answer is 5."

        stats = client.get(f"/api/sessions/{SESSION}/stats").json()
        assert stats["messageCount"] == 2
        assert stats["lastToolsUsed"] == ["calculator"]
        assert stats["lastModel"] == "gpt-4o-mini"

        assert client.delete(f"/api/sessions/{SESSION}").json()["success"] is True
        assert client.get(f"/api/sessions/{SESSION}/stats").status_code == 404

    def test_unknown_session(self, client):
        response = client.get("/api/sessions/missing/history")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SESSION_NOT_FOUND"


class TestMemory:

    def test_long_term_crud(self, client):
        entry = client.post("/api/memory/long-term", json={
            "content": "Staging runs on Fridays",
            "category": "ops",
        }).json()

        found = client.get("/api/memory/long-term", params={"category": "ops"}).json()
        assert found["total"] == 1
        assert found["entries"][0]["id"] == entry["id"]

        assert client.delete(f"/api/memory/long-term/{entry['id']}").status_code == 200
        missing = client.delete(f"/api/memory/long-term/{entry['id']}")
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "NOT_FOUND"

    def test_export_import(self, client):
        client.post("/api/agent/execute", json={"prompt": "hi", "sessionId": SESSION})
        snapshot = client.get("/api/memory/export").json()
        client.delete(f"/api/sessions/{SESSION}")

        response = client.post("/api/memory/import", json={"snapshot": snapshot, "merge": True})

        assert response.status_code == 200
        assert response.json()["sessionsImported"] == 1
        assert client.get(f"/api/sessions/{SESSION}/stats").status_code == 200

    def test_import_rejects_malformed_snapshot(self, client):
        response = client.post("/api/memory/import", json={"snapshot": {"sessions": "nope"}})

        assert response.status_code == 400

    def test_snapshots(self, client):
        client.post("/api/agent/execute", json={"prompt": "hi", "sessionId": SESSION})

        saved = client.post("/api/memory/snapshots/nightly").json()
        assert saved["sessions"] == 1

        assert client.get("/api/memory/snapshots").json()["snapshots"] == ["nightly"]

        client.delete(f"/api/sessions/{SESSION}")
        restored = client.post("/api/memory/snapshots/nightly/restore").json()
        assert restored["sessionsImported"] == 1

        assert client.post("/api/memory/snapshots/missing/restore").status_code == 404

    def test_failed_snapshot_save_maps_to_503(self, loop):
        class UnwritableRepository(InMemorySnapshotRepository):
            async def save(self, name, snapshot):
                return False

        container = AppContainer(Settings(), reasoning_loop=loop, snapshot_repository=UnwritableRepository())

        with TestClient(create_fastapi_app(container)) as client:
            response = client.post("/api/memory/snapshots/nightly")
            snapshots = client.get("/api/memory/snapshots").json()["snapshots"]

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "SERVICE_UNAVAILABLE"
        assert error["retryable"] is True
        assert error["details"] == {"snapshot": "nightly"}
        assert snapshots == []

    def test_prune_and_analytics(self, client):
        for i in range(3):
            client.post("/api/agent/execute", json={"prompt": "hi", "sessionId": f"session-{i}"})

        pruned = client.post("/api/memory/prune", json={"maxSessions": 1})
        assert pruned.status_code == 200
        assert pruned.json()["success"] is True

        analytics = client.get("/api/memory/analytics").json()
        assert analytics["totalSessions"] == 1
        assert analytics["memoryPressure"] == "low"

        stats = client.get("/api/memory/stats").json()
        assert stats["session_count"] == 1


class TestObservability:

    def test_circuits(self, client, container):
        async def succeed():
            return "ok"

        asyncio.run(container.circuit_breaker.execute("llm:test", succeed))

        listing = client.get("/api/observability/circuits").json()
        assert listing["summary"]["total"] == 1
        assert listing["circuits"]["llm:test"]["state"] == "closed"

        assert client.get("/api/observability/circuits/llm:test").json()["totalSuccesses"] == 1
        assert client.post("/api/observability/circuits/llm:test/reset").json()["success"] is True
        assert client.get("/api/observability/circuits/unknown").status_code == 404
        assert client.post("/api/observability/circuits/unknown/reset").status_code == 404

    def test_cache_stats(self, client):
        body = client.get("/api/observability/cache").json()

        assert body["size"] == 0
        assert body["max_size"] == 50

    def test_tool_catalog(self, client):
        body = client.get("/api/agent/tools").json()

        assert "calculator" in body["tool_names"]
        assert "math" in body["categories"]
