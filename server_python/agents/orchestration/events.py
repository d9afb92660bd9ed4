"""
Stream Events - 실행 스트림 이벤트 정의

Orchestrator가 클라이언트로 내보내는 이벤트의 닫힌 집합입니다.
각 실행은 RUN_STARTED로 시작해 정확히 하나의 종료 이벤트
(RUN_FINISHED / RUN_CANCELLED / RUN_ERROR)로 끝납니다.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class StreamEventType(str, Enum):
    """스트림 이벤트 타입"""
    RUN_STARTED = "RUN_STARTED"
    TEXT_MESSAGE_CONTENT = "TEXT_MESSAGE_CONTENT"
    TOOL_CALL_START = "TOOL_CALL_START"
    TOOL_COMPLETE = "TOOL_COMPLETE"
    CONTEXT = "CONTEXT"
    RUN_FINISHED = "RUN_FINISHED"
    RUN_CANCELLED = "RUN_CANCELLED"
    RUN_ERROR = "RUN_ERROR"


TERMINAL_EVENT_TYPES = frozenset({
    StreamEventType.RUN_FINISHED,
    StreamEventType.RUN_CANCELLED,
    StreamEventType.RUN_ERROR,
})

CANCELLED_MESSAGE = "Stream cancelled by client"


@dataclass
class StreamEvent:
    """스트림 이벤트"""
    type: StreamEventType
    data: Dict[str, Any] = field(default_factory=dict)
    # RUN_ERROR의 원본 예외 (직렬화하지 않음)
    exception: Optional[BaseException] = field(default=None, repr=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENT_TYPES

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "data": self.data}

    # =========================================================================
    # Factory helpers
    # =========================================================================

    @classmethod
    def run_started(cls, session_id: str, prompt: str, model: str) -> "StreamEvent":
        return cls(StreamEventType.RUN_STARTED, {
            "sessionId": session_id,
            "prompt": prompt,
            "model": model,
            "timestamp": datetime.now().isoformat(),
        })

    @classmethod
    def text_content(cls, message_id: str, delta: str, content: str) -> "StreamEvent":
        return cls(StreamEventType.TEXT_MESSAGE_CONTENT, {
            "messageId": message_id,
            "delta": delta,
            "content": content,
        })

    @classmethod
    def tool_call_start(cls, tool_call_id: str, tool: str, tool_input: Dict[str, Any]) -> "StreamEvent":
        return cls(StreamEventType.TOOL_CALL_START, {
            "toolCallId": tool_call_id,
            "tool": tool,
            "input": tool_input,
            "timestamp": datetime.now().isoformat(),
        })

    @classmethod
    def tool_complete(
        cls,
        tool_call_id: str,
        tool: str,
        duration_ms: float,
        output: Optional[str] = None,
        error: Optional[str] = None,
    ) -> "StreamEvent":
        data: Dict[str, Any] = {
            "toolCallId": tool_call_id,
            "tool": tool,
            "duration": round(duration_ms, 2),
            "status": "error" if error else "success",
        }
        if error:
            data["error"] = error
        else:
            data["output"] = output
        return cls(StreamEventType.TOOL_COMPLETE, data)

    @classmethod
    def context(cls, context: str) -> "StreamEvent":
        return cls(StreamEventType.CONTEXT, {"context": context, "source": "RAG"})

    @classmethod
    def run_finished(
        cls,
        output: str,
        tools_used: List[str],
        session_id: str,
        execution_time_ms: float,
    ) -> "StreamEvent":
        return cls(StreamEventType.RUN_FINISHED, {
            "output": output,
            "toolsUsed": tools_used,
            "sessionId": session_id,
            "executionTime": round(execution_time_ms, 2),
        })

    @classmethod
    def run_cancelled(cls, session_id: str) -> "StreamEvent":
        return cls(StreamEventType.RUN_CANCELLED, {
            "message": CANCELLED_MESSAGE,
            "sessionId": session_id,
        })

    @classmethod
    def run_error(
        cls,
        error: str,
        session_id: str,
        exception: Optional[BaseException] = None,
    ) -> "StreamEvent":
        return cls(
            StreamEventType.RUN_ERROR,
            {"error": error, "sessionId": session_id},
            exception=exception,
        )
