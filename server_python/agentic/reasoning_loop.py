"""
Reasoning loop contract and the default tool-calling implementation.

A reasoning loop accepts (messages, tool set, iteration limit) and yields an
ordered stream of chunks: text deltas, tool call notifications and a final
message. The execution orchestrator adapts these chunks into stream events.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, List, Optional, Protocol, Union

from tools.base_tool import BaseTool
from tools.tool_schemas import ToolCall, ToolResult

from .llm_client import ChatCompletion, LLMClient

if TYPE_CHECKING:
    from agents.orchestration.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


# =============================================================================
# Loop chunks
# =============================================================================

@dataclass
class TextDelta:
    """A piece of assistant text."""
    text: str


@dataclass
class ToolCallStarted:
    """The loop is about to run a tool. call_id is unique within the run."""
    call_id: str
    tool: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolCallFinished:
    """A tool call completed (successfully or not)."""
    call_id: str
    tool: str
    output: Optional[str] = None
    error: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class FinalMessage:
    """The loop's final answer."""
    text: str


LoopChunk = Union[TextDelta, ToolCallStarted, ToolCallFinished, FinalMessage]


class ReasoningLoop(Protocol):
    """Black-box reasoning capability driven by the execution orchestrator."""

    def stream(
        self,
        messages: List[Dict[str, Any]],
        tools: List[BaseTool],
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_iterations: int = 10,
        use_graph: bool = False,
    ) -> AsyncIterator[LoopChunk]:
        ...


# =============================================================================
# Default implementation
# =============================================================================

FINAL_ANSWER_PROMPT = (
    "Based on all the work done so far, provide a clear, concise final answer "
    "to the original request. Do not call any more tools."
)

REFLECTION_PROMPT = """Reflect on the progress made so far:

1. Did the recent tool results help progress toward the goal?
2. Were there any errors or unexpected results?
3. Is the task complete, or is more work needed?

Provide your reflection and indicate if the task is COMPLETE or INCOMPLETE:"""


class ToolCallingLoop:
    """
    OpenAI-compatible tool-calling loop.

    Each iteration:
    1. Ask the model for the next step (with the tool definitions)
    2. Run every requested tool and feed the results back
    3. In graph mode, reflect on progress and stop early once complete
    4. Stop when the model answers without tool calls

    When the iteration limit is reached (or reflection reports the task
    complete) a final answer is requested without tools.

    Every model call goes through the circuit breaker under ``llm:{model}``.

    Example:
        loop = ToolCallingLoop(llm_client, circuit_breaker)

        async for chunk in loop.stream(messages, tools, max_iterations=5):
            ...
    """

    def __init__(
        self,
        llm_client: LLMClient,
        circuit_breaker: "CircuitBreaker",
    ):
        """
        Initialize the loop.

        Args:
            llm_client: Chat completions client
            circuit_breaker: Breaker guarding every model call
        """
        self.llm_client = llm_client
        self.circuit_breaker = circuit_breaker

    async def stream(
        self,
        messages: List[Dict[str, Any]],
        tools: List[BaseTool],
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_iterations: int = 10,
        use_graph: bool = False,
    ) -> AsyncIterator[LoopChunk]:
        """
        Run the loop.

        Args:
            messages: Conversation in OpenAI chat format
            tools: Tools the model may call
            model: Model override
            temperature: Temperature override
            max_iterations: Maximum tool-calling rounds
            use_graph: Enable the reflection step after each tool round

        Yields:
            LoopChunk items, ending with exactly one FinalMessage
        """
        model = model or self.llm_client.model
        conversation = list(messages)
        tool_map = {tool.name: tool for tool in tools}
        llm_tools = [tool.to_llm_format() for tool in tools] or None
        emitted_text = False

        for iteration in range(1, max_iterations + 1):
            logger.debug(f"Tool-calling iteration {iteration}/{max_iterations}")

            completion = await self._complete(conversation, llm_tools, model, temperature)

            if completion.content:
                yield TextDelta(("\n\n" if emitted_text else "") + completion.content)
                emitted_text = True

            if not completion.tool_calls:
                yield FinalMessage(completion.content)
                return

            calls = [self._ensure_call_id(call) for call in completion.tool_calls]
            conversation.append(self._assistant_message(completion.content, calls))

            for call in calls:
                yield ToolCallStarted(call.id, call.tool_name, call.arguments)
                result = await self._run_tool(tool_map, call)
                yield ToolCallFinished(
                    call_id=call.id,
                    tool=call.tool_name,
                    output=result.to_context_string() if result.success else None,
                    error=None if result.success else result.error,
                    duration_ms=result.execution_time_ms,
                )
                conversation.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": result.to_context_string(),
                })

            if use_graph:
                reflection = await self._complete(
                    conversation + [{"role": "user", "content": REFLECTION_PROMPT}],
                    None, model, temperature,
                )
                if self._check_task_completion(reflection.content):
                    logger.debug("Reflection reports task complete")
                    break

        final = await self._complete(
            conversation + [{"role": "user", "content": FINAL_ANSWER_PROMPT}],
            None, model, temperature,
        )
        if final.content:
            yield TextDelta(("\n\n" if emitted_text else "") + final.content)
        yield FinalMessage(final.content)

    async def _complete(
        self,
        conversation: List[Dict[str, Any]],
        llm_tools: Optional[List[Dict[str, Any]]],
        model: str,
        temperature: Optional[float],
    ) -> ChatCompletion:
        return await self.circuit_breaker.execute(
            f"llm:{model}",
            lambda: self.llm_client.chat(
                conversation,
                tools=llm_tools,
                model=model,
                temperature=temperature,
            ),
        )

    @staticmethod
    def _ensure_call_id(call: ToolCall) -> ToolCall:
        if not call.id:
            call.id = f"call_{uuid.uuid4().hex[:12]}"
        return call

    @staticmethod
    def _assistant_message(content: str, calls: List[ToolCall]) -> Dict[str, Any]:
        return {
            "role": "assistant",
            "content": content or None,
            "tool_calls": [call.to_openai_format() for call in calls],
        }

    @staticmethod
    async def _run_tool(tool_map: Dict[str, BaseTool], call: ToolCall) -> ToolResult:
        """Run one tool call. In-flight tools always run to completion."""
        tool = tool_map.get(call.tool_name)
        if tool is None:
            return ToolResult.error_result(f"Unknown tool: {call.tool_name}", "UnknownTool")
        if not isinstance(call.arguments, dict):
            return ToolResult.error_result("Tool arguments must be a JSON object", "ValidationError")
        return await tool.validate_and_execute(**call.arguments)

    @staticmethod
    def _check_task_completion(reflection: str) -> bool:
        """Check if reflection indicates task is complete."""
        reflection_lower = reflection.lower()

        if "incomplete" in reflection_lower or "not complete" in reflection_lower:
            return False
        if "task is complete" in reflection_lower or "task complete" in reflection_lower:
            return True

        complete_keywords = ["complete", "finished", "done", "accomplished"]
        incomplete_keywords = ["unfinished", "more work", "still need", "not done"]
        complete_count = sum(1 for kw in complete_keywords if kw in reflection_lower)
        incomplete_count = sum(1 for kw in incomplete_keywords if kw in reflection_lower)

        return complete_count > incomplete_count
