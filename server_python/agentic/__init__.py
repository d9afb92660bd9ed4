"""
Agentic system for the agentic task server.
Provides the LLM client and the tool-calling reasoning loop.
"""

from .llm_client import LLMClient, ChatCompletion
from .reasoning_loop import (
    ReasoningLoop,
    ToolCallingLoop,
    LoopChunk,
    TextDelta,
    ToolCallStarted,
    ToolCallFinished,
    FinalMessage,
)

__all__ = [
    # LLM
    "LLMClient",
    "ChatCompletion",
    # Reasoning loop
    "ReasoningLoop",
    "ToolCallingLoop",
    "LoopChunk",
    "TextDelta",
    "ToolCallStarted",
    "ToolCallFinished",
    "FinalMessage",
]
