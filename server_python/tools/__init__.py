"""
Tool System for the agentic task server.
Provides tool calling capabilities for the reasoning loop.
"""

from .tool_registry import ToolRegistry
from .base_tool import BaseTool, ToolResult, ToolParameter, ToolValidationError, ToolExecutionError
from .tool_schemas import ToolCategory, ParameterType, ToolCall, function_definition

__all__ = [
    "ToolRegistry",
    "BaseTool",
    "ToolResult",
    "ToolParameter",
    "ToolValidationError",
    "ToolExecutionError",
    "function_definition",
    "ToolCategory",
    "ParameterType",
    "ToolCall",
]
