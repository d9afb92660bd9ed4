"""
Base class for tools the reasoning loop can call.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from .tool_schemas import (
    ParameterType,
    ToolCategory,
    ToolExecutionError,
    ToolParameter,
    ToolResult,
    ToolValidationError,
    function_definition,
)

logger = logging.getLogger(__name__)

__all__ = [
    "BaseTool",
    "ToolResult",
    "ToolParameter",
    "ToolCategory",
    "ParameterType",
    "ToolValidationError",
    "ToolExecutionError",
]


class BaseTool(ABC):
    """
    A named, categorized async operation with declared parameters.

    Subclasses set the class attributes and implement execute(). Callers go
    through validate_and_execute(), which never raises: validation errors,
    timeouts and crashes all come back as error results with the elapsed time.

    Example:
        class EchoTool(BaseTool):
            name = "echo"
            description = "Repeat the given text"
            category = ToolCategory.TEXT
            parameters = [
                ToolParameter(name="text", type=ParameterType.STRING, description="Text to repeat"),
            ]

            async def execute(self, text: str) -> ToolResult:
                return ToolResult.success_result(text)
    """

    name: str = ""
    description: str = ""
    category: ToolCategory = ToolCategory.CUSTOM
    parameters: List[ToolParameter] = []
    timeout_seconds: float = 30

    def __init__(self):
        for attr in ("name", "description"):
            if not getattr(self, attr):
                raise ValueError(f"Tool {self.__class__.__name__} must define a '{attr}'")

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult:
        """Run the tool with validated arguments."""

    async def validate_and_execute(self, **kwargs) -> ToolResult:
        """Validate the model's arguments, run the tool and time it."""
        started = time.monotonic()
        try:
            arguments = self.validate_parameters(**kwargs)
            result = await asyncio.wait_for(self.execute(**arguments), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            result = ToolResult.error_result(
                f"Tool execution timed out after {self.timeout_seconds} seconds", "TimeoutError"
            )
        except ToolValidationError as e:
            result = ToolResult.error_result(str(e), "ValidationError")
        except ToolExecutionError as e:
            result = ToolResult.error_result(str(e), "ExecutionError")
        except Exception as e:
            logger.exception(f"Unexpected error in tool {self.name}")
            result = ToolResult.error_result(str(e), type(e).__name__)

        result.execution_time_ms = (time.monotonic() - started) * 1000
        return result

    def validate_parameters(self, **kwargs) -> Dict[str, Any]:
        """
        Fill defaults and coerce every declared parameter.

        Unknown arguments are dropped.

        Raises:
            ToolValidationError: If a required argument is missing or invalid
        """
        validated = {}
        for param in self.parameters:
            value = kwargs.get(param.name)
            if value is None:
                if param.required:
                    raise ToolValidationError(f"Required parameter '{param.name}' is missing")
                value = param.default
            validated[param.name] = param.coerce(value) if value is not None else None
        return validated

    def to_llm_format(self) -> Dict[str, Any]:
        return function_definition(self.name, self.description, self.parameters)

    def get_info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "parameters": [p.name for p in self.parameters],
        }

    def __repr__(self) -> str:
        return f"<Tool: {self.name} ({self.category.value})>"
