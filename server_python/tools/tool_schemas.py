"""
Tool schema types shared by the tools, the registry and the reasoning loop.

Parameters describe themselves as JSON Schema for function calling and
coerce raw model arguments into Python values.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class ToolCategory(str, Enum):
    """Categories used to narrow the tool catalog per request."""
    MATH = "math"
    DATETIME = "datetime"
    TEXT = "text"
    WEB = "web"
    CUSTOM = "custom"


class ParameterType(str, Enum):
    """JSON Schema primitive types."""
    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class ToolValidationError(Exception):
    """Raised when model-supplied arguments do not match a tool's parameters."""
    pass


class ToolExecutionError(Exception):
    """Raised by a tool when it cannot produce a result."""
    pass


_TRUE_STRINGS = ("true", "1", "yes")

# attribute name -> JSON Schema keyword
_SCHEMA_KEYWORDS = {
    "enum": "enum",
    "default": "default",
    "min_value": "minimum",
    "max_value": "maximum",
    "max_length": "maxLength",
}


@dataclass
class ToolParameter:
    """One named argument of a tool."""
    name: str
    type: ParameterType
    description: str
    required: bool = True
    default: Any = None
    enum: Optional[List[Any]] = None
    min_value: Optional[Union[int, float]] = None
    max_value: Optional[Union[int, float]] = None
    max_length: Optional[int] = None

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": self.type.value, "description": self.description}
        for attr, keyword in _SCHEMA_KEYWORDS.items():
            value = getattr(self, attr)
            if value is not None and value != []:
                schema[keyword] = value
        return schema

    def coerce(self, value: Any) -> Any:
        """
        Convert a raw argument to this parameter's type and check its constraints.

        Raises:
            ToolValidationError: If the value cannot be converted or is out of range
        """
        value = self._convert(value)

        if self.enum and value not in self.enum:
            raise ToolValidationError(f"Parameter '{self.name}' must be one of {self.enum}")

        if self.type in (ParameterType.INTEGER, ParameterType.NUMBER):
            if self.min_value is not None and value < self.min_value:
                raise ToolValidationError(f"Parameter '{self.name}' must be >= {self.min_value}")
            if self.max_value is not None and value > self.max_value:
                raise ToolValidationError(f"Parameter '{self.name}' must be <= {self.max_value}")

        if self.type == ParameterType.STRING and self.max_length is not None and len(value) > self.max_length:
            raise ToolValidationError(f"Parameter '{self.name}' must have length <= {self.max_length}")

        return value

    def _convert(self, value: Any) -> Any:
        if self.type == ParameterType.ARRAY and not isinstance(value, list):
            raise ToolValidationError(f"Parameter '{self.name}' must be an array")
        if self.type == ParameterType.OBJECT and not isinstance(value, dict):
            raise ToolValidationError(f"Parameter '{self.name}' must be an object")
        if self.type == ParameterType.BOOLEAN:
            return value.lower() in _TRUE_STRINGS if isinstance(value, str) else bool(value)

        converter = {
            ParameterType.STRING: str,
            ParameterType.INTEGER: int,
            ParameterType.NUMBER: float,
        }.get(self.type)
        if converter is None:
            return value
        try:
            return converter(value)
        except (ValueError, TypeError):
            raise ToolValidationError(
                f"Parameter '{self.name}' has invalid type: expected {self.type.value}"
            )


def function_definition(name: str, description: str, parameters: List[ToolParameter]) -> Dict[str, Any]:
    """OpenAI function calling definition for a tool."""
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": {p.name: p.to_json_schema() for p in parameters},
                "required": [p.name for p in parameters if p.required],
            },
        },
    }


@dataclass
class ToolResult:
    """Outcome of one tool call. Failures are values, not exceptions."""
    success: bool
    output: Any
    error: Optional[str] = None
    error_type: Optional[str] = None
    execution_time_ms: float = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_context_string(self) -> str:
        """Text fed back to the model as the tool message."""
        if not self.success:
            return f"Error ({self.error_type}): {self.error}"
        if isinstance(self.output, str):
            return self.output
        return json.dumps(self.output, indent=2, ensure_ascii=False)

    @classmethod
    def success_result(cls, output: Any, **metadata) -> "ToolResult":
        return cls(success=True, output=output, metadata=metadata)

    @classmethod
    def error_result(cls, error: str, error_type: str = "ExecutionError") -> "ToolResult":
        return cls(success=False, output=None, error=error, error_type=error_type)


@dataclass
class ToolCall:
    """A tool invocation requested by the model."""
    id: str
    tool_name: str
    arguments: Dict[str, Any]

    def to_openai_format(self) -> Dict[str, Any]:
        """Entry of an assistant message's tool_calls list."""
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.tool_name,
                "arguments": json.dumps(self.arguments, ensure_ascii=False),
            },
        }
