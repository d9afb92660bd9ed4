"""
String manipulation tool.
"""

from typing import Optional

from ..base_tool import BaseTool, ToolExecutionError
from ..tool_schemas import (
    ToolResult,
    ToolParameter,
    ParameterType,
    ToolCategory,
)


class StringManipulationTool(BaseTool):
    """Common string operations."""

    name = "string_manipulation"
    description = (
        "Performs string operations like uppercase, lowercase, reverse, length, "
        "substring, replace, split, trim and concat."
    )
    category = ToolCategory.TEXT
    timeout_seconds = 5

    parameters = [
        ToolParameter(
            name="operation",
            type=ParameterType.STRING,
            description="The string operation to perform",
            required=True,
            enum=[
                "uppercase", "lowercase", "reverse", "length", "substring",
                "replace", "split", "trim", "concat",
            ],
        ),
        ToolParameter(
            name="text",
            type=ParameterType.STRING,
            description="The input text to manipulate",
            required=True,
        ),
        ToolParameter(
            name="start",
            type=ParameterType.INTEGER,
            description="Start index for substring operation",
            required=False,
        ),
        ToolParameter(
            name="end",
            type=ParameterType.INTEGER,
            description="End index for substring operation",
            required=False,
        ),
        ToolParameter(
            name="search",
            type=ParameterType.STRING,
            description="Text to search for (replace operation)",
            required=False,
        ),
        ToolParameter(
            name="replace_with",
            type=ParameterType.STRING,
            description="Replacement text (replace operation)",
            required=False,
        ),
        ToolParameter(
            name="separator",
            type=ParameterType.STRING,
            description="Separator for split operation (defaults to space)",
            required=False,
        ),
        ToolParameter(
            name="additional_text",
            type=ParameterType.STRING,
            description="Text to append (concat operation)",
            required=False,
        ),
    ]

    async def execute(
        self,
        operation: str,
        text: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        search: Optional[str] = None,
        replace_with: Optional[str] = None,
        separator: Optional[str] = None,
        additional_text: Optional[str] = None,
    ) -> ToolResult:
        if operation == "uppercase":
            return ToolResult.success_result(f"Uppercase result: {text.upper()}")
        if operation == "lowercase":
            return ToolResult.success_result(f"Lowercase result: {text.lower()}")
        if operation == "reverse":
            return ToolResult.success_result(f"Reversed text: {text[::-1]}")
        if operation == "length":
            return ToolResult.success_result(f"Text length: {len(text)} characters", length=len(text))
        if operation == "substring":
            return ToolResult.success_result(f"Substring result: {text[start or 0:end]}")
        if operation == "replace":
            if search is None:
                raise ToolExecutionError("search parameter is required for replace operation")
            return ToolResult.success_result(f"Replace result: {text.replace(search, replace_with or '')}")
        if operation == "split":
            parts = text.split(separator or " ")
            return ToolResult.success_result(f"Split result: {parts}", parts=parts)
        if operation == "trim":
            return ToolResult.success_result(f"Trimmed text: {text.strip()}")
        return ToolResult.success_result(f"Concatenated text: {text}{additional_text or ''}")
