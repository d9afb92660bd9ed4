"""
Built-in tools for the tool system.
Provides math, date/time and text utilities.
"""

import logging

from .calculator_tool import CalculatorTool
from .datetime_tools import CurrentTimeTool, DateCalculatorTool
from .string_tools import StringManipulationTool

logger = logging.getLogger(__name__)

__all__ = [
    # Math
    "CalculatorTool",
    # Date/time
    "CurrentTimeTool",
    "DateCalculatorTool",
    # Text
    "StringManipulationTool",
    "register_all_builtin_tools",
]


def register_all_builtin_tools(registry) -> None:
    """Register all built-in tools with the registry."""
    builtin_tools = [
        CalculatorTool,
        CurrentTimeTool,
        DateCalculatorTool,
        StringManipulationTool,
    ]

    for tool_class in builtin_tools:
        try:
            registry.register(tool_class)
        except Exception as e:
            logger.error(
                f"Failed to register built-in tool {tool_class.__name__}: {e}"
            )
