"""
Tool System Unit Tests

Tests for the tool registry, parameter validation and built-in tools.
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from tools import ToolRegistry, ToolCategory
from tools.builtin import (
    CalculatorTool,
    CurrentTimeTool,
    DateCalculatorTool,
    StringManipulationTool,
    register_all_builtin_tools,
)


@pytest.fixture
def registry():
    registry = ToolRegistry()
    register_all_builtin_tools(registry)
    return registry


class TestToolRegistry:
    """ToolRegistry tests"""

    def test_register_builtin_tools(self, registry):
        assert set(registry.get_names()) == {
            "calculator", "current_time", "date_calculator", "string_manipulation",
        }

    def test_get_by_category(self, registry):
        names = [t.name for t in registry.get_by_category(ToolCategory.DATETIME)]
        assert names == ["current_time", "date_calculator"]

    def test_filter_by_names_takes_precedence(self, registry):
        tools = registry.filter_tools(
            allowed_tools=["calculator", "unknown_tool"],
            allowed_categories=["datetime"],
        )
        assert [t.name for t in tools] == ["calculator"]

    def test_filter_by_categories(self, registry):
        tools = registry.filter_tools(allowed_categories=["math", "text", "bogus"])
        assert {t.name for t in tools} == {"calculator", "string_manipulation"}

    def test_filter_without_criteria_returns_all(self, registry):
        assert len(registry.filter_tools()) == 4

    def test_disabled_tools_are_hidden(self, registry):
        registry.disable("calculator")

        assert registry.get("calculator") is None
        assert "calculator" not in registry.get_names()
        assert registry.enable("calculator") is True
        assert registry.get("calculator") is not None

    def test_unregister(self, registry):
        assert registry.unregister("calculator") is True
        assert registry.unregister("calculator") is False
        assert registry.get_by_category(ToolCategory.MATH) == []

    def test_llm_format(self, registry):
        definitions = registry.get_llm_tools([registry.get("calculator")])

        assert definitions == [{
            "type": "function",
            "function": {
                "name": "calculator",
                "description": CalculatorTool.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        "expression": {
                            "type": "string",
                            "description": "The mathematical expression to evaluate",
                            "maxLength": 500,
                        }
                    },
                    "required": ["expression"],
                },
            },
        }]

    def test_tool_info(self, registry):
        info = registry.get_tool_info()

        assert info["total_tools"] == 4
        assert [t["name"] for t in info["categories"]["math"]] == ["calculator"]


class TestCalculatorTool:
    """CalculatorTool tests"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expression,expected", [
        ("2 + 2", 4),
        ("5 * (3 + 2)", 25),
        ("sqrt(16)", 4),
        ("-3 ** 2", -9),
        ("7 // 2 + 7 % 2", 4),
        ("max(1, 9, 3)", 9),
    ])
    async def test_evaluates_expressions(self, expression, expected):
        result = await CalculatorTool().validate_and_execute(expression=expression)

        assert result.success
        assert result.metadata["value"] == expected
        assert result.output == f"The result of {expression} is {expected}"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expression", [
        "__import__('os').system('ls')",
        "open('/etc/passwd')",
        "1 / 0",
        "2 ** 100000",
        "2 +",
    ])
    async def test_rejects_unsafe_or_invalid(self, expression):
        result = await CalculatorTool().validate_and_execute(expression=expression)

        assert not result.success
        assert result.error_type == "ExecutionError"

    @pytest.mark.asyncio
    async def test_missing_parameter(self):
        result = await CalculatorTool().validate_and_execute()

        assert not result.success
        assert result.error_type == "ValidationError"


class TestDateTimeTools:
    """Date/time tool tests"""

    @pytest.mark.asyncio
    async def test_add_days(self):
        result = await DateCalculatorTool().validate_and_execute(
            operation="add_days", date="2024-02-27", days=3
        )
        assert result.output == "3 days after 2024-02-27 is 2024-03-01"

    @pytest.mark.asyncio
    async def test_days_between(self):
        result = await DateCalculatorTool().validate_and_execute(
            operation="days_between", date="2024-01-01", end_date="2024-01-31"
        )
        assert result.metadata["days"] == 30

    @pytest.mark.asyncio
    async def test_day_of_week(self):
        result = await DateCalculatorTool().validate_and_execute(
            operation="day_of_week", date="2024-01-01"
        )
        assert result.output == "2024-01-01 is a Monday"

    @pytest.mark.asyncio
    async def test_missing_days_is_an_error(self):
        result = await DateCalculatorTool().validate_and_execute(operation="add_days")
        assert not result.success

    @pytest.mark.asyncio
    async def test_invalid_operation(self):
        result = await DateCalculatorTool().validate_and_execute(operation="fortnight")
        assert result.error_type == "ValidationError"

    @pytest.mark.asyncio
    async def test_current_time_default_utc(self):
        result = await CurrentTimeTool().validate_and_execute()

        assert result.success
        assert result.output.startswith("Current time (UTC): ")
        assert result.metadata["iso"].endswith("+00:00")


class TestStringManipulationTool:
    """StringManipulationTool tests"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kwargs,expected", [
        ({"operation": "uppercase", "text": "abc"}, "Uppercase result: ABC"),
        ({"operation": "reverse", "text": "abc"}, "Reversed text: cba"),
        ({"operation": "length", "text": "hello"}, "Text length: 5 characters"),
        ({"operation": "substring", "text": "hello", "start": 1, "end": 3}, "Substring result: el"),
        ({"operation": "replace", "text": "a-b", "search": "-", "replace_with": "+"}, "Replace result: a+b"),
        ({"operation": "trim", "text": "  x  "}, "Trimmed text: x"),
        ({"operation": "concat", "text": "foo", "additional_text": "bar"}, "Concatenated text: foobar"),
    ])
    async def test_operations(self, kwargs, expected):
        result = await StringManipulationTool().validate_and_execute(**kwargs)
        assert result.output == expected

    @pytest.mark.asyncio
    async def test_replace_requires_search(self):
        result = await StringManipulationTool().validate_and_execute(operation="replace", text="abc")
        assert not result.success
