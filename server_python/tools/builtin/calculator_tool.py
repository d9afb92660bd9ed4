"""
Calculator tool.
Evaluates arithmetic expressions by walking a restricted AST.
"""

import ast
import math
import operator
from typing import Any, Callable, Dict

from ..base_tool import BaseTool, ToolExecutionError
from ..tool_schemas import (
    ToolResult,
    ToolParameter,
    ParameterType,
    ToolCategory,
)

_BINARY_OPS: Dict[type, Callable[[Any, Any], Any]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS: Dict[type, Callable[[Any], Any]] = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "sqrt": math.sqrt,
    "abs": abs,
    "round": round,
    "min": min,
    "max": max,
    "log": math.log,
    "sin": math.sin,
    "cos": math.cos,
    "tan": math.tan,
}

_CONSTANTS = {
    "pi": math.pi,
    "e": math.e,
}

MAX_EXPONENT = 1000


def evaluate_expression(expression: str) -> Any:
    """
    Evaluate an arithmetic expression.

    Raises:
        ToolExecutionError: If the expression is invalid or unsupported
    """
    try:
        tree = ast.parse(expression.strip(), mode="eval")
    except SyntaxError as e:
        raise ToolExecutionError(f"Invalid expression: {e.msg}")
    return _eval_node(tree.body)


def _eval_node(node: ast.AST) -> Any:
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
        return node.value

    if isinstance(node, ast.Name):
        if node.id in _CONSTANTS:
            return _CONSTANTS[node.id]
        raise ToolExecutionError(f"Unknown name: {node.id}")

    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        left = _eval_node(node.left)
        right = _eval_node(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > MAX_EXPONENT:
            raise ToolExecutionError("Exponent too large")
        try:
            return _BINARY_OPS[type(node.op)](left, right)
        except ZeroDivisionError:
            raise ToolExecutionError("Division by zero")

    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))

    if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and node.func.id in _FUNCTIONS:
        if node.keywords:
            raise ToolExecutionError("Keyword arguments are not supported")
        args = [_eval_node(arg) for arg in node.args]
        try:
            return _FUNCTIONS[node.func.id](*args)
        except (TypeError, ValueError) as e:
            raise ToolExecutionError(f"Invalid arguments for {node.func.id}: {e}")

    raise ToolExecutionError(f"Unsupported expression element: {type(node).__name__}")


class CalculatorTool(BaseTool):
    """Perform mathematical calculations."""

    name = "calculator"
    description = (
        "Performs mathematical calculations. Input should be a valid mathematical "
        'expression as a string (e.g., "2 + 2", "sqrt(16)", "5 * (3 + 2)").'
    )
    category = ToolCategory.MATH
    timeout_seconds = 5

    parameters = [
        ToolParameter(
            name="expression",
            type=ParameterType.STRING,
            description="The mathematical expression to evaluate",
            required=True,
            max_length=500,
        ),
    ]

    async def execute(self, expression: str) -> ToolResult:
        """Evaluate the expression."""
        value = evaluate_expression(expression)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return ToolResult.success_result(
            f"The result of {expression} is {value}",
            value=value,
        )
