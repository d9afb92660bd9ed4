"""
Date and time tools.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..base_tool import BaseTool, ToolExecutionError
from ..tool_schemas import (
    ToolResult,
    ToolParameter,
    ParameterType,
    ToolCategory,
)


class CurrentTimeTool(BaseTool):
    """Return the current date and time."""

    name = "current_time"
    description = (
        "Returns the current date and time. Optionally accepts an IANA timezone "
        "such as 'Asia/Seoul' or 'America/New_York' (defaults to UTC)."
    )
    category = ToolCategory.DATETIME
    timeout_seconds = 5

    parameters = [
        ToolParameter(
            name="timezone",
            type=ParameterType.STRING,
            description="IANA timezone name",
            required=False,
        ),
    ]

    async def execute(self, timezone: Optional[str] = None) -> ToolResult:
        if timezone:
            try:
                tz = ZoneInfo(timezone)
            except (ZoneInfoNotFoundError, ValueError):
                raise ToolExecutionError(f"Unknown timezone: {timezone}")
        else:
            tz = _UTC

        now = datetime.now(tz)
        return ToolResult.success_result(
            f"Current time ({timezone or 'UTC'}): {now.isoformat()}",
            iso=now.isoformat(),
        )


_UTC = timezone.utc

_WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _parse_date(value: Optional[str], param_name: str) -> date:
    if not value:
        return date.today()
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise ToolExecutionError(f"Parameter '{param_name}' must be an ISO date (YYYY-MM-DD)")


class DateCalculatorTool(BaseTool):
    """Add/subtract days, count days between dates, or get the day of week."""

    name = "date_calculator"
    description = (
        "Performs date calculations. Can add/subtract days from a date, calculate "
        "days between dates, or get day of week."
    )
    category = ToolCategory.DATETIME
    timeout_seconds = 5

    parameters = [
        ToolParameter(
            name="operation",
            type=ParameterType.STRING,
            description="The operation to perform",
            required=True,
            enum=["add_days", "subtract_days", "days_between", "day_of_week"],
        ),
        ToolParameter(
            name="date",
            type=ParameterType.STRING,
            description="Starting date in ISO format (YYYY-MM-DD). Defaults to today.",
            required=False,
        ),
        ToolParameter(
            name="days",
            type=ParameterType.INTEGER,
            description="Number of days to add/subtract",
            required=False,
        ),
        ToolParameter(
            name="end_date",
            type=ParameterType.STRING,
            description="End date in ISO format (required for days_between)",
            required=False,
        ),
    ]

    async def execute(
        self,
        operation: str,
        date: Optional[str] = None,
        days: Optional[int] = None,
        end_date: Optional[str] = None,
    ) -> ToolResult:
        start = _parse_date(date, "date")

        if operation in ("add_days", "subtract_days"):
            if days is None:
                raise ToolExecutionError(f"days parameter is required for {operation} operation")
            if operation == "add_days":
                result = start + timedelta(days=days)
                return ToolResult.success_result(f"{days} days after {start.isoformat()} is {result.isoformat()}")
            result = start - timedelta(days=days)
            return ToolResult.success_result(f"{days} days before {start.isoformat()} is {result.isoformat()}")

        if operation == "days_between":
            if not end_date:
                raise ToolExecutionError("end_date parameter is required for days_between operation")
            end = _parse_date(end_date, "end_date")
            diff = abs((end - start).days)
            return ToolResult.success_result(
                f"There are {diff} days between {start.isoformat()} and {end.isoformat()}",
                days=diff,
            )

        return ToolResult.success_result(f"{start.isoformat()} is a {_WEEKDAYS[start.weekday()]}")
