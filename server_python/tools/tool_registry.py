"""
Tool catalog shared by every run.

Requests narrow the catalog by tool name or category before the
reasoning loop sees it.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Type, Union

from .base_tool import BaseTool
from .tool_schemas import ToolCategory

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Registry of tool instances keyed by name.

    Disabled tools stay registered but are invisible to lookups and filters.

    Example:
        registry = ToolRegistry()
        registry.register(CalculatorTool)

        tools = registry.filter_tools(allowed_categories=["math"])
    """

    def __init__(self):
        self._tools: Dict[str, BaseTool] = {}
        self._disabled: Set[str] = set()

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def register(self, tool: Union[Type[BaseTool], BaseTool], enabled: bool = True) -> BaseTool:
        """
        Register a tool class (instantiated here) or a ready instance.

        Re-registering a name replaces the previous tool.
        """
        instance = tool if isinstance(tool, BaseTool) else tool()

        if instance.name in self._tools:
            logger.warning(f"Tool '{instance.name}' is already registered, overwriting")

        self._tools[instance.name] = instance
        if enabled:
            self._disabled.discard(instance.name)
        else:
            self._disabled.add(instance.name)

        logger.info(f"Registered tool: {instance.name} ({instance.category.value})")
        return instance

    def unregister(self, name: str) -> bool:
        self._disabled.discard(name)
        if self._tools.pop(name, None) is None:
            return False
        logger.info(f"Unregistered tool: {name}")
        return True

    def enable(self, name: str) -> bool:
        if name not in self._tools:
            return False
        self._disabled.discard(name)
        return True

    def disable(self, name: str) -> bool:
        if name not in self._tools:
            return False
        self._disabled.add(name)
        return True

    def get(self, name: str) -> Optional[BaseTool]:
        """Enabled tool by name, or None."""
        if name in self._disabled:
            return None
        return self._tools.get(name)

    def get_all(self) -> List[BaseTool]:
        return [tool for name, tool in self._tools.items() if name not in self._disabled]

    def get_names(self) -> List[str]:
        return [tool.name for tool in self.get_all()]

    def get_by_category(self, category: ToolCategory) -> List[BaseTool]:
        """Enabled tools of one category, sorted by name."""
        return sorted(
            (tool for tool in self.get_all() if tool.category == category),
            key=lambda tool: tool.name,
        )

    def get_llm_tools(self, tools: Optional[List[BaseTool]] = None) -> List[Dict[str, Any]]:
        """Function calling definitions for the given tools (default: all enabled)."""
        return [tool.to_llm_format() for tool in (tools if tools is not None else self.get_all())]

    def filter_tools(
        self,
        allowed_tools: Optional[List[str]] = None,
        allowed_categories: Optional[List[Union[ToolCategory, str]]] = None,
    ) -> List[BaseTool]:
        """
        Narrow the enabled catalog.

        Explicit tool names take precedence over categories. With neither
        filter the full enabled catalog is returned. Unknown names and
        categories are skipped with a warning.

        Args:
            allowed_tools: Tool names to include
            allowed_categories: Categories to include

        Returns:
            Tools in request order (names) or registration order (categories)
        """
        if allowed_tools:
            selected: List[BaseTool] = []
            for name in allowed_tools:
                tool = self.get(name)
                if tool is None:
                    logger.warning(f"Requested tool '{name}' is not available, skipping")
                elif tool not in selected:
                    selected.append(tool)
            return selected

        if allowed_categories:
            categories: Set[ToolCategory] = set()
            for category in allowed_categories:
                try:
                    categories.add(ToolCategory(category))
                except ValueError:
                    logger.warning(f"Unknown tool category '{category}', skipping")
            return [tool for tool in self.get_all() if tool.category in categories]

        return self.get_all()

    def get_tool_info(self) -> Dict[str, Any]:
        """Catalog summary grouped by category."""
        enabled = self.get_all()
        categories: Dict[str, List[Dict[str, Any]]] = {}
        for tool in sorted(enabled, key=lambda t: t.name):
            categories.setdefault(tool.category.value, []).append(tool.get_info())

        return {
            "total_tools": len(self._tools),
            "enabled_tools": len(enabled),
            "categories": categories,
            "tool_names": [tool.name for tool in enabled],
        }
