"""Tool registry: named dispatch of side-effecting operations."""

import threading
from typing import TYPE_CHECKING, Any, Optional

from ollama_code.errors import AlreadyRegistered, NotFound
from ollama_code.tools.base import Tool, ToolResult

if TYPE_CHECKING:
    from ollama_code.observability.wrappers import ToolWrapper


class ToolRegistry:
    """Registry of available tools.

    Args:
        wrapper: Optional instrumentation applied to every execution.
    """

    def __init__(self, wrapper: "Optional[ToolWrapper]" = None):
        self._tools: dict[str, Tool] = {}
        self._lock = threading.Lock()
        self.wrapper = wrapper

    def register(self, tool: Tool) -> Tool:
        """Register a tool instance under its name.

        Raises:
            AlreadyRegistered: If a tool with the same name exists.
        """
        with self._lock:
            if tool.name in self._tools:
                raise AlreadyRegistered(f"tool already registered: {tool.name}")
            self._tools[tool.name] = tool
        return tool

    def get(self, name: str) -> Tool:
        """Get a tool by name.

        Raises:
            NotFound: If tool not found.
        """
        with self._lock:
            tool = self._tools.get(name)
        if tool is None:
            raise NotFound(f"Unknown tool: {name}")
        return tool

    def has(self, name: str) -> bool:
        """Check if a tool is registered."""
        with self._lock:
            return name in self._tools

    def list_tools(self) -> list[str]:
        """List all registered tool names."""
        with self._lock:
            return list(self._tools)

    def execute(self, name: str, params: Optional[dict[str, Any]] = None) -> ToolResult:
        """Run tool `name` with `params`.

        Raises:
            NotFound: If tool not found.
        """
        tool = self.get(name)
        params = dict(params or {})
        if self.wrapper is None:
            return tool.run(params)
        return self.wrapper.wrap_tool_execution(name, lambda: tool.run(params))

    def get_tool_descriptions(self) -> str:
        """Formatted tool descriptions, one per line."""
        with self._lock:
            tools = list(self._tools.values())
        return "\n".join(tool.describe() for tool in tools)
