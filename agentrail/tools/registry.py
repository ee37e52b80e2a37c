"""Tool registry: register tools by name, list them for the prompt, execute by name."""

from __future__ import annotations

from typing import Any

from agentrail.tools.base import AdapterTool, Tool, ToolAdapter
from agentrail.tools.models import InvalidToolError, ToolNotFoundError


class ToolRegistry:
    """Name → tool map. Registering an existing name replaces the old tool."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """
        Raises:
            InvalidToolError: If the tool name is empty or whitespace
        """
        name = (tool.name or "").strip()
        if not name:
            raise InvalidToolError("Tool name is required")
        self._tools[name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list(self) -> list[Tool]:
        return list(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    async def execute(self, name: str, arguments: dict[str, Any]) -> Any:
        """
        Run the named tool.

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``
            Exception: Whatever the tool itself raises
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)
        return await tool.execute(arguments)

    async def register_adapter(self, adapter: ToolAdapter) -> list[str]:
        """
        Register every tool an initialized adapter exposes.

        Returns:
            Names of the tools that were registered
        """
        names = []
        for spec in await adapter.list_tools():
            self.register(
                AdapterTool(
                    adapter,
                    name=spec["name"],
                    description=spec.get("description") or "",
                    parameters=spec.get("input_schema"),
                )
            )
            names.append(spec["name"])
        return names
