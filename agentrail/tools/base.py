"""
Base classes for tools and tool adapters.

A ``Tool`` is one callable capability the model can ask for by name: a
name, a description for the prompt, an optional JSON Schema for its
arguments, and an async ``execute``.

A ``ToolAdapter`` is a connection to an external tool provider (an MCP
server, a REST API) that exposes several tools and needs explicit
startup/shutdown.
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any


class Tool(ABC):
    """
    A single tool the model can invoke.

    Subclasses set ``name``, ``description`` and optionally ``parameters``
    (a JSON Schema object describing the accepted arguments) and implement
    ``execute``. The returned value is stringified for the model: strings
    pass through, anything else is JSON-encoded.
    """

    name: str = ""
    description: str = ""
    parameters: dict[str, Any] | None = None

    @abstractmethod
    async def execute(self, arguments: dict[str, Any]) -> Any:
        """
        Run the tool.

        Args:
            arguments: Arguments chosen by the model

        Returns:
            Tool output (any JSON-serializable value)

        Raises:
            Exception: Any failure; callers decide whether to surface or absorb it
        """
        pass


class FunctionTool(Tool):
    """
    Tool backed by a plain function or coroutine function.

    The function receives the model's arguments as keyword arguments.

    Example::

        def get_weather(city: str) -> dict:
            return {"city": city, "temp": 21}

        registry.register(FunctionTool(
            name="get_weather",
            description="Current weather for a city",
            func=get_weather,
            parameters={"type": "object", "properties": {"city": {"type": "string"}}},
        ))
    """

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[..., Any],
        parameters: dict[str, Any] | None = None,
    ):
        self.name = name
        self.description = description
        self.parameters = parameters
        self._func = func

    async def execute(self, arguments: dict[str, Any]) -> Any:
        result = self._func(**arguments)
        if inspect.isawaitable(result):
            result = await result
        return result


class ToolAdapter(ABC):
    """
    Abstract base class for tool adapters.

    Tool adapters provide a uniform interface for calling external tools,
    whether they're MCP servers, REST APIs, or other integrations.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the tool adapter.

        This may involve starting subprocesses, establishing connections,
        or performing handshakes with external services.

        Raises:
            ConnectionError: If initialization fails
        """
        pass

    @abstractmethod
    async def shutdown(self) -> None:
        """
        Cleanly shut down the tool adapter.

        This should close connections, terminate subprocesses,
        and release any resources.
        """
        pass

    @abstractmethod
    async def call(self, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """
        Call a tool with the given arguments.

        Returns:
            Tool execution result as a dictionary (``{"text": ...}`` by convention)

        Raises:
            RuntimeError: If the adapter is not initialized or the call fails
        """
        pass

    @abstractmethod
    async def list_tools(self) -> list[dict[str, Any]]:
        """
        List all available tools from this adapter.

        Returns:
            One dict per tool with ``name``, ``description`` and ``input_schema``
        """
        pass

    async def __aenter__(self):
        """Context manager entry - initialize the adapter."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - shutdown the adapter."""
        await self.shutdown()
        return False


class AdapterTool(Tool):
    """Exposes one tool of a ``ToolAdapter`` as a registry ``Tool``."""

    def __init__(self, adapter: ToolAdapter, name: str, description: str, parameters: dict[str, Any] | None):
        self.name = name
        self.description = description
        self.parameters = parameters
        self._adapter = adapter

    async def execute(self, arguments: dict[str, Any]) -> Any:
        result = await self._adapter.call(self.name, arguments)
        return result.get("text", result)
