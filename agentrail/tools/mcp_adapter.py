"""
MCP tool adapter.

Connects to any MCP server over stdio and exposes its tools; pair it with
``ToolRegistry.register_adapter`` to make them available to the tool loop.
"""

import shlex
from typing import Any

from mcp import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client

from agentrail.tools.base import ToolAdapter


class McpToolAdapter(ToolAdapter):
    """
    Tool adapter for an MCP server subprocess.

    Spawns the server and communicates via JSON-RPC over stdio.

    Args:
        command: Executable to launch, e.g. ``"node"``
        args: Arguments for the executable, e.g. ``["server/index.js"]``
    """

    def __init__(self, command: str, args: list[str] | None = None):
        if not command:
            raise ValueError("MCP server command is required")
        self._command = command
        self._args = list(args or [])
        self._initialized = False
        self._session = None
        self._read_stream = None
        self._write_stream = None
        self._stdio_context = None
        self._session_context = None

    @classmethod
    def from_command_line(cls, command_line: str) -> "McpToolAdapter":
        """Build an adapter from a shell-style string such as ``"node server/index.js"``."""
        parts = shlex.split(command_line)
        if not parts:
            raise ValueError("MCP server command is required")
        return cls(command=parts[0], args=parts[1:])

    async def initialize(self) -> None:
        """Start the MCP server subprocess and perform the handshake."""
        server_params = StdioServerParameters(command=self._command, args=self._args)

        # Start the MCP server subprocess and keep its context manager
        self._stdio_context = stdio_client(server_params)
        self._read_stream, self._write_stream = await self._stdio_context.__aenter__()

        self._session_context = ClientSession(self._read_stream, self._write_stream)
        self._session = await self._session_context.__aenter__()

        await self._session.initialize()
        self._initialized = True

    async def shutdown(self) -> None:
        """Cleanly shut down the MCP server subprocess."""
        if not self._initialized:
            return  # Already shut down or never initialized

        # Exit the session context manager (closes session)
        if self._session_context is not None:
            await self._session_context.__aexit__(None, None, None)
            self._session_context = None
            self._session = None

        # Exit the stdio context manager (terminates subprocess)
        if self._stdio_context is not None:
            await self._stdio_context.__aexit__(None, None, None)
            self._stdio_context = None
            self._read_stream = None
            self._write_stream = None

        self._initialized = False

    async def call(self, tool_name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Call a tool on the MCP server and join its text content blocks."""
        if not self._initialized:
            raise RuntimeError("Tool adapter not initialized")

        result = await self._session.call_tool(tool_name, arguments)

        text_parts = [content.text for content in result.content if hasattr(content, "text")]
        text = " ".join(text_parts)
        if getattr(result, "isError", False):
            raise RuntimeError(text or f"MCP tool '{tool_name}' reported an error")
        return {"text": text}

    async def list_tools(self) -> list[dict[str, Any]]:
        """List available tools from the MCP server."""
        if not self._initialized:
            raise RuntimeError("Tool adapter not initialized")

        result = await self._session.list_tools()
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.inputSchema,
            }
            for tool in result.tools
        ]
