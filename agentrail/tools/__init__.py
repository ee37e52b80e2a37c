"""
Tool System Layer.

Tools, the name → tool registry, adapters for external tool providers
(MCP), and the prompt-based tool loop that lets a plain chat model call
tools:

    user message → chat → parse decision ─┬─ tool call → execute → inject result → chat ...
                                          └─ {"tool": null, "reply": ...} → ToolLoopResult
"""

from agentrail.tools.base import AdapterTool, FunctionTool, Tool, ToolAdapter
from agentrail.tools.builtin import GetTimeTool, GetWeatherTool, register_builtin_tools
from agentrail.tools.loop import (
    ToolLoopDeps,
    build_tool_system_prompt,
    execute_tool_call,
    parse_tool_decision,
    run_tool_loop,
)
from agentrail.tools.models import (
    TOOL_DECISION_SCHEMA,
    FinalReplyReport,
    InvalidToolError,
    ParseFailedReport,
    ProcessingReport,
    ToolCallReport,
    ToolDecision,
    ToolLoopOptions,
    ToolLoopResult,
    ToolNotFoundError,
)
from agentrail.tools.registry import ToolRegistry

__all__ = [
    "TOOL_DECISION_SCHEMA",
    "AdapterTool",
    "FinalReplyReport",
    "FunctionTool",
    "GetTimeTool",
    "GetWeatherTool",
    "InvalidToolError",
    "ParseFailedReport",
    "ProcessingReport",
    "Tool",
    "ToolAdapter",
    "ToolCallReport",
    "ToolDecision",
    "ToolLoopDeps",
    "ToolLoopOptions",
    "ToolLoopResult",
    "ToolNotFoundError",
    "ToolRegistry",
    "build_tool_system_prompt",
    "execute_tool_call",
    "parse_tool_decision",
    "register_builtin_tools",
    "run_tool_loop",
]
