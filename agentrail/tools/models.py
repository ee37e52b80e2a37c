"""
Data models and exceptions for the tool system.

Covers the decision a model emits each round (call a tool, or reply), the
per-round processing reports handed to observers, and the loop result.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field

from agentrail.gateway.models import ChatResult


class InvalidToolError(ValueError):
    """Raised when registering a tool without a usable name."""


class ToolNotFoundError(LookupError):
    """Raised when executing a tool name that is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Tool not found: {name}")
        self.name = name


# Schema every round's decision must satisfy. ``tool`` is always present;
# null means "no tool, here is the reply".
TOOL_DECISION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "tool": {
            "type": ["string", "null"],
            "description": "Tool name to call, or null for no call",
        },
        "arguments": {
            "type": "object",
            "additionalProperties": True,
            "description": "Arguments for the tool call",
        },
        "reply": {
            "type": "string",
            "description": "Final reply when not calling a tool",
        },
    },
    "required": ["tool"],
    "additionalProperties": False,
}


class ToolDecision(BaseModel):
    """
    One parsed model turn: either a tool call or a terminal reply.

    ``tool`` set → call that tool with ``arguments``.
    ``tool`` null → terminal; ``reply`` is the answer (empty if omitted).
    """

    tool: str | None
    arguments: dict[str, Any] = Field(default_factory=dict)
    reply: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.tool is None


class ParseFailedReport(BaseModel):
    kind: Literal["parse_failed"] = "parse_failed"
    errors: list[str] = Field(default_factory=list)


class FinalReplyReport(BaseModel):
    kind: Literal["final_reply"] = "final_reply"
    reply: str


class ToolCallReport(BaseModel):
    kind: Literal["tool_call"] = "tool_call"
    tool: str
    args: dict[str, Any] = Field(default_factory=dict)
    result_snippet: str


# How one round was processed, handed to the per-round observer
ProcessingReport = ParseFailedReport | FinalReplyReport | ToolCallReport

# Observer signature: (round_index, chat_result, processing)
RoundObserver = Callable[[int, ChatResult, ProcessingReport], None]


@dataclass
class ToolLoopOptions:
    """Per-invocation knobs for ``run_tool_loop``."""

    max_tool_rounds: int = 5
    temperature: float = 0.1
    max_tokens: int = 500
    on_after_chat: RoundObserver | None = None


class ToolLoopResult(BaseModel):
    """
    Outcome of one tool loop.

    ``reply`` is set only when the loop ended on a terminal decision; a parse
    failure or an exhausted round budget leaves it ``None`` and keeps the last
    raw model output in ``last_raw_content``.
    """

    reply: str | None = None
    tool_rounds: int = Field(0, ge=0)
    last_raw_content: str | None = None
    max_rounds_reached: bool = False
