"""
Tool Loop: prompt-based tool calling over a plain chat capability.

The model is not given native function-calling. Instead a system prompt
describes every registered tool and asks for exactly one JSON object per
turn, in one of two shapes:

    {"tool": "<name>", "arguments": {...}}   → call a tool
    {"tool": null, "reply": "<text>"}         → final answer

State machine for one ``run_tool_loop`` call:

    AwaitingDecision ──tool call──→ ExecutingTool ──inject result──→ AwaitingDecision
          │
          ├── terminal decision      → Terminal(reply)
          ├── unparseable decision   → Terminal(parse failed)
          └── round budget exhausted → Terminal(max rounds reached)

Design decisions:
- Every assistant turn is appended to the session before it is parsed, so
  the history stays continuous and a bad turn stays visible for debugging.
- A malformed decision ends the loop immediately. It is a protocol
  violation by an untrusted producer, not a transient fault, so it is not
  retried by re-prompting.
- Tool failures are caught and injected as ``Error: ...`` results. The
  next model turn decides what to do about them.
- Exceptions from the chat capability propagate; the caller (the agent
  runner) turns them into a failed run.
- The optional per-round observer is called after each round, inside a
  guard: it can watch the loop but can never break it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from agentrail.context.store import ContextStore
from agentrail.gateway.models import ChatFn, ChatRequest, ChatResult, Message
from agentrail.output.controller import OutputController
from agentrail.output.models import ParseResult
from agentrail.tools.models import (
    TOOL_DECISION_SCHEMA,
    FinalReplyReport,
    ParseFailedReport,
    ProcessingReport,
    ToolCallReport,
    ToolDecision,
    ToolLoopOptions,
    ToolLoopResult,
)
from agentrail.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

RESULT_SNIPPET_LIMIT = 200


@dataclass
class ToolLoopDeps:
    """Collaborators the tool loop needs; injected, never looked up globally."""

    chat: ChatFn
    context: ContextStore
    output: OutputController
    registry: ToolRegistry


def build_tool_system_prompt(registry: ToolRegistry) -> str:
    """Describe every registered tool and the two-shape response contract."""
    lines = []
    for tool in registry.list():
        params = f" Parameters (JSON): {json.dumps(tool.parameters)}" if tool.parameters else ""
        lines.append(f"- {tool.name}: {tool.description}{params}")
    tool_descriptions = "\n".join(lines)

    return (
        "You are a helpful assistant with access to tools. When the user needs information "
        "that a tool can provide, respond with a JSON object only (no other text):\n"
        '{ "tool": "<tool_name>", "arguments": { ... } }\n'
        "Use the exact tool name and pass the required arguments. When you do NOT need to "
        "call any tool and can answer directly, respond with:\n"
        '{ "tool": null, "reply": "<your reply to the user>" }\n'
        "\n"
        "Available tools:\n"
        f"{tool_descriptions}\n"
        "\n"
        "Always respond with exactly one JSON object. No markdown, no explanation outside the JSON."
    )


def parse_tool_decision(output: OutputController, content: str) -> tuple[ToolDecision | None, ParseResult]:
    """
    Parse one assistant turn as a ToolDecision.

    Returns:
        (decision, parse_result); decision is None when parsing or validation failed
    """
    result = output.parse_and_validate(
        content,
        schema=TOOL_DECISION_SCHEMA,
        strip_markdown_code_block=True,
    )
    if not result.success:
        return None, result
    return ToolDecision.model_validate(result.data), result


def stringify_tool_output(output: Any) -> str:
    if isinstance(output, str):
        return output
    return json.dumps(output, separators=(",", ":"), default=str)


async def execute_tool_call(registry: ToolRegistry, tool_name: str, arguments: dict[str, Any]) -> str:
    """
    Execute one tool call and describe the outcome as text for the model.

    Never raises: unknown tools and tool failures come back as ``Error: <message>``.
    """
    try:
        output = await registry.execute(tool_name, arguments or {})
    except Exception as e:
        logger.warning(f"Tool '{tool_name}' failed: {e}")
        return f"Error: {e}"
    return stringify_tool_output(output)


def _snippet(text: str, limit: int = RESULT_SNIPPET_LIMIT) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _notify(options: ToolLoopOptions, round_index: int, chat_result: ChatResult, processing: ProcessingReport) -> None:
    if options.on_after_chat is None:
        return
    try:
        options.on_after_chat(round_index, chat_result, processing)
    except Exception as e:
        logger.warning(f"Round observer raised on round {round_index}: {e}", exc_info=True)


async def run_tool_loop(
    deps: ToolLoopDeps,
    session_id: str,
    user_message: str,
    options: ToolLoopOptions | None = None,
) -> ToolLoopResult:
    """
    Drive chat → decide → execute → inject rounds until a terminal decision.

    Appends the tool system prompt and ``user_message`` to the session, then
    runs at most ``options.max_tool_rounds`` rounds. The session log is the
    loop's only side effect: every assistant turn and every tool result
    injection stays in history for later invocations on the same session.

    Args:
        deps: Chat capability, context store, output controller and registry
        session_id: Existing session to run in
        user_message: The user's request for this loop
        options: Round budget, sampling parameters and per-round observer

    Returns:
        ToolLoopResult; ``reply`` is set only on a terminal decision

    Raises:
        SessionNotFoundError: If the session does not exist
        Exception: Whatever the chat capability raises
    """
    options = options or ToolLoopOptions()

    deps.context.add_message(session_id, Message(role="system", content=build_tool_system_prompt(deps.registry)))
    deps.context.add_message(session_id, Message(role="user", content=user_message))

    tool_rounds = 0
    last_raw_content: str | None = None

    for round_index in range(options.max_tool_rounds):
        messages = deps.context.get_messages_for_request(session_id, include_summary_as_system=False)
        chat_result = await deps.chat(
            ChatRequest(
                messages=messages,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
        )
        content = chat_result.content
        last_raw_content = content

        # Persist before parsing so even an unparseable turn is part of history
        deps.context.add_message(session_id, Message(role="assistant", content=content))

        decision, parsed = parse_tool_decision(deps.output, content)
        if decision is None:
            logger.info(f"Session {session_id}: round {round_index} decision unparseable: {parsed.errors}")
            _notify(options, round_index, chat_result, ParseFailedReport(errors=parsed.errors))
            return ToolLoopResult(
                reply=None,
                tool_rounds=tool_rounds,
                last_raw_content=content,
                max_rounds_reached=False,
            )

        if decision.is_terminal:
            reply = decision.reply or ""
            logger.debug(f"Session {session_id}: final reply after {tool_rounds} tool rounds")
            _notify(options, round_index, chat_result, FinalReplyReport(reply=reply))
            return ToolLoopResult(
                reply=reply,
                tool_rounds=tool_rounds,
                max_rounds_reached=False,
            )

        tool_rounds += 1
        logger.debug(f"Session {session_id}: round {round_index} calls {decision.tool}({decision.arguments})")
        tool_result = await execute_tool_call(deps.registry, decision.tool, decision.arguments)
        _notify(
            options,
            round_index,
            chat_result,
            ToolCallReport(
                tool=decision.tool,
                args=decision.arguments,
                result_snippet=_snippet(tool_result),
            ),
        )
        deps.context.add_message(
            session_id,
            Message(role="user", content=f"[Tool result for {decision.tool}]\n{tool_result}"),
        )

    logger.info(f"Session {session_id}: max tool rounds ({options.max_tool_rounds}) reached")
    return ToolLoopResult(
        reply=None,
        tool_rounds=tool_rounds,
        last_raw_content=last_raw_content,
        max_rounds_reached=True,
    )
