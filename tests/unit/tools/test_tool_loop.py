"""
Unit tests for the prompt-based tool loop.

The chat capability is a scripted AsyncMock that returns canned
ChatResults in order, so every round's model output is fixed up front.

Tests cover:
- System prompt construction
- Decision parsing
- Terminal reply, parse-failure short-circuit, round budget
- Tool result injection, including tool failures
- Session history written by the loop
- Per-round observer reports and guarding
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from agentrail.context.store import ContextStore
from agentrail.gateway.models import ChatResult, Message
from agentrail.output.controller import OutputController
from agentrail.tools.base import FunctionTool
from agentrail.tools.builtin import GetTimeTool
from agentrail.tools.loop import (
    ToolLoopDeps,
    build_tool_system_prompt,
    execute_tool_call,
    parse_tool_decision,
    run_tool_loop,
    stringify_tool_output,
)
from agentrail.tools.models import (
    FinalReplyReport,
    ParseFailedReport,
    ToolCallReport,
    ToolLoopOptions,
)
from agentrail.tools.registry import ToolRegistry

TIME_CALL = '{"tool":"get_time","arguments":{}}'
FINAL_REPLY = '{"tool":null,"reply":"It is now known."}'


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _scripted_chat(*contents: str) -> AsyncMock:
    """Chat stub returning one ChatResult per round, in order."""
    return AsyncMock(side_effect=[ChatResult(content=c) for c in contents])


def _make_deps(chat, registry: ToolRegistry) -> ToolLoopDeps:
    return ToolLoopDeps(
        chat=chat,
        context=ContextStore(max_tokens=None, max_messages=None),
        output=OutputController(),
        registry=registry,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def registry():
    registry = ToolRegistry()
    registry.register(GetTimeTool())
    registry.register(
        FunctionTool(
            "get_weather",
            "Get current weather for a given city",
            lambda city: {"city": city, "temp": 21},
            parameters={"type": "object", "properties": {"city": {"type": "string"}}, "required": ["city"]},
        )
    )
    return registry


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

class TestSystemPrompt:

    def test_lists_every_tool_with_parameters(self, registry):
        prompt = build_tool_system_prompt(registry)

        assert "- get_time: Get current date and time." in prompt
        assert "- get_weather: Get current weather for a given city" in prompt
        assert '"required": ["city"]' in prompt

    def test_describes_both_response_shapes(self, registry):
        prompt = build_tool_system_prompt(registry)

        assert '{ "tool": "<tool_name>", "arguments": { ... } }' in prompt
        assert '{ "tool": null, "reply": "<your reply to the user>" }' in prompt
        assert "exactly one JSON object" in prompt


class TestParseToolDecision:

    def test_tool_call(self):
        decision, _ = parse_tool_decision(OutputController(), '{"tool":"get_weather","arguments":{"city":"Oslo"}}')

        assert decision.tool == "get_weather"
        assert decision.arguments == {"city": "Oslo"}
        assert decision.is_terminal is False

    def test_terminal_reply_in_fence(self):
        decision, _ = parse_tool_decision(OutputController(), '```json\n{"tool": null, "reply": "Hi"}\n```')

        assert decision.is_terminal is True
        assert decision.reply == "Hi"

    def test_missing_tool_field_is_rejected(self):
        decision, parsed = parse_tool_decision(OutputController(), '{"reply": "Hi"}')

        assert decision is None
        assert parsed.success is False

    def test_unknown_fields_are_rejected(self):
        decision, _ = parse_tool_decision(OutputController(), '{"tool": null, "reply": "Hi", "mood": "happy"}')

        assert decision is None


class TestExecuteToolCall:

    @pytest.mark.asyncio
    async def test_non_string_results_are_compact_json(self, registry):
        result = await execute_tool_call(registry, "get_weather", {"city": "Oslo"})

        assert result == '{"city":"Oslo","temp":21}'

    @pytest.mark.asyncio
    async def test_tool_failure_becomes_error_text(self):
        registry = ToolRegistry()
        registry.register(FunctionTool("broken", "Always fails", lambda: 1 / 0))

        assert await execute_tool_call(registry, "broken", {}) == "Error: division by zero"

    @pytest.mark.asyncio
    async def test_unknown_tool_becomes_error_text(self, registry):
        assert await execute_tool_call(registry, "nope", {}) == "Error: Tool not found: nope"

    def test_stringify_passes_strings_through(self):
        assert stringify_tool_output("plain") == "plain"
        assert stringify_tool_output([1, 2]) == "[1,2]"


# ---------------------------------------------------------------------------
# The loop
# ---------------------------------------------------------------------------

class TestRunToolLoop:

    @pytest.mark.asyncio
    async def test_get_time_then_reply(self, registry):
        chat = _scripted_chat(TIME_CALL, FINAL_REPLY)
        deps = _make_deps(chat, registry)
        session_id = deps.context.create_session()

        result = await run_tool_loop(deps, session_id, "What time is it?")

        assert result.reply == "It is now known."
        assert result.tool_rounds == 1
        assert result.max_rounds_reached is False

        messages = deps.context.get_session(session_id).messages
        assert [m.role for m in messages] == ["system", "user", "assistant", "user", "assistant"]
        assert messages[0].content == build_tool_system_prompt(registry)
        assert messages[1] == Message(role="user", content="What time is it?")
        assert messages[2].content == TIME_CALL
        assert messages[3].content.startswith("[Tool result for get_time]\n")
        assert messages[4].content == FINAL_REPLY

    @pytest.mark.asyncio
    async def test_immediate_reply_uses_no_tools(self, registry):
        deps = _make_deps(_scripted_chat('{"tool": null, "reply": "Hello!"}'), registry)
        session_id = deps.context.create_session()

        result = await run_tool_loop(deps, session_id, "Hi")

        assert result.reply == "Hello!"
        assert result.tool_rounds == 0
        assert result.last_raw_content is None

    @pytest.mark.asyncio
    async def test_terminal_without_reply_yields_empty_string(self, registry):
        deps = _make_deps(_scripted_chat('{"tool": null}'), registry)
        session_id = deps.context.create_session()

        result = await run_tool_loop(deps, session_id, "Hi")

        assert result.reply == ""

    @pytest.mark.asyncio
    async def test_parse_failure_stops_immediately(self, registry):
        chat = _scripted_chat("I think the time is noon.", FINAL_REPLY)
        deps = _make_deps(chat, registry)
        session_id = deps.context.create_session()

        result = await run_tool_loop(deps, session_id, "What time is it?")

        assert result.reply is None
        assert result.tool_rounds == 0
        assert result.max_rounds_reached is False
        assert result.last_raw_content == "I think the time is noon."
        assert chat.await_count == 1
        # The unparseable turn is still part of history
        assert deps.context.get_session(session_id).messages[-1].content == "I think the time is noon."

    @pytest.mark.asyncio
    async def test_round_budget_exhausted(self, registry):
        chat = _scripted_chat(TIME_CALL, TIME_CALL, TIME_CALL)
        deps = _make_deps(chat, registry)
        session_id = deps.context.create_session()

        result = await run_tool_loop(deps, session_id, "Loop forever", ToolLoopOptions(max_tool_rounds=3))

        assert result.reply is None
        assert result.max_rounds_reached is True
        assert result.tool_rounds == 3
        assert result.last_raw_content == TIME_CALL
        assert chat.await_count == 3

    @pytest.mark.asyncio
    async def test_tool_error_is_injected_and_loop_continues(self):
        registry = ToolRegistry()
        registry.register(FunctionTool("broken", "Always fails", lambda: 1 / 0))
        deps = _make_deps(
            _scripted_chat('{"tool":"broken","arguments":{}}', '{"tool":null,"reply":"Sorry, that failed."}'),
            registry,
        )
        session_id = deps.context.create_session()

        result = await run_tool_loop(deps, session_id, "Try it")

        assert result.reply == "Sorry, that failed."
        assert result.tool_rounds == 1
        injected = deps.context.get_session(session_id).messages[3]
        assert injected == Message(role="user", content="[Tool result for broken]\nError: division by zero")

    @pytest.mark.asyncio
    async def test_requests_carry_sampling_options_and_exclude_summary(self, registry):
        chat = _scripted_chat(FINAL_REPLY)
        deps = _make_deps(chat, registry)
        session_id = deps.context.create_session()
        deps.context.set_summary(session_id, "Earlier we talked about tea.")

        await run_tool_loop(
            deps, session_id, "Hi", ToolLoopOptions(temperature=0.7, max_tokens=42)
        )

        request = chat.call_args.args[0]
        assert request.temperature == 0.7
        assert request.max_tokens == 42
        assert all("Earlier we talked about tea." not in m.content for m in request.messages)

    @pytest.mark.asyncio
    async def test_chat_errors_propagate(self, registry):
        deps = _make_deps(AsyncMock(side_effect=ConnectionError("offline")), registry)
        session_id = deps.context.create_session()

        with pytest.raises(ConnectionError):
            await run_tool_loop(deps, session_id, "Hi")

    @pytest.mark.asyncio
    async def test_later_run_sees_earlier_trace(self, registry):
        chat = _scripted_chat(FINAL_REPLY, FINAL_REPLY)
        deps = _make_deps(chat, registry)
        session_id = deps.context.create_session()

        await run_tool_loop(deps, session_id, "First")
        await run_tool_loop(deps, session_id, "Second")

        second_request = chat.call_args_list[1].args[0]
        contents = [m.content for m in second_request.messages]
        assert "First" in contents
        assert contents[-1] == "Second"


class TestObserver:

    @pytest.mark.asyncio
    async def test_reports_each_round(self, registry):
        observer = MagicMock()
        deps = _make_deps(_scripted_chat(TIME_CALL, FINAL_REPLY), registry)
        session_id = deps.context.create_session()

        await run_tool_loop(deps, session_id, "What time is it?", ToolLoopOptions(on_after_chat=observer))

        assert observer.call_count == 2
        round0, chat0, report0 = observer.call_args_list[0].args
        assert round0 == 0
        assert chat0.content == TIME_CALL
        assert isinstance(report0, ToolCallReport)
        assert report0.tool == "get_time"
        assert report0.args == {}

        round1, _, report1 = observer.call_args_list[1].args
        assert round1 == 1
        assert report1 == FinalReplyReport(reply="It is now known.")

    @pytest.mark.asyncio
    async def test_reports_parse_failure(self, registry):
        observer = MagicMock()
        deps = _make_deps(_scripted_chat("nonsense"), registry)
        session_id = deps.context.create_session()

        await run_tool_loop(deps, session_id, "Hi", ToolLoopOptions(on_after_chat=observer))

        report = observer.call_args.args[2]
        assert isinstance(report, ParseFailedReport)
        assert report.errors

    @pytest.mark.asyncio
    async def test_result_snippet_is_truncated(self):
        registry = ToolRegistry()
        registry.register(FunctionTool("dump", "Large output", lambda: "z" * 500))
        observer = MagicMock()
        deps = _make_deps(_scripted_chat('{"tool":"dump","arguments":{}}', FINAL_REPLY), registry)
        session_id = deps.context.create_session()

        await run_tool_loop(deps, session_id, "Dump", ToolLoopOptions(on_after_chat=observer))

        snippet = observer.call_args_list[0].args[2].result_snippet
        assert snippet == "z" * 200 + "..."

    @pytest.mark.asyncio
    async def test_raising_observer_does_not_break_loop(self, registry):
        observer = MagicMock(side_effect=RuntimeError("observer bug"))
        deps = _make_deps(_scripted_chat(TIME_CALL, FINAL_REPLY), registry)
        session_id = deps.context.create_session()

        result = await run_tool_loop(deps, session_id, "What time is it?", ToolLoopOptions(on_after_chat=observer))

        assert result.reply == "It is now known."
        assert result.tool_rounds == 1
        assert observer.call_count == 2


def test_tool_decision_schema_is_valid_json_schema():
    from jsonschema import Draft7Validator

    from agentrail.tools.models import TOOL_DECISION_SCHEMA

    Draft7Validator.check_schema(TOOL_DECISION_SCHEMA)
