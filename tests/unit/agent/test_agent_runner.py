"""
Unit tests for the agent runner.

Tests cover:
- Run state lifecycle (running -> completed / failed)
- success vs. status semantics
- Summary write-back
- Observer wrapping with the run id
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from agentrail.agent.models import AgentRunOptions, AgentRunStatus
from agentrail.agent.runner import AgentDeps, build_run_summary, run_agent
from agentrail.agent.state import InMemoryAgentStateStore
from agentrail.context.store import ContextStore
from agentrail.gateway.models import ChatRequest, ChatResult
from agentrail.output.controller import OutputController
from agentrail.tools.builtin import GetTimeTool
from agentrail.tools.models import FinalReplyReport, ToolCallReport
from agentrail.tools.registry import ToolRegistry

TIME_CALL = '{"tool":"get_time","arguments":{}}'
FINAL_REPLY = '{"tool":null,"reply":"It is now known."}'


def _scripted_chat(*contents: str) -> AsyncMock:
    return AsyncMock(side_effect=[ChatResult(content=c) for c in contents])


@pytest.fixture
def state_store():
    return InMemoryAgentStateStore()


@pytest.fixture
def registry():
    registry = ToolRegistry()
    registry.register(GetTimeTool())
    return registry


def _make_deps(chat, registry, state_store=None) -> AgentDeps:
    return AgentDeps(
        chat=chat,
        context=ContextStore(max_tokens=None, max_messages=None),
        output=OutputController(),
        registry=registry,
        state_store=state_store,
    )


class TestRunLifecycle:

    @pytest.mark.asyncio
    async def test_successful_run(self, registry, state_store):
        deps = _make_deps(_scripted_chat(TIME_CALL, FINAL_REPLY), registry, state_store)
        session_id = deps.context.create_session()

        result = await run_agent(deps, session_id, "What time is it?")

        assert result.success is True
        assert result.run_id.startswith("run_")
        assert result.reply == "It is now known."
        assert result.tool_rounds == 1
        assert result.max_rounds_reached is False
        assert result.error is None

        stored = state_store.get(result.run_id)
        assert stored.status == AgentRunStatus.COMPLETED
        assert stored.reply == "It is now known."
        assert stored.tool_rounds == 1
        assert stored.finished_at is not None
        assert stored.finished_at >= stored.started_at
        assert stored == result.state

    @pytest.mark.asyncio
    async def test_running_state_is_visible_during_the_run(self, registry, state_store):
        seen = []

        async def chat(request: ChatRequest) -> ChatResult:
            (state,) = state_store.list_by_session(session_id)
            seen.append(state)
            return ChatResult(content=FINAL_REPLY)

        deps = _make_deps(chat, registry, state_store)
        session_id = deps.context.create_session()

        result = await run_agent(deps, session_id, "What time is it?")

        assert seen[0].run_id == result.run_id
        assert seen[0].status == AgentRunStatus.RUNNING
        assert seen[0].finished_at is None
        assert seen[0].tool_rounds == 0
        assert seen[0].max_rounds_reached is False
        assert state_store.get(result.run_id).status == AgentRunStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_max_rounds_is_completed_but_not_successful(self, registry, state_store):
        deps = _make_deps(_scripted_chat(TIME_CALL, TIME_CALL), registry, state_store)
        session_id = deps.context.create_session()

        result = await run_agent(deps, session_id, "Loop", AgentRunOptions(max_tool_rounds=2))

        assert result.success is False
        assert result.max_rounds_reached is True
        assert result.reply is None
        assert result.last_raw_content == TIME_CALL
        assert result.state.status == AgentRunStatus.COMPLETED
        assert result.state.max_rounds_reached is True

    @pytest.mark.asyncio
    async def test_parse_failure_is_completed_but_not_successful(self, registry, state_store):
        deps = _make_deps(_scripted_chat("no json here"), registry, state_store)
        session_id = deps.context.create_session()

        result = await run_agent(deps, session_id, "Hi")

        assert result.success is False
        assert result.max_rounds_reached is False
        assert result.state.status == AgentRunStatus.COMPLETED
        assert result.state.last_raw_content == "no json here"

    @pytest.mark.asyncio
    async def test_chat_exception_marks_run_failed(self, registry, state_store):
        deps = _make_deps(AsyncMock(side_effect=RuntimeError("provider down")), registry, state_store)
        session_id = deps.context.create_session()

        result = await run_agent(deps, session_id, "Hi")

        assert result.success is False
        assert result.error == "provider down"
        assert result.tool_rounds == 0
        stored = state_store.get(result.run_id)
        assert stored.status == AgentRunStatus.FAILED
        assert stored.error == "provider down"
        assert stored.finished_at is not None
        assert stored.max_rounds_reached is False

    @pytest.mark.asyncio
    async def test_store_failure_on_terminal_write_is_a_failed_run(self, registry):
        class TerminalWriteFails(InMemoryAgentStateStore):
            def set(self, state):
                if state.status != AgentRunStatus.RUNNING:
                    raise RuntimeError("store down")
                super().set(state)

        store = TerminalWriteFails()
        deps = _make_deps(_scripted_chat(FINAL_REPLY), registry, store)
        session_id = deps.context.create_session()

        result = await run_agent(deps, session_id, "Hi", AgentRunOptions(write_summary_to_memory=True))

        assert result.success is False
        assert result.error == "store down"
        assert result.state.status == AgentRunStatus.FAILED
        assert store.get(result.run_id).status == AgentRunStatus.RUNNING
        assert deps.context.get_summary(session_id) is None

    @pytest.mark.asyncio
    async def test_summary_write_failure_is_a_failed_run(self, registry, state_store):
        deps = _make_deps(_scripted_chat(FINAL_REPLY), registry, state_store)
        session_id = deps.context.create_session()
        deps.context.set_summary = MagicMock(side_effect=RuntimeError("memory full"))

        result = await run_agent(deps, session_id, "Hi", AgentRunOptions(write_summary_to_memory=True))

        assert result.success is False
        assert result.error == "memory full"
        assert state_store.get(result.run_id).status == AgentRunStatus.FAILED

    @pytest.mark.asyncio
    async def test_deeply_nested_reply_is_a_parse_failure(self, registry, state_store):
        content = "[" * 100000 + "]" * 100000
        deps = _make_deps(_scripted_chat(content), registry, state_store)
        session_id = deps.context.create_session()

        result = await run_agent(deps, session_id, "Hi")

        assert result.success is False
        assert result.error is None
        assert result.reply is None
        assert result.last_raw_content == content
        assert result.state.status == AgentRunStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_missing_session_is_a_failed_run(self, registry, state_store):
        deps = _make_deps(_scripted_chat(FINAL_REPLY), registry, state_store)

        result = await run_agent(deps, "no-such-session", "Hi")

        assert result.success is False
        assert "no-such-session" in result.error
        assert result.state.status == AgentRunStatus.FAILED

    @pytest.mark.asyncio
    async def test_runs_without_state_store(self, registry):
        deps = _make_deps(_scripted_chat(FINAL_REPLY), registry)
        session_id = deps.context.create_session()

        result = await run_agent(deps, session_id, "Hi")

        assert result.success is True
        assert result.state.status == AgentRunStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_run_ids_are_unique(self, registry, state_store):
        deps = _make_deps(_scripted_chat(FINAL_REPLY, FINAL_REPLY), registry, state_store)
        session_id = deps.context.create_session()

        first = await run_agent(deps, session_id, "One")
        second = await run_agent(deps, session_id, "Two")

        assert first.run_id != second.run_id
        assert [s.goal for s in state_store.list_by_session(session_id)] == ["One", "Two"]


class TestSummaryWriteBack:

    def test_summary_format(self):
        assert build_run_summary("What time is it?", "Noon.", 1) == (
            'Last agent run: goal="What time is it?"; reply="Noon."; tool rounds=1.'
        )

    def test_summary_truncates_long_goal_and_reply(self):
        summary = build_run_summary("g" * 150, "r" * 250, 3)

        assert f'goal="{"g" * 100}..."' in summary
        assert f'reply="{"r" * 200}..."' in summary

    def test_summary_without_reply(self):
        assert build_run_summary("Hi", None, 0) == 'Last agent run: goal="Hi"; no final reply; tool rounds=0.'

    @pytest.mark.asyncio
    async def test_summary_written_when_enabled(self, registry):
        deps = _make_deps(_scripted_chat(TIME_CALL, FINAL_REPLY), registry)
        session_id = deps.context.create_session()

        await run_agent(deps, session_id, "What time is it?", AgentRunOptions(write_summary_to_memory=True))

        assert deps.context.get_summary(session_id) == (
            'Last agent run: goal="What time is it?"; reply="It is now known."; tool rounds=1.'
        )

    @pytest.mark.asyncio
    async def test_summary_not_written_by_default(self, registry):
        deps = _make_deps(_scripted_chat(FINAL_REPLY), registry)
        session_id = deps.context.create_session()

        await run_agent(deps, session_id, "Hi")

        assert deps.context.get_summary(session_id) is None

    @pytest.mark.asyncio
    async def test_summary_visible_to_next_run(self, registry):
        chat = _scripted_chat(FINAL_REPLY, FINAL_REPLY)
        deps = _make_deps(chat, registry)
        session_id = deps.context.create_session()

        await run_agent(deps, session_id, "First", AgentRunOptions(write_summary_to_memory=True))

        assert deps.context.get_messages_for_request(session_id)[0].content.startswith(
            'Previous context summary:\nLast agent run: goal="First"'
        )


class TestObserver:

    @pytest.mark.asyncio
    async def test_observer_receives_run_id(self, registry):
        observer = MagicMock()
        deps = _make_deps(_scripted_chat(TIME_CALL, FINAL_REPLY), registry)
        session_id = deps.context.create_session()

        result = await run_agent(deps, session_id, "What time is it?", AgentRunOptions(on_after_chat=observer))

        assert observer.call_count == 2
        run_id, round_index, chat_result, processing = observer.call_args_list[0].args
        assert run_id == result.run_id
        assert round_index == 0
        assert chat_result.content == TIME_CALL
        assert isinstance(processing, ToolCallReport)
        assert observer.call_args_list[1].args[3] == FinalReplyReport(reply="It is now known.")
