"""
Tests for the agentrail CLI.

  agentrail ask GOAL [--session ID] [--max-rounds N] [--mcp-server CMD]
  agentrail workflow STEP [STEP ...] [--approve] [--actor ID] [--max-rounds N]
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from agentrail.__main__ import cmd_ask, cmd_workflow, create_parser
from agentrail.agent.runner import AgentDeps
from agentrail.agent.state import InMemoryAgentStateStore
from agentrail.context.store import ContextStore
from agentrail.gateway.models import ChatResult, CostEstimate
from agentrail.orchestration.audit import InMemoryAuditLogStore
from agentrail.orchestration.cost_tracker import CostTracker
from agentrail.orchestration.orchestrator import OrchestratorDeps
from agentrail.output.controller import OutputController
from agentrail.tools.builtin import register_builtin_tools
from agentrail.tools.registry import ToolRegistry

FINAL_REPLY = '{"tool":null,"reply":"It is noon."}'


@pytest.fixture
def settings():
    settings = MagicMock()
    settings.providers.configured_providers.return_value = ["google"]
    settings.gateway.default_model = None
    settings.agent.max_tool_rounds = 5
    settings.agent.temperature = 0.1
    settings.agent.max_tokens = 500
    settings.agent.write_summary_to_memory = False
    return settings


def _registry() -> ToolRegistry:
    registry = ToolRegistry()
    register_builtin_tools(registry)
    return registry


def _chat(*contents: str) -> AsyncMock:
    cost = CostEstimate(input_cents=0.5, output_cents=0.75, total_cents=1.25)
    return AsyncMock(side_effect=[ChatResult(content=c, cost=cost) for c in contents])


class TestAskCommandArgs:
    """Parser-level tests for the ask subcommand."""

    def test_ask_goal_positional(self):
        args = create_parser().parse_args(["ask", "What time is it?"])

        assert args.command == "ask"
        assert args.goal == "What time is it?"
        assert args.session is None
        assert args.max_rounds is None
        assert args.mcp_server is None

    def test_ask_requires_goal(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["ask"])

    def test_ask_options(self):
        args = create_parser().parse_args(
            ["ask", "Roll 2d6", "--session", "s1", "--max-rounds", "3", "--mcp-server", "node server/index.js"]
        )

        assert args.session == "s1"
        assert args.max_rounds == 3
        assert args.mcp_server == "node server/index.js"

    def test_global_flags(self):
        args = create_parser().parse_args(["--log-level", "DEBUG", "--env-file", "custom.env", "config"])

        assert args.log_level == "DEBUG"
        assert str(args.env_file) == "custom.env"
        assert args.command == "config"


class TestWorkflowCommandArgs:
    """Parser-level tests for the workflow subcommand."""

    def test_workflow_steps(self):
        args = create_parser().parse_args(["workflow", "First", "Second"])

        assert args.command == "workflow"
        assert args.steps == ["First", "Second"]
        assert args.approve is False
        assert args.actor == "cli"

    def test_workflow_requires_a_step(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["workflow"])

    def test_workflow_flags(self):
        args = create_parser().parse_args(["workflow", "First", "--approve", "--actor", "alice", "--max-rounds", "2"])

        assert args.approve is True
        assert args.actor == "alice"
        assert args.max_rounds == 2


class TestAskCommandExecution:

    @pytest.mark.asyncio
    async def test_ask_prints_reply_and_cost(self, settings, capsys):
        deps = AgentDeps(
            chat=_chat(FINAL_REPLY),
            context=ContextStore(),
            output=OutputController(),
            registry=_registry(),
            state_store=InMemoryAgentStateStore(),
        )
        args = create_parser().parse_args(["ask", "What time is it?", "--session", "s1"])

        with patch("agentrail.__main__.AgentComponents") as MockComponents:
            factory = MagicMock()
            factory.create_agent_deps.return_value = deps
            MockComponents.return_value = factory

            exit_code = await cmd_ask(args, settings)

        assert exit_code == 0
        output = capsys.readouterr().out
        assert "It is noon." in output
        assert "Session: s1" in output
        assert "Tool rounds: 0" in output
        assert "Cost: 1.25¢" in output

    @pytest.mark.asyncio
    async def test_ask_without_provider_key_fails(self, settings):
        settings.providers.configured_providers.return_value = []
        args = create_parser().parse_args(["ask", "Hi"])

        with patch("agentrail.__main__.AgentComponents") as MockComponents:
            exit_code = await cmd_ask(args, settings)

        assert exit_code == 1
        MockComponents.assert_not_called()

    @pytest.mark.asyncio
    async def test_ask_unparseable_reply_exits_nonzero(self, settings, capsys):
        deps = AgentDeps(
            chat=_chat("I refuse to speak JSON"),
            context=ContextStore(),
            output=OutputController(),
            registry=_registry(),
        )
        args = create_parser().parse_args(["ask", "Hi"])

        with patch("agentrail.__main__.AgentComponents") as MockComponents:
            MockComponents.return_value.create_agent_deps.return_value = deps
            exit_code = await cmd_ask(args, settings)

        assert exit_code == 1
        output = capsys.readouterr().out
        assert "could not be parsed" in output
        assert "I refuse to speak JSON" in output


class TestWorkflowCommandExecution:

    @pytest.mark.asyncio
    async def test_workflow_prints_steps_audit_and_cost(self, settings, capsys):
        deps = OrchestratorDeps(
            chat=_chat(FINAL_REPLY, FINAL_REPLY),
            context=ContextStore(),
            output=OutputController(),
            registry=_registry(),
            state_store=InMemoryAgentStateStore(),
            audit_log=InMemoryAuditLogStore(),
            cost_tracker=CostTracker(),
        )
        args = create_parser().parse_args(["workflow", "First", "Second"])

        with patch("agentrail.__main__.AgentComponents") as MockComponents:
            MockComponents.return_value.create_orchestrator_deps.return_value = deps
            exit_code = await cmd_workflow(args, settings)

        assert exit_code == 0
        output = capsys.readouterr().out
        assert "[1] ok  First" in output
        assert "[2] ok  Second" in output
        assert "workflow_start" in output
        assert "workflow_end" in output
        assert "Total cost: 2.50¢ over 2 calls" in output
