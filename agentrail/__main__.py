"""
agentrail CLI entry point.

Provides command-line access to single agent runs and orchestrated
workflows against the configured model providers.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from agentrail import __version__
from agentrail.agent.models import AgentRunOptions
from agentrail.agent.runner import run_agent
from agentrail.components import AgentComponents
from agentrail.config.logging import get_logger, setup_logging
from agentrail.config.settings import Settings, load_settings
from agentrail.gateway.models import ChatRequest, ChatResult
from agentrail.orchestration.cost_tracker import CostTracker
from agentrail.orchestration.human_loop import ConsoleApprovalProvider
from agentrail.orchestration.models import OrchestratedStep, OrchestratedWorkflowOptions
from agentrail.orchestration.orchestrator import run_orchestrated_workflow
from agentrail.orchestration.permissions import DEFAULT_ROLE_ACTIONS, RolePermissionChecker

# Actors the CLI acts as; both get the "user" role
CLI_ACTOR_ROLES = {"system": "user", "cli": "user"}


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="agentrail",
        description="Tool-calling LLM agents with audited multi-step workflows",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"agentrail {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Config command
    subparsers.add_parser(
        "config",
        help="Show current configuration",
    )

    # Ask command
    ask_parser = subparsers.add_parser(
        "ask",
        help="Run the agent once on a goal using the built-in tools",
    )
    ask_parser.add_argument(
        "goal",
        help='Goal for the agent, e.g. "What time is it?"',
    )
    ask_parser.add_argument(
        "--session",
        default=None,
        help="Session id to run in (default: a new session)",
    )
    ask_parser.add_argument(
        "--max-rounds",
        type=int,
        default=None,
        help="Tool rounds before giving up (default: AGENT_MAX_TOOL_ROUNDS from config)",
    )
    ask_parser.add_argument(
        "--mcp-server",
        default=None,
        help='Also expose the tools of an MCP server started with this command, e.g. "node server/index.js"',
    )

    # Workflow command
    workflow_parser = subparsers.add_parser(
        "workflow",
        help="Run several goals as an orchestrated, audited workflow",
    )
    workflow_parser.add_argument(
        "steps",
        nargs="+",
        help="Goals to run in order, one per step",
    )
    workflow_parser.add_argument(
        "--approve",
        action="store_true",
        help="Ask for approval on the console before every step after the first",
    )
    workflow_parser.add_argument(
        "--actor",
        default="cli",
        help="Actor id recorded in the audit log (default: cli)",
    )
    workflow_parser.add_argument(
        "--max-rounds",
        type=int,
        default=None,
        help="Tool rounds per step (default: AGENT_MAX_TOOL_ROUNDS from config)",
    )

    return parser


def _run_options(settings: Settings, max_rounds: int | None) -> AgentRunOptions:
    return AgentRunOptions(
        max_tool_rounds=max_rounds or settings.agent.max_tool_rounds,
        temperature=settings.agent.temperature,
        max_tokens=settings.agent.max_tokens,
        write_summary_to_memory=settings.agent.write_summary_to_memory,
    )


def _format_cents(cents: float | None) -> str:
    return f"{cents:.2f}¢" if cents is not None else "n/a"


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)
    providers = settings.providers

    logger.info("Current Configuration:")
    logger.info("\n=== agentrail Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info("\nProviders:")
    for provider in ("google", "glm", "deepseek"):
        logger.info(
            f"  {provider}: model={providers.model_for(provider)} "
            f"key={'Set' if providers.api_key_for(provider) else 'Not set'} "
            f"endpoint={providers.endpoint_for(provider) or 'default'}"
        )
    logger.info(f"\nDefault Model: {settings.gateway.default_model or '(first configured provider)'}")
    logger.info(f"Fallback Models: {settings.gateway.fallback_models or providers.fallback_models()}")
    logger.info(f"Timeout: {settings.gateway.timeout_seconds or 'none'}")
    logger.info(
        f"Retry: max_retries={settings.gateway.max_retries} "
        f"backoff={settings.gateway.backoff_seconds}s (max {settings.gateway.max_backoff_seconds}s, "
        f"jitter {settings.gateway.jitter})"
    )
    logger.info(f"\nContext Max Tokens: {settings.context.max_tokens}")
    logger.info(f"Context Max Messages: {settings.context.max_messages}")
    logger.info(f"Context Trim Strategy: {settings.context.trim_strategy}")
    logger.info(f"\nAgent Max Tool Rounds: {settings.agent.max_tool_rounds}")
    logger.info(f"Agent Temperature: {settings.agent.temperature}")
    logger.info(f"Agent Max Tokens: {settings.agent.max_tokens}")
    logger.info(f"Agent Summary Write-back: {settings.agent.write_summary_to_memory}")

    return 0


async def cmd_ask(args, settings: Settings) -> int:
    """
    Run the agent once on a goal.

    Uses the built-in tools, plus every tool of an MCP server when
    ``--mcp-server`` is given. Prints the reply, tool rounds and the cost
    of the model calls made during the run.
    """
    logger = get_logger(__name__)

    if not settings.providers.configured_providers() and not settings.gateway.default_model:
        logger.error(
            "No provider API key set. Add PROVIDERS__GOOGLE_API_KEY, PROVIDERS__GLM_API_KEY "
            "or PROVIDERS__DEEPSEEK_API_KEY to your .env file."
        )
        return 1

    factory = AgentComponents(settings)
    registry = factory.create_registry()
    deps = factory.create_agent_deps(registry)

    session_id = deps.context.create_session(args.session)
    tracker = CostTracker()
    chat = deps.chat

    async def chat_with_cost(request: ChatRequest) -> ChatResult:
        result = await chat(request)
        tracker.record(session_id, None, result.cost)
        return result

    deps.chat = chat_with_cost

    adapter = None
    try:
        if args.mcp_server:
            from agentrail.tools.mcp_adapter import McpToolAdapter

            adapter = McpToolAdapter.from_command_line(args.mcp_server)
            await adapter.initialize()
            names = await registry.register_adapter(adapter)
            logger.info(f"Registered MCP tools: {', '.join(names) or '(none)'}")

        result = await run_agent(deps, session_id, args.goal, _run_options(settings, args.max_rounds))

    except Exception as e:
        logger.error(f"Agent run failed: {e}", exc_info=True)
        return 1
    finally:
        if adapter is not None:
            await adapter.shutdown()

    print(f"\n=== agentrail [{result.run_id}] ===")
    print(f"Goal: {args.goal}\n")
    if result.reply is not None:
        print(result.reply)
    elif result.error:
        print(f"Run failed: {result.error}", file=sys.stderr)
    elif result.max_rounds_reached:
        print("(no reply: tool round budget exhausted)")
    else:
        print("(no reply: model output could not be parsed)")
        if result.last_raw_content:
            print(f"Raw output: {result.last_raw_content[:300]}")

    print(f"\nSession: {session_id}")
    print(f"Tool rounds: {result.tool_rounds}")
    cost = tracker.get_session_cost(session_id)
    print(f"Cost: {_format_cents(cost.total_cents) if cost.call_count else 'n/a'}")

    return 0 if result.success else 1


async def cmd_workflow(args, settings: Settings) -> int:
    """
    Run the given goals as an orchestrated workflow.

    Every step is audited; with ``--approve`` the console asks before each
    step after the first. Prints one line per step, the audit trail and the
    session's total cost.
    """
    logger = get_logger(__name__)

    if not settings.providers.configured_providers() and not settings.gateway.default_model:
        logger.error(
            "No provider API key set. Add PROVIDERS__GOOGLE_API_KEY, PROVIDERS__GLM_API_KEY "
            "or PROVIDERS__DEEPSEEK_API_KEY to your .env file."
        )
        return 1

    factory = AgentComponents(settings)
    deps = factory.create_orchestrator_deps(
        factory.create_registry(),
        permission_check=RolePermissionChecker(CLI_ACTOR_ROLES, DEFAULT_ROLE_ACTIONS),
        human_approval=ConsoleApprovalProvider() if args.approve else None,
    )
    session_id = deps.context.create_session()

    try:
        result = await run_orchestrated_workflow(
            deps,
            session_id,
            [OrchestratedStep(goal=goal) for goal in args.steps],
            OrchestratedWorkflowOptions(
                approve_between_steps=args.approve,
                actor_id=args.actor,
                agent_run_options=_run_options(settings, args.max_rounds),
            ),
        )
    except Exception as e:
        logger.error(f"Workflow failed: {e}", exc_info=True)
        return 1

    print(f"\n=== Workflow {result.workflow_id} ===")
    for step in result.steps:
        status = "ok" if step.success else "FAILED"
        print(f"[{step.step_index + 1}] {status}  {step.goal}")
        if step.reply is not None:
            print(f"    {step.reply}")
        if step.error:
            print(f"    error: {step.error}")

    print("\n--- Audit trail ---")
    for entry in deps.audit_log.list_by_workflow(result.workflow_id):
        step = f" step={entry.step_index}" if entry.step_index is not None else ""
        resource = f" {entry.resource}" if entry.resource else ""
        print(f"  {entry.timestamp:%H:%M:%S} {entry.action.value}{step}{resource}")

    total = result.total_cost
    print(f"\nTotal cost: {_format_cents(total.total_cents) if total else 'n/a'}"
          + (f" over {total.call_count} calls" if total else ""))
    if result.error:
        print(f"Error: {result.error}", file=sys.stderr)

    return 0 if result.success else 1


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    # Load settings
    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Override log level if specified
    if args.log_level:
        settings.log_level = args.log_level

    # Setup logging
    setup_logging(settings)

    # Execute command
    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "ask":
        return asyncio.run(cmd_ask(args, settings))
    elif args.command == "workflow":
        return asyncio.run(cmd_workflow(args, settings))
    else:
        # Default: show help
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
