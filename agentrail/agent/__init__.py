"""Agent runs: one tool loop per goal, with persisted run state."""

from agentrail.agent.models import (
    AgentRunOptions,
    AgentRunResult,
    AgentRunState,
    AgentRunStatus,
    RunObserver,
)
from agentrail.agent.runner import AgentDeps, build_run_summary, run_agent
from agentrail.agent.state import AgentStateStore, InMemoryAgentStateStore

__all__ = [
    "AgentDeps",
    "AgentRunOptions",
    "AgentRunResult",
    "AgentRunState",
    "AgentRunStatus",
    "AgentStateStore",
    "InMemoryAgentStateStore",
    "RunObserver",
    "build_run_summary",
    "run_agent",
]
