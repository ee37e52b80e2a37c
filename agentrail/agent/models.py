"""Data models for agent runs."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from agentrail.gateway.models import ChatResult
from agentrail.tools.models import ProcessingReport


class AgentRunStatus(str, Enum):
    """Run lifecycle. ``completed`` and ``failed`` are terminal."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AgentRunState(BaseModel):
    """
    Snapshot of one run, for persistence, recovery decisions and audit.

    ``finished_at`` is set exactly when the status is terminal.

    Note: ``status`` records whether the run ended without an exception, not
    whether it produced a reply. A run that exhausted its round budget is
    ``completed``; check ``reply`` / ``max_rounds_reached`` (or the run
    result's ``success``) for the outcome.
    """

    run_id: str
    session_id: str
    goal: str
    status: AgentRunStatus
    started_at: datetime
    finished_at: datetime | None = None
    tool_rounds: int = Field(0, ge=0)
    reply: str | None = None
    last_raw_content: str | None = None
    max_rounds_reached: bool | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != AgentRunStatus.RUNNING


# Observer signature: (run_id, round_index, chat_result, processing)
RunObserver = Callable[[str, int, ChatResult, ProcessingReport], None]


@dataclass
class AgentRunOptions:
    """Options for a single agent run."""

    max_tool_rounds: int = 5
    temperature: float = 0.1
    max_tokens: int = 500
    # Write a short run summary into the session's summary slot afterwards
    write_summary_to_memory: bool = False
    on_after_chat: RunObserver | None = None


class AgentRunResult(BaseModel):
    """
    Result of running the agent on a goal.

    ``success`` means the loop ended with a reply and did not hit the round
    budget. It is computed independently from ``state.status``.
    """

    success: bool
    run_id: str
    reply: str | None = None
    tool_rounds: int = 0
    max_rounds_reached: bool = False
    last_raw_content: str | None = None
    error: str | None = None
    state: AgentRunState
