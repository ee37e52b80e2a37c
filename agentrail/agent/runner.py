"""
Agent runner.

Wraps one tool loop invocation in a run: assigns a run id, records a
``running`` snapshot before the loop starts, and a terminal snapshot when it
ends. Exceptions from the loop never escape; they become a ``failed`` run.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from agentrail.agent.models import AgentRunOptions, AgentRunResult, AgentRunState, AgentRunStatus
from agentrail.agent.state import AgentStateStore
from agentrail.gateway.models import ChatResult
from agentrail.tools.loop import ToolLoopDeps, run_tool_loop
from agentrail.tools.models import ProcessingReport, ToolLoopOptions

logger = logging.getLogger(__name__)

GOAL_SUMMARY_LIMIT = 100
REPLY_SUMMARY_LIMIT = 200


@dataclass
class AgentDeps(ToolLoopDeps):
    """Tool loop collaborators plus an optional run state store."""

    state_store: AgentStateStore | None = None


def new_run_id() -> str:
    return f"run_{uuid.uuid4().hex[:16]}"


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def build_run_summary(goal: str, reply: str | None, tool_rounds: int) -> str:
    """One-line description of a finished run, written to the session summary."""
    reply_part = f'reply="{_truncate(reply, REPLY_SUMMARY_LIMIT)}"' if reply is not None else "no final reply"
    return f'Last agent run: goal="{_truncate(goal, GOAL_SUMMARY_LIMIT)}"; {reply_part}; tool rounds={tool_rounds}.'


def _persist(deps: AgentDeps, state: AgentRunState) -> None:
    if deps.state_store is not None:
        deps.state_store.set(state)


async def run_agent(
    deps: AgentDeps,
    session_id: str,
    goal: str,
    options: AgentRunOptions | None = None,
) -> AgentRunResult:
    """
    Run the agent on a goal in an existing session.

    The session should already exist (``ContextStore.create_session``); a
    missing session surfaces as a failed run, like any other loop error.

    Args:
        deps: Tool loop collaborators and optional state store
        session_id: Session the goal is appended to
        goal: The user's request
        options: Round budget, sampling parameters, summary write-back and observer

    Returns:
        AgentRunResult; ``success`` is True only for a final reply within budget
    """
    options = options or AgentRunOptions()
    run_id = new_run_id()
    started_at = datetime.now(UTC)

    running = AgentRunState(
        run_id=run_id,
        session_id=session_id,
        goal=goal,
        status=AgentRunStatus.RUNNING,
        started_at=started_at,
        tool_rounds=0,
        max_rounds_reached=False,
    )
    _persist(deps, running)
    logger.info(f"Run {run_id} started in session {session_id}")

    on_after_chat = None
    if options.on_after_chat is not None:
        observer = options.on_after_chat

        def on_after_chat(round_index: int, chat_result: ChatResult, processing: ProcessingReport) -> None:
            observer(run_id, round_index, chat_result, processing)

    loop_options = ToolLoopOptions(
        max_tool_rounds=options.max_tool_rounds,
        temperature=options.temperature,
        max_tokens=options.max_tokens,
        on_after_chat=on_after_chat,
    )

    try:
        loop_result = await run_tool_loop(deps, session_id, goal, loop_options)

        completed = running.model_copy(
            update={
                "status": AgentRunStatus.COMPLETED,
                "finished_at": datetime.now(UTC),
                "tool_rounds": loop_result.tool_rounds,
                "reply": loop_result.reply,
                "last_raw_content": loop_result.last_raw_content,
                "max_rounds_reached": loop_result.max_rounds_reached,
            }
        )
        _persist(deps, completed)

        if options.write_summary_to_memory:
            deps.context.set_summary(
                session_id,
                build_run_summary(goal, loop_result.reply, loop_result.tool_rounds),
            )
    except Exception as e:
        logger.error(f"Run {run_id} failed: {e}", exc_info=True)
        failed = running.model_copy(
            update={
                "status": AgentRunStatus.FAILED,
                "finished_at": datetime.now(UTC),
                "tool_rounds": 0,
                "max_rounds_reached": False,
                "error": str(e),
            }
        )
        try:
            _persist(deps, failed)
        except Exception as persist_error:
            logger.error(f"Run {run_id}: could not record failed state: {persist_error}")
        return AgentRunResult(
            success=False,
            run_id=run_id,
            tool_rounds=0,
            max_rounds_reached=False,
            error=str(e),
            state=failed,
        )

    success = loop_result.reply is not None and not loop_result.max_rounds_reached
    logger.info(
        f"Run {run_id} completed: success={success}, tool_rounds={loop_result.tool_rounds}, "
        f"max_rounds_reached={loop_result.max_rounds_reached}"
    )
    return AgentRunResult(
        success=success,
        run_id=run_id,
        reply=loop_result.reply,
        tool_rounds=loop_result.tool_rounds,
        max_rounds_reached=loop_result.max_rounds_reached,
        last_raw_content=loop_result.last_raw_content,
        state=completed,
    )
