"""
Workflow orchestrator.

Runs a list of goals as sequential agent runs in one session, under one
workflow id:

    permission check → workflow_start → [approval gate → step_start → run_agent → step_end]* → workflow_end

Every collaborator beyond the agent's own is optional: without an audit log
nothing is audited, without a permission checker every actor may run, without
an approval provider the gate is skipped, without a cost tracker no cost is
reported. Permission denial and approval rejection are ordinary unsuccessful
results, never exceptions.

Each step writes its run summary into the session, so step N+1 sees how
step N went through the session's summary slot.
"""

import dataclasses
import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from agentrail.agent.models import AgentRunState, AgentRunStatus
from agentrail.agent.runner import AgentDeps, run_agent
from agentrail.gateway.models import ChatRequest, ChatResult
from agentrail.orchestration.audit import AuditLogStore
from agentrail.orchestration.cost_tracker import CostTracker
from agentrail.orchestration.human_loop import HumanApprovalProvider
from agentrail.orchestration.models import (
    AuditAction,
    AuditLogInput,
    HumanApprovalRequest,
    HumanApprovalResult,
    OrchestratedStep,
    OrchestratedStepResult,
    OrchestratedWorkflowOptions,
    OrchestratedWorkflowResult,
    PermissionAction,
)
from agentrail.orchestration.permissions import PermissionChecker
from agentrail.tools.models import ProcessingReport, ToolCallReport

logger = logging.getLogger(__name__)

RESOURCE_LIMIT = 80
STEP_CONTINUE = "step_continue"
REJECTED_STEP_ERROR = "Workflow stopped: human did not approve next step"


@dataclass
class OrchestratorDeps(AgentDeps):
    """Agent collaborators plus the optional audit, permission, approval and cost layers."""

    audit_log: AuditLogStore | None = None
    permission_check: PermissionChecker | None = None
    human_approval: HumanApprovalProvider | None = None
    cost_tracker: CostTracker | None = None


def new_workflow_id() -> str:
    return f"wf_{uuid.uuid4().hex[:16]}"


class _WorkflowAudit:
    """Writes audit entries for one workflow; a no-op without an audit log."""

    def __init__(self, store: AuditLogStore | None, session_id: str, workflow_id: str, actor: str):
        self._store = store
        self._session_id = session_id
        self._workflow_id = workflow_id
        self._actor = actor

    def __call__(
        self,
        action: AuditAction,
        *,
        run_id: str | None = None,
        step_index: int | None = None,
        resource: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        if self._store is None:
            return
        self._store.append(
            AuditLogInput(
                session_id=self._session_id,
                run_id=run_id,
                workflow_id=self._workflow_id,
                step_index=step_index,
                actor=self._actor,
                action=action,
                resource=resource,
                details=details,
            )
        )


def _with_cost_recording(deps: OrchestratorDeps, session_id: str) -> OrchestratorDeps:
    """Wrap the chat capability so every call's cost lands on the session."""
    if deps.cost_tracker is None:
        return deps

    chat = deps.chat
    tracker = deps.cost_tracker

    async def chat_with_cost(request: ChatRequest) -> ChatResult:
        result = await chat(request)
        # Session scope only: the run id is not known at this boundary
        tracker.record(session_id, None, result.cost)
        return result

    return dataclasses.replace(deps, chat=chat_with_cost)


def _rejected_step(session_id: str, step_index: int, goal: str, approval: HumanApprovalResult) -> OrchestratedStepResult:
    now = datetime.now(UTC)
    return OrchestratedStepResult(
        step_index=step_index,
        goal=goal,
        run_id="",
        success=False,
        error=REJECTED_STEP_ERROR,
        state=AgentRunState(
            run_id="",
            session_id=session_id,
            goal=goal,
            status=AgentRunStatus.FAILED,
            started_at=now,
            finished_at=now,
            error=REJECTED_STEP_ERROR,
        ),
        approval_requested=True,
        approval_result=approval,
    )


async def run_orchestrated_workflow(
    deps: OrchestratorDeps,
    session_id: str,
    steps: list[OrchestratedStep],
    options: OrchestratedWorkflowOptions | None = None,
) -> OrchestratedWorkflowResult:
    """
    Run ``steps`` in order as agent runs in ``session_id``.

    Args:
        deps: Agent collaborators and optional orchestration layers
        session_id: Existing session all steps share
        steps: Goals to run, in order
        options: Approval gate, acting identity and per-step run options

    Returns:
        OrchestratedWorkflowResult with one step result per executed step;
        ``success`` is True when every executed step succeeded
    """
    options = options or OrchestratedWorkflowOptions()
    workflow_id = new_workflow_id()
    actor = options.actor_id or "system"
    audit = _WorkflowAudit(deps.audit_log, session_id, workflow_id, actor)

    if deps.permission_check is not None and not deps.permission_check(
        actor, PermissionAction.RUN_WORKFLOW, None
    ):
        error = f"Permission denied: {PermissionAction.RUN_WORKFLOW.value}"
        logger.warning(f"Workflow {workflow_id}: actor '{actor}' denied {PermissionAction.RUN_WORKFLOW.value}")
        audit(AuditAction.WORKFLOW_START, details={"error": error})
        return OrchestratedWorkflowResult(
            workflow_id=workflow_id,
            session_id=session_id,
            success=False,
            steps=[],
            error=error,
        )

    audit(AuditAction.WORKFLOW_START, details={"stepCount": len(steps)})
    logger.info(f"Workflow {workflow_id} started in session {session_id} with {len(steps)} steps")

    step_deps = _with_cost_recording(deps, session_id)
    base_options = options.agent_run_options
    results: list[OrchestratedStepResult] = []

    for step_index, step in enumerate(steps):
        goal_resource = step.goal[:RESOURCE_LIMIT]

        approval_requested = False
        approval = None
        if options.approve_between_steps and step_index > 0 and deps.human_approval is not None:
            approval_requested = True
            audit(
                AuditAction.HUMAN_APPROVAL_REQUEST,
                step_index=step_index,
                resource=goal_resource,
                details={"reason": STEP_CONTINUE, "payload": {"goal": step.goal}},
            )
            approval = await deps.human_approval.request_approval(
                HumanApprovalRequest(
                    run_id=results[-1].run_id,
                    workflow_id=workflow_id,
                    step_index=step_index,
                    reason=STEP_CONTINUE,
                    payload={"goal": step.goal, "previousStep": results[-1].run_id},
                )
            )
            audit(
                AuditAction.HUMAN_APPROVAL_RESULT,
                step_index=step_index,
                details={"approved": approval.approved, "comment": approval.comment},
            )
            if not approval.approved:
                logger.info(f"Workflow {workflow_id}: step {step_index} not approved, stopping")
                results.append(_rejected_step(session_id, step_index, step.goal, approval))
                break

        audit(AuditAction.WORKFLOW_STEP_START, step_index=step_index, resource=goal_resource)

        caller_observer = base_options.on_after_chat

        def observe(
            run_id: str,
            round_index: int,
            chat_result: ChatResult,
            processing: ProcessingReport,
            step_index: int = step_index,
            caller_observer=caller_observer,
        ) -> None:
            if isinstance(processing, ToolCallReport):
                audit(
                    AuditAction.TOOL_EXECUTION,
                    run_id=run_id,
                    step_index=step_index,
                    resource=processing.tool,
                    details={
                        "round": round_index,
                        "arguments": processing.args,
                        "resultSnippet": processing.result_snippet,
                    },
                )
            if caller_observer is not None:
                caller_observer(run_id, round_index, chat_result, processing)

        run_options = dataclasses.replace(
            base_options,
            write_summary_to_memory=True,
            on_after_chat=observe,
        )
        run_result = await run_agent(step_deps, session_id, step.goal, run_options)

        audit(
            AuditAction.WORKFLOW_STEP_END,
            run_id=run_result.run_id,
            step_index=step_index,
            resource=goal_resource,
            details={
                "success": run_result.success,
                "toolRounds": run_result.tool_rounds,
                "error": run_result.error,
            },
        )
        results.append(
            OrchestratedStepResult(
                step_index=step_index,
                goal=step.goal,
                run_id=run_result.run_id,
                success=run_result.success,
                reply=run_result.reply,
                tool_rounds=run_result.tool_rounds,
                error=run_result.error,
                state=run_result.state,
                approval_requested=approval_requested,
                approval_result=approval,
            )
        )

    audit(
        AuditAction.WORKFLOW_END,
        details={"stepsCompleted": len(results), "totalSteps": len(steps)},
    )

    success = all(r.success for r in results)
    first_failure = next((r for r in results if not r.success), None)
    total_cost = deps.cost_tracker.get_session_cost(session_id) if deps.cost_tracker is not None else None

    logger.info(f"Workflow {workflow_id} finished: success={success}, steps={len(results)}/{len(steps)}")
    return OrchestratedWorkflowResult(
        workflow_id=workflow_id,
        session_id=session_id,
        success=success,
        steps=results,
        total_cost=total_cost,
        error=first_failure.error if first_failure is not None else None,
    )
