"""Data models for workflow orchestration, audit, permissions, cost and approval."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from agentrail.agent.models import AgentRunOptions, AgentRunState


class AuditAction(str, Enum):
    WORKFLOW_START = "workflow_start"
    WORKFLOW_STEP_START = "workflow_step_start"
    WORKFLOW_STEP_END = "workflow_step_end"
    WORKFLOW_END = "workflow_end"
    AGENT_RUN = "agent_run"
    HUMAN_APPROVAL_REQUEST = "human_approval_request"
    HUMAN_APPROVAL_RESULT = "human_approval_result"
    TOOL_EXECUTION = "tool_execution"
    PERMISSION_CHECK = "permission_check"


class AuditLogEntry(BaseModel):
    """One audit record. ``id`` and ``timestamp`` are assigned by the store."""

    id: str
    timestamp: datetime
    session_id: str
    run_id: str | None = None
    workflow_id: str | None = None
    step_index: int | None = None
    actor: str
    action: AuditAction
    resource: str | None = None
    details: dict[str, Any] | None = None


class AuditLogInput(BaseModel):
    """An audit record before the store stamps it."""

    session_id: str
    run_id: str | None = None
    workflow_id: str | None = None
    step_index: int | None = None
    actor: str
    action: AuditAction
    resource: str | None = None
    details: dict[str, Any] | None = None


class PermissionAction(str, Enum):
    RUN_AGENT = "run_agent"
    RUN_WORKFLOW = "run_workflow"
    APPROVE_TOOL = "approve_tool"
    VIEW_AUDIT = "view_audit"
    VIEW_COST = "view_cost"


class CostSnapshot(BaseModel):
    """Accumulated cost for one scope (session, run or global)."""

    total_cents: float = 0.0
    currency: str = "USD"
    input_cents: float = 0.0
    output_cents: float = 0.0
    call_count: int = 0


class HumanApprovalRequest(BaseModel):
    run_id: str
    workflow_id: str | None = None
    step_index: int | None = None
    reason: str
    payload: dict[str, Any] | None = None


class HumanApprovalResult(BaseModel):
    approved: bool
    comment: str | None = None


class OrchestratedStep(BaseModel):
    goal: str
    label: str | None = None


class OrchestratedStepResult(BaseModel):
    step_index: int
    goal: str
    run_id: str
    success: bool
    reply: str | None = None
    tool_rounds: int = 0
    error: str | None = None
    state: AgentRunState
    approval_requested: bool = False
    approval_result: HumanApprovalResult | None = None


@dataclass
class OrchestratedWorkflowOptions:
    """Per-workflow knobs. ``write_summary_to_memory`` is always forced on for steps."""

    approve_between_steps: bool = False
    actor_id: str = "system"
    agent_run_options: AgentRunOptions = field(default_factory=AgentRunOptions)


class OrchestratedWorkflowResult(BaseModel):
    workflow_id: str
    session_id: str
    success: bool
    steps: list[OrchestratedStepResult] = Field(default_factory=list)
    total_cost: CostSnapshot | None = None
    error: str | None = None

