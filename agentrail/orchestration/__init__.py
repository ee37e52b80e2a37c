"""
Orchestration Layer.

Sequences agent runs as workflow steps, with the layers around them: audit
log, role-based permissions, human approval between steps, and cost
aggregation.
"""

from agentrail.orchestration.audit import AuditLogStore, InMemoryAuditLogStore
from agentrail.orchestration.cost_tracker import CostTracker
from agentrail.orchestration.human_loop import (
    AutoApprovalProvider,
    ConsoleApprovalProvider,
    HumanApprovalProvider,
    parse_approval_answer,
)
from agentrail.orchestration.models import (
    AuditAction,
    AuditLogEntry,
    AuditLogInput,
    CostSnapshot,
    HumanApprovalRequest,
    HumanApprovalResult,
    OrchestratedStep,
    OrchestratedStepResult,
    OrchestratedWorkflowOptions,
    OrchestratedWorkflowResult,
    PermissionAction,
)
from agentrail.orchestration.orchestrator import OrchestratorDeps, run_orchestrated_workflow
from agentrail.orchestration.permissions import DEFAULT_ROLE_ACTIONS, PermissionChecker, RolePermissionChecker

__all__ = [
    "DEFAULT_ROLE_ACTIONS",
    "AuditAction",
    "AuditLogEntry",
    "AuditLogInput",
    "AuditLogStore",
    "AutoApprovalProvider",
    "ConsoleApprovalProvider",
    "CostSnapshot",
    "CostTracker",
    "HumanApprovalProvider",
    "HumanApprovalRequest",
    "HumanApprovalResult",
    "InMemoryAuditLogStore",
    "OrchestratedStep",
    "OrchestratedStepResult",
    "OrchestratedWorkflowOptions",
    "OrchestratedWorkflowResult",
    "OrchestratorDeps",
    "PermissionAction",
    "PermissionChecker",
    "RolePermissionChecker",
    "parse_approval_answer",
    "run_orchestrated_workflow",
]
