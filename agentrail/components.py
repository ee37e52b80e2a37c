"""
Component factory.

Centralises the construction of the gateway, context store, tool registry
and dependency bundles from settings, so the CLI, tests and embedding
applications wire things the same way.
"""

from __future__ import annotations

from agentrail.agent.runner import AgentDeps
from agentrail.agent.state import AgentStateStore, InMemoryAgentStateStore
from agentrail.config.settings import Settings
from agentrail.context.store import ContextStore
from agentrail.gateway.gateway import ModelGateway
from agentrail.orchestration.audit import AuditLogStore, InMemoryAuditLogStore
from agentrail.orchestration.cost_tracker import CostTracker
from agentrail.orchestration.human_loop import HumanApprovalProvider
from agentrail.orchestration.orchestrator import OrchestratorDeps
from agentrail.orchestration.permissions import PermissionChecker
from agentrail.output.controller import OutputController
from agentrail.tools.builtin import register_builtin_tools
from agentrail.tools.registry import ToolRegistry


class AgentComponents:
    """
    Factory for building agent components from settings.

    Example::

        factory = AgentComponents(settings)
        deps = factory.create_agent_deps(factory.create_registry())
        session_id = deps.context.create_session()
        result = await run_agent(deps, session_id, "What time is it?")
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def create_gateway(self) -> ModelGateway:
        """Create a ModelGateway from gateway and provider settings."""
        return ModelGateway(
            settings=self.settings.gateway,
            providers=self.settings.providers,
        )

    def create_context_store(self) -> ContextStore:
        return ContextStore.from_settings(self.settings.context)

    def create_registry(self, builtin_tools: bool = True) -> ToolRegistry:
        """Create a ToolRegistry, with the built-in demo tools unless disabled."""
        registry = ToolRegistry()
        if builtin_tools:
            register_builtin_tools(registry)
        return registry

    def create_agent_deps(
        self,
        registry: ToolRegistry,
        state_store: AgentStateStore | None = None,
    ) -> AgentDeps:
        """Create the agent dependency bundle around a fresh gateway and context store."""
        return AgentDeps(
            chat=self.create_gateway().chat,
            context=self.create_context_store(),
            output=OutputController(),
            registry=registry,
            state_store=state_store if state_store is not None else InMemoryAgentStateStore(),
        )

    def create_orchestrator_deps(
        self,
        registry: ToolRegistry,
        permission_check: PermissionChecker | None = None,
        human_approval: HumanApprovalProvider | None = None,
        audit_log: AuditLogStore | None = None,
        cost_tracker: CostTracker | None = None,
    ) -> OrchestratorDeps:
        """Create the orchestrator dependency bundle with an audit log and cost tracker."""
        agent_deps = self.create_agent_deps(registry)
        return OrchestratorDeps(
            chat=agent_deps.chat,
            context=agent_deps.context,
            output=agent_deps.output,
            registry=agent_deps.registry,
            state_store=agent_deps.state_store,
            audit_log=audit_log if audit_log is not None else InMemoryAuditLogStore(),
            permission_check=permission_check,
            human_approval=human_approval,
            cost_tracker=cost_tracker if cost_tracker is not None else CostTracker(),
        )
