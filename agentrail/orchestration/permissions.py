"""Role-based permission checks. Unknown actors and unmapped roles are denied."""

from collections.abc import Callable, Mapping, Sequence

from agentrail.orchestration.models import PermissionAction

# (actor_id, action, resource) -> allowed
PermissionChecker = Callable[[str, PermissionAction, str | None], bool]

DEFAULT_ROLE_ACTIONS: dict[str, list[PermissionAction]] = {
    "user": [
        PermissionAction.RUN_AGENT,
        PermissionAction.RUN_WORKFLOW,
        PermissionAction.APPROVE_TOOL,
    ],
    "admin": list(PermissionAction),
}


class RolePermissionChecker:
    """
    Maps actors to roles and roles to allowed actions.

    Args:
        actor_roles: Actor id -> role name
        role_actions: Role name -> allowed actions (defaults to DEFAULT_ROLE_ACTIONS)
    """

    def __init__(
        self,
        actor_roles: Mapping[str, str],
        role_actions: Mapping[str, Sequence[PermissionAction]] | None = None,
    ):
        self._actor_roles = dict(actor_roles)
        role_actions = DEFAULT_ROLE_ACTIONS if role_actions is None else role_actions
        self._role_actions = {role: set(actions) for role, actions in role_actions.items()}

    def __call__(self, actor_id: str, action: PermissionAction, resource: str | None = None) -> bool:
        role = self._actor_roles.get(actor_id)
        if role is None:
            return False
        return PermissionAction(action) in self._role_actions.get(role, set())
