"""Unit tests for role-based permission checks."""

import pytest

from agentrail.orchestration.models import PermissionAction
from agentrail.orchestration.permissions import RolePermissionChecker


@pytest.fixture
def checker():
    return RolePermissionChecker({"alice": "user", "root": "admin", "ghost": "nobody"})


class TestRolePermissionChecker:

    @pytest.mark.parametrize(
        "action",
        [PermissionAction.RUN_AGENT, PermissionAction.RUN_WORKFLOW, PermissionAction.APPROVE_TOOL],
    )
    def test_user_allowed_actions(self, checker, action):
        assert checker("alice", action) is True

    @pytest.mark.parametrize("action", [PermissionAction.VIEW_AUDIT, PermissionAction.VIEW_COST])
    def test_user_denied_admin_actions(self, checker, action):
        assert checker("alice", action) is False

    @pytest.mark.parametrize("action", list(PermissionAction))
    def test_admin_allowed_everything(self, checker, action):
        assert checker("root", action) is True

    def test_unknown_actor_denied(self, checker):
        assert checker("mallory", PermissionAction.RUN_AGENT) is False

    def test_unmapped_role_denied(self, checker):
        assert checker("ghost", PermissionAction.RUN_AGENT) is False

    def test_accepts_action_values(self, checker):
        assert checker("alice", "run_workflow", "some-resource") is True

    def test_custom_role_table(self):
        checker = RolePermissionChecker(
            {"bot": "auditor"},
            role_actions={"auditor": [PermissionAction.VIEW_AUDIT]},
        )

        assert checker("bot", PermissionAction.VIEW_AUDIT) is True
        assert checker("bot", PermissionAction.RUN_AGENT) is False
