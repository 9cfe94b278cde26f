"""
Tests for roles and capabilities (``budget_kernel.domain.roles``).

Covers the role -> capability table and the require_capability gate.
"""

from uuid import uuid4

import pytest

from budget_kernel.domain.roles import (
    ROLE_CAPABILITIES,
    Actor,
    Capability,
    Role,
    has_capability,
    require_capability,
    roles_with,
)
from budget_kernel.exceptions import AuthorizationError, RoleNotPermittedError


def _actor(role: Role) -> Actor:
    return Actor(user_id=uuid4(), tenant_id=uuid4(), role=role)


class TestRoleCapabilities:

    def test_every_role_has_an_entry(self):
        assert set(ROLE_CAPABILITIES) == set(Role)

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.TEAM_LEADER])
    def test_approvers(self, role):
        for capability in (
            Capability.COST_ENTRY,
            Capability.APPROVAL_ACTIONS,
            Capability.BUDGET_AMENDMENTS,
            Capability.CHANGE_ORDERS,
            Capability.ALERT_MANAGEMENT,
            Capability.VIEW_BUDGETS,
        ):
            assert has_capability(role, capability)

    def test_only_admin_manages_projects(self):
        assert roles_with(Capability.PROJECT_MANAGEMENT) == (Role.ADMIN,)

    def test_user_enters_costs_but_cannot_approve(self):
        assert has_capability(Role.USER, Capability.COST_ENTRY)
        assert not has_capability(Role.USER, Capability.APPROVAL_ACTIONS)
        assert not has_capability(Role.USER, Capability.BUDGET_AMENDMENTS)

    def test_viewer_is_read_only(self):
        assert ROLE_CAPABILITIES[Role.VIEWER] == frozenset({Capability.VIEW_BUDGETS})

    @pytest.mark.parametrize("role", [Role.CONSOLE_MANAGER, Role.MANAGER])
    def test_roles_without_tenant_capabilities(self, role):
        assert ROLE_CAPABILITIES[role] == frozenset()


class TestRequireCapability:

    def test_permitted(self):
        require_capability(_actor(Role.TEAM_LEADER), Capability.APPROVAL_ACTIONS)

    def test_not_permitted(self):
        with pytest.raises(RoleNotPermittedError) as exc_info:
            require_capability(_actor(Role.USER), Capability.APPROVAL_ACTIONS)
        assert exc_info.value.code == "ROLE_NOT_PERMITTED"
        assert exc_info.value.role == "user"
        assert exc_info.value.capability == "approval_actions"

    def test_is_an_authorization_error(self):
        with pytest.raises(AuthorizationError):
            require_capability(_actor(Role.VIEWER), Capability.COST_ENTRY)

    def test_actor_is_frozen(self):
        actor = _actor(Role.USER)
        with pytest.raises(AttributeError):
            actor.role = Role.ADMIN
