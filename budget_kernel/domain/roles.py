"""
Roles and capabilities (``budget_kernel.domain.roles``).

Responsibility
--------------
Closed set of user roles, closed set of capabilities, and the single
mapping between them.  Every "who may do what" decision in the system goes
through ``has_capability`` / ``require_capability``; services never compare
role strings.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``ROLE_CAPABILITIES`` has an entry for every ``Role`` member (checked at
  import time), so adding a role without deciding its capabilities fails
  immediately.
* ``Actor`` carries the tenant id explicitly.  There is no ambient
  "current tenant".
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from budget_kernel.exceptions import RoleNotPermittedError


class Role(str, Enum):
    """User roles within a tenant."""

    CONSOLE_MANAGER = "console_manager"
    MANAGER = "manager"
    ADMIN = "admin"
    TEAM_LEADER = "team_leader"
    USER = "user"
    VIEWER = "viewer"


class Capability(str, Enum):
    """Operations gated by role."""

    COST_ENTRY = "cost_entry"
    APPROVAL_ACTIONS = "approval_actions"
    BUDGET_AMENDMENTS = "budget_amendments"
    CHANGE_ORDERS = "change_orders"
    ALERT_MANAGEMENT = "alert_management"
    CATALOG_MANAGEMENT = "catalog_management"
    PROJECT_MANAGEMENT = "project_management"
    VIEW_BUDGETS = "view_budgets"


_APPROVERS = frozenset({
    Capability.COST_ENTRY,
    Capability.APPROVAL_ACTIONS,
    Capability.BUDGET_AMENDMENTS,
    Capability.CHANGE_ORDERS,
    Capability.ALERT_MANAGEMENT,
    Capability.CATALOG_MANAGEMENT,
    Capability.VIEW_BUDGETS,
})

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    # Platform operator; works across tenants through other tooling.
    Role.CONSOLE_MANAGER: frozenset(),
    # Legacy role kept so stored users still load.
    Role.MANAGER: frozenset(),
    Role.ADMIN: _APPROVERS | {Capability.PROJECT_MANAGEMENT},
    Role.TEAM_LEADER: _APPROVERS,
    Role.USER: frozenset({Capability.COST_ENTRY, Capability.VIEW_BUDGETS}),
    Role.VIEWER: frozenset({Capability.VIEW_BUDGETS}),
}

_missing = set(Role) - set(ROLE_CAPABILITIES)
if _missing:
    raise RuntimeError(f"ROLE_CAPABILITIES missing roles: {sorted(r.value for r in _missing)}")


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing an operation."""

    user_id: UUID
    tenant_id: UUID
    role: Role


def has_capability(role: Role, capability: Capability) -> bool:
    """True if ``role`` carries ``capability``."""
    return capability in ROLE_CAPABILITIES[role]


def require_capability(actor: Actor, capability: Capability) -> None:
    """Raise RoleNotPermittedError unless the actor's role carries ``capability``."""
    if not has_capability(actor.role, capability):
        raise RoleNotPermittedError(actor.role.value, capability.value)


def roles_with(capability: Capability) -> tuple[Role, ...]:
    """All roles carrying ``capability``, in declaration order."""
    return tuple(r for r in Role if capability in ROLE_CAPABILITIES[r])
