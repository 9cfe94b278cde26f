"""
Cross-tenant isolation tests.

An actor of one tenant must never read or change another tenant's rows
through any facade.  Every attempt raises ResourceAccessError (never an
empty success) and leaves the other tenant's data unchanged.
"""

from decimal import Decimal

import pytest
from sqlalchemy import select

from budget_kernel.exceptions import ResourceAccessError
from budget_kernel.models.project import Project
from budget_modules.cost_allocation import CostAllocationInput


@pytest.fixture
def foreign_approver(make_actor, other_tenant_id):
    from budget_kernel.domain.roles import Role

    return make_actor(other_tenant_id, Role.TEAM_LEADER)


class TestCrossTenantAllocations:

    def test_cannot_record_against_foreign_project(self, allocations, catalog, project,
                                                   other_admin):
        own_line_item = catalog.create_line_item(other_admin, "foundation", "Piles")
        with pytest.raises(ResourceAccessError):
            allocations.create_cost_allocation(other_admin, CostAllocationInput(
                project_id=project.id,
                line_item_id=own_line_item.id,
                labour_cost=Decimal("10"),
            ))

    def test_cannot_use_foreign_line_item(self, allocations, catalog, line_item, other_admin):
        own_project = catalog.create_project(other_admin, "Globex HQ", Decimal("100"))
        with pytest.raises(ResourceAccessError):
            allocations.create_cost_allocation(other_admin, CostAllocationInput(
                project_id=own_project.id,
                line_item_id=line_item.id,
                labour_cost=Decimal("10"),
            ))

    def test_cannot_approve_foreign_allocation(self, session, allocations, pending_allocation,
                                               foreign_approver, project):
        allocation_id = pending_allocation("500")
        with pytest.raises(ResourceAccessError):
            allocations.approve(foreign_approver, allocation_id)

        consumed = session.execute(
            select(Project.consumed_amount).where(Project.id == project.id)
        ).scalar_one()
        assert consumed == Decimal("0")

    def test_cannot_reject_foreign_allocation(self, allocations, pending_allocation,
                                              foreign_approver):
        with pytest.raises(ResourceAccessError):
            allocations.reject(foreign_approver, pending_allocation("500"), "mine now")


class TestCrossTenantBudgetChanges:

    def test_cannot_approve_foreign_amendment(self, session, budget_changes, admin,
                                              foreign_approver, project):
        amendment = budget_changes.propose_amendment(admin, project.id, "5000", "Scope")
        budget_changes.submit_amendment(admin, amendment.id)
        with pytest.raises(ResourceAccessError):
            budget_changes.approve_amendment(foreign_approver, amendment.id)

        budget = session.execute(
            select(Project.budget).where(Project.id == project.id)
        ).scalar_one()
        assert budget == Decimal("1000")

    def test_cannot_list_foreign_alerts(self, budget_changes, allocations, pending_allocation,
                                        team_leader, other_admin):
        allocations.approve(team_leader, pending_allocation("900"))
        assert budget_changes.list_alerts(team_leader) != []
        assert budget_changes.list_alerts(other_admin) == []

    def test_cannot_check_foreign_project_alerts(self, budget_changes, project, other_admin):
        with pytest.raises(ResourceAccessError):
            budget_changes.check_and_create_alerts(other_admin, project.id)


class TestIndistinguishableErrors:

    def test_foreign_and_missing_same_message_shape(self, allocations, project, other_admin):
        from uuid import uuid4

        with pytest.raises(ResourceAccessError) as foreign:
            allocations.preview_budget_impact(other_admin, project.id, "1")
        missing_id = uuid4()
        with pytest.raises(ResourceAccessError) as missing:
            allocations.preview_budget_impact(other_admin, missing_id, "1")

        assert str(foreign.value).replace(str(project.id), "<id>") == \
            str(missing.value).replace(str(missing_id), "<id>")
