"""
Tests for CostAllocationService -- recording and approving cost allocations.

Covers:
- create_cost_allocation(): totals, catalog price defaulting, budget
  validation and impact, field validation, role and tenant gates
- submit() / approve() / reject(): state machine, consumed amount updated
  exactly once on approval, mandatory rejection comments, alerts
- Atomicity: a failure after the budget update rolls back everything
- Concurrency: a stale project row surfaces as OptimisticLockError
- preview_budget_impact(): read-only impact for a proposed cost
- auto_submit_on_threshold configuration
- to_dict(): camelCase rendering for the HTTP layer
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select, update

import budget_modules.cost_allocation.service as allocation_service_module
from budget_kernel.domain.variance import BudgetStatus
from budget_kernel.domain.workflow import ApprovalStatus
from budget_kernel.exceptions import (
    InvalidTransitionError,
    OptimisticLockError,
    ResourceAccessError,
    RoleNotPermittedError,
    ValidationError,
)
from budget_kernel.models.approval import ApprovalWorkflowModel
from budget_kernel.models.audit_log import AuditLog
from budget_kernel.models.budget_alert import BudgetAlert
from budget_kernel.models.cost_allocation import CostAllocation
from budget_kernel.models.project import Project
from budget_kernel.services.alert_service import BudgetAlertService
from budget_kernel.services.tenant_guard import load_for_tenant
from budget_modules.cost_allocation import (
    AllocationConfig,
    CostAllocationInput,
    CostAllocationService,
    MaterialAllocationInput,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def consumed_amount(session, project_id) -> Decimal:
    """Consumed amount as stored, bypassing the identity map."""
    return session.execute(
        select(Project.consumed_amount).where(Project.id == project_id)
    ).scalar_one()


def stored_status(session, allocation_id) -> str:
    return session.execute(
        select(CostAllocation.status).where(CostAllocation.id == allocation_id)
    ).scalar_one()


# =========================================================================
# create_cost_allocation
# =========================================================================


class TestCreateCostAllocation:

    def test_labour_and_materials(self, make_allocation, user, material):
        created = make_allocation(
            user,
            labour_cost=Decimal("200"),
            materials=(MaterialAllocationInput(material.id, Decimal("5")),),
        )
        allocation = created.cost_allocation

        assert allocation.status is ApprovalStatus.DRAFT
        assert allocation.labour_cost == Decimal("200")
        assert allocation.material_cost == Decimal("50")
        assert allocation.total_cost == Decimal("250")
        assert allocation.entered_by == user.user_id
        assert allocation.tenant_id == user.tenant_id
        assert allocation.requires_approval is False
        assert created.remaining_budget == Decimal("1000")
        assert created.exceeds_budget is False
        assert created.workflow is None

    def test_material_price_defaults_to_catalog(self, make_allocation, user, material):
        created = make_allocation(
            user, materials=(MaterialAllocationInput(material.id, "3"),),
        )
        [row] = created.cost_allocation.material_allocations
        assert row.unit_price == Decimal("10.00")
        assert row.total == Decimal("30")

    def test_explicit_unit_price_overrides_catalog(self, make_allocation, user, material):
        created = make_allocation(
            user, materials=(MaterialAllocationInput(material.id, "2", unit_price="12.50"),),
        )
        assert created.cost_allocation.total_cost == Decimal("25")

    def test_impact_into_warning_requires_approval(self, make_allocation, user):
        created = make_allocation(user, labour_cost="850")

        assert created.impact.new_spent_percentage == Decimal("85.00")
        assert created.impact.status is BudgetStatus.WARNING
        assert created.impact.requires_approval is True
        assert created.cost_allocation.requires_approval is True
        assert created.exceeds_budget is False

    def test_exceeding_remaining_budget_is_reported(self, make_allocation, user):
        created = make_allocation(user, labour_cost="1200")
        assert created.exceeds_budget is True
        assert "exceeds the remaining budget" in created.budget_validation.message
        assert created.impact.is_over_budget is True

    def test_recording_does_not_consume_budget(self, session, make_allocation, user, project):
        make_allocation(user, labour_cost="300")
        assert consumed_amount(session, project.id) == Decimal("0")

    def test_audited(self, session, make_allocation, user, project):
        created = make_allocation(user, labour_cost="300")
        audit = session.execute(
            select(AuditLog).where(AuditLog.entity_id == str(created.cost_allocation.id))
        ).scalar_one()
        assert audit.action == "cost_allocated"
        assert audit.project_id == project.id
        assert audit.amount == Decimal("300")
        assert audit.user_id == user.user_id

    def test_viewer_cannot_enter_costs(self, make_allocation, viewer):
        with pytest.raises(RoleNotPermittedError):
            make_allocation(viewer, labour_cost="10")


class TestCreateValidation:

    def _fields(self, exc_info) -> set[str]:
        return {e["field"] for e in exc_info.value.field_errors}

    def test_requires_labour_or_material(self, make_allocation, user):
        with pytest.raises(ValidationError) as exc_info:
            make_allocation(user, labour_cost="0")
        assert self._fields(exc_info) == {"labour_cost"}
        assert "at least one material" in exc_info.value.field_errors[0]["message"]

    def test_negative_labour(self, make_allocation, user, material):
        with pytest.raises(ValidationError) as exc_info:
            make_allocation(
                user, labour_cost="-1",
                materials=(MaterialAllocationInput(material.id, "1"),),
            )
        assert self._fields(exc_info) == {"labour_cost"}

    def test_material_row_errors_are_indexed(self, make_allocation, user, material):
        with pytest.raises(ValidationError) as exc_info:
            make_allocation(
                user,
                labour_cost="10",
                materials=(
                    MaterialAllocationInput(material.id, "1"),
                    MaterialAllocationInput(material.id, "0", unit_price="-2"),
                ),
            )
        assert self._fields(exc_info) == {
            "material_allocations[1].quantity",
            "material_allocations[1].unit_price",
        }

    def test_float_amount_refused(self, make_allocation, user):
        with pytest.raises(ValidationError):
            make_allocation(user, labour_cost=12.5)

    def test_nothing_written_on_failure(self, session, make_allocation, user):
        with pytest.raises(ValidationError):
            make_allocation(user, labour_cost="-5")
        assert session.execute(select(CostAllocation)).scalars().all() == []

    def test_unknown_material(self, make_allocation, user):
        with pytest.raises(ResourceAccessError):
            make_allocation(user, materials=(MaterialAllocationInput(uuid4(), "1"),))

    def test_change_order_must_belong_to_project(
        self, allocations, catalog, budget_changes, admin, user, project, line_item,
    ):
        other = catalog.create_project(admin, "Other site", Decimal("500"))
        change_order = budget_changes.propose_change_order(
            admin, other.id, "Extra drainage", Decimal("100"),
        )
        with pytest.raises(ValidationError) as exc_info:
            allocations.create_cost_allocation(user, CostAllocationInput(
                project_id=project.id,
                line_item_id=line_item.id,
                labour_cost=Decimal("10"),
                change_order_id=change_order.id,
            ))
        assert exc_info.value.field_errors[0]["field"] == "change_order_id"

    def test_linked_change_order(
        self, allocations, budget_changes, admin, user, project, line_item,
    ):
        change_order = budget_changes.propose_change_order(
            admin, project.id, "Extra drainage", Decimal("100"),
        )
        created = allocations.create_cost_allocation(user, CostAllocationInput(
            project_id=project.id,
            line_item_id=line_item.id,
            labour_cost=Decimal("10"),
            change_order_id=change_order.id,
        ))
        assert created.cost_allocation.change_order_id == change_order.id


# =========================================================================
# submit
# =========================================================================


class TestSubmit:

    def test_draft_to_pending(self, session, allocations, make_allocation, user):
        created = make_allocation(user, labour_cost="100")
        outcome = allocations.submit(user, created.cost_allocation.id)

        assert outcome.cost_allocation.status is ApprovalStatus.PENDING
        assert outcome.workflow.status is ApprovalStatus.PENDING
        assert outcome.workflow.related_table == "cost_allocations"
        assert outcome.workflow.record_id == created.cost_allocation.id
        assert outcome.workflow.requested_by == user.user_id

    def test_submit_twice_refused(self, allocations, pending_allocation, user):
        allocation_id = pending_allocation("100")
        with pytest.raises(InvalidTransitionError) as exc_info:
            allocations.submit(user, allocation_id)
        assert exc_info.value.current_status == "pending"

    def test_audited(self, session, pending_allocation):
        allocation_id = pending_allocation("100")
        actions = set(session.execute(
            select(AuditLog.action).where(AuditLog.entity_id == str(allocation_id))
        ).scalars())
        assert actions == {"cost_allocated", "cost_allocation_submitted"}


# =========================================================================
# approve
# =========================================================================


class TestApprove:

    def test_approve_consumes_budget(self, session, allocations, pending_allocation,
                                     team_leader, project):
        allocation_id = pending_allocation("300")
        outcome = allocations.approve(team_leader, allocation_id, "ok")

        assert outcome.cost_allocation.status is ApprovalStatus.APPROVED
        assert outcome.workflow.status is ApprovalStatus.APPROVED
        assert outcome.workflow.approver_id == team_leader.user_id
        assert outcome.workflow.comments == "ok"
        assert outcome.alerts == ()
        assert consumed_amount(session, project.id) == Decimal("300")

    def test_consumed_only_once(self, session, allocations, pending_allocation,
                                team_leader, project):
        allocation_id = pending_allocation("300")
        allocations.approve(team_leader, allocation_id)
        with pytest.raises(InvalidTransitionError):
            allocations.approve(team_leader, allocation_id)
        assert consumed_amount(session, project.id) == Decimal("300")

    def test_draft_cannot_be_approved(self, session, allocations, make_allocation,
                                      user, team_leader, project):
        created = make_allocation(user, labour_cost="300")
        with pytest.raises(InvalidTransitionError) as exc_info:
            allocations.approve(team_leader, created.cost_allocation.id)
        assert exc_info.value.allowed_from == ("pending",)
        assert consumed_amount(session, project.id) == Decimal("0")

    def test_user_cannot_approve(self, allocations, pending_allocation, user):
        allocation_id = pending_allocation("300")
        with pytest.raises(RoleNotPermittedError):
            allocations.approve(user, allocation_id)

    def test_approval_raises_threshold_alert(self, allocations, pending_allocation,
                                             team_leader, project):
        allocation_id = pending_allocation("850")
        outcome = allocations.approve(team_leader, allocation_id)

        [alert] = outcome.alerts
        assert alert.alert_type.value == "warning_threshold"
        assert alert.project_id == project.id
        assert alert.spent_percentage == Decimal("85.00")

    def test_successive_approvals_accumulate(self, session, allocations, pending_allocation,
                                             team_leader, project):
        for amount in ("100", "250", "50"):
            allocations.approve(team_leader, pending_allocation(amount))
        assert consumed_amount(session, project.id) == Decimal("400")

    def test_approval_logged_with_context(self, allocations, pending_allocation,
                                          team_leader, captured_logs):
        allocation_id = pending_allocation("300")
        allocations.approve(team_leader, allocation_id)

        [record] = [r for r in captured_logs() if r["message"] == "cost_allocation_approved"]
        assert record["tenant_id"] == str(team_leader.tenant_id)
        assert record["actor_id"] == str(team_leader.user_id)
        assert record["cost_allocation_id"] == str(allocation_id)


class TestApproveAtomicity:

    def test_failure_after_budget_update_rolls_back(
        self, session, allocations, pending_allocation, team_leader, project, monkeypatch,
    ):
        allocation_id = pending_allocation("300")

        def explode(self, actor, project):
            raise RuntimeError("alert store unavailable")

        monkeypatch.setattr(BudgetAlertService, "check_and_create_alerts", explode)

        with pytest.raises(RuntimeError):
            allocations.approve(team_leader, allocation_id)

        assert consumed_amount(session, project.id) == Decimal("0")
        assert stored_status(session, allocation_id) == "pending"
        workflow_status = session.execute(
            select(ApprovalWorkflowModel.status).where(
                ApprovalWorkflowModel.record_id == allocation_id,
            )
        ).scalar_one()
        assert workflow_status == "pending"
        audit_actions = set(session.execute(select(AuditLog.action)).scalars())
        assert "approval_workflow_updated" not in audit_actions

    def test_stale_project_row_is_optimistic_lock_error(
        self, session, allocations, pending_allocation, team_leader, project, monkeypatch,
    ):
        allocation_id = pending_allocation("300")
        projects = Project.__table__

        def racing_load(session_, model, entity_id, tenant_id, **kwargs):
            row = load_for_tenant(session_, model, entity_id, tenant_id, **kwargs)
            if model is Project and kwargs.get("for_update"):
                # Another writer commits in between the read and our write
                session_.execute(
                    update(projects)
                    .where(projects.c.id == entity_id)
                    .values(version=projects.c.version + 1)
                )
            return row

        monkeypatch.setattr(allocation_service_module, "load_for_tenant", racing_load)

        with pytest.raises(OptimisticLockError) as exc_info:
            allocations.approve(team_leader, allocation_id)
        assert exc_info.value.code == "OPTIMISTIC_LOCK_CONFLICT"

        monkeypatch.undo()
        assert consumed_amount(session, project.id) == Decimal("0")
        assert stored_status(session, allocation_id) == "pending"


# =========================================================================
# reject
# =========================================================================


class TestReject:

    def test_reject_with_comments(self, session, allocations, pending_allocation,
                                  team_leader, project):
        allocation_id = pending_allocation("300")
        outcome = allocations.reject(team_leader, allocation_id, "  wrong line item ")

        assert outcome.cost_allocation.status is ApprovalStatus.REJECTED
        assert outcome.workflow.comments == "wrong line item"
        assert outcome.alerts == ()
        assert consumed_amount(session, project.id) == Decimal("0")

    @pytest.mark.parametrize("comments", ["", "   "])
    def test_comments_required(self, session, allocations, pending_allocation,
                               team_leader, comments):
        allocation_id = pending_allocation("300")
        with pytest.raises(ValidationError) as exc_info:
            allocations.reject(team_leader, allocation_id, comments)
        assert exc_info.value.field_errors[0]["field"] == "comments"
        assert stored_status(session, allocation_id) == "pending"

    def test_rejected_is_final(self, allocations, pending_allocation, team_leader):
        allocation_id = pending_allocation("300")
        allocations.reject(team_leader, allocation_id, "no")
        with pytest.raises(InvalidTransitionError):
            allocations.approve(team_leader, allocation_id)

    def test_rejecting_threshold_allocation_raises_denied_alert(
        self, session, allocations, pending_allocation, team_leader, project,
    ):
        allocation_id = pending_allocation("900")
        outcome = allocations.reject(team_leader, allocation_id, "over the limit")

        [alert] = outcome.alerts
        assert alert.alert_type.value == "budget_allocation_denied"
        stored = session.execute(
            select(BudgetAlert).where(BudgetAlert.project_id == project.id)
        ).scalar_one()
        assert stored.status == "active"


# =========================================================================
# preview_budget_impact
# =========================================================================


class TestPreviewBudgetImpact:

    def test_viewer_can_preview(self, allocations, viewer, project):
        preview = allocations.preview_budget_impact(viewer, project.id, "850")
        assert preview.impact.requires_approval is True
        assert preview.alert_message.startswith("WARNING:")
        assert preview.thresholds == {"warning": 80, "critical": 95}

    def test_preview_writes_nothing(self, session, allocations, viewer, project):
        before = session.execute(select(AuditLog.id)).scalars().all()
        allocations.preview_budget_impact(viewer, project.id, "100")
        assert session.execute(select(AuditLog.id)).scalars().all() == before

    def test_negative_cost_refused(self, allocations, viewer, project):
        with pytest.raises(ValidationError):
            allocations.preview_budget_impact(viewer, project.id, "-1")

    def test_foreign_project(self, allocations, other_admin, project):
        with pytest.raises(ResourceAccessError):
            allocations.preview_budget_impact(other_admin, project.id, "1")

    def test_to_dict(self, allocations, viewer, project):
        data = allocations.preview_budget_impact(viewer, project.id, "850").to_dict()
        assert data["projectId"] == str(project.id)
        assert data["impact"]["requiresApproval"] is True
        assert data["impact"]["status"] == "warning"
        assert data["thresholds"] == {"warning": 80, "critical": 95}


# =========================================================================
# Configuration and rendering
# =========================================================================


class TestAutoSubmit:

    @pytest.fixture
    def auto_allocations(self, session, deterministic_clock):
        return CostAllocationService(
            session, deterministic_clock,
            AllocationConfig(auto_submit_on_threshold=True),
        )

    def test_threshold_allocation_goes_straight_to_pending(
        self, auto_allocations, user, project, line_item,
    ):
        created = auto_allocations.create_cost_allocation(user, CostAllocationInput(
            project_id=project.id, line_item_id=line_item.id, labour_cost="900",
        ))
        assert created.cost_allocation.status is ApprovalStatus.PENDING
        assert created.workflow is not None
        assert created.workflow.status is ApprovalStatus.PENDING

    def test_small_allocation_stays_draft(self, auto_allocations, user, project, line_item):
        created = auto_allocations.create_cost_allocation(user, CostAllocationInput(
            project_id=project.id, line_item_id=line_item.id, labour_cost="10",
        ))
        assert created.cost_allocation.status is ApprovalStatus.DRAFT
        assert created.workflow is None

    def test_config_rejects_non_boolean(self):
        with pytest.raises(ValueError):
            AllocationConfig(auto_submit_on_threshold="yes")


class TestToDict:

    def test_created_result(self, make_allocation, user, material):
        created = make_allocation(
            user, labour_cost="200",
            materials=(MaterialAllocationInput(material.id, "5"),),
        )
        data = created.to_dict()

        assert set(data) == {
            "costAllocation", "remainingBudget", "budgetValidation",
            "exceedsBudget", "impact", "workflow",
        }
        allocation = data["costAllocation"]
        assert allocation["status"] == "draft"
        assert allocation["id"] == str(created.cost_allocation.id)
        assert Decimal(allocation["totalCost"]) == Decimal("250")
        assert Decimal(data["remainingBudget"]) == Decimal("1000")
        assert data["exceedsBudget"] is False
        assert data["workflow"] is None
        assert allocation["materialAllocations"][0]["materialId"] == str(material.id)

    def test_transition_outcome(self, allocations, pending_allocation, team_leader):
        outcome = allocations.approve(team_leader, pending_allocation("100"))
        data = outcome.to_dict()
        assert data["costAllocation"]["status"] == "approved"
        assert data["workflow"]["approverId"] == str(team_leader.user_id)
        assert data["alerts"] == []
