"""
Module: budget_kernel.selectors.budget_selector
Responsibility: Read-only budget queries: per-project budget summary,
    pending approvals, allocations of a project, alerts, the audit trail
    and a project's budget history.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every method requires VIEW_BUDGETS and filters by actor.tenant_id.
    - total_spent in the summary is Project.consumed_amount (the cached
      running total), never a re-sum of allocations.
    - Project ids supplied by the caller go through load_for_tenant, so a
      foreign project raises ResourceAccessError instead of returning [].
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from budget_kernel.domain.alerts import AlertStatus
from budget_kernel.domain.dtos import (
    ApprovalWorkflowRecord,
    AuditLogRecord,
    BudgetAlertRecord,
    BudgetAmendmentRecord,
    ChangeOrderRecord,
    CostAllocationRecord,
)
from budget_kernel.domain.roles import Actor, Capability, require_capability
from budget_kernel.domain.values import ZERO
from budget_kernel.domain.variance import BudgetStatus, calc_budget_variance
from budget_kernel.domain.workflow import ApprovalStatus
from budget_kernel.models.approval import ApprovalWorkflowModel, RelatedTable
from budget_kernel.models.audit_log import AuditLog
from budget_kernel.models.budget_alert import BudgetAlert
from budget_kernel.models.budget_change import BudgetAmendment, ChangeOrder
from budget_kernel.models.cost_allocation import CostAllocation
from budget_kernel.models.project import Project
from budget_kernel.selectors.base import BaseSelector
from budget_kernel.services.tenant_guard import load_for_tenant


@dataclass(frozen=True)
class ProjectBudgetSummary:
    """One row of the tenant budget summary."""

    project_id: UUID
    title: str
    total_budget: Decimal
    total_spent: Decimal
    spent_percentage: Decimal
    remaining_budget: Decimal
    status: BudgetStatus


@dataclass(frozen=True)
class ProjectBudgetHistory:
    """How a project's current budget came about."""

    project_id: UUID
    original_budget: Decimal
    total_amendments: Decimal
    total_change_orders: Decimal
    current_budget: Decimal
    amendments: tuple[BudgetAmendmentRecord, ...]
    change_orders: tuple[ChangeOrderRecord, ...]


class BudgetSelector(BaseSelector):
    """Selector for tenant budget read models."""

    def budget_summary(self, actor: Actor) -> list[ProjectBudgetSummary]:
        """Variance figures for every active project of the tenant."""
        require_capability(actor, Capability.VIEW_BUDGETS)
        projects = self.session.execute(
            select(Project)
            .where(Project.tenant_id == actor.tenant_id, Project.status == "active")
            .order_by(Project.title)
        ).scalars().all()

        rows = []
        for project in projects:
            variance = calc_budget_variance(project.budget, project.consumed_amount)
            rows.append(ProjectBudgetSummary(
                project_id=project.id,
                title=project.title,
                total_budget=project.budget,
                total_spent=project.consumed_amount,
                spent_percentage=variance.spent_percentage,
                remaining_budget=variance.remaining_budget,
                status=variance.status,
            ))
        return rows

    def pending_approvals(
        self,
        actor: Actor,
        related_table: RelatedTable | None = None,
    ) -> list[ApprovalWorkflowRecord]:
        require_capability(actor, Capability.VIEW_BUDGETS)
        stmt = select(ApprovalWorkflowModel).where(
            ApprovalWorkflowModel.tenant_id == actor.tenant_id,
            ApprovalWorkflowModel.status == ApprovalStatus.PENDING.value,
        )
        if related_table is not None:
            stmt = stmt.where(ApprovalWorkflowModel.related_table == related_table.value)
        stmt = stmt.order_by(ApprovalWorkflowModel.requested_at)
        return [m.to_dto() for m in self.session.execute(stmt).scalars().all()]

    def cost_allocations_for_project(
        self,
        actor: Actor,
        project_id: UUID,
    ) -> list[CostAllocationRecord]:
        """Allocations of a project with their material rows."""
        require_capability(actor, Capability.VIEW_BUDGETS)
        load_for_tenant(self.session, Project, project_id, actor.tenant_id)
        allocations = self.session.execute(
            select(CostAllocation)
            .where(
                CostAllocation.tenant_id == actor.tenant_id,
                CostAllocation.project_id == project_id,
            )
            .order_by(CostAllocation.created_at)
        ).scalars().all()
        return [a.to_dto() for a in allocations]

    def cost_allocation(self, actor: Actor, allocation_id: UUID) -> CostAllocationRecord:
        require_capability(actor, Capability.VIEW_BUDGETS)
        return load_for_tenant(
            self.session, CostAllocation, allocation_id, actor.tenant_id,
        ).to_dto()

    def alerts(
        self,
        actor: Actor,
        status: AlertStatus | None = None,
        project_id: UUID | None = None,
    ) -> list[BudgetAlertRecord]:
        require_capability(actor, Capability.VIEW_BUDGETS)
        stmt = select(BudgetAlert).where(BudgetAlert.tenant_id == actor.tenant_id)
        if status is not None:
            stmt = stmt.where(BudgetAlert.status == status.value)
        if project_id is not None:
            stmt = stmt.where(BudgetAlert.project_id == project_id)
        stmt = stmt.order_by(BudgetAlert.created_at.desc())
        return [a.to_dto() for a in self.session.execute(stmt).scalars().all()]

    def audit_trail(
        self,
        actor: Actor,
        entity_type: str | None = None,
        entity_id: UUID | str | None = None,
        project_id: UUID | None = None,
    ) -> list[AuditLogRecord]:
        """Audit rows of the tenant, oldest first."""
        require_capability(actor, Capability.VIEW_BUDGETS)
        stmt = select(AuditLog).where(AuditLog.tenant_id == actor.tenant_id)
        if entity_type is not None:
            stmt = stmt.where(AuditLog.entity_type == entity_type)
        if entity_id is not None:
            stmt = stmt.where(AuditLog.entity_id == str(entity_id))
        if project_id is not None:
            stmt = stmt.where(AuditLog.project_id == project_id)
        stmt = stmt.order_by(AuditLog.occurred_at, AuditLog.created_at)
        return [e.to_dto() for e in self.session.execute(stmt).scalars().all()]

    def project_budget_history(self, actor: Actor, project_id: UUID) -> ProjectBudgetHistory:
        """Original budget plus approved amendments and change orders.

        The original budget is derived: current budget minus everything
        approved since creation.
        """
        require_capability(actor, Capability.VIEW_BUDGETS)
        project = load_for_tenant(self.session, Project, project_id, actor.tenant_id)

        amendments = self.session.execute(
            select(BudgetAmendment)
            .where(
                BudgetAmendment.tenant_id == actor.tenant_id,
                BudgetAmendment.project_id == project_id,
            )
            .order_by(BudgetAmendment.created_at)
        ).scalars().all()
        change_orders = self.session.execute(
            select(ChangeOrder)
            .where(
                ChangeOrder.tenant_id == actor.tenant_id,
                ChangeOrder.project_id == project_id,
            )
            .order_by(ChangeOrder.created_at)
        ).scalars().all()

        approved = ApprovalStatus.APPROVED.value
        total_amendments = sum(
            (a.amount_added for a in amendments if a.status == approved), ZERO,
        )
        total_change_orders = sum(
            (c.cost_impact for c in change_orders if c.status == approved), ZERO,
        )

        return ProjectBudgetHistory(
            project_id=project.id,
            original_budget=project.budget - total_amendments - total_change_orders,
            total_amendments=total_amendments,
            total_change_orders=total_change_orders,
            current_budget=project.budget,
            amendments=tuple(a.to_dto() for a in amendments),
            change_orders=tuple(c.to_dto() for c in change_orders),
        )
