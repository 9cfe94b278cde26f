"""
Module: budget_kernel.models.approval
Responsibility: ORM persistence for approval workflow records, one per
    submitted cost allocation, budget amendment or change order.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - status is limited by a check constraint; the service layer enforces
      the transition rules.
    - A record in a terminal status (approved, rejected) cannot change
      status again and cannot be deleted (ORM before_update and
      before_delete listeners).
    - At most one pending record per (related_table, record_id).

Failure modes:
    - IntegrityError on a second pending record for the same item.
    - ImmutabilityViolationError on re-resolving or deleting a terminal record.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    String,
    Text,
    event,
    inspect,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TenantScopedBase, UUIDString
from budget_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from budget_kernel.domain.dtos import ApprovalWorkflowRecord


class RelatedTable(str, Enum):
    """Tables whose rows go through the approval workflow."""

    COST_ALLOCATIONS = "cost_allocations"
    BUDGET_AMENDMENTS = "budget_amendments"
    CHANGE_ORDERS = "change_orders"


class ApprovalWorkflowModel(TenantScopedBase):
    """Persistent approval request and its resolution.

    Contract:
        Created in ``pending`` when an item is submitted; resolved exactly
        once to ``approved`` or ``rejected`` by an approver.
    """

    __tablename__ = "approval_workflows"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_approval_workflows_valid_status",
        ),
        CheckConstraint(
            "related_table IN ('cost_allocations', 'budget_amendments', 'change_orders')",
            name="ck_approval_workflows_related_table",
        ),
        Index(
            "ix_approval_workflows_pending_unique",
            "related_table", "record_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index(
            "ix_approval_workflows_tenant_status",
            "tenant_id", "status",
        ),
    )

    related_table: Mapped[str] = mapped_column(String(50), nullable=False)
    record_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    requested_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    approver_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<ApprovalWorkflow {self.id} "
            f"{self.related_table}/{self.record_id} status={self.status}>"
        )

    def to_dto(self) -> ApprovalWorkflowRecord:
        """Convert ORM model to frozen domain DTO."""
        from budget_kernel.domain.dtos import ApprovalWorkflowRecord
        from budget_kernel.domain.workflow import ApprovalStatus

        return ApprovalWorkflowRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            related_table=self.related_table,
            record_id=self.record_id,
            status=ApprovalStatus(self.status),
            requested_by=self.requested_by,
            approver_id=self.approver_id,
            comments=self.comments,
            requested_at=self.requested_at,
            resolved_at=self.resolved_at,
        )


@event.listens_for(ApprovalWorkflowModel, "before_update")
def prevent_terminal_status_change(mapper, connection, target):
    """Reject a status change on a workflow record that is already resolved."""
    history = inspect(target).attrs.status.history
    if not history.deleted:
        return
    previous = history.deleted[0]
    if previous in ("approved", "rejected"):
        raise ImmutabilityViolationError(
            entity_type="ApprovalWorkflow",
            entity_id=str(target.id),
            reason=f"Workflow already {previous} -- cannot change status",
        )


@event.listens_for(ApprovalWorkflowModel, "before_delete")
def prevent_terminal_delete(mapper, connection, target):
    """Reject deletion of a workflow record that is already resolved."""
    if target.status in ("approved", "rejected"):
        raise ImmutabilityViolationError(
            entity_type="ApprovalWorkflow",
            entity_id=str(target.id),
            reason=f"Workflow already {target.status} -- cannot delete",
        )
