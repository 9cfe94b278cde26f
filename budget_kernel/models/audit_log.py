"""
Module: budget_kernel.models.audit_log
Responsibility: ORM persistence for the per-tenant audit log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit records are append-only; no UPDATE or DELETE (ORM listeners).

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE attempt.

Audit relevance:
    AuditLog IS the audit trail.  Every state-changing operation of the
    engine writes exactly one row through AuditorService in the same
    transaction as the change it describes.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, event
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TenantScopedBase, UUIDString
from budget_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from budget_kernel.domain.dtos import AuditLogRecord


class AuditAction(str, Enum):
    """Types of auditable actions.

    Contract: every member is produced by exactly one service operation.
    Adding a new action type requires a matching AuditorService call site.
    """

    # Cost allocation lifecycle
    COST_ALLOCATED = "cost_allocated"
    COST_ALLOCATION_SUBMITTED = "cost_allocation_submitted"
    APPROVAL_WORKFLOW_UPDATED = "approval_workflow_updated"

    # Budget changes
    BUDGET_AMENDED = "budget_amended"
    BUDGET_AMENDMENT_SUBMITTED = "budget_amendment_submitted"
    CHANGE_ORDER_CREATED = "change_order_created"
    CHANGE_ORDER_SUBMITTED = "change_order_submitted"

    # Catalog
    PROJECT_CREATED = "project_created"
    LINE_ITEM_CREATED = "line_item_created"
    MATERIAL_ADDED = "material_added"

    # Alerts
    BUDGET_ALERT_CREATED = "budget_alert_created"
    BUDGET_ALERT_ACKNOWLEDGED = "budget_alert_acknowledged"
    BUDGET_ALERT_RESOLVED = "budget_alert_resolved"


class AuditLog(TenantScopedBase):
    __tablename__ = "audit_logs"

    __table_args__ = (
        Index("idx_audit_logs_entity", "tenant_id", "entity_type", "entity_id"),
        Index("idx_audit_logs_project", "project_id"),
    )

    user_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    project_id: Mapped[UUID | None] = mapped_column(ForeignKey("projects.id"), nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.entity_type}:{self.entity_id}>"

    def to_dto(self) -> AuditLogRecord:
        from budget_kernel.domain.dtos import AuditLogRecord

        return AuditLogRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            user_id=self.user_id,
            action=self.action,
            entity_type=self.entity_type,
            entity_id=self.entity_id,
            project_id=self.project_id,
            amount=self.amount,
            details=dict(self.details or {}),
            created_at=self.occurred_at,
        )


# =============================================================================
# ORM-Level Immutability (Append-Only)
# =============================================================================


@event.listens_for(AuditLog, "before_update")
def prevent_audit_update(mapper, connection, target):
    """Prevent updates to audit log records."""
    raise ImmutabilityViolationError(
        entity_type="AuditLog",
        entity_id=str(target.id),
        reason="Audit log records are append-only -- cannot modify",
    )


@event.listens_for(AuditLog, "before_delete")
def prevent_audit_delete(mapper, connection, target):
    """Prevent deletion of audit log records."""
    raise ImmutabilityViolationError(
        entity_type="AuditLog",
        entity_id=str(target.id),
        reason="Audit log records are append-only -- cannot delete",
    )
