"""
ApprovalWorkflowService -- approval request lifecycle.

Responsibility:
    Opens an ``ApprovalWorkflowModel`` row when an item is submitted and
    resolves it when an approver approves or rejects the item.  The item's
    own status change is the caller's job; this service only keeps the
    approval record and its audit entry.

Invariants enforced:
    - At most one pending approval record per (related_table, record_id).
    - A record is resolved exactly once, from pending, to approved or
      rejected.  Resolving anything else raises InvalidTransitionError.
    - Resolution writes an ``approval_workflow_updated`` audit row.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from budget_kernel.domain.clock import Clock
from budget_kernel.domain.roles import Actor
from budget_kernel.domain.workflow import TERMINAL_APPROVAL_STATUSES, ApprovalStatus
from budget_kernel.exceptions import InvalidTransitionError
from budget_kernel.logging_config import get_logger
from budget_kernel.models.approval import ApprovalWorkflowModel, RelatedTable
from budget_kernel.models.audit_log import AuditAction
from budget_kernel.services.auditor_service import AuditorService
from budget_kernel.services.base import BaseService

logger = get_logger("services.approval")


class ApprovalWorkflowService(BaseService):
    """Manages approval workflow records."""

    def __init__(
        self,
        session: Session,
        auditor: AuditorService,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(session, clock)
        self._auditor = auditor

    def open_request(
        self,
        actor: Actor,
        related_table: RelatedTable,
        record_id: UUID,
    ) -> ApprovalWorkflowModel:
        """Create the pending approval record for a submitted item."""
        existing = self._pending_model(actor.tenant_id, related_table, record_id)
        if existing is not None:
            raise InvalidTransitionError(
                related_table.value,
                str(record_id),
                ApprovalStatus.PENDING.value,
                "submit",
                allowed_from=(ApprovalStatus.DRAFT.value,),
            )

        model = ApprovalWorkflowModel(
            tenant_id=actor.tenant_id,
            related_table=related_table.value,
            record_id=record_id,
            status=ApprovalStatus.PENDING.value,
            requested_by=actor.user_id,
            requested_at=self.clock.now(),
            created_by_id=actor.user_id,
        )
        self.session.add(model)
        self.session.flush()

        logger.info(
            "approval_request_created",
            extra={
                "workflow_id": str(model.id),
                "related_table": related_table.value,
                "record_id": str(record_id),
            },
        )
        return model

    def resolve(
        self,
        actor: Actor,
        related_table: RelatedTable,
        record_id: UUID,
        decision: ApprovalStatus,
        comments: str | None = None,
        *,
        project_id: UUID | None = None,
    ) -> ApprovalWorkflowModel:
        """Resolve the pending approval record for an item.

        Raises:
            InvalidTransitionError: no pending record for the item, or
                ``decision`` is not a terminal status.
        """
        if decision not in TERMINAL_APPROVAL_STATUSES:
            raise InvalidTransitionError(
                "ApprovalWorkflow",
                str(record_id),
                ApprovalStatus.PENDING.value,
                decision.value,
            )

        model = self._pending_model(
            actor.tenant_id, related_table, record_id, for_update=True,
        )
        if model is None:
            raise InvalidTransitionError(
                "ApprovalWorkflow",
                str(record_id),
                "none",
                decision.value,
                allowed_from=(ApprovalStatus.PENDING.value,),
            )

        model.status = decision.value
        model.approver_id = actor.user_id
        model.comments = comments
        model.resolved_at = self.clock.now()
        model.updated_by_id = actor.user_id
        self.session.flush()

        self._auditor.record(
            actor,
            AuditAction.APPROVAL_WORKFLOW_UPDATED,
            entity_type="approval_workflow",
            entity_id=model.id,
            project_id=project_id,
            details={
                "related_table": related_table.value,
                "record_id": record_id,
                "status": decision,
                "comments": comments,
            },
        )

        logger.info(
            "approval_decision_recorded",
            extra={
                "workflow_id": str(model.id),
                "record_id": str(record_id),
                "decision": decision.value,
            },
        )
        return model

    def get_for_record(
        self,
        tenant_id: UUID,
        related_table: RelatedTable,
        record_id: UUID,
    ) -> ApprovalWorkflowModel | None:
        """Most recent approval record for an item, if any."""
        return self.session.execute(
            select(ApprovalWorkflowModel)
            .where(
                ApprovalWorkflowModel.tenant_id == tenant_id,
                ApprovalWorkflowModel.related_table == related_table.value,
                ApprovalWorkflowModel.record_id == record_id,
            )
            .order_by(ApprovalWorkflowModel.requested_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def _pending_model(
        self,
        tenant_id: UUID,
        related_table: RelatedTable,
        record_id: UUID,
        for_update: bool = False,
    ) -> ApprovalWorkflowModel | None:
        stmt = select(ApprovalWorkflowModel).where(
            ApprovalWorkflowModel.tenant_id == tenant_id,
            ApprovalWorkflowModel.related_table == related_table.value,
            ApprovalWorkflowModel.record_id == record_id,
            ApprovalWorkflowModel.status == ApprovalStatus.PENDING.value,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()
