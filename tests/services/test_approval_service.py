"""
Tests for ApprovalWorkflowService -- approval record lifecycle.

Covers:
- open_request(): pending record, duplicate pending request
- resolve(): approve/reject, audit row, no pending record, non-terminal
  decision
- Terminal records cannot change status again or be deleted (ORM listeners)
- get_for_record(): latest record for an item
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from budget_kernel.domain.workflow import ApprovalStatus
from budget_kernel.exceptions import ImmutabilityViolationError, InvalidTransitionError
from budget_kernel.models.approval import ApprovalWorkflowModel, RelatedTable
from budget_kernel.models.audit_log import AuditLog
from budget_kernel.services.approval_service import ApprovalWorkflowService


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def approval_service(session, auditor_service, deterministic_clock):
    """Provide an ApprovalWorkflowService wired to the test session."""
    return ApprovalWorkflowService(session, auditor_service, deterministic_clock)


@pytest.fixture
def record_id():
    return uuid4()


# =========================================================================
# open_request
# =========================================================================


class TestOpenRequest:

    def test_creates_pending_record(self, approval_service, user, record_id, deterministic_clock):
        model = approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)

        assert model.status == "pending"
        assert model.tenant_id == user.tenant_id
        assert model.requested_by == user.user_id
        assert model.record_id == record_id
        assert model.requested_at == deterministic_clock.now()

    def test_duplicate_pending_refused(self, approval_service, user, record_id):
        approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)
        with pytest.raises(InvalidTransitionError):
            approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)

    def test_same_id_in_other_table_is_independent(self, approval_service, user, record_id):
        approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)
        other = approval_service.open_request(user, RelatedTable.CHANGE_ORDERS, record_id)
        assert other.related_table == "change_orders"


# =========================================================================
# resolve
# =========================================================================


class TestResolve:

    def test_approve(self, session, approval_service, user, team_leader, record_id):
        approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)
        model = approval_service.resolve(
            team_leader, RelatedTable.COST_ALLOCATIONS, record_id,
            ApprovalStatus.APPROVED, "looks right",
        )

        assert model.status == "approved"
        assert model.approver_id == team_leader.user_id
        assert model.comments == "looks right"
        assert model.resolved_at is not None

    def test_reject_writes_audit_row(self, session, approval_service, user, team_leader, record_id):
        opened = approval_service.open_request(user, RelatedTable.BUDGET_AMENDMENTS, record_id)
        approval_service.resolve(
            team_leader, RelatedTable.BUDGET_AMENDMENTS, record_id,
            ApprovalStatus.REJECTED, "not needed",
        )

        rows = session.execute(
            select(AuditLog).where(AuditLog.entity_id == str(opened.id))
        ).scalars().all()
        assert len(rows) == 1
        assert rows[0].action == "approval_workflow_updated"
        assert rows[0].details["status"] == "rejected"
        assert rows[0].details["record_id"] == str(record_id)
        assert rows[0].details["comments"] == "not needed"

    def test_no_pending_record(self, approval_service, team_leader, record_id):
        with pytest.raises(InvalidTransitionError) as exc_info:
            approval_service.resolve(
                team_leader, RelatedTable.COST_ALLOCATIONS, record_id, ApprovalStatus.APPROVED,
            )
        assert exc_info.value.allowed_from == ("pending",)

    def test_second_resolution_refused(self, approval_service, user, team_leader, record_id):
        approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)
        approval_service.resolve(
            team_leader, RelatedTable.COST_ALLOCATIONS, record_id, ApprovalStatus.APPROVED,
        )
        with pytest.raises(InvalidTransitionError):
            approval_service.resolve(
                team_leader, RelatedTable.COST_ALLOCATIONS, record_id, ApprovalStatus.REJECTED,
            )

    @pytest.mark.parametrize("decision", [ApprovalStatus.DRAFT, ApprovalStatus.PENDING])
    def test_non_terminal_decision_refused(self, approval_service, user, team_leader,
                                           record_id, decision):
        approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)
        with pytest.raises(InvalidTransitionError):
            approval_service.resolve(
                team_leader, RelatedTable.COST_ALLOCATIONS, record_id, decision,
            )

    def test_other_tenant_cannot_resolve(self, approval_service, user, other_admin, record_id):
        approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)
        with pytest.raises(InvalidTransitionError):
            approval_service.resolve(
                other_admin, RelatedTable.COST_ALLOCATIONS, record_id, ApprovalStatus.APPROVED,
            )


class TestTerminalImmutability:

    def test_resolved_record_cannot_change_status(
        self, session, approval_service, user, team_leader, record_id,
    ):
        approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)
        model = approval_service.resolve(
            team_leader, RelatedTable.COST_ALLOCATIONS, record_id, ApprovalStatus.APPROVED,
        )
        session.commit()

        model.status = "rejected"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        stored = session.execute(
            select(ApprovalWorkflowModel).where(ApprovalWorkflowModel.id == model.id)
        ).scalar_one()
        assert stored.status == "approved"

    def test_resolved_record_cannot_be_deleted(
        self, session, approval_service, user, team_leader, record_id,
    ):
        approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)
        model = approval_service.resolve(
            team_leader, RelatedTable.COST_ALLOCATIONS, record_id, ApprovalStatus.REJECTED,
            comments="Over scope",
        )
        session.commit()

        session.delete(model)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

        assert session.execute(
            select(ApprovalWorkflowModel).where(ApprovalWorkflowModel.id == model.id)
        ).scalar_one_or_none() is not None

    def test_pending_record_can_be_deleted(self, session, approval_service, user, record_id):
        model = approval_service.open_request(user, RelatedTable.COST_ALLOCATIONS, record_id)
        session.flush()

        session.delete(model)
        session.flush()

        assert approval_service.get_for_record(
            user.tenant_id, RelatedTable.COST_ALLOCATIONS, record_id,
        ) is None


class TestGetForRecord:

    def test_returns_record(self, approval_service, user, record_id):
        opened = approval_service.open_request(user, RelatedTable.CHANGE_ORDERS, record_id)
        found = approval_service.get_for_record(
            user.tenant_id, RelatedTable.CHANGE_ORDERS, record_id,
        )
        assert found.id == opened.id

    def test_none_for_unknown(self, approval_service, user):
        assert approval_service.get_for_record(
            user.tenant_id, RelatedTable.CHANGE_ORDERS, uuid4(),
        ) is None
