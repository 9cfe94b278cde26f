"""
Budget Change Module Service (``budget_modules.budget_change.service``).

Responsibility
--------------
Budget amendments and change orders: proposing them, taking them through
the approval workflow and, on approval, adding their amount to the
project budget.  Also the budget alert operations (check, list,
acknowledge, resolve) and the project budget history.

Architecture position
---------------------
**Modules layer** -- ``BudgetChangeService`` is the public entry point.
Kernel services flush; this facade commits.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (``commit`` on
  success, ``rollback`` + re-raise on any exception).
* Approval is the only mutation of ``Project.budget`` (by addition,
  exactly once per approved amendment or change order), under a row lock.
* The project budget never goes below zero.
* After every budget change, alerts are re-evaluated: new thresholds
  raise alerts, conditions that no longer hold are auto-resolved.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from budget_kernel.domain.alerts import AlertStatus
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.dtos import (
    BudgetAlertRecord,
    BudgetAmendmentRecord,
    ChangeOrderRecord,
)
from budget_kernel.domain.roles import Actor, Capability, require_capability
from budget_kernel.domain.values import ZERO, to_decimal
from budget_kernel.domain.workflow import ApprovalStatus, Workflow
from budget_kernel.exceptions import OptimisticLockError, ValidationError
from budget_kernel.logging_config import get_logger
from budget_kernel.models.approval import RelatedTable
from budget_kernel.models.audit_log import AuditAction
from budget_kernel.models.budget_change import BudgetAmendment, ChangeOrder
from budget_kernel.models.project import Project
from budget_kernel.selectors.budget_selector import BudgetSelector, ProjectBudgetHistory
from budget_kernel.services.alert_service import BudgetAlertService
from budget_kernel.services.approval_service import ApprovalWorkflowService
from budget_kernel.services.auditor_service import AuditorService
from budget_kernel.services.tenant_guard import load_for_tenant
from budget_modules._helpers import actor_context
from budget_modules.budget_change.config import BudgetChangeConfig
from budget_modules.budget_change.models import BudgetChangeOutcome
from budget_modules.budget_change.workflows import (
    BUDGET_AMENDMENT_WORKFLOW,
    CHANGE_ORDER_WORKFLOW,
)

logger = get_logger("modules.budget_change.service")


@dataclass(frozen=True)
class _ChangeKind:
    """How one kind of budget change is stored, approved and audited."""
    model: type
    amount_field: str
    related_table: RelatedTable
    workflow: Workflow
    submitted_action: AuditAction
    entity_type: str


_AMENDMENT = _ChangeKind(
    model=BudgetAmendment,
    amount_field="amount_added",
    related_table=RelatedTable.BUDGET_AMENDMENTS,
    workflow=BUDGET_AMENDMENT_WORKFLOW,
    submitted_action=AuditAction.BUDGET_AMENDMENT_SUBMITTED,
    entity_type="budget_amendment",
)

_CHANGE_ORDER = _ChangeKind(
    model=ChangeOrder,
    amount_field="cost_impact",
    related_table=RelatedTable.CHANGE_ORDERS,
    workflow=CHANGE_ORDER_WORKFLOW,
    submitted_action=AuditAction.CHANGE_ORDER_SUBMITTED,
    entity_type="change_order",
)


class BudgetChangeService:
    """
    Orchestrates budget amendments, change orders and budget alerts.

    Guarantees
    ----------
    * Session is committed only when the whole operation succeeded.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: BudgetChangeConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or BudgetChangeConfig.with_defaults()

        self._auditor = AuditorService(session, self._clock)
        self._approvals = ApprovalWorkflowService(session, self._auditor, self._clock)
        self._alerts = BudgetAlertService(
            session, self._auditor, self._clock,
            currency_symbol=self._config.currency_symbol,
        )
        self._selector = BudgetSelector(session)

    # =========================================================================
    # Proposals
    # =========================================================================

    def propose_amendment(
        self,
        actor: Actor,
        project_id: UUID,
        amount_added: Decimal | int | str,
        reason: str,
    ) -> BudgetAmendmentRecord:
        """Record a draft budget amendment."""
        with actor_context(actor, project_id):
            try:
                require_capability(actor, Capability.BUDGET_AMENDMENTS)
                errors: list[dict[str, str]] = []
                amount = self._coerce(amount_added, "amount_added", errors)
                if amount is not None and amount <= ZERO:
                    errors.append({
                        "field": "amount_added",
                        "message": "amount_added must be greater than zero",
                    })
                if not (reason or "").strip():
                    errors.append({"field": "reason", "message": "reason is required"})
                if errors:
                    raise ValidationError(errors)

                project = load_for_tenant(self._session, Project, project_id, actor.tenant_id)
                amendment = BudgetAmendment(
                    tenant_id=actor.tenant_id,
                    project_id=project.id,
                    amount_added=amount,
                    reason=reason.strip(),
                    proposed_by=actor.user_id,
                    status=ApprovalStatus.DRAFT.value,
                    created_by_id=actor.user_id,
                )
                self._session.add(amendment)
                self._session.flush()

                self._auditor.record(
                    actor,
                    AuditAction.BUDGET_AMENDED,
                    entity_type=_AMENDMENT.entity_type,
                    entity_id=amendment.id,
                    project_id=project.id,
                    amount=amount,
                    details={"reason": amendment.reason},
                )
                logger.info("budget_amendment_proposed", extra={
                    "amendment_id": str(amendment.id),
                    "project_id": str(project.id),
                    "amount_added": str(amount),
                })

                record = amendment.to_dto()
                self._session.commit()
                return record
            except Exception:
                self._session.rollback()
                raise

    def propose_change_order(
        self,
        actor: Actor,
        project_id: UUID,
        description: str,
        cost_impact: Decimal | int | str,
    ) -> ChangeOrderRecord:
        """Record a draft change order."""
        with actor_context(actor, project_id):
            try:
                require_capability(actor, Capability.CHANGE_ORDERS)
                errors: list[dict[str, str]] = []
                impact = self._coerce(cost_impact, "cost_impact", errors)
                if impact is not None:
                    if impact == ZERO:
                        errors.append({
                            "field": "cost_impact",
                            "message": "cost_impact must not be zero",
                        })
                    elif impact < ZERO and not self._config.allow_budget_reduction:
                        errors.append({
                            "field": "cost_impact",
                            "message": "budget reductions are not allowed",
                        })
                if not (description or "").strip():
                    errors.append({"field": "description", "message": "description is required"})
                if errors:
                    raise ValidationError(errors)

                project = load_for_tenant(self._session, Project, project_id, actor.tenant_id)
                change_order = ChangeOrder(
                    tenant_id=actor.tenant_id,
                    project_id=project.id,
                    description=description.strip(),
                    cost_impact=impact,
                    proposed_by=actor.user_id,
                    status=ApprovalStatus.DRAFT.value,
                    created_by_id=actor.user_id,
                )
                self._session.add(change_order)
                self._session.flush()

                self._auditor.record(
                    actor,
                    AuditAction.CHANGE_ORDER_CREATED,
                    entity_type=_CHANGE_ORDER.entity_type,
                    entity_id=change_order.id,
                    project_id=project.id,
                    amount=impact,
                    details={"description": change_order.description},
                )
                logger.info("change_order_proposed", extra={
                    "change_order_id": str(change_order.id),
                    "project_id": str(project.id),
                    "cost_impact": str(impact),
                })

                record = change_order.to_dto()
                self._session.commit()
                return record
            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # Transitions
    # =========================================================================

    def submit_amendment(self, actor: Actor, amendment_id: UUID) -> BudgetChangeOutcome:
        return self._transition(actor, _AMENDMENT, amendment_id, "submit")

    def approve_amendment(
        self, actor: Actor, amendment_id: UUID, comments: str | None = None,
    ) -> BudgetChangeOutcome:
        return self._transition(actor, _AMENDMENT, amendment_id, "approve", comments)

    def reject_amendment(
        self, actor: Actor, amendment_id: UUID, comments: str,
    ) -> BudgetChangeOutcome:
        return self._transition(actor, _AMENDMENT, amendment_id, "reject", comments)

    def submit_change_order(self, actor: Actor, change_order_id: UUID) -> BudgetChangeOutcome:
        return self._transition(actor, _CHANGE_ORDER, change_order_id, "submit")

    def approve_change_order(
        self, actor: Actor, change_order_id: UUID, comments: str | None = None,
    ) -> BudgetChangeOutcome:
        return self._transition(actor, _CHANGE_ORDER, change_order_id, "approve", comments)

    def reject_change_order(
        self, actor: Actor, change_order_id: UUID, comments: str,
    ) -> BudgetChangeOutcome:
        return self._transition(actor, _CHANGE_ORDER, change_order_id, "reject", comments)

    # =========================================================================
    # Alerts
    # =========================================================================

    def check_and_create_alerts(self, actor: Actor, project_id: UUID) -> list[BudgetAlertRecord]:
        """Re-evaluate a project's alerts outside any budget change."""
        with actor_context(actor, project_id):
            try:
                require_capability(actor, Capability.ALERT_MANAGEMENT)
                project = load_for_tenant(
                    self._session, Project, project_id, actor.tenant_id, for_update=True,
                )
                created = [a.to_dto() for a in self._alerts.check_and_create_alerts(actor, project)]
                self._session.commit()
                return created
            except Exception:
                self._session.rollback()
                raise

    def list_alerts(
        self,
        actor: Actor,
        status: AlertStatus | None = None,
        project_id: UUID | None = None,
    ) -> list[BudgetAlertRecord]:
        return self._selector.alerts(actor, status=status, project_id=project_id)

    def acknowledge_alert(self, actor: Actor, alert_id: UUID) -> BudgetAlertRecord:
        with actor_context(actor, alert_id):
            try:
                require_capability(actor, Capability.ALERT_MANAGEMENT)
                record = self._alerts.acknowledge(actor, alert_id).to_dto()
                self._session.commit()
                return record
            except Exception:
                self._session.rollback()
                raise

    def resolve_alert(self, actor: Actor, alert_id: UUID) -> BudgetAlertRecord:
        with actor_context(actor, alert_id):
            try:
                require_capability(actor, Capability.ALERT_MANAGEMENT)
                record = self._alerts.resolve(actor, alert_id).to_dto()
                self._session.commit()
                return record
            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # History
    # =========================================================================

    def project_budget_history(self, actor: Actor, project_id: UUID) -> ProjectBudgetHistory:
        return self._selector.project_budget_history(actor, project_id)

    # =========================================================================
    # Internal
    # =========================================================================

    @staticmethod
    def _coerce(value, field: str, errors: list[dict[str, str]]) -> Decimal | None:
        try:
            return to_decimal(value, field)
        except (TypeError, ValueError) as exc:
            errors.append({"field": field, "message": str(exc)})
            return None

    def _transition(
        self,
        actor: Actor,
        kind: _ChangeKind,
        record_id: UUID,
        action: str,
        comments: str | None = None,
    ) -> BudgetChangeOutcome:
        entity_name = kind.model.__name__
        with actor_context(actor, record_id):
            try:
                require_capability(actor, kind.workflow.capability_for(action))
                row = load_for_tenant(
                    self._session, kind.model, record_id, actor.tenant_id, for_update=True,
                )
                transition = kind.workflow.resolve(row.status, action, entity_name, str(record_id))
                if transition.requires_comment and not (comments or "").strip():
                    raise ValidationError.single("comments", "Comments are required for rejection")

                project = load_for_tenant(
                    self._session, Project, row.project_id, actor.tenant_id,
                    for_update=action == "approve",
                )

                row.status = transition.to_state
                row.updated_by_id = actor.user_id
                alerts = []

                if action == "submit":
                    self._session.flush()
                    workflow = self._approvals.open_request(actor, kind.related_table, row.id)
                    self._auditor.record(
                        actor,
                        kind.submitted_action,
                        entity_type=kind.entity_type,
                        entity_id=row.id,
                        project_id=project.id,
                        amount=getattr(row, kind.amount_field),
                        details={"workflow_id": workflow.id},
                    )
                else:
                    decision = ApprovalStatus(transition.to_state)
                    if decision is ApprovalStatus.APPROVED:
                        delta = getattr(row, kind.amount_field)
                        new_budget = project.budget + delta
                        if new_budget < ZERO:
                            raise ValidationError.single(
                                kind.amount_field,
                                "approving would reduce the project budget below zero",
                            )
                        previous_budget = project.budget
                        project.budget = new_budget
                        project.updated_by_id = actor.user_id
                        row.approved_by = actor.user_id
                        row.approved_at = self._clock.now()
                        logger.info("project_budget_changed", extra={
                            "project_id": str(project.id),
                            "budget_before": str(previous_budget),
                            "budget_after": str(new_budget),
                            "source": kind.entity_type,
                        })
                    self._session.flush()
                    workflow = self._approvals.resolve(
                        actor,
                        kind.related_table,
                        row.id,
                        decision,
                        (comments or "").strip() or None,
                        project_id=project.id,
                    )
                    if decision is ApprovalStatus.APPROVED:
                        alerts = self._alerts.check_and_create_alerts(actor, project)

                logger.info("budget_change_transitioned", extra={
                    "record_type": kind.entity_type,
                    "record_id": str(row.id),
                    "transition": action,
                    "new_status": row.status,
                })

                outcome = BudgetChangeOutcome(
                    record=row.to_dto(),
                    workflow=workflow.to_dto(),
                    project_budget=project.budget,
                    alerts=tuple(a.to_dto() for a in alerts),
                )
                self._session.commit()
                return outcome
            except StaleDataError as exc:
                self._session.rollback()
                logger.warning("optimistic_lock_conflict", extra={"transition": action})
                raise OptimisticLockError(entity_name, str(record_id)) from exc
            except Exception:
                self._session.rollback()
                raise
