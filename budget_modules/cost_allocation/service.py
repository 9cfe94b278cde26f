"""
Cost Allocation Module Service (``budget_modules.cost_allocation.service``).

Responsibility
--------------
Records cost allocations against project line items and moves them
through draft -> pending -> approved|rejected.  Approval is the one place
a project's consumed amount changes.

Architecture position
---------------------
**Modules layer** -- ``CostAllocationService`` is the sole public entry
point for cost allocation operations.  Kernel services (auditor,
approval workflow, alerts) flush; this facade commits.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (``commit`` on
  success, ``rollback`` + re-raise on any exception).
* Only ``draft`` allocations are submitted and only ``pending`` ones are
  approved or rejected; anything else raises ``InvalidTransitionError``.
* Approval locks the allocation and the project row, then adds
  ``total_cost`` to ``consumed_amount`` exactly once.  A concurrent
  stale write surfaces as ``OptimisticLockError``.
* Budget impact never raises for "exceeds budget"; it is reported.

Failure modes
-------------
* ``ValidationError`` -- bad input (field-level list).
* ``RoleNotPermittedError`` / ``ResourceAccessError`` -- wrong role,
  missing row or another tenant's row.
* ``InvalidTransitionError`` -- action not allowed from current status.
* ``OptimisticLockError`` -- concurrent modification; safe to retry.

Audit relevance
---------------
Every state change writes an audit row in the same transaction:
``cost_allocated``, ``cost_allocation_submitted``,
``approval_workflow_updated`` and any ``budget_alert_*`` rows.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.costing import (
    PricedQuantity,
    initial_budget_validation,
    material_total,
    remaining_budget,
    total_cost,
)
from budget_kernel.domain.roles import Actor, Capability, require_capability
from budget_kernel.domain.values import ZERO, to_decimal
from budget_kernel.domain.variance import budget_alert_message, calc_budget_impact
from budget_kernel.domain.workflow import ApprovalStatus
from budget_kernel.exceptions import OptimisticLockError, ValidationError
from budget_kernel.logging_config import get_logger
from budget_kernel.models.approval import RelatedTable
from budget_kernel.models.audit_log import AuditAction
from budget_kernel.models.budget_change import ChangeOrder
from budget_kernel.models.catalog import LineItem, Material
from budget_kernel.models.cost_allocation import CostAllocation, MaterialAllocation
from budget_kernel.models.project import Project
from budget_kernel.services.alert_service import BudgetAlertService
from budget_kernel.services.approval_service import ApprovalWorkflowService
from budget_kernel.services.auditor_service import AuditorService
from budget_kernel.services.tenant_guard import load_for_tenant
from budget_modules._helpers import actor_context
from budget_modules.cost_allocation.config import AllocationConfig
from budget_modules.cost_allocation.models import (
    BudgetImpactPreview,
    CostAllocationCreated,
    CostAllocationInput,
    TransitionOutcome,
)
from budget_modules.cost_allocation.workflows import COST_ALLOCATION_WORKFLOW

logger = get_logger("modules.cost_allocation.service")

_ENTITY = "CostAllocation"


def _validated_amounts(data: CostAllocationInput) -> tuple[Decimal, Decimal, Decimal | None, list]:
    """Coerce and check the numeric input; collect every field error."""
    errors: list[dict[str, str]] = []

    def coerce(value, field: str) -> Decimal | None:
        try:
            return to_decimal(value, field)
        except (TypeError, ValueError) as exc:
            errors.append({"field": field, "message": str(exc)})
            return None

    labour = coerce(data.labour_cost, "labour_cost")
    if labour is not None and labour < ZERO:
        errors.append({"field": "labour_cost", "message": "labour_cost must not be negative"})

    quantity = coerce(data.quantity, "quantity")
    if quantity is not None and quantity <= ZERO:
        errors.append({"field": "quantity", "message": "quantity must be greater than zero"})

    unit_cost = None
    if data.unit_cost is not None:
        unit_cost = coerce(data.unit_cost, "unit_cost")
        if unit_cost is not None and unit_cost < ZERO:
            errors.append({"field": "unit_cost", "message": "unit_cost must not be negative"})

    rows = []
    for i, row in enumerate(data.material_allocations):
        prefix = f"material_allocations[{i}]"
        row_qty = coerce(row.quantity, f"{prefix}.quantity")
        if row_qty is not None and row_qty <= ZERO:
            errors.append({
                "field": f"{prefix}.quantity",
                "message": "quantity must be greater than zero",
            })
        row_price = None
        if row.unit_price is not None:
            row_price = coerce(row.unit_price, f"{prefix}.unit_price")
            if row_price is not None and row_price < ZERO:
                errors.append({
                    "field": f"{prefix}.unit_price",
                    "message": "unit_price must not be negative",
                })
        rows.append((row.material_id, row_qty, row_price))

    if labour is not None and labour <= ZERO and not data.material_allocations:
        errors.append({
            "field": "labour_cost",
            "message": "Either labour cost or at least one material is required",
        })

    if errors:
        raise ValidationError(errors)
    return labour, quantity, unit_cost, rows


class CostAllocationService:
    """
    Orchestrates cost allocation recording and approval.

    Contract
    --------
    * Every public method receives an explicit ``Actor``; nothing is read
      from ambient state.
    * Results are frozen DTOs; no ORM instance leaves the facade.

    Guarantees
    ----------
    * Session is committed only when the whole operation succeeded.
    * Clock is injectable for deterministic testing.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: AllocationConfig | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or AllocationConfig.with_defaults()

        self._auditor = AuditorService(session, self._clock)
        self._approvals = ApprovalWorkflowService(session, self._auditor, self._clock)
        self._alerts = BudgetAlertService(
            session, self._auditor, self._clock,
            currency_symbol=self._config.currency_symbol,
        )

    # =========================================================================
    # Creation
    # =========================================================================

    def create_cost_allocation(
        self,
        actor: Actor,
        data: CostAllocationInput,
    ) -> CostAllocationCreated:
        """Record a new allocation in ``draft`` and report its budget impact."""
        with actor_context(actor, data.project_id):
            try:
                require_capability(actor, Capability.COST_ENTRY)
                labour, quantity, unit_cost, rows = _validated_amounts(data)

                project = load_for_tenant(
                    self._session, Project, data.project_id, actor.tenant_id,
                )
                load_for_tenant(self._session, LineItem, data.line_item_id, actor.tenant_id)
                if data.change_order_id is not None:
                    change_order = load_for_tenant(
                        self._session, ChangeOrder, data.change_order_id, actor.tenant_id,
                    )
                    if change_order.project_id != project.id:
                        raise ValidationError.single(
                            "change_order_id", "change order belongs to a different project",
                        )

                priced_rows = []
                for material_id, row_qty, row_price in rows:
                    material = load_for_tenant(
                        self._session, Material, material_id, actor.tenant_id,
                    )
                    price = row_price if row_price is not None else material.current_unit_price
                    priced_rows.append((material_id, PricedQuantity(price, row_qty)))

                materials_sum = material_total(row for _, row in priced_rows)
                total = total_cost(PricedQuantity(labour, Decimal("1")), materials_sum)
                remaining = remaining_budget(project.budget, project.consumed_amount)
                validation = initial_budget_validation(total, remaining)
                impact = calc_budget_impact(project.consumed_amount, total, project.budget)

                allocation = CostAllocation(
                    tenant_id=actor.tenant_id,
                    project_id=project.id,
                    line_item_id=data.line_item_id,
                    change_order_id=data.change_order_id,
                    labour_cost=labour,
                    material_cost=materials_sum,
                    quantity=quantity,
                    unit_cost=unit_cost,
                    total_cost=total,
                    status=ApprovalStatus.DRAFT.value,
                    requires_approval=impact.requires_approval,
                    entered_by=actor.user_id,
                    date_incurred=data.date_incurred or self._clock.now(),
                    created_by_id=actor.user_id,
                )
                for material_id, row in priced_rows:
                    allocation.material_allocations.append(MaterialAllocation(
                        tenant_id=actor.tenant_id,
                        material_id=material_id,
                        quantity=row.quantity,
                        unit_price=row.unit_price,
                        total=row.total,
                        created_by_id=actor.user_id,
                    ))
                self._session.add(allocation)
                self._session.flush()

                self._auditor.record(
                    actor,
                    AuditAction.COST_ALLOCATED,
                    entity_type="cost_allocation",
                    entity_id=allocation.id,
                    project_id=project.id,
                    amount=total,
                    details={
                        "labour_cost": labour,
                        "material_cost": materials_sum,
                        "material_rows": len(priced_rows),
                        "requires_approval": impact.requires_approval,
                        "exceeds_budget": validation.exceeds_budget,
                    },
                )

                logger.info("cost_allocation_created", extra={
                    "cost_allocation_id": str(allocation.id),
                    "project_id": str(project.id),
                    "total_cost": str(total),
                    "new_spent_percentage": str(impact.new_spent_percentage),
                    "requires_approval": impact.requires_approval,
                })

                workflow = None
                if self._config.auto_submit_on_threshold and impact.requires_approval:
                    workflow = self._submit(actor, allocation).to_dto()

                result = CostAllocationCreated(
                    cost_allocation=allocation.to_dto(),
                    remaining_budget=remaining,
                    budget_validation=validation,
                    impact=impact,
                    workflow=workflow,
                )
                self._session.commit()
                return result
            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # Transitions
    # =========================================================================

    def submit(self, actor: Actor, allocation_id: UUID) -> TransitionOutcome:
        """draft -> pending; opens the approval workflow record."""
        with actor_context(actor, allocation_id):
            try:
                require_capability(actor, COST_ALLOCATION_WORKFLOW.capability_for("submit"))
                allocation = load_for_tenant(
                    self._session, CostAllocation, allocation_id, actor.tenant_id,
                    for_update=True,
                )
                workflow = self._submit(actor, allocation)
                outcome = TransitionOutcome(
                    cost_allocation=allocation.to_dto(),
                    workflow=workflow.to_dto(),
                )
                self._session.commit()
                return outcome
            except StaleDataError as exc:
                self._session.rollback()
                logger.warning("optimistic_lock_conflict", extra={"action": "submit"})
                raise OptimisticLockError(_ENTITY, str(allocation_id)) from exc
            except Exception:
                self._session.rollback()
                raise

    def approve(
        self,
        actor: Actor,
        allocation_id: UUID,
        comments: str | None = None,
    ) -> TransitionOutcome:
        """pending -> approved; adds total_cost to the project's consumed amount."""
        with actor_context(actor, allocation_id):
            try:
                require_capability(actor, COST_ALLOCATION_WORKFLOW.capability_for("approve"))
                allocation = load_for_tenant(
                    self._session, CostAllocation, allocation_id, actor.tenant_id,
                    for_update=True,
                )
                transition = COST_ALLOCATION_WORKFLOW.resolve(
                    allocation.status, "approve", _ENTITY, str(allocation_id),
                )
                project = load_for_tenant(
                    self._session, Project, allocation.project_id, actor.tenant_id,
                    for_update=True,
                )

                previous_consumed = project.consumed_amount
                project.consumed_amount = previous_consumed + allocation.total_cost
                project.updated_by_id = actor.user_id
                allocation.status = transition.to_state
                allocation.updated_by_id = actor.user_id
                self._session.flush()

                workflow = self._approvals.resolve(
                    actor,
                    RelatedTable.COST_ALLOCATIONS,
                    allocation.id,
                    ApprovalStatus.APPROVED,
                    comments,
                    project_id=project.id,
                )
                alerts = self._alerts.check_and_create_alerts(actor, project)

                logger.info("cost_allocation_approved", extra={
                    "cost_allocation_id": str(allocation.id),
                    "project_id": str(project.id),
                    "total_cost": str(allocation.total_cost),
                    "consumed_before": str(previous_consumed),
                    "consumed_after": str(project.consumed_amount),
                    "alerts_created": len(alerts),
                })

                outcome = TransitionOutcome(
                    cost_allocation=allocation.to_dto(),
                    workflow=workflow.to_dto(),
                    alerts=tuple(a.to_dto() for a in alerts),
                )
                self._session.commit()
                return outcome
            except StaleDataError as exc:
                self._session.rollback()
                logger.warning("optimistic_lock_conflict", extra={"action": "approve"})
                raise OptimisticLockError(_ENTITY, str(allocation_id)) from exc
            except Exception:
                self._session.rollback()
                raise

    def reject(
        self,
        actor: Actor,
        allocation_id: UUID,
        comments: str,
    ) -> TransitionOutcome:
        """pending -> rejected; comments are mandatory, no budget change."""
        with actor_context(actor, allocation_id):
            try:
                require_capability(actor, COST_ALLOCATION_WORKFLOW.capability_for("reject"))
                allocation = load_for_tenant(
                    self._session, CostAllocation, allocation_id, actor.tenant_id,
                    for_update=True,
                )
                transition = COST_ALLOCATION_WORKFLOW.resolve(
                    allocation.status, "reject", _ENTITY, str(allocation_id),
                )
                if transition.requires_comment and not (comments or "").strip():
                    raise ValidationError.single("comments", "Comments are required for rejection")

                allocation.status = transition.to_state
                allocation.updated_by_id = actor.user_id
                self._session.flush()

                workflow = self._approvals.resolve(
                    actor,
                    RelatedTable.COST_ALLOCATIONS,
                    allocation.id,
                    ApprovalStatus.REJECTED,
                    comments.strip(),
                    project_id=allocation.project_id,
                )

                alerts = []
                if allocation.requires_approval:
                    project = load_for_tenant(
                        self._session, Project, allocation.project_id, actor.tenant_id,
                    )
                    impact = calc_budget_impact(
                        project.consumed_amount, allocation.total_cost, project.budget,
                    )
                    alerts.append(self._alerts.record_allocation_denied(
                        actor, project, impact, allocation.id,
                    ))

                logger.info("cost_allocation_rejected", extra={
                    "cost_allocation_id": str(allocation.id),
                    "project_id": str(allocation.project_id),
                })

                outcome = TransitionOutcome(
                    cost_allocation=allocation.to_dto(),
                    workflow=workflow.to_dto(),
                    alerts=tuple(a.to_dto() for a in alerts),
                )
                self._session.commit()
                return outcome
            except StaleDataError as exc:
                self._session.rollback()
                logger.warning("optimistic_lock_conflict", extra={"action": "reject"})
                raise OptimisticLockError(_ENTITY, str(allocation_id)) from exc
            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # Impact preview
    # =========================================================================

    def preview_budget_impact(
        self,
        actor: Actor,
        project_id: UUID,
        proposed_cost: Decimal | int | str,
    ) -> BudgetImpactPreview:
        """Budget impact of a cost before it is recorded.  Read only."""
        with actor_context(actor, project_id):
            require_capability(actor, Capability.VIEW_BUDGETS)
            try:
                cost = to_decimal(proposed_cost, "proposed_cost")
            except (TypeError, ValueError) as exc:
                raise ValidationError.single("proposed_cost", str(exc)) from exc
            if cost < ZERO:
                raise ValidationError.single("proposed_cost", "proposed_cost must not be negative")

            project = load_for_tenant(self._session, Project, project_id, actor.tenant_id)
            impact = calc_budget_impact(project.consumed_amount, cost, project.budget)
            return BudgetImpactPreview(
                project_id=project.id,
                impact=impact,
                alert_message=budget_alert_message(
                    project.title, impact, self._config.currency_symbol,
                ),
            )

    # =========================================================================
    # Internal
    # =========================================================================

    def _submit(self, actor: Actor, allocation: CostAllocation):
        transition = COST_ALLOCATION_WORKFLOW.resolve(
            allocation.status, "submit", _ENTITY, str(allocation.id),
        )
        require_capability(actor, transition.capability)

        allocation.status = transition.to_state
        allocation.updated_by_id = actor.user_id
        self._session.flush()

        workflow = self._approvals.open_request(
            actor, RelatedTable.COST_ALLOCATIONS, allocation.id,
        )
        self._auditor.record(
            actor,
            AuditAction.COST_ALLOCATION_SUBMITTED,
            entity_type="cost_allocation",
            entity_id=allocation.id,
            project_id=allocation.project_id,
            amount=allocation.total_cost,
            details={"workflow_id": workflow.id},
        )
        logger.info("cost_allocation_submitted", extra={
            "cost_allocation_id": str(allocation.id),
            "workflow_id": str(workflow.id),
        })
        return workflow
