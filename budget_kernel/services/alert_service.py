"""
BudgetAlertService -- threshold alerts for projects.

Responsibility:
    After a project's consumed amount or budget changes, recompute its
    variance and raise the alert the new figures call for.  Also owns the
    alert lifecycle (acknowledge, resolve) and the explicit
    ``budget_allocation_denied`` alert.

Invariants enforced:
    - At most one unresolved (active or acknowledged) alert per
      (project, alert_type) for the threshold alert types.
    - Threshold alerts whose condition no longer holds are resolved
      automatically on the next check.
    - Lifecycle: active -> acknowledged -> resolved, active -> resolved.
      Anything else raises InvalidTransitionError.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from budget_kernel.domain.alerts import (
    UNRESOLVED_ALERT_STATUSES,
    AlertSeverity,
    AlertStatus,
    AlertType,
    decide_alert,
    stale_alert_types,
)
from budget_kernel.domain.clock import Clock
from budget_kernel.domain.roles import Actor
from budget_kernel.domain.variance import (
    BudgetImpactResult,
    budget_alert_message,
    calc_budget_variance,
)
from budget_kernel.exceptions import InvalidTransitionError
from budget_kernel.logging_config import get_logger
from budget_kernel.models.audit_log import AuditAction
from budget_kernel.models.budget_alert import BudgetAlert
from budget_kernel.models.project import Project
from budget_kernel.services.auditor_service import AuditorService
from budget_kernel.services.base import BaseService
from budget_kernel.services.tenant_guard import load_for_tenant

logger = get_logger("services.alerts")

_UNRESOLVED = [s.value for s in UNRESOLVED_ALERT_STATUSES]


class BudgetAlertService(BaseService):

    def __init__(
        self,
        session: Session,
        auditor: AuditorService,
        clock: Clock | None = None,
        currency_symbol: str = "",
    ) -> None:
        super().__init__(session, clock)
        self._auditor = auditor
        self._currency_symbol = currency_symbol

    def check_and_create_alerts(self, actor: Actor, project: Project) -> list[BudgetAlert]:
        """Re-evaluate ``project`` and return the alerts created, if any.

        ``project`` must be the tenant's row, already loaded (and locked)
        by the caller in the current transaction.
        """
        variance = calc_budget_variance(project.budget, project.consumed_amount)
        decision = decide_alert(variance)

        stale = stale_alert_types(decision)
        if stale:
            for alert in self._unresolved(project, stale):
                self._close(actor, alert, automatic=True)

        if decision is None:
            return []

        if self._unresolved(project, {decision.alert_type}):
            logger.debug(
                "budget_alert_already_open",
                extra={"project_id": str(project.id), "alert_type": decision.alert_type.value},
            )
            return []

        alert = BudgetAlert(
            tenant_id=project.tenant_id,
            project_id=project.id,
            alert_type=decision.alert_type.value,
            severity=decision.severity.value,
            status=AlertStatus.ACTIVE.value,
            message=budget_alert_message(project.title, variance, self._currency_symbol),
            spent_percentage=variance.spent_percentage,
            remaining_budget=variance.remaining_budget,
            triggered_by=actor.user_id,
            created_by_id=actor.user_id,
        )
        self._add(actor, alert)
        return [alert]

    def record_allocation_denied(
        self,
        actor: Actor,
        project: Project,
        impact: BudgetImpactResult,
        cost_allocation_id: UUID,
    ) -> BudgetAlert:
        """Raise a ``budget_allocation_denied`` alert for a rejected allocation."""
        alert = BudgetAlert(
            tenant_id=project.tenant_id,
            project_id=project.id,
            alert_type=AlertType.BUDGET_ALLOCATION_DENIED.value,
            severity=AlertSeverity.WARNING.value,
            status=AlertStatus.ACTIVE.value,
            message=(
                f'Cost allocation for project "{project.title}" was rejected - '
                f"it would have brought spending to {impact.new_spent_percentage:.1f}%"
            ),
            spent_percentage=impact.new_spent_percentage,
            remaining_budget=impact.remaining_budget,
            triggered_by=actor.user_id,
            created_by_id=actor.user_id,
        )
        self._add(actor, alert, details={"cost_allocation_id": cost_allocation_id})
        return alert

    def acknowledge(self, actor: Actor, alert_id: UUID) -> BudgetAlert:
        alert = load_for_tenant(
            self.session, BudgetAlert, alert_id, actor.tenant_id, for_update=True,
        )
        if alert.status != AlertStatus.ACTIVE.value:
            raise InvalidTransitionError(
                "BudgetAlert", str(alert_id), alert.status, "acknowledge",
                allowed_from=(AlertStatus.ACTIVE.value,),
            )
        alert.status = AlertStatus.ACKNOWLEDGED.value
        alert.acknowledged_by = actor.user_id
        alert.acknowledged_at = self.clock.now()
        alert.updated_by_id = actor.user_id
        self.session.flush()

        self._auditor.record(
            actor,
            AuditAction.BUDGET_ALERT_ACKNOWLEDGED,
            entity_type="budget_alert",
            entity_id=alert.id,
            project_id=alert.project_id,
        )
        logger.info("budget_alert_acknowledged", extra={"alert_id": str(alert.id)})
        return alert

    def resolve(self, actor: Actor, alert_id: UUID) -> BudgetAlert:
        alert = load_for_tenant(
            self.session, BudgetAlert, alert_id, actor.tenant_id, for_update=True,
        )
        if alert.status not in _UNRESOLVED:
            raise InvalidTransitionError(
                "BudgetAlert", str(alert_id), alert.status, "resolve",
                allowed_from=tuple(sorted(_UNRESOLVED)),
            )
        self._close(actor, alert, automatic=False)
        return alert

    def _unresolved(self, project: Project, alert_types) -> list[BudgetAlert]:
        return list(
            self.session.execute(
                select(BudgetAlert).where(
                    BudgetAlert.tenant_id == project.tenant_id,
                    BudgetAlert.project_id == project.id,
                    BudgetAlert.alert_type.in_([t.value for t in alert_types]),
                    BudgetAlert.status.in_(_UNRESOLVED),
                )
            ).scalars().all()
        )

    def _add(self, actor: Actor, alert: BudgetAlert, details: dict | None = None) -> None:
        self.session.add(alert)
        self.session.flush()

        self._auditor.record(
            actor,
            AuditAction.BUDGET_ALERT_CREATED,
            entity_type="budget_alert",
            entity_id=alert.id,
            project_id=alert.project_id,
            details={
                "alert_type": alert.alert_type,
                "severity": alert.severity,
                "spent_percentage": alert.spent_percentage,
                **(details or {}),
            },
        )
        logger.warning(
            "budget_alert_created",
            extra={
                "alert_id": str(alert.id),
                "project_id": str(alert.project_id),
                "alert_type": alert.alert_type,
                "severity": alert.severity,
            },
        )

    def _close(self, actor: Actor, alert: BudgetAlert, automatic: bool) -> None:
        alert.status = AlertStatus.RESOLVED.value
        alert.resolved_at = self.clock.now()
        alert.updated_by_id = actor.user_id
        self.session.flush()

        self._auditor.record(
            actor,
            AuditAction.BUDGET_ALERT_RESOLVED,
            entity_type="budget_alert",
            entity_id=alert.id,
            project_id=alert.project_id,
            details={"automatic": automatic, "alert_type": alert.alert_type},
        )
        logger.info(
            "budget_alert_resolved",
            extra={"alert_id": str(alert.id), "automatic": automatic},
        )
