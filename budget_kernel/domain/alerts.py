"""
Budget alert rules (``budget_kernel.domain.alerts``).

Pure decision of which alert, if any, a project's variance calls for.
``BudgetAlertService`` does the persistence and de-duplication.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from budget_kernel.domain.variance import BudgetStatus, BudgetVarianceResult


class AlertType(str, Enum):
    WARNING_THRESHOLD = "warning_threshold"
    CRITICAL_THRESHOLD = "critical_threshold"
    OVER_BUDGET = "over_budget"
    BUDGET_ALLOCATION_DENIED = "budget_allocation_denied"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"


UNRESOLVED_ALERT_STATUSES: frozenset[AlertStatus] = frozenset({
    AlertStatus.ACTIVE,
    AlertStatus.ACKNOWLEDGED,
})

# Alert types raised automatically from variance.  BUDGET_ALLOCATION_DENIED
# is raised explicitly and never auto-resolved.
THRESHOLD_ALERT_TYPES: frozenset[AlertType] = frozenset({
    AlertType.WARNING_THRESHOLD,
    AlertType.CRITICAL_THRESHOLD,
    AlertType.OVER_BUDGET,
})


@dataclass(frozen=True)
class AlertDecision:
    alert_type: AlertType
    severity: AlertSeverity


def decide_alert(variance: BudgetVarianceResult) -> AlertDecision | None:
    """Alert called for by ``variance``, or None when the budget is healthy.

    Over-budget is checked first and independently of the percentage, so a
    spend against a zero budget still raises an alert.
    """
    if variance.is_over_budget:
        return AlertDecision(AlertType.OVER_BUDGET, AlertSeverity.CRITICAL)
    if variance.status is BudgetStatus.CRITICAL:
        return AlertDecision(AlertType.CRITICAL_THRESHOLD, AlertSeverity.CRITICAL)
    if variance.status is BudgetStatus.WARNING:
        return AlertDecision(AlertType.WARNING_THRESHOLD, AlertSeverity.WARNING)
    return None


def stale_alert_types(decision: AlertDecision | None) -> frozenset[AlertType]:
    """Threshold alert types that no longer apply given the current decision.

    Only lower-or-equal conditions stay open: an over-budget project keeps
    its earlier warning/critical alerts, a project back under warning
    level has all of them closed.
    """
    if decision is None:
        return THRESHOLD_ALERT_TYPES
    if decision.alert_type is AlertType.WARNING_THRESHOLD:
        return frozenset({AlertType.CRITICAL_THRESHOLD, AlertType.OVER_BUDGET})
    if decision.alert_type is AlertType.CRITICAL_THRESHOLD:
        return frozenset({AlertType.OVER_BUDGET})
    return frozenset()
