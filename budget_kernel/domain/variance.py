"""
Budget variance calculator (``budget_kernel.domain.variance``).

Responsibility
--------------
Pure functions that turn (budget, spent) into the figures the rest of the
system acts on: spent percentage, remaining budget, over-budget flag,
signed variance and a three-tier health status.  ``calc_budget_impact``
answers the same question for a proposed cost before it is recorded.

Architecture position
---------------------
**Kernel domain layer** -- ZERO I/O.  Called by the cost allocation and
budget change facades and by ``BudgetAlertService``.

Invariants enforced
-------------------
* ``remaining_budget + total_spent == total_budget`` exactly.
* ``spent_percentage`` is 0 when the budget is 0 (no division by zero);
  ``is_over_budget`` is computed independently so a positive spend
  against a zero budget is still flagged.
* Status is taken from the reported (rounded) percentage, so the status
  and the number shown next to it never disagree.
* Thresholds are fixed module constants.  They are not tenant settings.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from budget_kernel.domain.values import HUNDRED, ZERO, round_money, to_decimal

WARNING_THRESHOLD = Decimal("80")
CRITICAL_THRESHOLD = Decimal("95")

BUDGET_THRESHOLDS: dict[str, int] = {
    "warning": 80,
    "critical": 95,
}


class BudgetStatus(str, Enum):
    """Health of a project budget."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class BudgetVarianceResult:
    """Budget vs spent, derived and never persisted."""

    spent_percentage: Decimal
    remaining_budget: Decimal
    status: BudgetStatus
    is_over_budget: bool
    variance: Decimal  # positive = over budget


@dataclass(frozen=True)
class BudgetImpactResult(BudgetVarianceResult):
    """Variance as if ``proposed_cost`` had already been spent."""

    current_spent: Decimal = ZERO
    proposed_cost: Decimal = ZERO
    new_total_spent: Decimal = ZERO
    new_spent_percentage: Decimal = ZERO
    will_exceed_warning: bool = False
    will_exceed_critical: bool = False
    requires_approval: bool = False


def status_for_percentage(spent_percentage: Decimal) -> BudgetStatus:
    if spent_percentage >= CRITICAL_THRESHOLD:
        return BudgetStatus.CRITICAL
    if spent_percentage >= WARNING_THRESHOLD:
        return BudgetStatus.WARNING
    return BudgetStatus.HEALTHY


def calc_budget_variance(
    total_budget: Decimal | int | str,
    total_spent: Decimal | int | str,
) -> BudgetVarianceResult:
    """Compute variance figures for a budget and the amount spent against it."""
    budget = to_decimal(total_budget, "total_budget")
    spent = to_decimal(total_spent, "total_spent")

    raw_pct = (spent / budget) * HUNDRED if budget > ZERO else ZERO
    spent_percentage = round_money(raw_pct)

    return BudgetVarianceResult(
        spent_percentage=spent_percentage,
        remaining_budget=budget - spent,
        status=status_for_percentage(spent_percentage),
        is_over_budget=spent > budget,
        variance=spent - budget,
    )


def calc_budget_impact(
    current_spent: Decimal | int | str,
    proposed_cost: Decimal | int | str,
    total_budget: Decimal | int | str,
) -> BudgetImpactResult:
    """Evaluate the effect of adding ``proposed_cost`` to ``current_spent``.

    Never raises for an over-budget outcome; that is reported in the
    result.  ``requires_approval`` is true from the warning threshold up.
    """
    spent = to_decimal(current_spent, "current_spent")
    proposed = to_decimal(proposed_cost, "proposed_cost")
    new_total = spent + proposed
    variance = calc_budget_variance(total_budget, new_total)

    will_exceed_warning = variance.spent_percentage >= WARNING_THRESHOLD
    return BudgetImpactResult(
        spent_percentage=variance.spent_percentage,
        remaining_budget=variance.remaining_budget,
        status=variance.status,
        is_over_budget=variance.is_over_budget,
        variance=variance.variance,
        current_spent=spent,
        proposed_cost=proposed,
        new_total_spent=new_total,
        new_spent_percentage=variance.spent_percentage,
        will_exceed_warning=will_exceed_warning,
        will_exceed_critical=variance.spent_percentage >= CRITICAL_THRESHOLD,
        requires_approval=will_exceed_warning,
    )


def _fmt(amount: Decimal) -> str:
    return f"{amount:,.2f}"


def budget_alert_message(
    project_title: str,
    variance: BudgetVarianceResult,
    currency_symbol: str = "",
) -> str:
    """Human-readable alert text for a project's variance."""
    pct = f"{variance.spent_percentage:.1f}%"
    if variance.status is BudgetStatus.CRITICAL or variance.is_over_budget:
        if variance.is_over_budget:
            return (
                f'CRITICAL: Project "{project_title}" is over budget by '
                f"{currency_symbol}{_fmt(abs(variance.variance))} ({pct} spent)"
            )
        return (
            f'CRITICAL: Project "{project_title}" budget critically low - '
            f"{pct} spent, only {currency_symbol}{_fmt(variance.remaining_budget)} remaining"
        )
    if variance.status is BudgetStatus.WARNING:
        return (
            f'WARNING: Project "{project_title}" approaching budget limit - '
            f"{pct} spent, {currency_symbol}{_fmt(variance.remaining_budget)} remaining"
        )
    return f'Project "{project_title}" budget healthy - {pct} spent'
