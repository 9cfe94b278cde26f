"""Pure domain layer: calculators, roles, workflow and record DTOs.  ZERO I/O."""

from budget_kernel.domain.costing import (
    PricedQuantity,
    material_total,
    remaining_budget,
    total_cost,
)
from budget_kernel.domain.roles import Actor, Capability, Role
from budget_kernel.domain.variance import (
    BUDGET_THRESHOLDS,
    BudgetImpactResult,
    BudgetStatus,
    BudgetVarianceResult,
    calc_budget_impact,
    calc_budget_variance,
)
from budget_kernel.domain.workflow import ApprovalStatus

__all__ = [
    "Actor",
    "ApprovalStatus",
    "BUDGET_THRESHOLDS",
    "BudgetImpactResult",
    "BudgetStatus",
    "BudgetVarianceResult",
    "Capability",
    "PricedQuantity",
    "Role",
    "calc_budget_impact",
    "calc_budget_variance",
    "material_total",
    "remaining_budget",
    "total_cost",
]
