"""Read-only selectors for the budget kernel."""

from budget_kernel.selectors.budget_selector import (
    BudgetSelector,
    ProjectBudgetHistory,
    ProjectBudgetSummary,
)

__all__ = [
    "BudgetSelector",
    "ProjectBudgetHistory",
    "ProjectBudgetSummary",
]
