"""
Budget Change Module (``budget_modules.budget_change``).

Responsibility
--------------
Budget amendments and change orders, the two approved ways a project's
budget changes after creation, plus budget alert management and the
project budget history.

Invariants enforced
-------------------
* Approval is the only mutation of ``Project.budget``.
* Transaction boundary owned by ``BudgetChangeService``.
"""

from budget_modules.budget_change.config import BudgetChangeConfig
from budget_modules.budget_change.models import BudgetChangeOutcome
from budget_modules.budget_change.service import BudgetChangeService
from budget_modules.budget_change.workflows import (
    BUDGET_AMENDMENT_WORKFLOW,
    CHANGE_ORDER_WORKFLOW,
)

__all__ = [
    "BUDGET_AMENDMENT_WORKFLOW",
    "BudgetChangeConfig",
    "BudgetChangeOutcome",
    "BudgetChangeService",
    "CHANGE_ORDER_WORKFLOW",
]
