"""
Budget Change Domain Models (``budget_modules.budget_change.models``).

Frozen result objects of the budget change facade.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from budget_kernel.domain.dtos import (
    ApprovalWorkflowRecord,
    BudgetAlertRecord,
    BudgetAmendmentRecord,
    ChangeOrderRecord,
)
from budget_modules._helpers import to_camel_dict


@dataclass(frozen=True)
class BudgetChangeOutcome:
    """Result of submit / approve / reject on an amendment or change order.

    ``project_budget`` is the project's budget after the transition.
    """
    record: BudgetAmendmentRecord | ChangeOrderRecord
    workflow: ApprovalWorkflowRecord
    project_budget: Decimal
    alerts: tuple[BudgetAlertRecord, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return to_camel_dict(self)
