"""
Cost Allocation Domain Models (``budget_modules.cost_allocation.models``).

Responsibility
--------------
Frozen input and result objects of the cost allocation facade.  Results
carry kernel record DTOs and render themselves for the HTTP layer via
``to_dict()`` (camelCase keys, amounts as strings).

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from budget_kernel.domain.costing import BudgetValidation
from budget_kernel.domain.dtos import (
    ApprovalWorkflowRecord,
    BudgetAlertRecord,
    CostAllocationRecord,
)
from budget_kernel.domain.variance import BUDGET_THRESHOLDS, BudgetImpactResult
from budget_modules._helpers import to_camel_dict


@dataclass(frozen=True)
class MaterialAllocationInput:
    """A material row on a new allocation.

    ``unit_price`` defaults to the material's current catalog price.
    """
    material_id: UUID
    quantity: Decimal | int | str
    unit_price: Decimal | int | str | None = None


@dataclass(frozen=True)
class CostAllocationInput:
    project_id: UUID
    line_item_id: UUID
    labour_cost: Decimal | int | str = Decimal("0")
    quantity: Decimal | int | str = Decimal("1")
    unit_cost: Decimal | int | str | None = None
    material_allocations: tuple[MaterialAllocationInput, ...] = ()
    date_incurred: datetime | None = None
    change_order_id: UUID | None = None


@dataclass(frozen=True)
class CostAllocationCreated:
    """Result of recording a new cost allocation."""
    cost_allocation: CostAllocationRecord
    remaining_budget: Decimal
    budget_validation: BudgetValidation
    impact: BudgetImpactResult
    workflow: ApprovalWorkflowRecord | None = None

    @property
    def exceeds_budget(self) -> bool:
        return self.budget_validation.exceeds_budget

    def to_dict(self) -> dict[str, Any]:
        return {
            "costAllocation": to_camel_dict(self.cost_allocation),
            "remainingBudget": str(self.remaining_budget),
            "budgetValidation": self.budget_validation.message,
            "exceedsBudget": self.exceeds_budget,
            "impact": to_camel_dict(self.impact),
            "workflow": to_camel_dict(self.workflow),
        }


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of submit / approve / reject."""
    cost_allocation: CostAllocationRecord
    workflow: ApprovalWorkflowRecord
    alerts: tuple[BudgetAlertRecord, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return to_camel_dict(self)


@dataclass(frozen=True)
class BudgetImpactPreview:
    """What recording ``proposed_cost`` would do to a project's budget."""
    project_id: UUID
    impact: BudgetImpactResult
    alert_message: str
    thresholds: dict[str, int] = field(default_factory=lambda: dict(BUDGET_THRESHOLDS))

    def to_dict(self) -> dict[str, Any]:
        return {
            "projectId": str(self.project_id),
            "impact": to_camel_dict(self.impact),
            "alertMessage": self.alert_message,
            "thresholds": dict(self.thresholds),
        }
