"""
Cost Allocation Module (``budget_modules.cost_allocation``).

Responsibility
--------------
Labour and material costs recorded against a project's line items, and
their draft -> pending -> approved|rejected approval lifecycle.

Architecture position
---------------------
**Modules layer** -- config schema, workflow definition, result models
and the ``CostAllocationService`` facade that owns the transaction.

Invariants enforced
-------------------
* Approval is the only mutation of ``Project.consumed_amount`` (by
  addition, exactly once per approved allocation).
* Transaction boundary owned by ``CostAllocationService``.
"""

from budget_modules.cost_allocation.config import AllocationConfig
from budget_modules.cost_allocation.models import (
    BudgetImpactPreview,
    CostAllocationCreated,
    CostAllocationInput,
    MaterialAllocationInput,
    TransitionOutcome,
)
from budget_modules.cost_allocation.service import CostAllocationService
from budget_modules.cost_allocation.workflows import COST_ALLOCATION_WORKFLOW

__all__ = [
    "AllocationConfig",
    "BudgetImpactPreview",
    "COST_ALLOCATION_WORKFLOW",
    "CostAllocationCreated",
    "CostAllocationInput",
    "CostAllocationService",
    "MaterialAllocationInput",
    "TransitionOutcome",
]
