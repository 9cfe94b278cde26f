"""
Cost total calculator (``budget_kernel.domain.costing``).

Pure, side-effect-free totals for a cost allocation: material rows,
labour, and the remaining budget check reported back on creation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from budget_kernel.domain.values import ZERO, to_decimal


@dataclass(frozen=True)
class PricedQuantity:
    """A unit price and a quantity (a material row, or labour)."""

    unit_price: Decimal
    quantity: Decimal

    @property
    def total(self) -> Decimal:
        return to_decimal(self.unit_price, "unit_price") * to_decimal(self.quantity, "quantity")


@dataclass(frozen=True)
class BudgetValidation:
    """Budget check reported when a cost allocation is created."""

    exceeds_budget: bool
    message: str


WITHIN_BUDGET_MESSAGE = "This allocation is within the remaining budget."
EXCEEDS_BUDGET_MESSAGE = (
    "This allocation exceeds the remaining budget and will require approval."
)


def material_total(rows: Iterable[PricedQuantity]) -> Decimal:
    """Sum of ``unit_price * quantity`` over ``rows``; 0 for no rows."""
    return sum((row.total for row in rows), ZERO)


def total_cost(labour: PricedQuantity, material_sum: Decimal | int | str) -> Decimal:
    """Labour ``unit_price * quantity`` plus the material total."""
    return labour.total + to_decimal(material_sum, "material_total")


def remaining_budget(
    total_budget: Decimal | int | str,
    consumed_amount: Decimal | int | str,
) -> Decimal:
    return to_decimal(total_budget, "total_budget") - to_decimal(consumed_amount, "consumed_amount")


def exceeds_budget(cost: Decimal, remaining: Decimal) -> bool:
    """Strictly greater: a cost equal to the remaining budget fits."""
    return to_decimal(cost, "total_cost") > to_decimal(remaining, "remaining_budget")


def initial_budget_validation(cost: Decimal, remaining: Decimal) -> BudgetValidation:
    exceeds = exceeds_budget(cost, remaining)
    return BudgetValidation(
        exceeds_budget=exceeds,
        message=EXCEEDS_BUDGET_MESSAGE if exceeds else WITHIN_BUDGET_MESSAGE,
    )
