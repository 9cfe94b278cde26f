"""
Budget Change Configuration Schema.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from budget_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from budget_config.schema import BudgetAppConfig

logger = get_logger("modules.budget_change.config")


@dataclass
class BudgetChangeConfig:
    """Configuration schema for amendments and change orders.

    ``allow_budget_reduction``: whether a change order may carry a
    negative cost impact.  The budget itself can never drop below zero.
    """

    allow_budget_reduction: bool = True
    currency_symbol: str = ""

    def __post_init__(self):
        if len(self.currency_symbol) > 5:
            raise ValueError("currency_symbol must be at most 5 characters")
        logger.info("budget_change_config_initialized", extra={
            "allow_budget_reduction": self.allow_budget_reduction,
        })

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_app_config(cls, config: BudgetAppConfig) -> Self:
        return cls(
            allow_budget_reduction=config.budget_change.allow_budget_reduction,
            currency_symbol=config.currency.symbol,
        )
