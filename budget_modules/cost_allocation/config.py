"""
Cost Allocation Configuration Schema.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

from budget_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from budget_config.schema import BudgetAppConfig

logger = get_logger("modules.cost_allocation.config")


@dataclass
class AllocationConfig:
    """Configuration schema for the cost allocation facade.

    ``auto_submit_on_threshold``: when True, an allocation whose budget
    impact requires approval goes straight to ``pending`` in the same
    transaction that creates it.
    """

    auto_submit_on_threshold: bool = False
    currency_symbol: str = ""

    def __post_init__(self):
        if not isinstance(self.auto_submit_on_threshold, bool):
            raise ValueError("auto_submit_on_threshold must be a boolean")
        if len(self.currency_symbol) > 5:
            raise ValueError("currency_symbol must be at most 5 characters")
        logger.info("allocation_config_initialized", extra={
            "auto_submit_on_threshold": self.auto_submit_on_threshold,
        })

    @classmethod
    def with_defaults(cls) -> Self:
        return cls()

    @classmethod
    def from_app_config(cls, config: BudgetAppConfig) -> Self:
        return cls(
            auto_submit_on_threshold=config.allocation.auto_submit_on_threshold,
            currency_symbol=config.currency.symbol,
        )
