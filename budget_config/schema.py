"""
Runtime configuration schema (``budget_config.schema``).

Frozen dataclasses parsed from the YAML configuration file by
``budget_config.loader``.  Budget thresholds are deliberately absent:
they are fixed constants of the variance calculator, not settings.
"""

from __future__ import annotations

from dataclasses import dataclass, field

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///:memory:"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url is required")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be at least 1")
        if self.max_overflow < 0:
            raise ValueError("database.max_overflow cannot be negative")


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"

    def __post_init__(self) -> None:
        if self.level.upper() not in _LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")


@dataclass(frozen=True)
class CurrencySettings:
    code: str = "USD"
    symbol: str = "$"

    def __post_init__(self) -> None:
        if len(self.code) != 3 or not self.code.isalpha():
            raise ValueError(f"currency.code must be a 3-letter ISO code, got {self.code!r}")


@dataclass(frozen=True)
class AllocationSettings:
    auto_submit_on_threshold: bool = False


@dataclass(frozen=True)
class BudgetChangeSettings:
    allow_budget_reduction: bool = True


@dataclass(frozen=True)
class BudgetAppConfig:
    """The whole runtime configuration."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    currency: CurrencySettings = field(default_factory=CurrencySettings)
    allocation: AllocationSettings = field(default_factory=AllocationSettings)
    budget_change: BudgetChangeSettings = field(default_factory=BudgetChangeSettings)
    source: str | None = None
