"""
Runtime bootstrap (``budget_config.bootstrap``).

Responsibility
--------------
Applies a loaded ``BudgetAppConfig`` to the process: the ``logging``
section sets the ``budget_kernel`` log level and the ``database`` section
initialises the kernel engine and session factory.

Architecture position
---------------------
Configuration.  Imports ``budget_kernel`` (db engine, logging); the
kernel never imports this module.

Failure modes
-------------
* SQLAlchemy ``ArgumentError`` for a malformed ``database.url``.
"""

from __future__ import annotations

import logging

from sqlalchemy.engine import Engine

from budget_config.schema import BudgetAppConfig
from budget_kernel.db.engine import init_engine_from_url
from budget_kernel.logging_config import configure_logging, get_logger

logger = get_logger("config.bootstrap")


def apply_logging_settings(config: BudgetAppConfig) -> int:
    """Configure kernel logging at ``config.logging.level``; returns the level."""
    level = logging.getLevelName(config.logging.level.upper())
    configure_logging(level=level)
    # configure_logging is idempotent; the level still follows the config
    logging.getLogger("budget_kernel").setLevel(level)
    return level


def init_runtime(config: BudgetAppConfig) -> Engine:
    """Apply logging settings, then build the engine from ``config.database``."""
    apply_logging_settings(config)
    engine = init_engine_from_url(
        config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )
    logger.info(
        "runtime_initialized",
        extra={
            "config_source": config.source,
            "dialect": engine.dialect.name,
            "log_level": config.logging.level.upper(),
        },
    )
    return engine
