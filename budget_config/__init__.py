"""
budget_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads the YAML file or
    the BUDGET_* environment variables directly.
    ``budget_config.bootstrap.init_runtime()`` applies the ``database`` and
    ``logging`` sections to the kernel engine and logger.

Architecture position:
    Configuration.  Sits beside ``budget_kernel`` and below
    ``budget_modules``; the kernel MUST NEVER import from
    ``budget_config``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- unknown keys, wrong types or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``budget_config_loaded`` log entry naming the source file and the
    overrides applied.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from budget_config.loader import apply_env_overrides, load_yaml_file, parse_config
from budget_config.schema import BudgetAppConfig

_logger = logging.getLogger("budget_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "budget.yaml"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> BudgetAppConfig:
    """Load, override and validate the runtime configuration.

    Args:
        path: YAML file to load.  Defaults to defaults/budget.yaml.
        environ: Environment to read overrides from.  Defaults to os.environ.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    env = os.environ if environ is None else environ

    raw = load_yaml_file(config_path)
    merged = apply_env_overrides(raw, env)
    config = parse_config(merged, source=str(config_path))

    _logger.info(
        "budget_config_loaded",
        extra={
            "source": str(config_path),
            "overrides": sorted(k for k in ("BUDGET_DATABASE_URL", "BUDGET_LOG_LEVEL") if env.get(k)),
            "log_level": config.logging.level,
            "auto_submit_on_threshold": config.allocation.auto_submit_on_threshold,
        },
    )
    return config


__all__ = [
    "BudgetAppConfig",
    "DEFAULT_CONFIG_PATH",
    "get_active_config",
]
