"""
Configuration Loader (``budget_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen
``budget_config.schema`` dataclasses.  Runtime callers use
``budget_config.get_active_config()`` rather than this module.

Invariants enforced
-------------------
* Unknown sections and unknown keys raise ``ValueError``; a typo in the
  file never silently falls back to a default.
* Booleans, integers and strings are type-checked against the schema
  defaults.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong types or values  -> ``ValueError``.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from budget_config.schema import (
    AllocationSettings,
    BudgetAppConfig,
    BudgetChangeSettings,
    CurrencySettings,
    DatabaseSettings,
    LoggingSettings,
)

_SECTIONS: dict[str, type] = {
    "database": DatabaseSettings,
    "logging": LoggingSettings,
    "currency": CurrencySettings,
    "allocation": AllocationSettings,
    "budget_change": BudgetChangeSettings,
}

_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "BUDGET_DATABASE_URL": ("database", "url"),
    "BUDGET_LOG_LEVEL": ("logging", "level"),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _check_type(section: str, key: str, value: Any, default: Any) -> None:
    expected = type(default)
    if expected is bool and not isinstance(value, bool):
        raise ValueError(f"{section}.{key} must be true or false, got {value!r}")
    if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
        raise ValueError(f"{section}.{key} must be an integer, got {value!r}")
    if expected is str and not isinstance(value, str):
        raise ValueError(f"{section}.{key} must be a string, got {value!r}")


def parse_section(section: str, data: Mapping[str, Any] | None) -> Any:
    """Parse one top-level section into its settings dataclass."""
    cls = _SECTIONS[section]
    data = data or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{section} must be a mapping")

    defaults = cls()
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in {section}: {', '.join(sorted(unknown))}")
    for key, value in data.items():
        _check_type(section, key, value, getattr(defaults, key))
    return cls(**data)


def parse_config(data: Mapping[str, Any], source: str | None = None) -> BudgetAppConfig:
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")
    return BudgetAppConfig(
        **{name: parse_section(name, data.get(name)) for name in _SECTIONS},
        source=source,
    )


def apply_env_overrides(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Return a copy of ``data`` with the BUDGET_* environment overrides applied."""
    merged = {k: dict(v) if isinstance(v, Mapping) else v for k, v in data.items()}
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            merged.setdefault(section, {})[key] = value
    return merged
