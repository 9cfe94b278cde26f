"""
Shared helpers for the module facades.

Used by budget_modules/*/service.py for log context binding and for the
camelCase ``to_dict()`` rendering of result objects.

Architecture: Modules layer. Imports only from budget_kernel.
"""

from __future__ import annotations

import dataclasses
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from budget_kernel.domain.roles import Actor
from budget_kernel.logging_config import LogContext


def actor_context(actor: Actor, entity_id: UUID | None = None):
    """Bind tenant, actor and (optionally) entity ids to the log context."""
    return LogContext.bind(
        tenant_id=actor.tenant_id,
        actor_id=actor.user_id,
        entity_id=entity_id,
    )


def camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def to_camel_dict(value: Any) -> Any:
    """Render dataclasses (recursively) as JSON-ready dicts with camelCase keys.

    Decimal and UUID become strings so no precision is lost in transit.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            camel(f.name): to_camel_dict(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {camel(str(k)): to_camel_dict(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_camel_dict(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value
