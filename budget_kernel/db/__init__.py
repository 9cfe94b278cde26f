"""Database layer - engine, base classes, and session scope."""

from budget_kernel.db.base import UUID, Base, TenantScopedBase, TrackedBase, UUIDString
from budget_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "drop_tables",
    "Base",
    "TrackedBase",
    "TenantScopedBase",
    "UUIDString",
    "UUID",
]
