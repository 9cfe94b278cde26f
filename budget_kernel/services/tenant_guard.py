"""
Tenant-scoped row loading (``budget_kernel.services.tenant_guard``).

Every service that acts on an id supplied by a caller loads the row
through ``load_for_tenant``.  A row that does not exist and a row that
belongs to another tenant both raise the same ``ResourceAccessError``;
only the log line tells them apart.
"""

from __future__ import annotations

from typing import TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from budget_kernel.db.base import TenantScopedBase
from budget_kernel.exceptions import ResourceAccessError
from budget_kernel.logging_config import get_logger

logger = get_logger("services.tenant_guard")

ModelT = TypeVar("ModelT", bound=TenantScopedBase)


def load_for_tenant(
    session: Session,
    model: type[ModelT],
    entity_id: UUID,
    tenant_id: UUID,
    *,
    for_update: bool = False,
) -> ModelT:
    """Load ``model`` row ``entity_id`` owned by ``tenant_id``.

    With ``for_update`` the row is locked (SELECT ... FOR UPDATE) and
    refreshed from the database even if already in the identity map.

    Raises:
        ResourceAccessError: row missing or owned by another tenant.
    """
    stmt = select(model).where(model.id == entity_id)
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    row = session.execute(stmt).scalar_one_or_none()

    entity_type = model.__name__
    if row is None:
        logger.warning(
            "resource_not_found",
            extra={"entity_type": entity_type, "entity_id": str(entity_id)},
        )
        raise ResourceAccessError(entity_type, str(entity_id))

    if row.tenant_id != tenant_id:
        logger.warning(
            "cross_tenant_access_denied",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "requesting_tenant_id": str(tenant_id),
            },
        )
        raise ResourceAccessError(entity_type, str(entity_id))

    return row
