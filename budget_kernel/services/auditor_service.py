"""
AuditorService -- append-only audit trail.

Responsibility:
    Writes one immutable ``AuditLog`` row for every state-changing
    operation, in the same transaction as the change it describes.

Architecture position:
    Kernel > Services -- imperative shell, called by the approval, alert
    and catalog services and by the module facades.

Invariants enforced:
    - Append-only: audit rows are never modified or deleted (ORM
      listeners on the AuditLog model).
    - Every row carries the acting user's tenant_id.
    - ``details`` is stored as JSON; Decimal, UUID, datetime and Enum
      values are converted to strings first.

Failure modes:
    - ImmutabilityViolationError if a caller mutates a flushed AuditLog.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from budget_kernel.domain.clock import Clock
from budget_kernel.domain.roles import Actor
from budget_kernel.logging_config import get_logger
from budget_kernel.models.audit_log import AuditAction, AuditLog
from budget_kernel.services.base import BaseService

logger = get_logger("services.auditor")


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class AuditorService(BaseService):
    """
    Service for creating audit log rows.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT read the trail back; see ``BudgetSelector.audit_trail``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def record(
        self,
        actor: Actor,
        action: AuditAction,
        entity_type: str,
        entity_id: UUID | str,
        *,
        project_id: UUID | None = None,
        amount: Decimal | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Append an audit row for ``action`` performed by ``actor``."""
        entry = AuditLog(
            tenant_id=actor.tenant_id,
            user_id=actor.user_id,
            action=action.value,
            entity_type=entity_type,
            entity_id=str(entity_id),
            project_id=project_id,
            amount=amount,
            details=_jsonable(details or {}),
            occurred_at=self.clock.now(),
            created_by_id=actor.user_id,
        )
        self.session.add(entry)
        self.session.flush()

        logger.info(
            "audit_recorded",
            extra={
                "action": action.value,
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "tenant_id": str(actor.tenant_id),
            },
        )
        return entry
