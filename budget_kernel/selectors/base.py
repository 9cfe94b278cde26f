"""
Module: budget_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  May import from db/, models/,
    domain/ and services/tenant_guard.py.  MUST NOT import write
    services or outer layers.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit() or session.flush().
    - DTO return convention: selectors return frozen dataclasses, never
      raw ORM instances.
    - Tenant filtering: every query is filtered by the actor's tenant_id.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs or computed results.
    """

    def __init__(self, session: Session):
        self.session = session
