"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  Concrete services receive a
    SQLAlchemy ``Session`` and use ``session.flush()`` -- never
    ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's
    transaction and never commit or rollback themselves.  The module
    facades in ``budget_modules`` own commit/rollback, so approve ->
    update project -> resolve workflow -> alert -> audit is one unit.
"""

from abc import ABC

from sqlalchemy.orm import Session

from budget_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Does NOT provide query-only (read) methods -- those belong
          in ``budget_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
