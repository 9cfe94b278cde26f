"""
Catalog Module Service (``budget_modules.catalog.service``).

Transaction-owning facade over ``budget_kernel.services.CatalogService``:
create projects, line items and materials for the acting tenant.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.dtos import LineItemRecord, MaterialRecord, ProjectRecord
from budget_kernel.domain.roles import Actor
from budget_kernel.domain.values import ZERO
from budget_kernel.models.catalog import LineItemCategory
from budget_kernel.services.auditor_service import AuditorService
from budget_kernel.services.catalog_service import CatalogService
from budget_modules._helpers import actor_context


class ProjectCatalogService:
    """Commit-owning entry point for catalog setup."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._catalog = CatalogService(
            session, AuditorService(session, self._clock), self._clock,
        )

    def create_project(
        self,
        actor: Actor,
        title: str,
        budget: Decimal | int | str,
        *,
        description: str | None = None,
        revenue: Decimal | int | str = ZERO,
        manager_id: UUID | None = None,
    ) -> ProjectRecord:
        with actor_context(actor):
            try:
                record = self._catalog.create_project(
                    actor, title, budget,
                    description=description, revenue=revenue, manager_id=manager_id,
                ).to_dto()
                self._session.commit()
                return record
            except Exception:
                self._session.rollback()
                raise

    def create_line_item(
        self,
        actor: Actor,
        category: LineItemCategory | str,
        name: str,
        description: str | None = None,
    ) -> LineItemRecord:
        with actor_context(actor):
            try:
                record = self._catalog.create_line_item(
                    actor, category, name, description,
                ).to_dto()
                self._session.commit()
                return record
            except Exception:
                self._session.rollback()
                raise

    def create_material(
        self,
        actor: Actor,
        name: str,
        unit: str,
        current_unit_price: Decimal | int | str,
        supplier: str | None = None,
    ) -> MaterialRecord:
        with actor_context(actor):
            try:
                record = self._catalog.create_material(
                    actor, name, unit, current_unit_price, supplier,
                ).to_dto()
                self._session.commit()
                return record
            except Exception:
                self._session.rollback()
                raise
