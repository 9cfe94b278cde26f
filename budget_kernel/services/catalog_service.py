"""
CatalogService -- projects, line items and materials.

Responsibility:
    The minimal create operations a tenant needs before costs can be
    recorded.  Each create is capability-checked, validated, written
    with the actor's tenant_id and audited.  Flush only.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from budget_kernel.domain.clock import Clock
from budget_kernel.domain.roles import Actor, Capability, require_capability
from budget_kernel.domain.values import ZERO, to_decimal
from budget_kernel.exceptions import ValidationError
from budget_kernel.logging_config import get_logger
from budget_kernel.models.audit_log import AuditAction
from budget_kernel.models.catalog import LineItem, LineItemCategory, Material
from budget_kernel.models.project import Project
from budget_kernel.services.auditor_service import AuditorService
from budget_kernel.services.base import BaseService

logger = get_logger("services.catalog")


def _amount(value, field: str, errors: list[dict[str, str]]) -> Decimal | None:
    try:
        amount = to_decimal(value, field)
    except (TypeError, ValueError) as exc:
        errors.append({"field": field, "message": str(exc)})
        return None
    if amount < ZERO:
        errors.append({"field": field, "message": f"{field} must not be negative"})
        return None
    return amount


def _required_text(value: str | None, field: str, errors: list[dict[str, str]]) -> None:
    if value is None or not value.strip():
        errors.append({"field": field, "message": f"{field} is required"})


class CatalogService(BaseService):

    def __init__(
        self,
        session: Session,
        auditor: AuditorService,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(session, clock)
        self._auditor = auditor

    def create_project(
        self,
        actor: Actor,
        title: str,
        budget: Decimal | int | str,
        *,
        description: str | None = None,
        revenue: Decimal | int | str = ZERO,
        manager_id: UUID | None = None,
    ) -> Project:
        require_capability(actor, Capability.PROJECT_MANAGEMENT)

        errors: list[dict[str, str]] = []
        _required_text(title, "title", errors)
        budget_amount = _amount(budget, "budget", errors)
        revenue_amount = _amount(revenue, "revenue", errors)
        if errors:
            raise ValidationError(errors)

        project = Project(
            tenant_id=actor.tenant_id,
            title=title.strip(),
            description=description,
            budget=budget_amount,
            consumed_amount=ZERO,
            revenue=revenue_amount,
            status="active",
            manager_id=manager_id or actor.user_id,
            created_by_id=actor.user_id,
        )
        self.session.add(project)
        self.session.flush()

        self._auditor.record(
            actor,
            AuditAction.PROJECT_CREATED,
            entity_type="project",
            entity_id=project.id,
            project_id=project.id,
            amount=budget_amount,
            details={"title": project.title},
        )
        logger.info(
            "project_created",
            extra={"project_id": str(project.id), "budget": str(budget_amount)},
        )
        return project

    def create_line_item(
        self,
        actor: Actor,
        category: LineItemCategory | str,
        name: str,
        description: str | None = None,
    ) -> LineItem:
        require_capability(actor, Capability.CATALOG_MANAGEMENT)

        errors: list[dict[str, str]] = []
        _required_text(name, "name", errors)
        try:
            category = LineItemCategory(category)
        except ValueError:
            errors.append({"field": "category", "message": f"unknown category {category!r}"})
        if errors:
            raise ValidationError(errors)

        line_item = LineItem(
            tenant_id=actor.tenant_id,
            category=category.value,
            name=name.strip(),
            description=description,
            created_by_id=actor.user_id,
        )
        self.session.add(line_item)
        self.session.flush()

        self._auditor.record(
            actor,
            AuditAction.LINE_ITEM_CREATED,
            entity_type="line_item",
            entity_id=line_item.id,
            details={"category": line_item.category, "line_item": line_item.name},
        )
        return line_item

    def create_material(
        self,
        actor: Actor,
        name: str,
        unit: str,
        current_unit_price: Decimal | int | str,
        supplier: str | None = None,
    ) -> Material:
        require_capability(actor, Capability.CATALOG_MANAGEMENT)

        errors: list[dict[str, str]] = []
        _required_text(name, "name", errors)
        _required_text(unit, "unit", errors)
        price = _amount(current_unit_price, "current_unit_price", errors)
        if errors:
            raise ValidationError(errors)

        material = Material(
            tenant_id=actor.tenant_id,
            name=name.strip(),
            unit=unit.strip(),
            current_unit_price=price,
            supplier=supplier,
            created_by_id=actor.user_id,
        )
        self.session.add(material)
        self.session.flush()

        self._auditor.record(
            actor,
            AuditAction.MATERIAL_ADDED,
            entity_type="material",
            entity_id=material.id,
            amount=price,
            details={"material": material.name, "unit": material.unit},
        )
        return material
