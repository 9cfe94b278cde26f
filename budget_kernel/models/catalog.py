"""
Module: budget_kernel.models.catalog
Responsibility: ORM persistence for the per-tenant cost catalog: line items
    (what the cost is for) and materials (priced inputs).
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TenantScopedBase

if TYPE_CHECKING:
    from budget_kernel.domain.dtos import LineItemRecord, MaterialRecord


class LineItemCategory(str, Enum):
    """Line item categories (generic and construction)."""

    DEVELOPMENT_RESOURCES = "development_resources"
    DESIGN_TOOLS = "design_tools"
    TESTING_QA = "testing_qa"
    INFRASTRUCTURE = "infrastructure"
    MARKETING = "marketing"
    OPERATIONS = "operations"
    MISCELLANEOUS = "miscellaneous"
    LAND_PURCHASE = "land_purchase"
    SITE_PREPARATION = "site_preparation"
    FOUNDATION = "foundation"
    STRUCTURAL = "structural"
    ROOFING = "roofing"
    ELECTRICAL = "electrical"
    PLUMBING = "plumbing"
    FINISHING = "finishing"
    EXTERNAL_WORKS = "external_works"


class LineItem(TenantScopedBase):
    """A cost heading within a tenant's catalog."""

    __tablename__ = "line_items"

    __table_args__ = (
        Index("idx_line_items_tenant_category", "tenant_id", "category"),
    )

    category: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<LineItem {self.category}/{self.name}>"

    def to_dto(self) -> LineItemRecord:
        from budget_kernel.domain.dtos import LineItemRecord

        return LineItemRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            category=self.category,
            name=self.name,
            description=self.description,
        )


class Material(TenantScopedBase):
    """A priced material.  Allocations snapshot the price they were entered at."""

    __tablename__ = "materials"

    __table_args__ = (
        CheckConstraint("current_unit_price >= 0", name="ck_materials_price_non_negative"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str] = mapped_column(String(50), nullable=False)
    current_unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    supplier: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Material {self.name} {self.current_unit_price}/{self.unit}>"

    def to_dto(self) -> MaterialRecord:
        from budget_kernel.domain.dtos import MaterialRecord

        return MaterialRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            name=self.name,
            unit=self.unit,
            current_unit_price=self.current_unit_price,
            supplier=self.supplier,
        )
