"""
Module: budget_kernel.models.cost_allocation
Responsibility: ORM persistence for cost allocations and their material rows.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - total_cost = labour_cost + material_cost, and material_cost is the sum
      of the owned material rows' totals.  Both are computed once at
      creation by the cost allocation facade and never edited afterwards.
    - status is one of draft/pending/approved/rejected (check constraint);
      the workflow decides which changes are legal.
    - MaterialAllocation rows belong to exactly one CostAllocation and are
      deleted with it.
    - version is an optimistic-lock counter: approving from a stale read
      raises StaleDataError at flush instead of approving twice.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from budget_kernel.db.base import TenantScopedBase, UUIDString

if TYPE_CHECKING:
    from budget_kernel.domain.dtos import CostAllocationRecord, MaterialAllocationRecord


class CostAllocation(TenantScopedBase):
    """A recorded labour + materials cost against a project line item."""

    __tablename__ = "cost_allocations"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending', 'approved', 'rejected')",
            name="ck_cost_allocations_valid_status",
        ),
        CheckConstraint("labour_cost >= 0", name="ck_cost_allocations_labour_non_negative"),
        Index("idx_cost_allocations_project_status", "project_id", "status"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    line_item_id: Mapped[UUID] = mapped_column(ForeignKey("line_items.id"), nullable=False)
    change_order_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("change_orders.id"), nullable=True,
    )
    labour_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    material_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_cost: Mapped[Decimal] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    requires_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    entered_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    date_incurred: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    material_allocations: Mapped[list["MaterialAllocation"]] = relationship(
        "MaterialAllocation",
        back_populates="cost_allocation",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<CostAllocation {self.id} total={self.total_cost} [{self.status}]>"

    def to_dto(self) -> CostAllocationRecord:
        from budget_kernel.domain.dtos import CostAllocationRecord
        from budget_kernel.domain.workflow import ApprovalStatus

        return CostAllocationRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            project_id=self.project_id,
            line_item_id=self.line_item_id,
            labour_cost=self.labour_cost,
            material_cost=self.material_cost,
            quantity=self.quantity,
            unit_cost=self.unit_cost,
            total_cost=self.total_cost,
            status=ApprovalStatus(self.status),
            requires_approval=self.requires_approval,
            entered_by=self.entered_by,
            date_incurred=self.date_incurred,
            change_order_id=self.change_order_id,
            material_allocations=tuple(m.to_dto() for m in self.material_allocations),
        )


class MaterialAllocation(TenantScopedBase):
    """One material row of a cost allocation; total = quantity * unit_price."""

    __tablename__ = "material_allocations"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_material_allocations_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_material_allocations_price_non_negative"),
        Index("idx_material_allocations_cost_allocation", "cost_allocation_id"),
    )

    cost_allocation_id: Mapped[UUID] = mapped_column(
        ForeignKey("cost_allocations.id"), nullable=False,
    )
    material_id: Mapped[UUID] = mapped_column(ForeignKey("materials.id"), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(nullable=False)
    total: Mapped[Decimal] = mapped_column(nullable=False)

    cost_allocation: Mapped["CostAllocation"] = relationship(
        "CostAllocation",
        back_populates="material_allocations",
    )

    def __repr__(self) -> str:
        return f"<MaterialAllocation {self.material_id} {self.quantity} x {self.unit_price}>"

    def to_dto(self) -> MaterialAllocationRecord:
        from budget_kernel.domain.dtos import MaterialAllocationRecord

        return MaterialAllocationRecord(
            id=self.id,
            cost_allocation_id=self.cost_allocation_id,
            material_id=self.material_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            total=self.total,
        )
