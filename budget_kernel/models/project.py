"""
Module: budget_kernel.models.project
Responsibility: ORM persistence for projects and their cached budget state.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - consumed_amount is a running total.  It changes only by addition when
      a cost allocation is approved, never by re-summing allocations.
    - budget changes only by addition when an amendment or change order is
      approved.
    - version is an optimistic-lock counter (SQLAlchemy version_id_col): an
      UPDATE based on a stale read raises StaleDataError at flush.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TenantScopedBase, UUIDString

if TYPE_CHECKING:
    from budget_kernel.domain.dtos import ProjectRecord


class Project(TenantScopedBase):
    """A construction project with a budget."""

    __tablename__ = "projects"

    __table_args__ = (
        CheckConstraint("budget >= 0", name="ck_projects_budget_non_negative"),
        Index("idx_projects_tenant_status", "tenant_id", "status"),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    budget: Mapped[Decimal] = mapped_column(nullable=False)
    consumed_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    revenue: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")
    manager_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Project {self.title} budget={self.budget} consumed={self.consumed_amount}>"

    def to_dto(self) -> ProjectRecord:
        from budget_kernel.domain.dtos import ProjectRecord

        return ProjectRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            title=self.title,
            budget=self.budget,
            consumed_amount=self.consumed_amount,
            revenue=self.revenue,
            status=self.status,
            manager_id=self.manager_id,
            description=self.description,
        )
