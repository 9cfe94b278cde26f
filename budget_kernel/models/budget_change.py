"""
Module: budget_kernel.models.budget_change
Responsibility: ORM persistence for budget amendments and change orders,
    the two ways a project's budget grows after creation.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - amount_added > 0 on amendments; cost_impact != 0 on change orders.
    - Both follow the draft -> pending -> approved|rejected workflow; only
      an approved row has changed Project.budget, and it did so once.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TenantScopedBase, UUIDString

if TYPE_CHECKING:
    from budget_kernel.domain.dtos import BudgetAmendmentRecord, ChangeOrderRecord

_VALID_STATUS = "status IN ('draft', 'pending', 'approved', 'rejected')"


class BudgetAmendment(TenantScopedBase):
    """A proposed increase to a project's budget."""

    __tablename__ = "budget_amendments"

    __table_args__ = (
        CheckConstraint(_VALID_STATUS, name="ck_budget_amendments_valid_status"),
        CheckConstraint("amount_added > 0", name="ck_budget_amendments_amount_positive"),
        Index("idx_budget_amendments_project_status", "project_id", "status"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    amount_added: Mapped[Decimal] = mapped_column(nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    proposed_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<BudgetAmendment {self.id} +{self.amount_added} [{self.status}]>"

    def to_dto(self) -> BudgetAmendmentRecord:
        from budget_kernel.domain.dtos import BudgetAmendmentRecord
        from budget_kernel.domain.workflow import ApprovalStatus

        return BudgetAmendmentRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            project_id=self.project_id,
            amount_added=self.amount_added,
            reason=self.reason,
            proposed_by=self.proposed_by,
            status=ApprovalStatus(self.status),
            approved_by=self.approved_by,
            approved_at=self.approved_at,
        )


class ChangeOrder(TenantScopedBase):
    """A scope change with a cost impact on the project budget."""

    __tablename__ = "change_orders"

    __table_args__ = (
        CheckConstraint(_VALID_STATUS, name="ck_change_orders_valid_status"),
        CheckConstraint("cost_impact <> 0", name="ck_change_orders_impact_non_zero"),
        Index("idx_change_orders_project_status", "project_id", "status"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    cost_impact: Mapped[Decimal] = mapped_column(nullable=False)
    proposed_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    approved_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<ChangeOrder {self.id} impact={self.cost_impact} [{self.status}]>"

    def to_dto(self) -> ChangeOrderRecord:
        from budget_kernel.domain.dtos import ChangeOrderRecord
        from budget_kernel.domain.workflow import ApprovalStatus

        return ChangeOrderRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            project_id=self.project_id,
            description=self.description,
            cost_impact=self.cost_impact,
            proposed_by=self.proposed_by,
            status=ApprovalStatus(self.status),
            approved_by=self.approved_by,
            approved_at=self.approved_at,
        )
