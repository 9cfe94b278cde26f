"""
Module: budget_kernel.models.budget_alert
Responsibility: ORM persistence for budget threshold alerts.
Architecture position: Kernel > Models.  May import from db/base.py only.

Lifecycle: active -> acknowledged -> resolved, or active -> resolved.
BudgetAlertService guarantees at most one unresolved alert per
(project, alert_type).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TenantScopedBase, UUIDString

if TYPE_CHECKING:
    from budget_kernel.domain.dtos import BudgetAlertRecord


class BudgetAlert(TenantScopedBase):
    __tablename__ = "budget_alerts"

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'acknowledged', 'resolved')",
            name="ck_budget_alerts_valid_status",
        ),
        CheckConstraint(
            "severity IN ('warning', 'critical')",
            name="ck_budget_alerts_valid_severity",
        ),
        Index("idx_budget_alerts_project_type_status", "project_id", "alert_type", "status"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    message: Mapped[str] = mapped_column(Text, nullable=False)
    spent_percentage: Mapped[Decimal | None] = mapped_column(nullable=True)
    remaining_budget: Mapped[Decimal | None] = mapped_column(nullable=True)
    triggered_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    acknowledged_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    def __repr__(self) -> str:
        return f"<BudgetAlert {self.alert_type} project={self.project_id} [{self.status}]>"

    def to_dto(self) -> BudgetAlertRecord:
        from budget_kernel.domain.alerts import AlertSeverity, AlertStatus, AlertType
        from budget_kernel.domain.dtos import BudgetAlertRecord

        return BudgetAlertRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            project_id=self.project_id,
            alert_type=AlertType(self.alert_type),
            severity=AlertSeverity(self.severity),
            status=AlertStatus(self.status),
            message=self.message,
            spent_percentage=self.spent_percentage,
            remaining_budget=self.remaining_budget,
            triggered_by=self.triggered_by,
            acknowledged_by=self.acknowledged_by,
            acknowledged_at=self.acknowledged_at,
            resolved_at=self.resolved_at,
        )
