"""
Frozen record DTOs (``budget_kernel.domain.dtos``).

Every ORM model converts to one of these through ``to_dto()`` before it
leaves a service, so callers never hold a live, session-bound row.
All monetary fields are ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from budget_kernel.domain.alerts import AlertSeverity, AlertStatus, AlertType
from budget_kernel.domain.workflow import ApprovalStatus


@dataclass(frozen=True)
class ProjectRecord:
    id: UUID
    tenant_id: UUID
    title: str
    budget: Decimal
    consumed_amount: Decimal
    revenue: Decimal
    status: str
    manager_id: UUID
    description: str | None = None


@dataclass(frozen=True)
class LineItemRecord:
    id: UUID
    tenant_id: UUID
    category: str
    name: str
    description: str | None = None


@dataclass(frozen=True)
class MaterialRecord:
    id: UUID
    tenant_id: UUID
    name: str
    unit: str
    current_unit_price: Decimal
    supplier: str | None = None


@dataclass(frozen=True)
class MaterialAllocationRecord:
    id: UUID
    cost_allocation_id: UUID
    material_id: UUID
    quantity: Decimal
    unit_price: Decimal
    total: Decimal


@dataclass(frozen=True)
class CostAllocationRecord:
    id: UUID
    tenant_id: UUID
    project_id: UUID
    line_item_id: UUID
    labour_cost: Decimal
    material_cost: Decimal
    quantity: Decimal
    unit_cost: Decimal | None
    total_cost: Decimal
    status: ApprovalStatus
    requires_approval: bool
    entered_by: UUID
    date_incurred: datetime | None = None
    change_order_id: UUID | None = None
    material_allocations: tuple[MaterialAllocationRecord, ...] = ()


@dataclass(frozen=True)
class ApprovalWorkflowRecord:
    id: UUID
    tenant_id: UUID
    related_table: str
    record_id: UUID
    status: ApprovalStatus
    requested_by: UUID
    approver_id: UUID | None = None
    comments: str | None = None
    requested_at: datetime | None = None
    resolved_at: datetime | None = None


@dataclass(frozen=True)
class BudgetAmendmentRecord:
    id: UUID
    tenant_id: UUID
    project_id: UUID
    amount_added: Decimal
    reason: str
    proposed_by: UUID
    status: ApprovalStatus
    approved_by: UUID | None = None
    approved_at: datetime | None = None


@dataclass(frozen=True)
class ChangeOrderRecord:
    id: UUID
    tenant_id: UUID
    project_id: UUID
    description: str
    cost_impact: Decimal
    proposed_by: UUID
    status: ApprovalStatus
    approved_by: UUID | None = None
    approved_at: datetime | None = None


@dataclass(frozen=True)
class BudgetAlertRecord:
    id: UUID
    tenant_id: UUID
    project_id: UUID
    alert_type: AlertType
    severity: AlertSeverity
    status: AlertStatus
    message: str
    spent_percentage: Decimal | None = None
    remaining_budget: Decimal | None = None
    triggered_by: UUID | None = None
    acknowledged_by: UUID | None = None
    acknowledged_at: datetime | None = None
    resolved_at: datetime | None = None


@dataclass(frozen=True)
class AuditLogRecord:
    id: UUID
    tenant_id: UUID
    user_id: UUID | None
    action: str
    entity_type: str
    entity_id: str
    project_id: UUID | None = None
    amount: Decimal | None = None
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
