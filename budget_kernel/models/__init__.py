"""SQLAlchemy ORM models for the budget kernel."""

from budget_kernel.models.approval import ApprovalWorkflowModel, RelatedTable
from budget_kernel.models.audit_log import AuditAction, AuditLog
from budget_kernel.models.budget_alert import BudgetAlert
from budget_kernel.models.budget_change import BudgetAmendment, ChangeOrder
from budget_kernel.models.catalog import LineItem, LineItemCategory, Material
from budget_kernel.models.company import Company
from budget_kernel.models.cost_allocation import CostAllocation, MaterialAllocation
from budget_kernel.models.project import Project

__all__ = [
    "ApprovalWorkflowModel",
    "AuditAction",
    "AuditLog",
    "BudgetAlert",
    "BudgetAmendment",
    "ChangeOrder",
    "Company",
    "CostAllocation",
    "LineItem",
    "LineItemCategory",
    "Material",
    "MaterialAllocation",
    "Project",
    "RelatedTable",
]
