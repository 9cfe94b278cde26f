"""Services for the budget kernel (write side, flush only)."""

from budget_kernel.services.alert_service import BudgetAlertService
from budget_kernel.services.approval_service import ApprovalWorkflowService
from budget_kernel.services.auditor_service import AuditorService
from budget_kernel.services.catalog_service import CatalogService
from budget_kernel.services.tenant_guard import load_for_tenant

__all__ = [
    "ApprovalWorkflowService",
    "AuditorService",
    "BudgetAlertService",
    "CatalogService",
    "load_for_tenant",
]
