"""
Budget Modules.

Transaction-owning facades over the budget kernel.  Each module contains:
- Result models (frozen dataclasses with ``to_dict()``)
- Workflows (state machines)
- Configuration schemas
- A service facade that commits on success and rolls back on failure

Modules:
- cost_allocation: labour and material costs and their approval
- budget_change: budget amendments, change orders, alerts, budget history
- catalog: projects, line items and materials
"""
