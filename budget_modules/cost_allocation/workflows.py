"""Cost Allocation Workflows.

State machine for the cost allocation lifecycle.
"""

from budget_kernel.domain.roles import Capability
from budget_kernel.domain.workflow import approval_workflow
from budget_kernel.logging_config import get_logger

logger = get_logger("modules.cost_allocation.workflows")


COST_ALLOCATION_WORKFLOW = approval_workflow(
    "cost_allocation",
    "Cost allocation approval lifecycle",
    entry_capability=Capability.COST_ENTRY,
)

logger.info("cost_allocation_workflow_registered", extra={
    "workflow_name": COST_ALLOCATION_WORKFLOW.name,
    "state_count": len(COST_ALLOCATION_WORKFLOW.states),
})
