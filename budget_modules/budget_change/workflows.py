"""Budget Change Workflows.

Amendments and change orders share the approval state machine; only the
capability needed to propose and submit differs.
"""

from budget_kernel.domain.roles import Capability
from budget_kernel.domain.workflow import approval_workflow
from budget_kernel.logging_config import get_logger

logger = get_logger("modules.budget_change.workflows")


BUDGET_AMENDMENT_WORKFLOW = approval_workflow(
    "budget_amendment",
    "Budget amendment approval lifecycle",
    entry_capability=Capability.BUDGET_AMENDMENTS,
)

CHANGE_ORDER_WORKFLOW = approval_workflow(
    "change_order",
    "Change order approval lifecycle",
    entry_capability=Capability.CHANGE_ORDERS,
)

for _wf in (BUDGET_AMENDMENT_WORKFLOW, CHANGE_ORDER_WORKFLOW):
    logger.info("budget_change_workflow_registered", extra={
        "workflow_name": _wf.name,
        "state_count": len(_wf.states),
    })
