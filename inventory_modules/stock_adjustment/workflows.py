"""
Stock Adjustment Workflows.

State machine for stock adjustments.  Approval is the posting step.
"""

from inventory_kernel.domain.workflow import Guard, Transition, Workflow
from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.stock_adjustment.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

DISTINCT_APPROVER = Guard(
    name="distinct_approver",
    description="Approver is not the creator (when require_distinct_approver is set)",
)


# -----------------------------------------------------------------------------
# Adjustment Workflow
# -----------------------------------------------------------------------------

STOCK_ADJUSTMENT_WORKFLOW = Workflow(
    name="stock_adjustment",
    description="Correction of the quantity on hand at one location",
    initial_state="draft",
    states=(
        "draft",
        "approved",
        "cancelled",
    ),
    transitions=(
        Transition(
            "draft", "approved", action="approve",
            guard=DISTINCT_APPROVER, posts_entry=True, requires_approval=True,
        ),
        Transition("draft", "cancelled", action="cancel"),
        Transition("approved", "cancelled", action="cancel", reverses_entries=True),
    ),
    terminal_states=("cancelled",),
)

logger.info(
    "stock_adjustment_workflow_registered",
    extra={
        "workflow_name": STOCK_ADJUSTMENT_WORKFLOW.name,
        "state_count": len(STOCK_ADJUSTMENT_WORKFLOW.states),
        "transition_count": len(STOCK_ADJUSTMENT_WORKFLOW.transitions),
        "initial_state": STOCK_ADJUSTMENT_WORKFLOW.initial_state,
    },
)
