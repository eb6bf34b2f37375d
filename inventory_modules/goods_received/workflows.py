"""
Goods Received Workflows.

State machine for goods received notes.
"""

from inventory_kernel.domain.workflow import Guard, Transition, Workflow
from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.goods_received.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

STOCK_AVAILABLE_FOR_REVERSAL = Guard(
    name="stock_available_for_reversal",
    description="Received stock has not been consumed below the received quantity",
)


# -----------------------------------------------------------------------------
# GRN Workflow
# -----------------------------------------------------------------------------

GOODS_RECEIVED_WORKFLOW = Workflow(
    name="goods_received",
    description="Goods received from a supplier into a location",
    initial_state="draft",
    states=(
        "draft",
        "posted",
        "cancelled",
    ),
    transitions=(
        Transition("draft", "posted", action="post", posts_entry=True),
        Transition("draft", "cancelled", action="cancel"),
        Transition(
            "posted", "cancelled", action="cancel",
            guard=STOCK_AVAILABLE_FOR_REVERSAL, reverses_entries=True,
        ),
    ),
    terminal_states=("cancelled",),
)

logger.info(
    "goods_received_workflow_registered",
    extra={
        "workflow_name": GOODS_RECEIVED_WORKFLOW.name,
        "state_count": len(GOODS_RECEIVED_WORKFLOW.states),
        "transition_count": len(GOODS_RECEIVED_WORKFLOW.transitions),
        "initial_state": GOODS_RECEIVED_WORKFLOW.initial_state,
    },
)
