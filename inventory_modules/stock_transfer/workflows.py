"""
Stock Transfer Workflows.

State machine for transfers between two locations: dispatch, receipt,
completion.
"""

from inventory_kernel.domain.workflow import Guard, Transition, Workflow
from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.stock_transfer.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

ALL_LINES_TERMINAL = Guard(
    name="all_lines_terminal",
    description="Every line is received or damaged",
)

logger.info(
    "stock_transfer_workflow_guards_defined",
    extra={"guards": [ALL_LINES_TERMINAL.name]},
)


# -----------------------------------------------------------------------------
# Transfer Workflow
# -----------------------------------------------------------------------------

STOCK_TRANSFER_WORKFLOW = Workflow(
    name="stock_transfer",
    description="Stock moved from one location to another",
    initial_state="draft",
    states=(
        "draft",
        "posted",
        "completed",
        "cancelled",
    ),
    transitions=(
        Transition("draft", "posted", action="post", posts_entry=True),
        Transition("draft", "cancelled", action="cancel"),
        Transition("posted", "completed", action="complete", guard=ALL_LINES_TERMINAL),
        Transition("posted", "cancelled", action="cancel", reverses_entries=True),
    ),
    terminal_states=("completed", "cancelled"),
)

logger.info(
    "stock_transfer_workflow_registered",
    extra={
        "workflow_name": STOCK_TRANSFER_WORKFLOW.name,
        "state_count": len(STOCK_TRANSFER_WORKFLOW.states),
        "transition_count": len(STOCK_TRANSFER_WORKFLOW.transitions),
        "initial_state": STOCK_TRANSFER_WORKFLOW.initial_state,
    },
)
