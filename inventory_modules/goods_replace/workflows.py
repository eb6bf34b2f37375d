"""
Goods Replace Workflows.

State machine for replacement goods received from a supplier.
"""

from inventory_kernel.domain.workflow import Guard, Transition, Workflow
from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.goods_replace.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

WITHIN_REPLACEMENT_LIMIT = Guard(
    name="within_replacement_limit",
    description="Replacement per return line does not exceed the returned quantity",
)


# -----------------------------------------------------------------------------
# Replace Workflow
# -----------------------------------------------------------------------------

GOODS_REPLACE_WORKFLOW = Workflow(
    name="goods_replace",
    description="Replacement goods received from a supplier into a location",
    initial_state="draft",
    states=(
        "draft",
        "posted",
        "cancelled",
    ),
    transitions=(
        Transition(
            "draft", "posted", action="post",
            guard=WITHIN_REPLACEMENT_LIMIT, posts_entry=True,
        ),
        Transition("draft", "cancelled", action="cancel"),
        Transition("posted", "cancelled", action="cancel", reverses_entries=True),
    ),
    terminal_states=("cancelled",),
)

logger.info(
    "goods_replace_workflow_registered",
    extra={
        "workflow_name": GOODS_REPLACE_WORKFLOW.name,
        "state_count": len(GOODS_REPLACE_WORKFLOW.states),
        "transition_count": len(GOODS_REPLACE_WORKFLOW.transitions),
        "initial_state": GOODS_REPLACE_WORKFLOW.initial_state,
    },
)
