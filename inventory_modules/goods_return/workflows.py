"""
Goods Return Workflows.

State machine for goods returned to a supplier.
"""

from inventory_kernel.domain.workflow import Transition, Workflow
from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.goods_return.workflows")


GOODS_RETURN_WORKFLOW = Workflow(
    name="goods_return",
    description="Goods sent back from a location to a supplier",
    initial_state="draft",
    states=(
        "draft",
        "posted",
        "cancelled",
    ),
    transitions=(
        Transition("draft", "posted", action="post", posts_entry=True),
        Transition("draft", "cancelled", action="cancel"),
        Transition("posted", "cancelled", action="cancel", reverses_entries=True),
    ),
    terminal_states=("cancelled",),
)

logger.info(
    "goods_return_workflow_registered",
    extra={
        "workflow_name": GOODS_RETURN_WORKFLOW.name,
        "state_count": len(GOODS_RETURN_WORKFLOW.states),
        "transition_count": len(GOODS_RETURN_WORKFLOW.transitions),
        "initial_state": GOODS_RETURN_WORKFLOW.initial_state,
    },
)
