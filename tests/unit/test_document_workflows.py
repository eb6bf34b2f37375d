"""
Document workflow definitions.

Tests cover:
- Every module's state machine starts in draft and ends in cancelled
- Exactly one transition per workflow writes ledger entries
- Cancelling from a posted state reverses entries; from draft it does not
- Structural validation of Workflow definitions
"""

import pytest

from inventory_kernel.domain.workflow import Guard, Transition, Workflow
from inventory_modules.goods_received import GOODS_RECEIVED_WORKFLOW
from inventory_modules.goods_replace import GOODS_REPLACE_WORKFLOW
from inventory_modules.goods_return import GOODS_RETURN_WORKFLOW
from inventory_modules.stock_adjustment import STOCK_ADJUSTMENT_WORKFLOW
from inventory_modules.stock_transfer import STOCK_TRANSFER_WORKFLOW

ALL_WORKFLOWS = [
    GOODS_RECEIVED_WORKFLOW,
    STOCK_TRANSFER_WORKFLOW,
    STOCK_ADJUSTMENT_WORKFLOW,
    GOODS_RETURN_WORKFLOW,
    GOODS_REPLACE_WORKFLOW,
]


@pytest.mark.parametrize("workflow", ALL_WORKFLOWS, ids=lambda w: w.name)
class TestEveryWorkflow:

    def test_starts_in_draft(self, workflow):
        assert workflow.initial_state == "draft"

    def test_cancelled_is_terminal(self, workflow):
        assert workflow.is_terminal("cancelled")
        assert workflow.allowed_actions("cancelled") == ()

    def test_exactly_one_posting_transition_from_draft(self, workflow):
        posting = [t for t in workflow.transitions if t.posts_entry]
        assert len(posting) == 1
        assert posting[0].from_state == "draft"

    def test_draft_cancel_has_no_ledger_effect(self, workflow):
        transition = workflow.find_transition("draft", "cancel")
        assert transition is not None
        assert not transition.reverses_entries

    def test_posted_cancel_reverses_entries(self, workflow):
        posting = next(t for t in workflow.transitions if t.posts_entry)
        transition = workflow.find_transition(posting.to_state, "cancel")
        assert transition is not None
        assert transition.reverses_entries

    def test_cannot_post_twice(self, workflow):
        posting = next(t for t in workflow.transitions if t.posts_entry)
        assert workflow.find_transition(posting.to_state, posting.action) is None


class TestTransferWorkflow:

    def test_completion_requires_all_lines_terminal(self):
        transition = STOCK_TRANSFER_WORKFLOW.find_transition("posted", "complete")
        assert transition.to_state == "completed"
        assert transition.guard is not None
        assert transition.guard.name == "all_lines_terminal"

    def test_completed_transfer_cannot_be_cancelled(self):
        assert STOCK_TRANSFER_WORKFLOW.is_terminal("completed")
        assert STOCK_TRANSFER_WORKFLOW.find_transition("completed", "cancel") is None

    def test_posted_transfer_actions(self):
        assert set(STOCK_TRANSFER_WORKFLOW.allowed_actions("posted")) == {"complete", "cancel"}


class TestAdjustmentWorkflow:

    def test_approve_is_the_posting_step(self):
        transition = STOCK_ADJUSTMENT_WORKFLOW.find_transition("draft", "approve")
        assert transition.to_state == "approved"
        assert transition.posts_entry
        assert transition.requires_approval

    def test_no_post_action(self):
        assert STOCK_ADJUSTMENT_WORKFLOW.find_transition("draft", "post") is None


class TestWorkflowValidation:

    def test_initial_state_must_be_a_state(self):
        with pytest.raises(ValueError, match="initial_state"):
            Workflow(
                name="broken",
                description="",
                initial_state="missing",
                states=("draft",),
                transitions=(),
            )

    def test_transition_to_unknown_state_rejected(self):
        with pytest.raises(ValueError, match="unknown state"):
            Workflow(
                name="broken",
                description="",
                initial_state="draft",
                states=("draft",),
                transitions=(Transition("draft", "posted", action="post"),),
            )

    def test_terminal_state_with_outgoing_transition_rejected(self):
        with pytest.raises(ValueError, match="terminal state"):
            Workflow(
                name="broken",
                description="",
                initial_state="draft",
                states=("draft", "cancelled"),
                transitions=(Transition("cancelled", "draft", action="reopen"),),
                terminal_states=("cancelled",),
            )

    def test_duplicate_action_from_same_state_rejected(self):
        with pytest.raises(ValueError, match="duplicate"):
            Workflow(
                name="broken",
                description="",
                initial_state="draft",
                states=("draft", "posted", "cancelled"),
                transitions=(
                    Transition("draft", "posted", action="post"),
                    Transition("draft", "cancelled", action="post"),
                ),
            )

    def test_guard_is_descriptive_only(self):
        guard = Guard(name="g", description="always")
        transition = Transition("a", "b", action="go", guard=guard)
        assert transition.guard.description == "always"
