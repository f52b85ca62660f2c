"""
Structural checks over every workflow: reachable states, terminal states
with no exits, transitions only between declared states.
"""

import pytest

from club_modules.activities.workflows import ACTIVITY_WORKFLOW
from club_modules.dues.workflows import MEMBER_DUES_WORKFLOW
from club_modules.expenses.workflows import EXPENSE_WORKFLOW
from club_modules.members.workflows import MEMBER_STATUS_WORKFLOW
from club_modules.payments.workflows import PAYMENT_CONFIRMATION_WORKFLOW

ALL_WORKFLOWS = [
    ACTIVITY_WORKFLOW,
    EXPENSE_WORKFLOW,
    PAYMENT_CONFIRMATION_WORKFLOW,
    MEMBER_STATUS_WORKFLOW,
    MEMBER_DUES_WORKFLOW,
]


@pytest.mark.parametrize("workflow", ALL_WORKFLOWS, ids=lambda w: w.name)
class TestWorkflowStructure:

    def test_initial_state_declared(self, workflow):
        assert workflow.initial_state in workflow.states

    def test_transitions_use_declared_states(self, workflow):
        for t in workflow.transitions:
            assert t.from_state in workflow.states
            assert t.to_state in workflow.states

    def test_terminal_states_have_no_exits(self, workflow):
        for state in workflow.terminal_states:
            assert not any(t.from_state == state for t in workflow.transitions)

    def test_every_state_reachable(self, workflow):
        reached = {workflow.initial_state}
        frontier = [workflow.initial_state]
        while frontier:
            state = frontier.pop()
            for t in workflow.transitions:
                if t.from_state == state and t.to_state not in reached:
                    reached.add(t.to_state)
                    frontier.append(t.to_state)
        assert reached == set(workflow.states)


class TestActivityWorkflow:

    def test_happy_path(self):
        assert ACTIVITY_WORKFLOW.find_transition("draft", "submit").to_state == "pending_approval"
        assert ACTIVITY_WORKFLOW.find_transition("pending_approval", "approve").to_state == "approved"
        assert ACTIVITY_WORKFLOW.find_transition("approved", "complete").to_state == "completed"

    def test_reject_returns_to_draft(self):
        assert ACTIVITY_WORKFLOW.find_transition("pending_approval", "reject").to_state == "draft"

    def test_cancel_from_any_non_terminal(self):
        for state in ("draft", "pending_approval", "approved"):
            assert ACTIVITY_WORKFLOW.find_transition(state, "cancel").to_state == "cancelled"

    def test_cannot_complete_unapproved(self):
        assert ACTIVITY_WORKFLOW.find_transition("draft", "complete") is None
        assert ACTIVITY_WORKFLOW.find_transition("pending_approval", "complete") is None


class TestReviewWorkflows:

    @pytest.mark.parametrize("workflow", [EXPENSE_WORKFLOW, PAYMENT_CONFIRMATION_WORKFLOW])
    def test_pending_reviewed_once(self, workflow):
        assert workflow.initial_state == "pending"
        assert workflow.find_transition("pending", "approve").to_state == "approved"
        assert workflow.find_transition("pending", "reject").to_state == "rejected"
        assert workflow.is_terminal("approved")
        assert workflow.is_terminal("rejected")
