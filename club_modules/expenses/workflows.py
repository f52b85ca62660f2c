"""Expense review workflow: pending -> approved | rejected (both terminal)."""

from club_kernel.domain.workflow import Transition, Workflow
from club_kernel.logging_config import get_logger

logger = get_logger("modules.expenses.workflows")

EXPENSE_WORKFLOW = Workflow(
    name="expense",
    description="Expense review lifecycle",
    initial_state="pending",
    states=("pending", "approved", "rejected"),
    transitions=(
        Transition("pending", "approved", action="approve"),
        Transition("pending", "rejected", action="reject"),
    ),
    terminal_states=("approved", "rejected"),
)

logger.info(
    "expense_workflow_registered",
    extra={
        "workflow_name": EXPENSE_WORKFLOW.name,
        "state_count": len(EXPENSE_WORKFLOW.states),
        "transition_count": len(EXPENSE_WORKFLOW.transitions),
    },
)
