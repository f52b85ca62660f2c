"""Payment confirmation review workflow: pending -> approved | rejected."""

from club_kernel.domain.workflow import Transition, Workflow
from club_kernel.logging_config import get_logger

logger = get_logger("modules.payments.workflows")

PAYMENT_CONFIRMATION_WORKFLOW = Workflow(
    name="payment_confirmation",
    description="Offline payment confirmation review",
    initial_state="pending",
    states=("pending", "approved", "rejected"),
    transitions=(
        Transition("pending", "approved", action="approve"),
        Transition("pending", "rejected", action="reject"),
    ),
    terminal_states=("approved", "rejected"),
)

logger.info(
    "payment_confirmation_workflow_registered",
    extra={
        "workflow_name": PAYMENT_CONFIRMATION_WORKFLOW.name,
        "state_count": len(PAYMENT_CONFIRMATION_WORKFLOW.states),
        "transition_count": len(PAYMENT_CONFIRMATION_WORKFLOW.transitions),
    },
)
