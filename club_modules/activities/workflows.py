"""Activity budget approval workflow.

draft -> pending_approval -> approved -> completed, with rejection back to
draft and cancellation from any non-terminal state.
"""

from club_kernel.domain.workflow import Transition, Workflow
from club_kernel.logging_config import get_logger

logger = get_logger("modules.activities.workflows")

ACTIVITY_WORKFLOW = Workflow(
    name="activity",
    description="Activity budget approval lifecycle",
    initial_state="draft",
    states=("draft", "pending_approval", "approved", "completed", "cancelled"),
    transitions=(
        Transition("draft", "pending_approval", action="submit"),
        Transition("pending_approval", "approved", action="approve"),
        Transition("pending_approval", "draft", action="reject"),
        Transition("approved", "completed", action="complete"),
        Transition("draft", "cancelled", action="cancel"),
        Transition("pending_approval", "cancelled", action="cancel"),
        Transition("approved", "cancelled", action="cancel"),
    ),
    terminal_states=("completed", "cancelled"),
)

logger.info(
    "activity_workflow_registered",
    extra={
        "workflow_name": ACTIVITY_WORKFLOW.name,
        "state_count": len(ACTIVITY_WORKFLOW.states),
        "transition_count": len(ACTIVITY_WORKFLOW.transitions),
    },
)
