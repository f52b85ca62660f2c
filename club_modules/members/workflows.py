"""Member status workflow.

Reactivation (INACTIVE -> ACTIVE) is owned by the membership system outside
this engine and is intentionally absent.
"""

from club_kernel.domain.workflow import Transition, Workflow
from club_kernel.logging_config import get_logger

logger = get_logger("modules.members.workflows")

MEMBER_STATUS_WORKFLOW = Workflow(
    name="member_status",
    description="Membership status lifecycle",
    initial_state="PENDING_PROFILE",
    states=("PENDING_PROFILE", "ACTIVE", "INACTIVE"),
    transitions=(
        Transition("PENDING_PROFILE", "ACTIVE", action="complete_onboarding"),
        Transition("ACTIVE", "INACTIVE", action="inactivate"),
    ),
)

logger.info(
    "member_workflow_registered",
    extra={
        "workflow_name": MEMBER_STATUS_WORKFLOW.name,
        "state_count": len(MEMBER_STATUS_WORKFLOW.states),
        "transition_count": len(MEMBER_STATUS_WORKFLOW.transitions),
    },
)
