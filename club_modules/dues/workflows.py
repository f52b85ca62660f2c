"""Per-member dues workflow: UNPAID -> PAID | WAIVED."""

from club_kernel.domain.workflow import Transition, Workflow
from club_kernel.logging_config import get_logger

logger = get_logger("modules.dues.workflows")

MEMBER_DUES_WORKFLOW = Workflow(
    name="member_dues",
    description="Member dues settlement for one cycle",
    initial_state="UNPAID",
    states=("UNPAID", "PAID", "WAIVED"),
    transitions=(
        Transition("UNPAID", "PAID", action="mark_paid"),
        Transition("UNPAID", "WAIVED", action="waive"),
    ),
    terminal_states=("PAID", "WAIVED"),
)

logger.info(
    "member_dues_workflow_registered",
    extra={
        "workflow_name": MEMBER_DUES_WORKFLOW.name,
        "state_count": len(MEMBER_DUES_WORKFLOW.states),
        "transition_count": len(MEMBER_DUES_WORKFLOW.transitions),
    },
)
