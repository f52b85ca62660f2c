"""
club_services.rbac_authority -- role enforcement at the workflow boundary.

Responsibility:
    One explicit table answers "may a caller with role R perform action A
    on workflow W".  Services call ``require_permission`` before they read
    or change state, so a forbidden caller never observes an
    InvalidTransitionError for a record they may not touch.

Invariants:
    - The engine does not resolve identity; the caller supplies an Actor.
    - A (workflow, action) pair missing from the table is denied.
    - Per-record grants (an activity's allowed expense submitters, a member
      paying for themselves) are checked by the owning service on top of
      this table.
"""

from __future__ import annotations

from club_kernel.domain.roles import Actor, Role
from club_kernel.exceptions import ForbiddenError
from club_kernel.logging_config import get_logger

logger = get_logger("services.rbac")

_OFFICERS = frozenset({Role.TREASURER, Role.PRESIDENT})
_EVERYONE = frozenset(Role)

# (workflow_name, action) -> roles allowed to perform it
TRANSITION_PERMISSIONS: dict[tuple[str, str], frozenset[Role]] = {
    # Activity budget approval
    ("activity", "create"): frozenset({Role.TREASURER}),
    ("activity", "update_budget"): frozenset({Role.TREASURER}),
    ("activity", "submit"): frozenset({Role.TREASURER}),
    ("activity", "approve"): frozenset({Role.PRESIDENT}),
    ("activity", "reject"): frozenset({Role.PRESIDENT}),
    ("activity", "cancel"): _OFFICERS,
    ("activity", "complete"): _OFFICERS,
    ("activity", "update_submitters"): _OFFICERS,
    # Expense ledger
    ("expense", "submit"): _OFFICERS,
    ("expense", "approve"): frozenset({Role.TREASURER}),
    ("expense", "reject"): frozenset({Role.TREASURER}),
    ("expense", "reconcile"): frozenset({Role.TREASURER, Role.PRESIDENT, Role.ADMIN}),
    # Offline payment confirmations
    ("payment_confirmation", "submit"): _EVERYONE,
    ("payment_confirmation", "submit_on_behalf"): frozenset({Role.TREASURER}),
    ("payment_confirmation", "approve"): frozenset({Role.TREASURER}),
    ("payment_confirmation", "reject"): frozenset({Role.TREASURER}),
    # Member status
    ("member", "register"): frozenset({Role.ADMIN}),
    ("member", "complete_onboarding"): frozenset({Role.ADMIN}),
    ("member", "inactivate"): frozenset({Role.ADMIN}),
    # Dues administration
    ("dues_cycle", "create"): frozenset({Role.ADMIN}),
    ("dues_cycle", "activate"): frozenset({Role.ADMIN}),
    ("dues_cycle", "view"): frozenset({Role.TREASURER, Role.PRESIDENT, Role.ADMIN}),
    ("member_dues", "mark_paid"): frozenset({Role.TREASURER, Role.ADMIN}),
    ("member_dues", "waive"): frozenset({Role.TREASURER, Role.ADMIN}),
}


def allowed_roles(workflow_name: str, action: str) -> frozenset[Role]:
    """Roles allowed to perform the action; empty when the pair is unknown."""
    return TRANSITION_PERMISSIONS.get((workflow_name, action), frozenset())


def is_permitted(workflow_name: str, action: str, role: Role) -> bool:
    return role in allowed_roles(workflow_name, action)


def require_permission(workflow_name: str, action: str, actor: Actor) -> None:
    """Raise ForbiddenError unless the actor's role may perform the action."""
    if is_permitted(workflow_name, action, actor.role):
        return
    logger.warning(
        "permission_denied",
        extra={
            "workflow": workflow_name,
            "action": action,
            "role": actor.role.value,
            "member_id": str(actor.member_id),
        },
    )
    raise ForbiddenError(action, actor.role.value, workflow=workflow_name)
