"""
Activity Service (``club_modules.activities.service``).

Responsibility
--------------
Creates activities, maintains their line-item budgets and drives the budget
approval workflow (submit / approve / reject / cancel / complete).

Architecture position
---------------------
**Modules layer**.  ``ActivityService`` is the sole public entry point for
activity state.  Budget arithmetic is delegated to ``budget.py``; role
checks to ``club_services.rbac_authority``.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (``commit`` on success,
  ``rollback`` on any exception).
* Check order: the activity must exist, then the caller's role must allow
  the action, then the current status must allow it.
* Every transition is one conditional update on the observed status; a
  concurrent change makes it fail with ``InvalidTransitionError`` and
  nothing is written.
* ``total_estimate`` is recomputed from the line items on every write.

Failure modes
-------------
* ``ActivityNotFoundError``, ``ForbiddenError``, ``InvalidTransitionError``,
  ``ValidationError``.  All propagate after rollback.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from club_kernel.domain.clock import Clock, SystemClock
from club_kernel.domain.roles import Actor
from club_kernel.exceptions import (
    ActivityNotFoundError,
    InvalidTransitionError,
    ValidationError,
)
from club_kernel.logging_config import LogContext, get_logger
from club_modules._transition_helpers import (
    apply_transition,
    compare_and_set_status,
    parse_status,
)
from club_modules.activities.budget import (
    BudgetLineItem,
    BudgetSummary,
    budget_utilization,
    compute_total_estimate,
    parse_line_items,
)
from club_modules.activities.models import Activity, ActivityStatus, ActivityType
from club_modules.activities.orm import ActivityModel
from club_modules.activities.workflows import ACTIVITY_WORKFLOW
from club_modules.expenses.orm import ExpenseModel
from club_services.rbac_authority import require_permission

logger = get_logger("modules.activities.service")


def _resolve_type(activity_type: ActivityType | str, custom_type: str | None) -> tuple[str, str | None]:
    try:
        resolved = ActivityType(activity_type)
    except ValueError:
        raise ValidationError(f"Unknown activity type: {activity_type!r}", field="type") from None
    if resolved is ActivityType.OTHER:
        if not custom_type or not custom_type.strip():
            raise ValidationError("custom_type is required when type is 'other'", field="custom_type")
        return resolved.value, custom_type.strip()
    return resolved.value, None


class ActivityService:
    """Activity budgets and the budget approval workflow."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    # =========================================================================
    # Queries
    # =========================================================================

    def _load(self, activity_id: UUID) -> ActivityModel:
        row = self._session.get(ActivityModel, activity_id, populate_existing=True)
        if row is None:
            raise ActivityNotFoundError(activity_id)
        return row

    def get_activity(self, activity_id: UUID) -> Activity:
        return self._load(activity_id).to_dto()

    def list_activities(self, status: ActivityStatus | str | None = None) -> list[Activity]:
        stmt = select(ActivityModel).order_by(ActivityModel.activity_date, ActivityModel.name)
        if status is not None:
            stmt = stmt.where(ActivityModel.status == parse_status(ActivityStatus, status).value)
        return [row.to_dto() for row in self._session.execute(stmt).scalars()]

    def budget_summary(self, activity_id: UUID) -> BudgetSummary:
        """Estimate vs. approved spend, plus the amount still awaiting review."""
        row = self._load(activity_id)
        pending = self._session.execute(
            select(func.coalesce(func.sum(ExpenseModel.amount), 0)).where(
                ExpenseModel.activity_id == activity_id,
                ExpenseModel.status == "pending",
            )
        ).scalar_one()
        return BudgetSummary(
            activity_id=row.id,
            total_estimate=row.total_estimate,
            total_spent=row.total_spent or 0,
            pending_expenses=int(pending),
            utilization=budget_utilization(row.total_spent, row.total_estimate),
        )

    # =========================================================================
    # Creation and budget maintenance
    # =========================================================================

    def create_activity(
        self,
        actor: Actor,
        name: str,
        activity_type: ActivityType | str,
        activity_date: date,
        line_items: Iterable[Mapping[str, Any] | BudgetLineItem] = (),
        custom_type: str | None = None,
        location: str | None = None,
        address: str | None = None,
        description: str | None = None,
        linked_event_id: str | None = None,
        allowed_expense_submitters: Sequence[UUID] = (),
    ) -> Activity:
        """Create an activity in ``draft`` with its estimate derived from line items."""
        require_permission("activity", "create", actor)
        if not name or not name.strip():
            raise ValidationError("name is required", field="name")
        if not isinstance(activity_date, date):
            raise ValidationError("date is required", field="date")
        type_value, custom = _resolve_type(activity_type, custom_type)
        items = parse_line_items(line_items)

        try:
            row = ActivityModel(
                name=name.strip(),
                activity_type=type_value,
                custom_type=custom,
                activity_date=activity_date,
                location=location,
                address=address,
                description=description,
                linked_event_id=linked_event_id,
                line_items=[item.to_dict() for item in items],
                total_estimate=compute_total_estimate(items),
                total_spent=None,
                status=ACTIVITY_WORKFLOW.initial_state,
                allowed_expense_submitters=[str(m) for m in allowed_expense_submitters],
                created_by_id=actor.member_id,
            )
            self._session.add(row)
            self._session.commit()
            logger.info(
                "activity_created",
                extra={
                    "activity_id": str(row.id),
                    "activity_type": type_value,
                    "total_estimate": row.total_estimate,
                    "line_item_count": len(items),
                },
            )
            return row.to_dto()
        except Exception:
            self._session.rollback()
            raise

    def update_budget(
        self,
        actor: Actor,
        activity_id: UUID,
        line_items: Iterable[Mapping[str, Any] | BudgetLineItem],
    ) -> Activity:
        """Replace the line items of a draft activity and re-derive its estimate."""
        try:
            row = self._load(activity_id)
            require_permission("activity", "update_budget", actor)
            items = parse_line_items(line_items)
            if row.status != ActivityStatus.DRAFT.value:
                raise InvalidTransitionError("activity", activity_id, row.status, "update_budget")
            compare_and_set_status(
                self._session,
                ActivityModel,
                activity_id,
                entity_type="activity",
                action="update_budget",
                expected_status=ActivityStatus.DRAFT.value,
                values={
                    "line_items": [item.to_dict() for item in items],
                    "total_estimate": compute_total_estimate(items),
                    "updated_by_id": actor.member_id,
                },
            )
            self._session.commit()
            self._session.refresh(row)
            logger.info(
                "activity_budget_updated",
                extra={"activity_id": str(activity_id), "total_estimate": row.total_estimate},
            )
            return row.to_dto()
        except Exception:
            self._session.rollback()
            raise

    def set_expense_submitters(
        self, actor: Actor, activity_id: UUID, member_ids: Sequence[UUID]
    ) -> Activity:
        """Replace the list of ordinary members allowed to submit expenses."""
        try:
            row = self._load(activity_id)
            require_permission("activity", "update_submitters", actor)
            if ACTIVITY_WORKFLOW.is_terminal(row.status):
                raise InvalidTransitionError("activity", activity_id, row.status, "update_submitters")
            row.allowed_expense_submitters = [str(m) for m in member_ids]
            row.updated_by_id = actor.member_id
            self._session.commit()
            logger.info(
                "activity_submitters_updated",
                extra={"activity_id": str(activity_id), "submitter_count": len(member_ids)},
            )
            return row.to_dto()
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Workflow transitions
    # =========================================================================

    def _transition(
        self,
        actor: Actor,
        activity_id: UUID,
        action: str,
        values: dict[str, Any] | None = None,
    ) -> Activity:
        with LogContext.bind(actor_id=actor.member_id, entity_id=activity_id):
            try:
                row = self._load(activity_id)
                require_permission("activity", action, actor)
                from_state = row.status
                transition = apply_transition(
                    self._session,
                    row,
                    ACTIVITY_WORKFLOW,
                    action,
                    actor,
                    entity_type="activity",
                    values=values,
                )
                self._session.commit()
                logger.info(
                    f"activity_{action}_completed",
                    extra={
                        "activity_id": str(activity_id),
                        "from_state": from_state,
                        "to_state": transition.to_state,
                        "role": actor.role.value,
                    },
                )
                return row.to_dto()
            except Exception:
                self._session.rollback()
                raise

    def submit_for_approval(self, actor: Actor, activity_id: UUID) -> Activity:
        """draft -> pending_approval (treasurer)."""
        return self._transition(
            actor,
            activity_id,
            "submit",
            {"treasurer_submitted": True, "treasurer_submitted_at": self._clock.now()},
        )

    def approve(self, actor: Actor, activity_id: UUID, notes: str | None = None) -> Activity:
        """pending_approval -> approved (president)."""
        values: dict[str, Any] = {
            "president_approved": True,
            "president_approved_at": self._clock.now(),
        }
        if notes is not None:
            values["president_notes"] = notes
        return self._transition(actor, activity_id, "approve", values)

    def reject(self, actor: Actor, activity_id: UUID, notes: str | None = None) -> Activity:
        """pending_approval -> draft (president). Clears both approval flags."""
        return self._transition(
            actor,
            activity_id,
            "reject",
            {
                "treasurer_submitted": False,
                "treasurer_submitted_at": None,
                "president_approved": False,
                "president_approved_at": None,
                "president_notes": notes,
            },
        )

    def cancel(self, actor: Actor, activity_id: UUID) -> Activity:
        """Any non-terminal state -> cancelled (treasurer or president)."""
        return self._transition(actor, activity_id, "cancel")

    def complete(self, actor: Actor, activity_id: UUID) -> Activity:
        """approved -> completed (treasurer or president)."""
        return self._transition(actor, activity_id, "complete")
