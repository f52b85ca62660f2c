"""
Expense Ledger (``club_modules.expenses.service``).

Responsibility
--------------
Records expenses against approved activities, runs the treasurer review and
keeps each activity's ``total_spent`` equal to the sum of its approved
expenses.

Invariants enforced
-------------------
* Approving an expense and incrementing ``activity.total_spent`` happen in
  one transaction.  The increment is computed in the database
  (``coalesce(total_spent, 0) + amount``) so concurrent approvals on the
  same activity never lose an update.
* The expense approval itself is a conditional update on
  ``status = 'pending'``; of two concurrent reviewers only the first wins
  and the increment is applied exactly once.
* Over-budget spending is allowed and only surfaced through utilization.

Failure modes
-------------
* ``ActivityNotFoundError`` / ``ExpenseNotFoundError``
* ``ForbiddenError`` -- submitter not an officer nor listed on the activity;
  reviewer not the treasurer.
* ``ActivityNotApprovedError`` -- activity not approved or completed.
* ``InvalidTransitionError`` -- expense already reviewed.
* ``ValidationError`` -- bad amount/category/method, or a rejection
  without notes.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from club_kernel.domain.clock import Clock, SystemClock
from club_kernel.domain.roles import Actor
from club_kernel.domain.values import require_positive_cents
from club_kernel.domain.workflow import ReviewDecision
from club_kernel.exceptions import (
    ActivityNotApprovedError,
    ActivityNotFoundError,
    ExpenseNotFoundError,
    ForbiddenError,
    ValidationError,
)
from club_kernel.logging_config import LogContext, get_logger
from club_modules._transition_helpers import apply_transition, parse_status
from club_modules.activities.models import EXPENSE_ACCEPTING_STATUSES
from club_modules.activities.orm import ActivityModel
from club_modules.expenses.models import (
    Expense,
    ExpenseCategory,
    ExpensePaymentMethod,
    ExpenseStatus,
    SpendReconciliation,
)
from club_modules.expenses.orm import ExpenseModel
from club_modules.expenses.workflows import EXPENSE_WORKFLOW
from club_services.rbac_authority import is_permitted, require_permission

logger = get_logger("modules.expenses.service")

_ACCEPTING = frozenset(s.value for s in EXPENSE_ACCEPTING_STATUSES)


class ExpenseLedger:
    """Expense submission, review and reconciliation."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def _load_activity(self, activity_id: UUID) -> ActivityModel:
        row = self._session.get(ActivityModel, activity_id, populate_existing=True)
        if row is None:
            raise ActivityNotFoundError(activity_id)
        return row

    def _load_expense(self, expense_id: UUID) -> ExpenseModel:
        row = self._session.get(ExpenseModel, expense_id)
        if row is None:
            raise ExpenseNotFoundError(expense_id)
        return row

    def get_expense(self, expense_id: UUID) -> Expense:
        return self._load_expense(expense_id).to_dto()

    def list_expenses(
        self,
        activity_id: UUID | None = None,
        status: ExpenseStatus | str | None = None,
    ) -> list[Expense]:
        stmt = select(ExpenseModel).order_by(ExpenseModel.submitted_at)
        if activity_id is not None:
            stmt = stmt.where(ExpenseModel.activity_id == activity_id)
        if status is not None:
            stmt = stmt.where(ExpenseModel.status == parse_status(ExpenseStatus, status).value)
        return [row.to_dto() for row in self._session.execute(stmt).scalars()]

    # =========================================================================
    # Submission
    # =========================================================================

    def submit_expense(
        self,
        actor: Actor,
        activity_id: UUID,
        amount: int,
        category: ExpenseCategory | str,
        payment_method: ExpensePaymentMethod | str,
        custom_category: str | None = None,
        description: str | None = None,
        vendor: str | None = None,
        receipt_url: str | None = None,
        expense_date: date | None = None,
    ) -> Expense:
        """Record a pending expense against an approved or completed activity."""
        try:
            activity = self._load_activity(activity_id)
            allowed = {str(m) for m in activity.allowed_expense_submitters or []}
            if not is_permitted("expense", "submit", actor.role) and str(actor.member_id) not in allowed:
                raise ForbiddenError("submit", actor.role.value, workflow="expense")
            if activity.status not in _ACCEPTING:
                raise ActivityNotApprovedError(activity_id, activity.status)

            cents = require_positive_cents(amount)
            try:
                cat = ExpenseCategory(category)
            except ValueError:
                raise ValidationError(f"Unknown expense category: {category!r}", field="category") from None
            if cat is ExpenseCategory.OTHER:
                if not custom_category or not custom_category.strip():
                    raise ValidationError(
                        "custom_category is required when category is 'other'",
                        field="custom_category",
                    )
                custom_category = custom_category.strip()
            else:
                custom_category = None
            try:
                method = ExpensePaymentMethod(payment_method)
            except ValueError:
                raise ValidationError(
                    f"Unknown payment method: {payment_method!r}", field="payment_method"
                ) from None

            row = ExpenseModel(
                activity_id=activity_id,
                category=cat.value,
                custom_category=custom_category,
                amount=cents,
                description=description,
                vendor=vendor,
                payment_method=method.value,
                receipt_url=receipt_url,
                expense_date=expense_date,
                status=EXPENSE_WORKFLOW.initial_state,
                submitted_by=actor.member_id,
                submitted_at=self._clock.now(),
                created_by_id=actor.member_id,
            )
            self._session.add(row)
            self._session.commit()
            logger.info(
                "expense_submitted",
                extra={
                    "expense_id": str(row.id),
                    "activity_id": str(activity_id),
                    "amount": cents,
                    "category": cat.value,
                },
            )
            return row.to_dto()
        except Exception:
            self._session.rollback()
            raise

    # =========================================================================
    # Review
    # =========================================================================

    def review_expense(
        self,
        actor: Actor,
        expense_id: UUID,
        decision: ReviewDecision | str,
        notes: str | None = None,
    ) -> Expense:
        """Approve or reject a pending expense (treasurer only)."""
        try:
            decision = ReviewDecision(decision)
        except ValueError:
            raise ValidationError(f"Unknown review decision: {decision!r}", field="decision") from None

        with LogContext.bind(actor_id=actor.member_id, entity_id=expense_id):
            try:
                row = self._load_expense(expense_id)
                require_permission("expense", decision.value, actor)
                if decision is ReviewDecision.REJECT and not (notes and notes.strip()):
                    raise ValidationError("Rejection notes are required", field="notes")

                apply_transition(
                    self._session,
                    row,
                    EXPENSE_WORKFLOW,
                    decision.value,
                    actor,
                    entity_type="expense",
                    values={
                        "reviewed_by": actor.member_id,
                        "reviewed_at": self._clock.now(),
                        "review_notes": notes,
                    },
                )

                if decision is ReviewDecision.APPROVE:
                    self._session.execute(
                        update(ActivityModel)
                        .where(ActivityModel.id == row.activity_id)
                        .values(
                            total_spent=func.coalesce(ActivityModel.total_spent, 0) + row.amount,
                            updated_by_id=actor.member_id,
                        )
                        .execution_options(synchronize_session=False)
                    )

                self._session.commit()
                logger.info(
                    "expense_reviewed",
                    extra={
                        "expense_id": str(expense_id),
                        "activity_id": str(row.activity_id),
                        "decision": decision.value,
                        "amount": row.amount,
                    },
                )
                return row.to_dto()
            except Exception:
                self._session.rollback()
                raise

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def reconcile(self, activity_id: UUID) -> SpendReconciliation:
        """Compare the stored ``total_spent`` with the sum of approved expenses."""
        activity = self._load_activity(activity_id)
        approved_total, approved_count = self._session.execute(
            select(
                func.coalesce(func.sum(ExpenseModel.amount), 0),
                func.count(ExpenseModel.id),
            ).where(
                ExpenseModel.activity_id == activity_id,
                ExpenseModel.status == ExpenseStatus.APPROVED.value,
            )
        ).one()
        result = SpendReconciliation(
            activity_id=activity_id,
            recorded_total=activity.total_spent or 0,
            approved_total=int(approved_total),
            approved_count=int(approved_count),
        )
        if not result.is_consistent:
            logger.error(
                "expense_ledger_drift",
                extra={
                    "activity_id": str(activity_id),
                    "recorded_total": result.recorded_total,
                    "approved_total": result.approved_total,
                },
            )
        return result
