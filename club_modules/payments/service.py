"""
Payment Confirmation Service (``club_modules.payments.service``).

Responsibility
--------------
Members claim offline payments (Zelle, Venmo, Cash App, cash, check) for
dues or event tickets; the treasurer approves or rejects each claim.

Invariants enforced
-------------------
* Review is a conditional update on ``status = 'pending'``; a confirmation
  is reviewed at most once.
* The approval side effect runs in the review transaction:
  dues -> ``DuesService.mark_paid`` (idempotent),
  event ticket -> ``TicketGrantor.grant``.
  If the side effect fails, the approval is rolled back with it.
* A dues confirmation records the cycle active at submission, so a claim
  submitted before a cycle rollover still settles the cycle it was for.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from club_config.schema import DuesSettings
from club_kernel.domain.clock import Clock, SystemClock
from club_kernel.domain.roles import Actor
from club_kernel.domain.values import require_positive_cents
from club_kernel.domain.workflow import ReviewDecision
from club_kernel.exceptions import (
    MemberNotFoundError,
    NoActiveDuesCycleError,
    PaymentConfirmationNotFoundError,
    ValidationError,
)
from club_kernel.logging_config import LogContext, get_logger
from club_modules._transition_helpers import apply_transition, parse_status
from club_modules.dues.service import DuesService
from club_modules.members.orm import MemberModel
from club_modules.payments.models import (
    OfflinePaymentMethod,
    PaymentConfirmation,
    PaymentStatus,
    PaymentType,
)
from club_modules.payments.orm import PaymentConfirmationModel
from club_modules.payments.tickets import RecordingTicketGrantor, TicketGrantor
from club_modules.payments.workflows import PAYMENT_CONFIRMATION_WORKFLOW
from club_services.rbac_authority import require_permission

logger = get_logger("modules.payments.service")


class PaymentConfirmationService:
    """Offline payment submission and treasurer review."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ticket_grantor: TicketGrantor | None = None,
        dues_settings: DuesSettings | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._tickets = ticket_grantor or RecordingTicketGrantor()
        # Shares our transaction: the review commits both or neither.
        self._dues = DuesService(session, self._clock, dues_settings, auto_commit=False)

    def _load(self, payment_id: UUID) -> PaymentConfirmationModel:
        row = self._session.get(PaymentConfirmationModel, payment_id)
        if row is None:
            raise PaymentConfirmationNotFoundError(payment_id)
        return row

    def get_payment(self, payment_id: UUID) -> PaymentConfirmation:
        return self._load(payment_id).to_dto()

    def list_payments(
        self,
        status: PaymentStatus | str | None = None,
        member_id: UUID | None = None,
    ) -> list[PaymentConfirmation]:
        stmt = select(PaymentConfirmationModel).order_by(PaymentConfirmationModel.submitted_at)
        if status is not None:
            stmt = stmt.where(PaymentConfirmationModel.status == parse_status(PaymentStatus, status).value)
        if member_id is not None:
            stmt = stmt.where(PaymentConfirmationModel.member_id == member_id)
        return [row.to_dto() for row in self._session.execute(stmt).scalars()]

    def submit_payment(
        self,
        actor: Actor,
        member_id: UUID,
        amount: int,
        payment_type: PaymentType | str,
        method: OfflinePaymentMethod | str,
        event_name: str | None = None,
        event_id: str | None = None,
        proof_url: str | None = None,
        notes: str | None = None,
    ) -> PaymentConfirmation:
        """Record a pending confirmation for the member (or by the treasurer for them)."""
        action = "submit" if actor.member_id == member_id else "submit_on_behalf"
        require_permission("payment_confirmation", action, actor)

        cents = require_positive_cents(amount)
        try:
            ptype = PaymentType(payment_type)
        except ValueError:
            raise ValidationError(f"Unknown payment type: {payment_type!r}", field="type") from None
        try:
            pmethod = OfflinePaymentMethod(method)
        except ValueError:
            raise ValidationError(f"Unknown payment method: {method!r}", field="method") from None
        if ptype is PaymentType.EVENT_TICKET:
            if not event_name or not event_name.strip():
                raise ValidationError("event_name is required for event tickets", field="event_name")
        else:
            event_name, event_id = None, None

        try:
            if self._session.get(MemberModel, member_id) is None:
                raise MemberNotFoundError(member_id)
            cycle_id = None
            if ptype is PaymentType.DUES:
                cycle = self._dues.get_active_cycle()
                if cycle is None:
                    raise NoActiveDuesCycleError()
                cycle_id = cycle.id

            row = PaymentConfirmationModel(
                member_id=member_id,
                amount=cents,
                payment_type=ptype.value,
                method=pmethod.value,
                event_name=event_name.strip() if event_name else None,
                event_id=event_id,
                cycle_id=cycle_id,
                proof_url=proof_url,
                notes=notes,
                status=PAYMENT_CONFIRMATION_WORKFLOW.initial_state,
                submitted_by=actor.member_id,
                submitted_at=self._clock.now(),
                created_by_id=actor.member_id,
            )
            self._session.add(row)
            self._session.commit()
            logger.info(
                "payment_confirmation_submitted",
                extra={
                    "payment_id": str(row.id),
                    "member_id": str(member_id),
                    "payment_type": ptype.value,
                    "method": pmethod.value,
                    "amount": cents,
                },
            )
            return row.to_dto()
        except Exception:
            self._session.rollback()
            raise

    def review_payment(
        self,
        actor: Actor,
        payment_id: UUID,
        decision: ReviewDecision | str,
        notes: str | None = None,
    ) -> PaymentConfirmation:
        """Approve or reject a pending confirmation (treasurer only)."""
        try:
            decision = ReviewDecision(decision)
        except ValueError:
            raise ValidationError(f"Unknown review decision: {decision!r}", field="decision") from None

        with LogContext.bind(actor_id=actor.member_id, entity_id=payment_id):
            try:
                row = self._load(payment_id)
                require_permission("payment_confirmation", decision.value, actor)
                if decision is ReviewDecision.REJECT and not (notes and notes.strip()):
                    raise ValidationError("Rejection notes are required", field="notes")

                apply_transition(
                    self._session,
                    row,
                    PAYMENT_CONFIRMATION_WORKFLOW,
                    decision.value,
                    actor,
                    entity_type="payment_confirmation",
                    values={
                        "reviewed_by": actor.member_id,
                        "reviewed_at": self._clock.now(),
                        "review_notes": notes,
                    },
                )
                payment = row.to_dto()
                if decision is ReviewDecision.APPROVE:
                    self._apply_approval(payment, actor)

                self._session.commit()
                logger.info(
                    "payment_confirmation_reviewed",
                    extra={
                        "payment_id": str(payment_id),
                        "decision": decision.value,
                        "payment_type": payment.payment_type.value,
                        "amount": payment.amount,
                    },
                )
                return row.to_dto()
            except Exception:
                self._session.rollback()
                raise

    def _apply_approval(self, payment: PaymentConfirmation, actor: Actor) -> None:
        if payment.payment_type is PaymentType.DUES:
            if payment.cycle_id is None:
                raise NoActiveDuesCycleError()
            self._dues.mark_paid(
                payment.member_id,
                payment.cycle_id,
                method=payment.method.value,
                payment_ref=f"offline:{payment.id}",
                actor=actor,
            )
        else:
            self._tickets.grant(self._session, payment, actor)
