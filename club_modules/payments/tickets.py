"""
Event ticket granting.

The events system is an outside collaborator.  ``TicketGrantor`` is the
seam: approval of an event-ticket payment calls ``grant`` inside the review
transaction, so a failing grant rolls the approval back.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.orm import Session

from club_kernel.domain.roles import Actor
from club_kernel.logging_config import get_logger
from club_modules.payments.models import EventTicketGrant, PaymentConfirmation
from club_modules.payments.orm import EventTicketGrantModel

logger = get_logger("modules.payments.tickets")


@runtime_checkable
class TicketGrantor(Protocol):

    def grant(
        self, session: Session, payment: PaymentConfirmation, actor: Actor
    ) -> EventTicketGrant: ...


def event_ref_for(payment: PaymentConfirmation) -> str:
    return payment.event_id or payment.event_name or ""


class RecordingTicketGrantor:
    """Records the grant in ``event_ticket_grants``; one per member and event."""

    def grant(
        self, session: Session, payment: PaymentConfirmation, actor: Actor
    ) -> EventTicketGrant:
        ref = event_ref_for(payment)
        existing = session.execute(
            select(EventTicketGrantModel).where(
                EventTicketGrantModel.member_id == payment.member_id,
                EventTicketGrantModel.event_ref == ref,
            )
        ).scalar_one_or_none()
        if existing is not None:
            logger.info(
                "event_ticket_already_granted",
                extra={"member_id": str(payment.member_id), "event_ref": ref},
            )
            return existing.to_dto()

        row = EventTicketGrantModel(
            member_id=payment.member_id,
            event_ref=ref,
            event_name=payment.event_name,
            payment_id=payment.id,
            amount=payment.amount,
            method=payment.method.value,
            created_by_id=actor.member_id,
        )
        session.add(row)
        session.flush()
        logger.info(
            "event_ticket_granted",
            extra={"member_id": str(payment.member_id), "event_ref": ref, "payment_id": str(payment.id)},
        )
        return row.to_dto()
