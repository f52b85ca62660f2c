"""
SQLAlchemy ORM persistence for payment confirmations and ticket grants.

* ``amount`` is positive integer cents.
* Dues confirmations carry the cycle that was active when submitted.
* One ticket grant per (member, event); the grant row is what the events
  system reads to admit a member who paid offline.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from club_kernel.db.base import TrackedBase


class PaymentConfirmationModel(TrackedBase):
    """Maps to the ``PaymentConfirmation`` DTO."""

    __tablename__ = "payment_confirmations"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        Index("idx_payment_status", "status"),
        Index("idx_payment_member", "member_id"),
    )

    member_id: Mapped[UUID] = mapped_column(ForeignKey("members.id"), nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)
    payment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    event_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    event_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cycle_id: Mapped[UUID | None] = mapped_column(ForeignKey("dues_cycles.id"), nullable=True)
    proof_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    submitted_by: Mapped[UUID] = mapped_column(nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(nullable=False)
    reviewed_by: Mapped[UUID | None] = mapped_column(nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from club_modules.payments.models import (
            OfflinePaymentMethod,
            PaymentConfirmation,
            PaymentStatus,
            PaymentType,
        )

        return PaymentConfirmation(
            id=self.id,
            member_id=self.member_id,
            amount=self.amount,
            payment_type=PaymentType(self.payment_type),
            method=OfflinePaymentMethod(self.method),
            event_name=self.event_name,
            event_id=self.event_id,
            cycle_id=self.cycle_id,
            proof_url=self.proof_url,
            notes=self.notes,
            status=PaymentStatus(self.status),
            submitted_by=self.submitted_by,
            submitted_at=self.submitted_at,
            reviewed_by=self.reviewed_by,
            reviewed_at=self.reviewed_at,
            review_notes=self.review_notes,
        )


class EventTicketGrantModel(TrackedBase):
    """A ticket granted to a member after an approved offline payment."""

    __tablename__ = "event_ticket_grants"

    __table_args__ = (
        UniqueConstraint("member_id", "event_ref", name="uq_ticket_grant_member_event"),
    )

    member_id: Mapped[UUID] = mapped_column(ForeignKey("members.id"), nullable=False)
    event_ref: Mapped[str] = mapped_column(String(200), nullable=False)
    event_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    payment_id: Mapped[UUID] = mapped_column(
        ForeignKey("payment_confirmations.id"), nullable=False
    )
    amount: Mapped[int] = mapped_column(nullable=False)
    method: Mapped[str] = mapped_column(String(20), nullable=False)

    def to_dto(self):
        from club_modules.payments.models import EventTicketGrant

        return EventTicketGrant(
            member_id=self.member_id,
            event_ref=self.event_ref,
            event_name=self.event_name,
            payment_id=self.payment_id,
            amount=self.amount,
            method=self.method,
        )
