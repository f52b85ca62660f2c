"""
SQLAlchemy ORM persistence for dues.

Invariants enforced
-------------------
* ``dues_cycles.code`` is unique ("RY-2026").
* At most one cycle has ``is_active = true``: a partial unique index
  backs the deactivate-then-activate sequence in ``DuesService``.
* One ``member_dues`` row per (member, cycle); absence means UNPAID.
* One ``dues_notices`` row per (member, cycle, phase, day); it is the
  de-duplication marker for automated notices.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from club_kernel.db.base import TrackedBase


class DuesCycleModel(TrackedBase):
    """A dues cycle. Maps to the ``DuesCycle`` DTO."""

    __tablename__ = "dues_cycles"

    __table_args__ = (
        UniqueConstraint("code", name="uq_dues_cycle_code"),
        CheckConstraint("amount >= 0", name="ck_dues_cycle_amount"),
        CheckConstraint("end_date > start_date", name="ck_dues_cycle_dates"),
        Index(
            "uq_dues_cycle_single_active",
            "is_active",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    code: Mapped[str] = mapped_column(String(20), nullable=False)
    label: Mapped[str] = mapped_column(String(100), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[int] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    grace_days: Mapped[int] = mapped_column(nullable=False, default=30)

    def to_dto(self):
        from club_modules.dues.models import DuesCycle

        return DuesCycle(
            id=self.id,
            code=self.code,
            label=self.label,
            start_date=self.start_date,
            end_date=self.end_date,
            amount=self.amount,
            currency=self.currency,
            is_active=self.is_active,
            grace_days=self.grace_days,
        )


class MemberDuesModel(TrackedBase):
    """A member's dues settlement for one cycle."""

    __tablename__ = "member_dues"

    __table_args__ = (
        UniqueConstraint("member_id", "cycle_id", name="uq_member_dues_member_cycle"),
        Index("idx_member_dues_cycle_status", "cycle_id", "status"),
    )

    member_id: Mapped[UUID] = mapped_column(ForeignKey("members.id"), nullable=False)
    cycle_id: Mapped[UUID] = mapped_column(ForeignKey("dues_cycles.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="UNPAID")
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(30), nullable=True)
    payment_ref: Mapped[str | None] = mapped_column(String(200), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from club_modules.dues.models import MemberDues, MemberDuesStatus

        return MemberDues(
            member_id=self.member_id,
            cycle_id=self.cycle_id,
            status=MemberDuesStatus(self.status),
            paid_at=self.paid_at,
            payment_method=self.payment_method,
            payment_ref=self.payment_ref,
            note=self.note,
        )


class DuesNoticeModel(TrackedBase):
    """Marker that a dues notice was delivered to a member on a given day."""

    __tablename__ = "dues_notices"

    __table_args__ = (
        UniqueConstraint(
            "member_id", "cycle_id", "phase", "sent_on", name="uq_dues_notice_daily"
        ),
    )

    member_id: Mapped[UUID] = mapped_column(ForeignKey("members.id"), nullable=False)
    cycle_id: Mapped[UUID] = mapped_column(ForeignKey("dues_cycles.id"), nullable=False)
    phase: Mapped[str] = mapped_column(String(20), nullable=False)
    sent_on: Mapped[date] = mapped_column(Date, nullable=False)
    message_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
