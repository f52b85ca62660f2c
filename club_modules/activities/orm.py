"""
SQLAlchemy ORM persistence for activities.

Invariants enforced
-------------------
* Monetary fields are integer cents (BigInteger) -- NEVER float.
* ``total_estimate`` is written only from ``compute_total_estimate``.
* ``total_spent`` is NULL until the first approved expense and is only
  changed by an atomic in-database increment.
* Activities are never deleted; cancellation is a status.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from club_kernel.db.base import TrackedBase


class ActivityModel(TrackedBase):
    """A budgeted club activity. Maps to the ``Activity`` DTO."""

    __tablename__ = "activities"

    __table_args__ = (
        Index("idx_activity_status", "status"),
        Index("idx_activity_date", "activity_date"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    activity_type: Mapped[str] = mapped_column(String(30), nullable=False)
    custom_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    activity_date: Mapped[date] = mapped_column(Date, nullable=False)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    address: Mapped[str | None] = mapped_column(String(300), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    linked_event_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    line_items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    total_estimate: Mapped[int] = mapped_column(nullable=False, default=0)
    total_spent: Mapped[int | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    allowed_expense_submitters: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    treasurer_submitted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    treasurer_submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    president_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    president_approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    president_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from club_modules.activities.budget import parse_line_items
        from club_modules.activities.models import (
            Activity,
            ActivityApprovals,
            ActivityStatus,
            ActivityType,
        )

        return Activity(
            id=self.id,
            name=self.name,
            activity_type=ActivityType(self.activity_type),
            custom_type=self.custom_type,
            activity_date=self.activity_date,
            location=self.location,
            address=self.address,
            description=self.description,
            linked_event_id=self.linked_event_id,
            line_items=parse_line_items(self.line_items),
            total_estimate=self.total_estimate,
            total_spent=self.total_spent,
            status=ActivityStatus(self.status),
            approvals=ActivityApprovals(
                treasurer_submitted=self.treasurer_submitted,
                treasurer_submitted_at=self.treasurer_submitted_at,
                president_approved=self.president_approved,
                president_approved_at=self.president_approved_at,
                president_notes=self.president_notes,
            ),
            allowed_expense_submitters=tuple(
                UUID(v) for v in (self.allowed_expense_submitters or [])
            ),
            created_by_id=self.created_by_id,
        )
