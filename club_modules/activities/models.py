"""
Activity domain models.

The nouns of budgeting: activity types, lifecycle states, approval flags
and the immutable ``Activity`` snapshot returned by ``ActivityService``.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from club_modules.activities.budget import BudgetLineItem


class ActivityType(str, Enum):
    GALA = "gala"
    SOCIAL = "social"
    VOLUNTEERING = "volunteering"
    CONFERENCE = "conference"
    EXCURSION = "excursion"
    WEBSITE = "website"
    MAINTENANCE = "maintenance"
    OTHER = "other"


class ActivityStatus(str, Enum):
    """Activity budget lifecycle states."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Expenses may be recorded only against these states.
EXPENSE_ACCEPTING_STATUSES = (ActivityStatus.APPROVED, ActivityStatus.COMPLETED)


@dataclass(frozen=True)
class ActivityApprovals:
    treasurer_submitted: bool = False
    treasurer_submitted_at: datetime | None = None
    president_approved: bool = False
    president_approved_at: datetime | None = None
    president_notes: str | None = None


@dataclass(frozen=True)
class Activity:
    """A planned club undertaking with a budget."""
    id: UUID
    name: str
    activity_type: ActivityType
    activity_date: date
    status: ActivityStatus
    total_estimate: int
    created_by_id: UUID
    custom_type: str | None = None
    location: str | None = None
    address: str | None = None
    description: str | None = None
    linked_event_id: str | None = None
    line_items: tuple[BudgetLineItem, ...] = ()
    total_spent: int | None = None
    approvals: ActivityApprovals = field(default_factory=ActivityApprovals)
    allowed_expense_submitters: tuple[UUID, ...] = ()
