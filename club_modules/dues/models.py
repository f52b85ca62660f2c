"""
Dues domain models.

A dues cycle is one Rotary year (July 1 to June 30) with a single amount.
Per-member dues default to UNPAID: a member with no record for the cycle
owes the full amount.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from club_kernel.domain.values import Money


class MemberDuesStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"
    WAIVED = "WAIVED"


class DuesPhase(str, Enum):
    """Automation phase a notice was sent for."""
    REMINDER = "reminder"
    OVERDUE = "overdue"
    GRACE = "grace"


@dataclass(frozen=True)
class DuesCycle:
    id: UUID
    code: str
    label: str
    start_date: date
    end_date: date
    amount: int
    currency: str = "USD"
    is_active: bool = False
    grace_days: int = 30

    @property
    def money(self) -> Money:
        return Money(self.amount, self.currency)


@dataclass(frozen=True)
class DuesCycleSummary:
    """Collection progress for one cycle.

    ``unpaid`` includes ACTIVE members with no dues record.  ``collected`` is
    the cycle amount times the number of PAID records.
    """
    cycle_code: str
    total: int
    paid: int
    waived: int
    unpaid: int
    collected: int
    currency: str = "USD"

@dataclass(frozen=True)
class MemberDues:
    member_id: UUID
    cycle_id: UUID
    status: MemberDuesStatus = MemberDuesStatus.UNPAID
    paid_at: datetime | None = None
    payment_method: str | None = None
    payment_ref: str | None = None
    note: str | None = None

    @property
    def is_settled(self) -> bool:
        return self.status is not MemberDuesStatus.UNPAID
