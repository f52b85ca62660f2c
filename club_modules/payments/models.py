"""Payment confirmation domain models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class PaymentType(str, Enum):
    DUES = "dues"
    EVENT_TICKET = "event_ticket"


class OfflinePaymentMethod(str, Enum):
    ZELLE = "zelle"
    VENMO = "venmo"
    CASHAPP = "cashapp"
    CASH = "cash"
    CHECK = "check"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class PaymentConfirmation:
    """A member's claim to have paid outside the online gateway."""
    id: UUID
    member_id: UUID
    amount: int
    payment_type: PaymentType
    method: OfflinePaymentMethod
    status: PaymentStatus
    submitted_by: UUID
    submitted_at: datetime
    event_name: str | None = None
    event_id: str | None = None
    cycle_id: UUID | None = None
    proof_url: str | None = None
    notes: str | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None


@dataclass(frozen=True)
class EventTicketGrant:
    member_id: UUID
    event_ref: str
    payment_id: UUID
    amount: int
    method: str
    event_name: str | None = None
