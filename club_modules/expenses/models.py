"""
Expense domain models.

The nouns of the expense ledger: categories, payment methods, review
decisions and the immutable ``Expense`` snapshot.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID


class ExpenseCategory(str, Enum):
    VENUE = "venue"
    CATERING = "catering"
    DECORATIONS = "decorations"
    SUPPLIES = "supplies"
    ENTERTAINMENT = "entertainment"
    TRANSPORTATION = "transportation"
    MARKETING = "marketing"
    INSURANCE = "insurance"
    PERMITS = "permits"
    OTHER = "other"


class ExpensePaymentMethod(str, Enum):
    """How the club paid the vendor."""
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    CASH = "cash"
    CHECK = "check"
    ZELLE = "zelle"
    VENMO = "venmo"


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Expense:
    id: UUID
    activity_id: UUID
    category: ExpenseCategory
    amount: int
    payment_method: ExpensePaymentMethod
    status: ExpenseStatus
    submitted_by: UUID
    submitted_at: datetime
    custom_category: str | None = None
    description: str | None = None
    vendor: str | None = None
    receipt_url: str | None = None
    expense_date: date | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None


@dataclass(frozen=True)
class SpendReconciliation:
    """Stored ``total_spent`` compared with the sum of approved expenses."""
    activity_id: UUID
    recorded_total: int
    approved_total: int
    approved_count: int

    @property
    def is_consistent(self) -> bool:
        return self.recorded_total == self.approved_total

    @property
    def difference(self) -> int:
        return self.recorded_total - self.approved_total
