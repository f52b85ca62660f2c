"""
SQLAlchemy ORM persistence for expenses.

* ``amount`` is positive integer cents.
* Every expense belongs to exactly one activity.
* Review audit columns are written once, by the approve/reject transition.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from club_kernel.db.base import TrackedBase


class ExpenseModel(TrackedBase):
    """An expense recorded against an activity. Maps to the ``Expense`` DTO."""

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount_positive"),
        Index("idx_expense_activity_status", "activity_id", "status"),
    )

    activity_id: Mapped[UUID] = mapped_column(ForeignKey("activities.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    custom_category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[int] = mapped_column(nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    vendor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    receipt_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    expense_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    submitted_by: Mapped[UUID] = mapped_column(nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(nullable=False)
    reviewed_by: Mapped[UUID | None] = mapped_column(nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    review_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from club_modules.expenses.models import (
            Expense,
            ExpenseCategory,
            ExpensePaymentMethod,
            ExpenseStatus,
        )

        return Expense(
            id=self.id,
            activity_id=self.activity_id,
            category=ExpenseCategory(self.category),
            custom_category=self.custom_category,
            amount=self.amount,
            description=self.description,
            vendor=self.vendor,
            payment_method=ExpensePaymentMethod(self.payment_method),
            receipt_url=self.receipt_url,
            expense_date=self.expense_date,
            status=ExpenseStatus(self.status),
            submitted_by=self.submitted_by,
            submitted_at=self.submitted_at,
            reviewed_by=self.reviewed_by,
            reviewed_at=self.reviewed_at,
            review_notes=self.review_notes,
        )
