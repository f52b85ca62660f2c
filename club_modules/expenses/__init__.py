"""Expense ledger: expenses against approved activities, reviewed by the treasurer."""

from club_modules.expenses.models import (
    Expense,
    ExpenseCategory,
    ExpensePaymentMethod,
    ExpenseStatus,
    SpendReconciliation,
)
from club_modules.expenses.service import ExpenseLedger
from club_modules.expenses.workflows import EXPENSE_WORKFLOW

__all__ = [
    "EXPENSE_WORKFLOW",
    "Expense",
    "ExpenseCategory",
    "ExpenseLedger",
    "ExpensePaymentMethod",
    "ExpenseStatus",
    "SpendReconciliation",
]
