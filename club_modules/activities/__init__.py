"""Activities: budgets, line items and the budget approval workflow."""

from club_modules.activities.budget import (
    BudgetLineItem,
    BudgetSummary,
    budget_utilization,
    compute_total_estimate,
)
from club_modules.activities.models import Activity, ActivityStatus, ActivityType
from club_modules.activities.service import ActivityService
from club_modules.activities.workflows import ACTIVITY_WORKFLOW

__all__ = [
    "ACTIVITY_WORKFLOW",
    "Activity",
    "ActivityService",
    "ActivityStatus",
    "ActivityType",
    "BudgetLineItem",
    "BudgetSummary",
    "budget_utilization",
    "compute_total_estimate",
]
