"""
Budget ledger (``club_modules.activities.budget``).

Pure computation over integer cents.  No I/O, no side effects.

* ``compute_total_estimate`` is the only way an activity's estimate is
  derived; services call it on create and on every budget update so the
  persisted ``total_estimate`` never drifts from its line items.
* ``budget_utilization`` returns a percentage as ``Decimal`` (``112.5``),
  or ``None`` when there is no estimate to measure against.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from club_kernel.domain.values import require_non_negative_cents, sum_cents
from club_kernel.exceptions import ValidationError

_PERCENT_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class BudgetLineItem:
    """One named estimated cost within an activity budget."""
    name: str
    amount: int
    notes: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Line item name is required", field="line_items.name")
        require_non_negative_cents(self.amount, field="line_items.amount")

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "amount": self.amount, "notes": self.notes}


def parse_line_items(raw: Iterable[Mapping[str, Any] | BudgetLineItem] | None) -> tuple[BudgetLineItem, ...]:
    """Build line items from plain mappings (request bodies, JSON columns)."""
    if raw is None:
        return ()
    items = []
    for entry in raw:
        if isinstance(entry, BudgetLineItem):
            items.append(entry)
            continue
        if not isinstance(entry, Mapping):
            raise ValidationError("Each line item must be an object", field="line_items")
        items.append(
            BudgetLineItem(
                name=entry.get("name"),
                amount=entry.get("amount"),
                notes=entry.get("notes"),
            )
        )
    return tuple(items)


def compute_total_estimate(line_items: Sequence[BudgetLineItem]) -> int:
    """Integer sum of line item amounts."""
    return sum_cents(item.amount for item in line_items)


def budget_utilization(total_spent: int | None, total_estimate: int) -> Decimal | None:
    """Spent as a percentage of estimate, rounded half-up to two places."""
    if not total_estimate:
        return None
    spent = total_spent or 0
    pct = Decimal(spent) * 100 / Decimal(total_estimate)
    return pct.quantize(_PERCENT_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class BudgetSummary:
    """Read model combining an activity's budget with its expense ledger."""
    activity_id: Any
    total_estimate: int
    total_spent: int
    pending_expenses: int
    utilization: Decimal | None

    @property
    def remaining(self) -> int:
        return self.total_estimate - self.total_spent

    @property
    def is_over_budget(self) -> bool:
        return self.total_spent > self.total_estimate

    def to_dict(self) -> dict[str, Any]:
        return {
            "activityId": str(self.activity_id),
            "totalEstimate": self.total_estimate,
            "totalSpent": self.total_spent,
            "pendingExpenses": self.pending_expenses,
            "remaining": self.remaining,
            "utilization": str(self.utilization) if self.utilization is not None else None,
            "overBudget": self.is_over_budget,
        }
