"""
club_batch.domain.types -- frozen dataclasses for batch runs.  ZERO I/O.

Invariants enforced:
    - Every DTO is a frozen dataclass; collections are tuples.
    - A run's counters always add up: succeeded + failed + skipped == total.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class BatchRunStatus(str, Enum):
    COMPLETED = "completed"  # Every item succeeded or was skipped
    PARTIALLY_COMPLETED = "partially_completed"  # Some items failed
    FAILED = "failed"  # Items existed and none succeeded


class BatchItemStatus(str, Enum):
    """Per-item outcome within a batch run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"  # Intentionally skipped (e.g., already notified today)


@dataclass(frozen=True)
class BatchItemResult:
    """Immutable result of processing a single batch item.

    Each item runs in its own SAVEPOINT -- failure of one item does not
    abort the run.
    """

    item_index: int
    item_key: str
    status: BatchItemStatus
    error_code: str | None = None
    error_message: str | None = None
    result_data: dict[str, Any] | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class BatchRunResult:
    """Immutable result of executing one task over all its items."""

    task_type: str
    status: BatchRunStatus
    total_items: int
    succeeded: int
    failed: int
    skipped: int
    item_results: tuple[BatchItemResult, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0

    def results_with(self, status: BatchItemStatus) -> tuple[BatchItemResult, ...]:
        return tuple(r for r in self.item_results if r.status == status)
