"""
BatchTask protocol, supporting types and TaskRegistry.

Contract:
    ``BatchTask`` defines the interface every batch task implements.
    ``TaskRegistry`` stores registered tasks keyed by ``task_type``.

Invariants enforced:
    One task per ``task_type`` string.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from sqlalchemy.orm import Session

from club_batch.domain.types import BatchItemStatus


@dataclass(frozen=True)
class BatchItemInput:
    """Input for a single batch item, created by ``BatchTask.prepare_items()``."""

    item_index: int
    item_key: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BatchTaskResult:
    """Result returned by ``BatchTask.execute_item()``."""

    status: BatchItemStatus
    result_data: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None


@runtime_checkable
class BatchTask(Protocol):
    """Interface for batch task implementations.

    Contract:
        - ``prepare_items()``: queries eligible records, returns an immutable tuple.
          Each item is processed at most once per run.
        - ``execute_item()``: processes ONE item within a SAVEPOINT.

    Non-goals:
        - Does NOT manage transactions -- the executor owns the SAVEPOINT.
        - Does NOT retry.
    """

    @property
    def task_type(self) -> str: ...

    @property
    def description(self) -> str: ...

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        ...

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        ...


class TaskRegistry:
    """Registry mapping task_type strings to BatchTask implementations."""

    def __init__(self) -> None:
        self._tasks: dict[str, BatchTask] = {}

    def register(self, task: BatchTask) -> None:
        """Raises ValueError if the task_type is already registered."""
        if task.task_type in self._tasks:
            raise ValueError(
                f"Task type '{task.task_type}' is already registered"
            )
        self._tasks[task.task_type] = task

    def get(self, task_type: str) -> BatchTask:
        """Raises KeyError if no task is registered for ``task_type``."""
        try:
            return self._tasks[task_type]
        except KeyError:
            raise KeyError(
                f"No task registered for type '{task_type}'. "
                f"Available: {sorted(self._tasks.keys())}"
            ) from None

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_type: str) -> bool:
        return task_type in self._tasks
