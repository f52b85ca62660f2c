"""
BatchExecutor -- SAVEPOINT-per-item batch execution.

Contract:
    ``run()`` prepares the task's items once, then executes each item inside
    its own SAVEPOINT.  A succeeded item's SAVEPOINT is released; a skipped
    or failed item's SAVEPOINT is rolled back.  An exception raised by one
    item is logged, counted and never aborts the run.

Invariants enforced:
    - SAVEPOINT isolation per item.
    - Each prepared item is executed exactly once per run.
    - All timestamps come from the injected Clock.

The executor never commits: the caller owns the enclosing transaction.
"""

from __future__ import annotations

import time
from typing import Any

from sqlalchemy.orm import Session

from club_batch.domain.types import (
    BatchItemResult,
    BatchItemStatus,
    BatchRunResult,
    BatchRunStatus,
)
from club_batch.tasks.base import BatchTask, TaskRegistry
from club_kernel.domain.clock import Clock, SystemClock
from club_kernel.logging_config import get_logger

logger = get_logger("batch.executor")


def _final_status(succeeded: int, failed: int) -> BatchRunStatus:
    if failed == 0:
        return BatchRunStatus.COMPLETED
    if succeeded == 0:
        return BatchRunStatus.FAILED
    return BatchRunStatus.PARTIALLY_COMPLETED


class BatchExecutor:
    """Batch execution engine with SAVEPOINT-per-item isolation."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        task_registry: TaskRegistry | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._task_registry = task_registry or TaskRegistry()

    def run_registered(self, task_type: str, parameters: dict[str, Any] | None = None) -> BatchRunResult:
        """Run a task looked up by ``task_type`` in the registry."""
        return self.run(self._task_registry.get(task_type), parameters)

    def run(self, task: BatchTask, parameters: dict[str, Any] | None = None) -> BatchRunResult:
        parameters = parameters or {}
        started_at = self._clock.now()
        start = time.monotonic()

        items = task.prepare_items(parameters=parameters, session=self._session, as_of=started_at)
        logger.info(
            "batch_run_started",
            extra={"task_type": task.task_type, "total_items": len(items)},
        )

        succeeded = failed = skipped = 0
        item_results: list[BatchItemResult] = []

        for item in items:
            item_start = time.monotonic()
            savepoint = self._session.begin_nested()
            try:
                result = task.execute_item(
                    item=item,
                    parameters=parameters,
                    session=self._session,
                    as_of=started_at,
                )
                if result.status == BatchItemStatus.SUCCEEDED:
                    savepoint.commit()
                    succeeded += 1
                elif result.status == BatchItemStatus.SKIPPED:
                    savepoint.rollback()
                    skipped += 1
                else:
                    savepoint.rollback()
                    failed += 1
                    logger.warning(
                        "batch_item_failed",
                        extra={
                            "task_type": task.task_type,
                            "item_key": item.item_key,
                            "error_code": result.error_code,
                            "error_message": result.error_message,
                        },
                    )
                item_result = BatchItemResult(
                    item_index=item.item_index,
                    item_key=item.item_key,
                    status=result.status,
                    error_code=result.error_code,
                    error_message=result.error_message,
                    result_data=result.result_data,
                    duration_ms=int((time.monotonic() - item_start) * 1000),
                )
            except Exception as exc:
                if savepoint.is_active:
                    savepoint.rollback()
                failed += 1
                logger.error(
                    "batch_item_exception",
                    extra={"task_type": task.task_type, "item_key": item.item_key},
                    exc_info=True,
                )
                item_result = BatchItemResult(
                    item_index=item.item_index,
                    item_key=item.item_key,
                    status=BatchItemStatus.FAILED,
                    error_code=getattr(exc, "code", "UNHANDLED_EXCEPTION"),
                    error_message=str(exc),
                    duration_ms=int((time.monotonic() - item_start) * 1000),
                )
            item_results.append(item_result)

        run = BatchRunResult(
            task_type=task.task_type,
            status=_final_status(succeeded, failed),
            total_items=len(items),
            succeeded=succeeded,
            failed=failed,
            skipped=skipped,
            item_results=tuple(item_results),
            started_at=started_at,
            completed_at=self._clock.now(),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        logger.info(
            "batch_run_completed",
            extra={
                "task_type": task.task_type,
                "status": run.status.value,
                "succeeded": succeeded,
                "failed": failed,
                "skipped": skipped,
            },
        )
        return run
