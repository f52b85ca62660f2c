"""
BatchExecutor: SAVEPOINT-per-item isolation, counters and run status.

Test tasks insert one member row per item so isolation is observable:
rows written by failed, skipped or raising items must not survive.
"""

from datetime import datetime
from typing import Any

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from club_batch.domain.types import BatchItemStatus, BatchRunStatus
from club_batch.services.executor import BatchExecutor
from club_batch.tasks.base import BatchItemInput, BatchTask, BatchTaskResult, TaskRegistry
from club_kernel.domain.roles import SYSTEM_ACTOR_ID
from club_modules.members.orm import MemberModel


# =============================================================================
# Test tasks
# =============================================================================


class ScriptedTask:
    """Each item key names its outcome: ok, fail, skip or boom."""

    def __init__(self, keys: tuple[str, ...]):
        self._keys = keys
        self.executed: list[str] = []

    @property
    def task_type(self) -> str:
        return "test.scripted"

    @property
    def description(self) -> str:
        return "Scripted outcomes"

    def prepare_items(
        self, parameters: dict[str, Any], session: Session, as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        return tuple(
            BatchItemInput(item_index=i, item_key=f"{key}-{i}", payload={"outcome": key})
            for i, key in enumerate(self._keys)
        )

    def execute_item(
        self, item: BatchItemInput, parameters: dict[str, Any],
        session: Session, as_of: datetime,
    ) -> BatchTaskResult:
        self.executed.append(item.item_key)
        session.add(
            MemberModel(
                email=f"{item.item_key}@example.org",
                first_name="Batch",
                created_by_id=SYSTEM_ACTOR_ID,
            )
        )
        session.flush()
        outcome = item.payload["outcome"]
        if outcome == "boom":
            raise RuntimeError("Boom!")
        if outcome == "fail":
            return BatchTaskResult(
                status=BatchItemStatus.FAILED,
                error_code="DELIBERATE",
                error_message="Deliberate failure",
            )
        if outcome == "skip":
            return BatchTaskResult(status=BatchItemStatus.SKIPPED)
        return BatchTaskResult(status=BatchItemStatus.SUCCEEDED, result_data={"ok": True})


def _member_emails(session) -> set[str]:
    return set(session.execute(select(MemberModel.email)).scalars())


# =============================================================================
# Tests
# =============================================================================


class TestBatchExecutor:

    def test_all_succeed(self, session, clock):
        run = BatchExecutor(session, clock).run(ScriptedTask(("ok", "ok")))
        assert run.status is BatchRunStatus.COMPLETED
        assert (run.total_items, run.succeeded, run.failed, run.skipped) == (2, 2, 0, 0)
        assert run.started_at == clock.now()

    def test_empty_run_completes(self, session, clock):
        run = BatchExecutor(session, clock).run(ScriptedTask(()))
        assert run.status is BatchRunStatus.COMPLETED
        assert run.total_items == 0

    def test_failures_are_isolated(self, session, clock):
        task = ScriptedTask(("ok", "fail", "boom", "skip", "ok"))
        run = BatchExecutor(session, clock).run(task)
        session.commit()

        assert run.status is BatchRunStatus.PARTIALLY_COMPLETED
        assert (run.succeeded, run.failed, run.skipped) == (2, 2, 1)
        assert run.succeeded + run.failed + run.skipped == run.total_items
        assert len(task.executed) == 5
        assert _member_emails(session) == {"ok-0@example.org", "ok-4@example.org"}

    def test_exception_recorded_on_item(self, session, clock, captured_logs):
        run = BatchExecutor(session, clock).run(ScriptedTask(("boom",)))
        assert run.status is BatchRunStatus.FAILED
        (item,) = run.item_results
        assert item.status is BatchItemStatus.FAILED
        assert item.error_code == "UNHANDLED_EXCEPTION"
        assert item.error_message == "Boom!"

        record = next(r for r in captured_logs() if r["message"] == "batch_item_exception")
        assert record["exc_type"] == "RuntimeError"

    def test_typed_error_code_kept(self, session, clock):
        from club_kernel.exceptions import ValidationError

        class RaisingTask(ScriptedTask):
            def execute_item(self, item, parameters, session, as_of):
                raise ValidationError("bad item", field="x")

        run = BatchExecutor(session, clock).run(RaisingTask(("ok",)))
        assert run.item_results[0].error_code == "VALIDATION_ERROR"

    def test_results_with(self, session, clock):
        run = BatchExecutor(session, clock).run(ScriptedTask(("ok", "fail", "skip")))
        assert [r.item_key for r in run.results_with(BatchItemStatus.FAILED)] == ["fail-1"]

    def test_executor_does_not_commit(self, session, clock):
        BatchExecutor(session, clock).run(ScriptedTask(("ok",)))
        session.rollback()
        assert session.execute(select(func.count(MemberModel.id))).scalar_one() == 0

    def test_run_and_completion_logged(self, session, clock, captured_logs):
        BatchExecutor(session, clock).run(ScriptedTask(("ok", "fail")))
        messages = [r["message"] for r in captured_logs()]
        assert "batch_run_started" in messages
        assert "batch_item_failed" in messages
        completed = next(r for r in captured_logs() if r["message"] == "batch_run_completed")
        assert completed["status"] == "partially_completed"


class TestTaskRegistry:

    def test_register_and_run(self, session, clock):
        registry = TaskRegistry()
        task = ScriptedTask(("ok",))
        registry.register(task)
        assert "test.scripted" in registry
        assert isinstance(task, BatchTask)
        run = BatchExecutor(session, clock, registry).run_registered("test.scripted")
        assert run.succeeded == 1

    def test_duplicate_registration(self):
        registry = TaskRegistry()
        registry.register(ScriptedTask(()))
        with pytest.raises(ValueError):
            registry.register(ScriptedTask(()))

    def test_unknown_task(self):
        with pytest.raises(KeyError):
            TaskRegistry().get("nope")
