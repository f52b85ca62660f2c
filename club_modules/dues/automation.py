"""
Dues automation (``club_modules.dues.automation``).

Three independently triggered phases over the single active cycle:

    send-reminders  13..15 days before the cycle ends (configurable window)
    send-overdue    any day after the cycle has ended
    enforce-grace   ``grace_days`` or more after the cycle has ended

Dates are evaluated in the club's configured timezone.  Each phase runs its
members through ``BatchExecutor`` (one SAVEPOINT per member) and commits
once at the end, so a failed member is counted and never aborts the phase.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from club_batch.domain.types import BatchItemStatus, BatchRunResult
from club_batch.services.executor import BatchExecutor
from club_batch.tasks.dues_tasks import (
    GRACE_TASK,
    OVERDUE_TASK,
    REMINDER_TASK,
    build_dues_registry,
)
from club_config.schema import ClubConfig
from club_kernel.domain.clock import Clock, SystemClock
from club_kernel.exceptions import ValidationError
from club_kernel.logging_config import LogContext, get_logger
from club_modules.dues.models import DuesCycle
from club_modules.dues.service import DuesService
from club_services.email_messages import NoticeContext
from club_services.notifications import Notifier

logger = get_logger("modules.dues.automation")


class AutomationAction(str, Enum):
    SEND_REMINDERS = "send-reminders"
    SEND_OVERDUE = "send-overdue"
    ENFORCE_GRACE = "enforce-grace"


@dataclass(frozen=True)
class PhaseResult:
    """Outcome of one automation phase.

    ``count`` is the number of notices sent (reminder, overdue) or members
    inactivated (grace).
    """
    action: AutomationAction
    message: str
    count: int = 0
    cycle_id: UUID | None = None
    days_until_due: int | None = None
    days_overdue: int | None = None
    failed: int = 0
    skipped: int = 0
    notification_failures: int = 0
    success: bool = True
    run: BatchRunResult | None = field(default=None, repr=False, compare=False)

    def to_response(self) -> dict[str, Any]:
        count_key = "inactivated" if self.action is AutomationAction.ENFORCE_GRACE else "sent"
        body: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            count_key: self.count,
        }
        if self.cycle_id is not None:
            body["cycleId"] = str(self.cycle_id)
        if self.days_until_due is not None:
            body["daysUntilDue"] = self.days_until_due
        if self.days_overdue is not None:
            body["daysOverdue"] = self.days_overdue
        if self.run is not None:
            body["failed"] = self.failed
            body["skipped"] = self.skipped
            if self.action is AutomationAction.ENFORCE_GRACE:
                body["notificationFailures"] = self.notification_failures
        return body


class DuesAutomationEngine:
    """Runs the dues automation phases against the active cycle."""

    def __init__(
        self,
        session: Session,
        notifier: Notifier,
        config: ClubConfig | None = None,
        clock: Clock | None = None,
    ):
        self._session = session
        self._config = config or ClubConfig()
        self._clock = clock or SystemClock()
        self._dues = DuesService(session, self._clock, self._config.dues)
        ctx = NoticeContext(
            club_name=self._config.club_name,
            base_url=self._config.notifications.base_url,
            contact_email=self._config.notifications.contact_email,
        )
        registry = build_dues_registry(notifier, ctx, self._config.dues.resend_same_day)
        self._executor = BatchExecutor(session, self._clock, registry)

    def _today(self):
        return self._clock.today(self._config.dues.timezone)

    def run(self, action: AutomationAction | str) -> PhaseResult:
        try:
            action = AutomationAction(action)
        except ValueError:
            raise ValidationError(f"Invalid action: {action!r}", field="action") from None
        handler = {
            AutomationAction.SEND_REMINDERS: self.send_reminders,
            AutomationAction.SEND_OVERDUE: self.send_overdue,
            AutomationAction.ENFORCE_GRACE: self.enforce_grace,
        }[action]
        return handler()

    def _execute(self, task_type: str, cycle: DuesCycle, **parameters) -> BatchRunResult:
        with LogContext.bind(cycle_id=cycle.id):
            try:
                run = self._executor.run_registered(task_type, {"cycle": cycle, **parameters})
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise
        return run

    # =========================================================================
    # Phases
    # =========================================================================

    def send_reminders(self) -> PhaseResult:
        action = AutomationAction.SEND_REMINDERS
        cycle = self._dues.get_active_cycle()
        if cycle is None:
            return PhaseResult(action, "No active cycle")

        today = self._today()
        days_until_due = (cycle.end_date - today).days
        low, high = self._config.dues.reminder_window
        if not low <= days_until_due <= high:
            return PhaseResult(
                action,
                f"Not reminder window ({days_until_due} days until due)",
                cycle_id=cycle.id,
                days_until_due=days_until_due,
            )

        run = self._execute(REMINDER_TASK, cycle, today=today, days=days_until_due)
        logger.info(
            "dues_reminders_sent",
            extra={"cycle_code": cycle.code, "sent": run.succeeded, "failed": run.failed},
        )
        return PhaseResult(
            action,
            f"Sent {run.succeeded} reminder emails",
            count=run.succeeded,
            cycle_id=cycle.id,
            days_until_due=days_until_due,
            failed=run.failed,
            skipped=run.skipped,
            run=run,
        )

    def send_overdue(self) -> PhaseResult:
        action = AutomationAction.SEND_OVERDUE
        cycle = self._dues.get_active_cycle()
        if cycle is None:
            return PhaseResult(action, "No active cycle")

        today = self._today()
        if today <= cycle.end_date:
            return PhaseResult(action, "Cycle not yet overdue", cycle_id=cycle.id)

        days_overdue = (today - cycle.end_date).days
        run = self._execute(OVERDUE_TASK, cycle, today=today, days=days_overdue)
        logger.info(
            "dues_overdue_notices_sent",
            extra={"cycle_code": cycle.code, "sent": run.succeeded, "failed": run.failed},
        )
        return PhaseResult(
            action,
            f"Sent {run.succeeded} overdue notices",
            count=run.succeeded,
            cycle_id=cycle.id,
            days_overdue=days_overdue,
            failed=run.failed,
            skipped=run.skipped,
            run=run,
        )

    def enforce_grace(self) -> PhaseResult:
        action = AutomationAction.ENFORCE_GRACE
        cycle = self._dues.get_active_cycle()
        if cycle is None:
            return PhaseResult(action, "No active cycle")

        today = self._today()
        days_past_end = (today - cycle.end_date).days
        if days_past_end < cycle.grace_days:
            remaining = cycle.grace_days - days_past_end
            return PhaseResult(
                action,
                f"Grace period not yet expired ({remaining} days remaining)",
                cycle_id=cycle.id,
            )

        run = self._execute(GRACE_TASK, cycle, today=today)
        notification_failures = sum(
            1
            for r in run.results_with(BatchItemStatus.SUCCEEDED)
            if r.result_data and not r.result_data.get("notified", True)
        )
        logger.info(
            "dues_grace_enforced",
            extra={
                "cycle_code": cycle.code,
                "inactivated": run.succeeded,
                "failed": run.failed,
                "notification_failures": notification_failures,
            },
        )
        return PhaseResult(
            action,
            f"Inactivated {run.succeeded} members",
            count=run.succeeded,
            cycle_id=cycle.id,
            failed=run.failed,
            skipped=run.skipped,
            notification_failures=notification_failures,
            run=run,
        )
