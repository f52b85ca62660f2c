"""
Batch tasks: dues automation (reminders, overdue notices, grace enforcement).

Each task selects the ACTIVE members whose dues for the run's cycle are
absent or UNPAID and handles one member per item.  Run-level values travel
in ``parameters``:

    cycle   -- the active ``DuesCycle``
    today   -- the club-local date the run is evaluated on
    days    -- days until due (reminders) or days overdue (overdue notices)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from club_batch.domain.types import BatchItemStatus
from club_batch.tasks.base import BatchItemInput, BatchTaskResult, TaskRegistry
from club_kernel.domain.roles import SYSTEM_ACTOR
from club_kernel.exceptions import InvalidTransitionError
from club_kernel.logging_config import get_logger
from club_modules.dues.models import DuesPhase
from club_services.email_messages import (
    Message,
    NoticeContext,
    inactivation_message,
    overdue_message,
    reminder_message,
)
from club_services.notifications import NotificationResult, Notifier

logger = get_logger("batch.tasks.dues")

REMINDER_TASK = "dues.send_reminders"
OVERDUE_TASK = "dues.send_overdue"
GRACE_TASK = "dues.enforce_grace"


class _UnpaidMemberTask:
    """Shared item selection: one item per unpaid ACTIVE member."""

    def __init__(self, notifier: Notifier, notice_context: NoticeContext):
        self._notifier = notifier
        self._ctx = notice_context

    def prepare_items(
        self,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> tuple[BatchItemInput, ...]:
        from club_modules.dues.service import DuesService

        members = DuesService(session).unpaid_active_members(parameters["cycle"].id)
        return tuple(
            BatchItemInput(
                item_index=i,
                item_key=str(member.id),
                payload={
                    "member_id": str(member.id),
                    "email": member.email,
                    "first_name": member.first_name,
                },
            )
            for i, member in enumerate(members)
        )


class _NoticeTask(_UnpaidMemberTask, ABC):
    """Sends one notice per member, de-duplicated per phase and day."""

    phase: DuesPhase

    def __init__(
        self,
        notifier: Notifier,
        notice_context: NoticeContext,
        resend_same_day: bool = False,
    ):
        super().__init__(notifier, notice_context)
        self._resend_same_day = resend_same_day

    @abstractmethod
    def _message(self, item: BatchItemInput, parameters: dict[str, Any]) -> Message:
        """Notice for one member of this phase."""

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        from club_modules.dues.service import DuesService

        dues = DuesService(session, auto_commit=False)
        cycle = parameters["cycle"]
        today = parameters["today"]
        member_id = UUID(item.payload["member_id"])

        if not self._resend_same_day and dues.notice_sent(member_id, cycle.id, self.phase, today):
            return BatchTaskResult(
                status=BatchItemStatus.SKIPPED,
                result_data={"reason": "already_notified_today"},
            )

        message = self._message(item, parameters)
        result = self._notifier.send(item.payload["email"], message.subject, message.html)
        if not result.success:
            return BatchTaskResult(
                status=BatchItemStatus.FAILED,
                error_code="NOTIFICATION_FAILED",
                error_message=result.error,
            )

        dues.record_notice(member_id, cycle.id, self.phase, today, message_id=result.message_id)
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={"message_id": result.message_id},
        )


class DuesReminderTask(_NoticeTask):
    """Reminder sent shortly before the cycle ends."""

    phase = DuesPhase.REMINDER

    @property
    def task_type(self) -> str:
        return REMINDER_TASK

    @property
    def description(self) -> str:
        return "Remind unpaid active members that dues are due soon"

    def _message(self, item: BatchItemInput, parameters: dict[str, Any]) -> Message:
        cycle = parameters["cycle"]
        return reminder_message(
            self._ctx, item.payload["first_name"], cycle.money, cycle.end_date, parameters["days"]
        )


class DuesOverdueTask(_NoticeTask):
    """Overdue notice sent after the cycle has ended."""

    phase = DuesPhase.OVERDUE

    @property
    def task_type(self) -> str:
        return OVERDUE_TASK

    @property
    def description(self) -> str:
        return "Notify unpaid active members that dues are overdue"

    def _message(self, item: BatchItemInput, parameters: dict[str, Any]) -> Message:
        cycle = parameters["cycle"]
        return overdue_message(
            self._ctx,
            item.payload["first_name"],
            cycle.money,
            cycle.end_date,
            parameters["days"],
            cycle.grace_days,
        )


class GraceEnforcementTask(_UnpaidMemberTask):
    """Inactivates an unpaid member, then notifies them.

    A failed notification does not undo the inactivation: the item still
    succeeds and reports ``notified: False``.
    """

    @property
    def task_type(self) -> str:
        return GRACE_TASK

    @property
    def description(self) -> str:
        return "Inactivate active members still unpaid after the grace period"

    def execute_item(
        self,
        item: BatchItemInput,
        parameters: dict[str, Any],
        session: Session,
        as_of: datetime,
    ) -> BatchTaskResult:
        from club_modules.members.service import MemberService

        cycle = parameters["cycle"]
        member_id = UUID(item.payload["member_id"])
        try:
            MemberService(session, auto_commit=False).inactivate_for_unpaid_dues(
                SYSTEM_ACTOR, member_id, cycle.code
            )
        except InvalidTransitionError:
            return BatchTaskResult(
                status=BatchItemStatus.SKIPPED,
                result_data={"reason": "no_longer_active"},
            )

        message = inactivation_message(
            self._ctx, item.payload["first_name"], cycle.money, cycle.end_date, cycle.code
        )
        try:
            result = self._notifier.send(item.payload["email"], message.subject, message.html)
        except Exception as exc:
            # The inactivation stands whatever the notifier does.
            result = NotificationResult(success=False, error=str(exc) or type(exc).__name__)
        if not result.success:
            logger.warning(
                "inactivation_notice_failed",
                extra={"member_id": str(member_id), "cycle_code": cycle.code, "error": result.error},
            )
        return BatchTaskResult(
            status=BatchItemStatus.SUCCEEDED,
            result_data={"notified": result.success, "notification_error": result.error},
        )


def build_dues_registry(
    notifier: Notifier,
    notice_context: NoticeContext,
    resend_same_day: bool = False,
) -> TaskRegistry:
    """Registry holding the three dues automation tasks."""
    registry = TaskRegistry()
    registry.register(DuesReminderTask(notifier, notice_context, resend_same_day))
    registry.register(DuesOverdueTask(notifier, notice_context, resend_same_day))
    registry.register(GraceEnforcementTask(notifier, notice_context))
    return registry
