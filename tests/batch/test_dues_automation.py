"""
Dues automation phases over a cycle ending 2025-06-30 (amount 150.00).

Covers the date windows, member selection, per-member fault isolation and
same-day notice de-duplication.
"""

from dataclasses import replace
from datetime import date

import pytest

from club_batch.tasks.dues_tasks import (
    GRACE_TASK,
    OVERDUE_TASK,
    REMINDER_TASK,
    _NoticeTask,
    build_dues_registry,
)
from club_config.schema import ClubConfig, DuesSettings
from club_kernel.domain.clock import DeterministicClock
from club_kernel.domain.roles import SYSTEM_ACTOR
from club_kernel.exceptions import NotificationError, ValidationError
from club_modules.dues.automation import AutomationAction, DuesAutomationEngine
from club_modules.dues.service import DuesService
from club_modules.members.models import MemberStatus
from club_modules.members.service import MemberService
from club_services.email_messages import NoticeContext

CYCLE_END = date(2025, 6, 30)
CONTEXT = NoticeContext("Test Club", "https://club.test", "board@club.test")


class ExplodingNotifier:
    """Notifier whose transport raises instead of returning a result."""

    def send(self, to, subject, html_body):
        raise NotificationError(to, "provider unreachable")


def _on(day: date) -> DeterministicClock:
    return DeterministicClock.on_date(day)


@pytest.fixture
def config():
    return ClubConfig(club_name="Rotaract Test Club")


@pytest.fixture
def cycle(session):
    return DuesService(session).create_cycle(SYSTEM_ACTOR, 2025, amount=15000, activate=True)


@pytest.fixture
def roster(session, cycle, make_member):
    """Unpaid, paid, waived, inactive and pending members, plus one with no dues record."""
    ids = {
        "unpaid": make_member(email="a-unpaid@example.org", first_name="Una"),
        "no_record": make_member(email="b-norecord@example.org", first_name="Noor"),
        "paid": make_member(email="c-paid@example.org", first_name="Pia"),
        "waived": make_member(email="d-waived@example.org", first_name="Wes"),
        "inactive": make_member(email="e-inactive@example.org", status=MemberStatus.INACTIVE),
        "pending": make_member(email="f-pending@example.org", status=MemberStatus.PENDING_PROFILE),
    }
    dues = DuesService(session)
    dues.mark_paid(ids["paid"], cycle.id, "zelle")
    dues.waive(SYSTEM_ACTOR, ids["waived"], cycle.code, note="Honorary member")
    # An explicit UNPAID record behaves like a missing one.
    from club_modules.dues.orm import MemberDuesModel

    session.add(
        MemberDuesModel(
            member_id=ids["unpaid"],
            cycle_id=cycle.id,
            status="UNPAID",
            created_by_id=SYSTEM_ACTOR.member_id,
        )
    )
    session.commit()
    return ids


def _engine(session, notifier, config, day):
    return DuesAutomationEngine(session, notifier, config, _on(day))


EXPECTED = {"a-unpaid@example.org", "b-norecord@example.org"}


class TestNoActiveCycle:

    @pytest.mark.parametrize("action, key", [
        ("send-reminders", "sent"),
        ("send-overdue", "sent"),
        ("enforce-grace", "inactivated"),
    ])
    def test_each_phase_is_a_successful_no_op(self, session, notifier, config, action, key):
        result = _engine(session, notifier, config, date(2025, 6, 16)).run(action)
        assert result.to_response() == {"success": True, "message": "No active cycle", key: 0}
        assert notifier.attempts == 0


class TestSendReminders:

    def test_no_op_twenty_days_out(self, session, notifier, config, roster):
        result = _engine(session, notifier, config, date(2025, 6, 10)).send_reminders()
        body = result.to_response()
        assert body["sent"] == 0
        assert body["daysUntilDue"] == 20
        assert body["message"] == "Not reminder window (20 days until due)"
        assert notifier.attempts == 0

    def test_sends_fourteen_days_out(self, session, notifier, config, cycle, roster):
        result = _engine(session, notifier, config, date(2025, 6, 16)).send_reminders()
        body = result.to_response()
        assert body["success"] is True
        assert body["sent"] == 2
        assert body["daysUntilDue"] == 14
        assert body["cycleId"] == str(cycle.id)
        assert set(notifier.recipients()) == EXPECTED

        message = notifier.sent[0]
        assert message.subject == "Reminder: Annual Dues Due 6/30/2025"
        assert "$150.00" in message.html
        assert "14 days" in message.html

    @pytest.mark.parametrize("day, sends", [
        (date(2025, 6, 14), False),  # 16 days
        (date(2025, 6, 15), True),   # 15 days
        (date(2025, 6, 17), True),   # 13 days
        (date(2025, 6, 18), False),  # 12 days
    ])
    def test_window_edges(self, session, notifier, config, roster, day, sends):
        result = _engine(session, notifier, config, day).send_reminders()
        assert (result.count > 0) is sends

    def test_window_from_settings(self, session, notifier, roster):
        config = ClubConfig(dues=DuesSettings(reminder_days_before=7, reminder_tolerance_days=0))
        assert _engine(session, notifier, config, date(2025, 6, 16)).send_reminders().count == 0
        assert _engine(session, notifier, config, date(2025, 6, 23)).send_reminders().count == 2

    def test_same_day_rerun_is_deduplicated(self, session, notifier, config, roster):
        day = date(2025, 6, 16)
        _engine(session, notifier, config, day).send_reminders()
        again = _engine(session, notifier, config, day).send_reminders()
        assert again.count == 0
        assert again.skipped == 2
        assert len(notifier.sent) == 2

        next_day = _engine(session, notifier, config, date(2025, 6, 17)).send_reminders()
        assert next_day.count == 2

    def test_resend_same_day_when_configured(self, session, notifier, config, roster):
        config = replace(config, dues=replace(config.dues, resend_same_day=True))
        day = date(2025, 6, 16)
        _engine(session, notifier, config, day).send_reminders()
        assert _engine(session, notifier, config, day).send_reminders().count == 2
        assert len(notifier.sent) == 4

    def test_failed_send_is_isolated_and_retried(self, session, notifier, config, roster, captured_logs):
        notifier.fail_for.add("a-unpaid@example.org")
        day = date(2025, 6, 16)
        result = _engine(session, notifier, config, day).send_reminders()
        assert result.count == 1
        assert result.failed == 1
        assert result.to_response()["failed"] == 1
        assert any(
            r["message"] == "batch_item_failed" and r.get("error_code") == "NOTIFICATION_FAILED"
            for r in captured_logs()
        )

        # No marker was written for the failed member, so a rerun retries only them.
        notifier.fail_for.clear()
        retry = _engine(session, notifier, config, day).send_reminders()
        assert retry.count == 1
        assert notifier.recipients()[-1] == "a-unpaid@example.org"


class TestSendOverdue:

    def test_not_overdue_on_due_date(self, session, notifier, config, roster):
        result = _engine(session, notifier, config, CYCLE_END).send_overdue()
        assert result.to_response()["message"] == "Cycle not yet overdue"
        assert result.count == 0
        assert notifier.attempts == 0

    def test_sends_after_due_date(self, session, notifier, config, roster):
        result = _engine(session, notifier, config, date(2025, 7, 5)).send_overdue()
        body = result.to_response()
        assert body["sent"] == 2
        assert body["daysOverdue"] == 5
        assert set(notifier.recipients()) == EXPECTED
        assert notifier.sent[0].subject == "Action Required: Overdue Annual Dues"
        assert "5 days overdue" in notifier.sent[0].html

    def test_paid_after_reminder_not_chased(self, session, notifier, config, cycle, roster):
        DuesService(session).mark_paid(roster["no_record"], cycle.id, "cash")
        _engine(session, notifier, config, date(2025, 7, 1)).send_overdue()
        assert notifier.recipients() == ["a-unpaid@example.org"]


class TestEnforceGrace:

    def test_no_op_one_day_before_grace_ends(self, session, notifier, config, roster):
        result = _engine(session, notifier, config, date(2025, 7, 29)).enforce_grace()
        body = result.to_response()
        assert body["inactivated"] == 0
        assert body["message"] == "Grace period not yet expired (1 days remaining)"
        members = MemberService(session)
        assert members.get_member(roster["unpaid"]).status is MemberStatus.ACTIVE

    def test_inactivates_unpaid_at_grace_end(self, session, notifier, config, roster):
        result = _engine(session, notifier, config, date(2025, 7, 30)).enforce_grace()
        body = result.to_response()
        assert body["inactivated"] == 2
        assert body["notificationFailures"] == 0

        members = MemberService(session)
        assert members.get_member(roster["unpaid"]).status is MemberStatus.INACTIVE
        assert members.get_member(roster["no_record"]).status is MemberStatus.INACTIVE
        assert members.get_member(roster["paid"]).status is MemberStatus.ACTIVE
        assert members.get_member(roster["waived"]).status is MemberStatus.ACTIVE
        assert members.get_member(roster["pending"]).status is MemberStatus.PENDING_PROFILE
        assert set(notifier.recipients()) == EXPECTED
        assert notifier.sent[0].subject == "Membership Status: Inactive Due to Unpaid Dues"

    def test_second_run_finds_nobody(self, session, notifier, config, roster):
        _engine(session, notifier, config, date(2025, 7, 30)).enforce_grace()
        again = _engine(session, notifier, config, date(2025, 7, 31)).enforce_grace()
        assert again.count == 0

    def test_notification_failure_keeps_inactivation(self, session, notifier, config, roster):
        notifier.fail_for.add("b-norecord@example.org")
        result = _engine(session, notifier, config, date(2025, 8, 15)).enforce_grace()
        assert result.count == 2
        assert result.notification_failures == 1
        assert result.failed == 0
        status = MemberService(session).get_member(roster["no_record"]).status
        assert status is MemberStatus.INACTIVE

    def test_raising_notifier_keeps_inactivation(self, session, config, roster, captured_logs):
        result = _engine(session, ExplodingNotifier(), config, date(2025, 8, 1)).enforce_grace()

        assert (result.count, result.failed, result.notification_failures) == (2, 0, 2)
        members = MemberService(session)
        assert members.get_member(roster["unpaid"]).status is MemberStatus.INACTIVE
        assert members.get_member(roster["no_record"]).status is MemberStatus.INACTIVE
        failures = [r for r in captured_logs() if r["message"] == "inactivation_notice_failed"]
        assert len(failures) == 2
        assert "provider unreachable" in failures[0]["error"]

    def test_uses_cycle_grace_days(self, session, notifier, config, make_member):
        DuesService(session).create_cycle(SYSTEM_ACTOR, 2025, grace_days=10, activate=True)
        make_member(email="late@example.org")
        assert _engine(session, notifier, config, date(2025, 7, 9)).enforce_grace().count == 0
        assert _engine(session, notifier, config, date(2025, 7, 10)).enforce_grace().count == 1


class TestDispatch:

    def test_registry_holds_every_phase(self, notifier):
        registry = build_dues_registry(notifier, CONTEXT)
        assert len(registry) == 3
        for task_type in (REMINDER_TASK, OVERDUE_TASK, GRACE_TASK):
            assert registry.get(task_type).task_type == task_type

    def test_notice_task_needs_a_message(self, notifier):
        with pytest.raises(TypeError):
            _NoticeTask(notifier, CONTEXT)

    def test_run_by_action_string(self, session, notifier, config, roster):
        result = _engine(session, notifier, config, date(2025, 6, 16)).run("send-reminders")
        assert result.action is AutomationAction.SEND_REMINDERS
        assert result.count == 2

    def test_unknown_action(self, session, notifier, config):
        with pytest.raises(ValidationError):
            _engine(session, notifier, config, date(2025, 6, 16)).run("send-everything")

    def test_dates_use_club_timezone(self, session, notifier, roster):
        # 02:00 UTC on June 16 is still June 15 in New York: 15 days out.
        config = ClubConfig(dues=DuesSettings(reminder_days_before=14, reminder_tolerance_days=0))
        engine = DuesAutomationEngine(session, notifier, config, DeterministicClock.on_date(date(2025, 6, 16), hour=2))
        assert engine.send_reminders().days_until_due == 15


class TestCycleLifecycle:

    def test_one_clock_through_every_phase(self, session, notifier, config, roster):
        clock = _on(date(2025, 6, 16))
        engine = DuesAutomationEngine(session, notifier, config, clock)
        assert engine.send_reminders().count == 2
        assert engine.send_overdue().count == 0

        clock.advance_days(19)  # 2025-07-05
        assert engine.send_overdue().count == 2
        assert engine.enforce_grace().count == 0

        clock.advance_days(25)  # 2025-07-30
        assert engine.enforce_grace().count == 2
        assert len(notifier.sent) == 6
