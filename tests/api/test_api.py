"""
HTTP surface: the bearer-guarded automation endpoint and the workflow
routes, including the mapping of engine errors to status codes.
"""

import asyncio
from datetime import date
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from club_api import create_app
from club_config.schema import AutomationSettings, ClubConfig
from club_kernel.domain.clock import DeterministicClock
from club_kernel.domain.roles import SYSTEM_ACTOR
from club_modules.dues.service import DuesService
from club_services.notifications import NotificationResult

TOKEN_ENV = "TEST_AUTOMATION_KEY"
TOKEN = "cron-s3cret"


@pytest.fixture
def config():
    return ClubConfig(
        club_name="Rotaract Test Club",
        automation=AutomationSettings(token_env=TOKEN_ENV),
    )


@pytest.fixture
def api_clock():
    return DeterministicClock.on_date(date(2025, 6, 16))


@pytest.fixture
def client(config, session_factory, notifier, api_clock, monkeypatch):
    monkeypatch.setenv(TOKEN_ENV, TOKEN)
    app = create_app(config, session_factory, notifier, api_clock)
    with TestClient(app) as c:
        yield c


def _as(actor) -> dict[str, str]:
    return {"X-Member-Id": str(actor.member_id)}


AUTH = {"Authorization": f"Bearer {TOKEN}"}


# =============================================================================
# Dues automation
# =============================================================================


class TestAutomationAuth:

    def test_missing_token(self, client):
        response = client.post("/dues/automation", json={"action": "send-reminders"})
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_wrong_token(self, client):
        response = client.post(
            "/dues/automation",
            json={"action": "send-reminders"},
            headers={"Authorization": "Bearer nope"},
        )
        assert response.status_code == 401

    def test_not_bearer(self, client):
        response = client.post(
            "/dues/automation",
            json={"action": "send-reminders"},
            headers={"Authorization": TOKEN},
        )
        assert response.status_code == 401

    def test_secret_not_configured_rejects_everything(self, client, monkeypatch, captured_logs):
        monkeypatch.delenv(TOKEN_ENV)
        response = client.post("/dues/automation", json={"action": "send-reminders"}, headers=AUTH)
        assert response.status_code == 401
        assert any(r["message"] == "automation_token_not_configured" for r in captured_logs())


class TestAutomationActions:

    def test_missing_action(self, client):
        response = client.post("/dues/automation", json={}, headers=AUTH)
        assert response.status_code == 400
        assert response.json() == {"error": "Missing action parameter"}

    def test_body_not_json(self, client):
        response = client.post("/dues/automation", content=b"send-reminders", headers=AUTH)
        assert response.status_code == 400
        assert response.json() == {"error": "Missing action parameter"}

    def test_invalid_action(self, client):
        response = client.post("/dues/automation", json={"action": "send-all"}, headers=AUTH)
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid action"}

    def test_no_active_cycle(self, client):
        response = client.post("/dues/automation", json={"action": "enforce-grace"}, headers=AUTH)
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "No active cycle", "inactivated": 0}

    def test_sends_reminders(self, client, session, notifier, make_member, captured_logs):
        cycle = DuesService(session).create_cycle(SYSTEM_ACTOR, 2025, activate=True)
        make_member(email="due@example.org", first_name="Dee")

        response = client.post("/dues/automation", json={"action": "send-reminders"}, headers=AUTH)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["sent"] == 1
        assert body["daysUntilDue"] == 14
        assert body["cycleId"] == str(cycle.id)
        assert notifier.recipients() == ["due@example.org"]
        assert any(r["message"] == "dues_automation_completed" for r in captured_logs())

    def test_unexpected_failure_is_500(self, config, session, session_factory, notifier, monkeypatch):
        class BrokenClock(DeterministicClock):
            def today(self, tz_name="UTC"):
                raise RuntimeError("clock unavailable")

        DuesService(session).create_cycle(SYSTEM_ACTOR, 2025, activate=True)
        monkeypatch.setenv(TOKEN_ENV, TOKEN)
        app = create_app(config, session_factory, notifier, BrokenClock())
        with TestClient(app) as c:
            response = c.post("/dues/automation", json={"action": "send-overdue"}, headers=AUTH)
        assert response.status_code == 500
        assert response.json() == {"error": "clock unavailable"}


    def test_phase_runs_off_the_event_loop(
        self, config, session, session_factory, make_member, monkeypatch
    ):
        class LoopRecordingNotifier:
            def __init__(self):
                self.loops = []

            def send(self, to, subject, html_body):
                try:
                    self.loops.append(asyncio.get_running_loop())
                except RuntimeError:
                    self.loops.append(None)
                return NotificationResult(success=True, message_id="email_1")

        DuesService(session).create_cycle(SYSTEM_ACTOR, 2025, activate=True)
        make_member(email="due@example.org")
        monkeypatch.setenv(TOKEN_ENV, TOKEN)
        notifier = LoopRecordingNotifier()
        app = create_app(config, session_factory, notifier, DeterministicClock.on_date(date(2025, 6, 16)))
        with TestClient(app) as c:
            response = c.post("/dues/automation", json={"action": "send-reminders"}, headers=AUTH)

        assert response.json()["sent"] == 1
        assert notifier.loops == [None]


# =============================================================================
# Workflow routes
# =============================================================================


def _create_gala(client, treasurer):
    response = client.post(
        "/activities",
        json={
            "name": "Spring Gala",
            "type": "gala",
            "date": "2025-04-12",
            "line_items": [
                {"name": "Venue", "amount": 5000},
                {"name": "Catering", "amount": 3000},
            ],
        },
        headers=_as(treasurer),
    )
    assert response.status_code == 201
    return response.json()


class TestIdentity:

    def test_missing_member_header(self, client):
        assert client.get("/activities").status_code == 401

    def test_unknown_member(self, client):
        response = client.get("/activities", headers={"X-Member-Id": str(uuid4())})
        assert response.status_code == 401

    def test_malformed_member_id(self, client):
        response = client.get("/activities", headers={"X-Member-Id": "not-a-uuid"})
        assert response.status_code == 401


class TestActivityRoutes:

    def test_full_budget_flow(self, client, treasurer, president):
        activity = _create_gala(client, treasurer)
        assert activity["status"] == "draft"
        assert activity["total_estimate"] == 8000
        assert activity["date"] == "2025-04-12"

        activity_id = activity["id"]
        submitted = client.post(f"/activities/{activity_id}/submit", headers=_as(treasurer))
        assert submitted.json()["status"] == "pending_approval"
        approved = client.post(
            f"/activities/{activity_id}/approve",
            json={"notes": "Approved at board meeting"},
            headers=_as(president),
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"

        expense = client.post(
            f"/activities/{activity_id}/expenses",
            json={"amount": 2000, "category": "venue", "payment_method": "check"},
            headers=_as(treasurer),
        )
        assert expense.status_code == 201
        reviewed = client.post(
            f"/expenses/{expense.json()['id']}/review",
            json={"decision": "approve"},
            headers=_as(treasurer),
        )
        assert reviewed.json()["status"] == "approved"

        summary = client.get(f"/activities/{activity_id}/summary", headers=_as(treasurer)).json()
        assert summary["totalSpent"] == 2000
        assert summary["utilization"] == "25.00"

        reconciliation = client.get(
            f"/activities/{activity_id}/reconciliation", headers=_as(president)
        ).json()
        assert reconciliation["is_consistent"] is True
        assert reconciliation["difference"] == 0

    def test_approve_without_body(self, client, treasurer, president):
        activity_id = _create_gala(client, treasurer)["id"]
        client.post(f"/activities/{activity_id}/submit", headers=_as(treasurer))
        response = client.post(f"/activities/{activity_id}/approve", headers=_as(president))
        assert response.status_code == 200

    def test_list_filtered_by_status(self, client, treasurer):
        _create_gala(client, treasurer)
        drafts = client.get("/activities", params={"status": "draft"}, headers=_as(treasurer))
        assert [a["name"] for a in drafts.json()] == ["Spring Gala"]
        approved = client.get("/activities", params={"status": "approved"}, headers=_as(treasurer))
        assert approved.json() == []


class TestErrorMapping:

    def test_forbidden_is_403(self, client, member, captured_logs):
        response = client.post(
            "/activities",
            json={"name": "x", "type": "social", "date": "2025-01-01"},
            headers=_as(member),
        )
        assert response.status_code == 403
        assert response.json()["error"] == "FORBIDDEN"
        record = next(r for r in captured_logs() if r["message"] == "api_request_rejected")
        assert record["status"] == 403

    def test_not_found_is_404(self, client, treasurer):
        response = client.get(f"/activities/{uuid4()}", headers=_as(treasurer))
        assert response.status_code == 404
        assert response.json()["error"] == "ACTIVITY_NOT_FOUND"

    def test_invalid_transition_is_409(self, client, treasurer, president):
        activity_id = _create_gala(client, treasurer)["id"]
        response = client.post(f"/activities/{activity_id}/approve", headers=_as(president))
        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_TRANSITION"

    def test_validation_is_400(self, client, treasurer):
        response = client.post(
            "/activities",
            json={"name": "Trivia", "type": "other", "date": "2025-01-01"},
            headers=_as(treasurer),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_dues_payment_without_cycle_is_409(self, client, member):
        response = client.post(
            "/payments",
            json={"amount": 8500, "type": "dues", "method": "zelle"},
            headers=_as(member),
        )
        assert response.status_code == 409


class TestPaymentRoutes:

    def test_member_submits_treasurer_approves(self, client, session, admin, member, treasurer):
        cycle = DuesService(session).create_cycle(admin, 2025, activate=True)
        submitted = client.post(
            "/payments",
            json={"amount": 8500, "type": "dues", "method": "venmo", "notes": "@member"},
            headers=_as(member),
        )
        assert submitted.status_code == 201
        payment = submitted.json()
        assert payment["member_id"] == str(member.member_id)
        assert payment["status"] == "pending"

        pending = client.get("/payments", params={"status": "pending"}, headers=_as(treasurer))
        assert [p["id"] for p in pending.json()] == [payment["id"]]

        reviewed = client.post(
            f"/payments/{payment['id']}/review",
            json={"decision": "approve"},
            headers=_as(treasurer),
        )
        assert reviewed.status_code == 200
        assert reviewed.json()["status"] == "approved"

        session.expire_all()
        dues = DuesService(session).get_member_dues(member.member_id, cycle.id)
        assert dues.status.value == "PAID"

    def test_reject_requires_notes(self, client, member, treasurer):
        submitted = client.post(
            "/payments",
            json={"amount": 2500, "type": "event_ticket", "method": "cash", "event_name": "Gala"},
            headers=_as(member),
        ).json()
        response = client.post(
            f"/payments/{submitted['id']}/review",
            json={"decision": "reject"},
            headers=_as(treasurer),
        )
        assert response.status_code == 400


class TestCorrelationId:

    def test_request_id_echoed_and_logged(self, client, member, captured_logs):
        response = client.post(
            "/activities",
            json={"name": "x", "type": "social", "date": "2025-01-01"},
            headers={**_as(member), "X-Request-Id": "req-42"},
        )
        assert response.headers["X-Request-Id"] == "req-42"
        denied = next(r for r in captured_logs() if r["message"] == "permission_denied")
        assert denied["correlation_id"] == "req-42"

    def test_generated_when_absent(self, client, treasurer):
        response = client.get("/activities", headers=_as(treasurer))
        assert response.headers["X-Request-Id"]


class TestReadGuards:

    def test_unknown_status_filter_is_400(self, client, treasurer):
        response = client.get("/activities", params={"status": "archived"}, headers=_as(treasurer))
        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_member_cannot_reconcile(self, client, treasurer, member):
        activity_id = _create_gala(client, treasurer)["id"]
        response = client.get(f"/activities/{activity_id}/reconciliation", headers=_as(member))
        assert response.status_code == 403


class TestDuesRoutes:

    def test_cycle_administration_and_summary(self, client, admin, treasurer, member, make_member):
        created = client.post(
            "/dues/cycles", json={"ending_year": 2025, "amount": 15000}, headers=_as(admin)
        )
        assert created.status_code == 201
        assert created.json()["code"] == "RY-2025"
        assert created.json()["is_active"] is False

        activated = client.post("/dues/cycles/RY-2025/activate", headers=_as(admin))
        assert activated.json()["is_active"] is True

        waived_id = make_member(email="honorary@example.org")
        paid = client.post(
            f"/dues/cycles/RY-2025/members/{member.member_id}/mark-paid",
            json={"method": "cash", "note": "Paid at meeting"},
            headers=_as(treasurer),
        )
        assert paid.status_code == 200
        assert paid.json()["status"] == "PAID"
        waived = client.post(
            f"/dues/cycles/RY-2025/members/{waived_id}/waive",
            json={"note": "Honorary member"},
            headers=_as(treasurer),
        )
        assert waived.json()["status"] == "WAIVED"

        summary = client.get("/dues/cycles/RY-2025/summary", headers=_as(treasurer)).json()
        assert summary["paid"] == 1
        assert summary["waived"] == 1
        assert summary["collected"] == 15000
        assert summary["total"] == summary["paid"] + summary["waived"] + summary["unpaid"]

        codes = [c["code"] for c in client.get("/dues/cycles", headers=_as(admin)).json()]
        assert codes == ["RY-2025"]

    def test_member_reads_own_dues_only(self, client, session, admin, member, treasurer):
        DuesService(session).create_cycle(admin, 2025, activate=True)
        own = client.get(f"/dues/cycles/RY-2025/members/{member.member_id}", headers=_as(member))
        assert own.status_code == 200
        assert own.json()["status"] == "UNPAID"

        other = client.get(
            f"/dues/cycles/RY-2025/members/{treasurer.member_id}", headers=_as(member)
        )
        assert other.status_code == 403

    def test_member_cannot_administer(self, client, member):
        response = client.post("/dues/cycles", json={"ending_year": 2025}, headers=_as(member))
        assert response.status_code == 403
        assert client.get("/dues/cycles", headers=_as(member)).status_code == 403

    def test_unknown_cycle_is_404(self, client, treasurer):
        response = client.get("/dues/cycles/RY-1999/summary", headers=_as(treasurer))
        assert response.status_code == 404


class TestApprovalQueue:

    def _pending_items(self, client, session, admin, treasurer, member):
        DuesService(session).create_cycle(admin, 2025, activate=True)
        budget = _create_gala(client, treasurer)
        client.post(f"/activities/{budget['id']}/submit", headers=_as(treasurer))
        client.post(
            "/payments",
            json={"amount": 8500, "type": "dues", "method": "zelle"},
            headers=_as(member),
        )

    def test_president_sees_budgets(self, client, session, admin, treasurer, president, member):
        self._pending_items(client, session, admin, treasurer, member)
        body = client.get("/approvals", headers=_as(president)).json()
        assert [b["name"] for b in body["pendingBudgets"]] == ["Spring Gala"]
        assert body["pendingExpenses"] == []
        assert body["pendingPayments"] == []

    def test_treasurer_sees_payments_and_expenses(
        self, client, session, admin, treasurer, member
    ):
        self._pending_items(client, session, admin, treasurer, member)
        body = client.get("/approvals", headers=_as(treasurer)).json()
        assert body["pendingBudgets"] == []
        assert [p["member_id"] for p in body["pendingPayments"]] == [str(member.member_id)]
        assert body["pendingExpenses"] == []

    def test_member_forbidden(self, client, member):
        response = client.get("/approvals", headers=_as(member))
        assert response.status_code == 403
        assert response.json()["error"] == "FORBIDDEN"
