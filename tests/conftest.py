"""
Pytest fixtures for the club finance test suite.

Provides:
- An in-memory SQLite engine (StaticPool) with every ORM table, one per test
- A ``session`` bound to it and a ``DeterministicClock``
- ``RecordingNotifier`` for dues automation and its failure modes
- Seeded members for each role and the matching ``Actor`` objects
- Structured-log capture
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session, sessionmaker

from club_kernel.db.engine import build_engine, create_tables
from club_kernel.domain.clock import DeterministicClock
from club_kernel.domain.roles import Actor, Role
from club_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from club_modules.members.models import MemberStatus
from club_modules.members.orm import MemberModel
from club_services.notifications import NotificationResult

# Recorded as ``created_by_id`` on seeded rows.
TEST_ADMIN_ID = UUID("00000000-0000-4000-a000-000000000001")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ``club`` logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ...):
            ...
            logs = captured_logs()
            assert any(r["message"] == "expense_reviewed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("club")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory) -> Session:
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


# =============================================================================
# Notifications
# =============================================================================


@dataclass
class SentMessage:
    to: str
    subject: str
    html: str


@dataclass
class RecordingNotifier:
    """Notifier double: records every send; addresses in ``fail_for`` fail."""
    fail_for: set[str] = field(default_factory=set)
    sent: list[SentMessage] = field(default_factory=list)
    attempts: int = 0

    def send(self, to: str, subject: str, html_body: str) -> NotificationResult:
        self.attempts += 1
        if to in self.fail_for:
            return NotificationResult(success=False, error="mailbox unavailable")
        self.sent.append(SentMessage(to, subject, html_body))
        return NotificationResult(success=True, message_id=f"msg-{len(self.sent)}")

    def recipients(self) -> list[str]:
        return [m.to for m in self.sent]


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


# =============================================================================
# Members and actors
# =============================================================================


@pytest.fixture
def make_member(session):
    """Insert a member row directly and return its id."""

    def _make(
        role: Role = Role.MEMBER,
        status: MemberStatus = MemberStatus.ACTIVE,
        email: str | None = None,
        first_name: str = "Alex",
    ) -> UUID:
        row = MemberModel(
            email=email or f"{uuid4().hex[:10]}@example.org",
            first_name=first_name,
            last_name="Tester",
            role=role.value,
            status=status.value,
            created_by_id=TEST_ADMIN_ID,
        )
        session.add(row)
        session.commit()
        return row.id

    return _make


@pytest.fixture
def admin(make_member) -> Actor:
    return Actor(make_member(Role.ADMIN, email="admin@example.org"), Role.ADMIN)


@pytest.fixture
def treasurer(make_member) -> Actor:
    return Actor(make_member(Role.TREASURER, email="treasurer@example.org"), Role.TREASURER)


@pytest.fixture
def president(make_member) -> Actor:
    return Actor(make_member(Role.PRESIDENT, email="president@example.org"), Role.PRESIDENT)


@pytest.fixture
def member(make_member) -> Actor:
    return Actor(make_member(Role.MEMBER, email="member@example.org"), Role.MEMBER)


# =============================================================================
# Shared domain fixtures
# =============================================================================


@pytest.fixture
def approved_activity(session, clock, treasurer, president):
    """An approved gala with an 8000-cent budget."""
    from club_modules.activities.service import ActivityService

    service = ActivityService(session, clock)
    activity = service.create_activity(
        treasurer,
        name="Spring Gala",
        activity_type="gala",
        activity_date=date(2025, 4, 12),
        line_items=[
            {"name": "Venue", "amount": 5000},
            {"name": "Catering", "amount": 3000},
        ],
    )
    service.submit_for_approval(treasurer, activity.id)
    return service.approve(president, activity.id)
