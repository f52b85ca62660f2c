"""
Notice subjects and bodies.
"""

from datetime import date

from club_kernel.domain.values import Money
from club_services.email_messages import (
    NoticeContext,
    inactivation_message,
    overdue_message,
    reminder_message,
)

CTX = NoticeContext(
    club_name="Rotaract <NYC>",
    base_url="https://club.test",
    contact_email="treasurer@club.test",
)
DUE = date(2025, 6, 30)


class TestReminder:

    def test_subject_and_amount(self):
        message = reminder_message(CTX, "Ana", Money.of(8500), DUE, 14)
        assert message.subject == "Reminder: Annual Dues Due 6/30/2025"
        assert "$85.00" in message.html
        assert "14 days" in message.html
        assert 'href="https://club.test/portal"' in message.html

    def test_interpolated_values_are_escaped(self):
        message = reminder_message(CTX, "<script>x</script>", Money.of(8500), DUE, 14)
        assert "<script>" not in message.html
        assert "&lt;script&gt;" in message.html
        assert "Rotaract &lt;NYC&gt;" in message.html


class TestOverdue:

    def test_body(self):
        message = overdue_message(CTX, "Ana", Money.of(15000), DUE, 5, 30)
        assert message.subject == "Action Required: Overdue Annual Dues"
        assert "$150.00" in message.html
        assert "5 days overdue" in message.html
        assert "30 days after" in message.html


class TestInactivation:

    def test_body(self):
        message = inactivation_message(CTX, "Ana", Money.of(8500), DUE, "RY-2025")
        assert message.subject == "Membership Status: Inactive Due to Unpaid Dues"
        assert "<strong>INACTIVE</strong>" in message.html
        assert "RY-2025" in message.html
        assert "mailto:treasurer@club.test" in message.html
