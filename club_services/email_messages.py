"""Subjects and HTML bodies for dues notices.

Values interpolated into HTML are escaped; amounts are formatted from
integer cents only here, at the presentation boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from html import escape

from club_kernel.domain.values import Money


@dataclass(frozen=True)
class NoticeContext:
    club_name: str
    base_url: str
    contact_email: str


@dataclass(frozen=True)
class Message:
    subject: str
    html: str


def _date(day: date) -> str:
    return f"{day.month}/{day.day}/{day.year}"


def _footer(ctx: NoticeContext) -> str:
    contact = escape(ctx.contact_email)
    return (
        f'<p>Questions? Contact us at <a href="mailto:{contact}">{contact}</a></p>'
        f"<p>Best,<br/>{escape(ctx.club_name)} Board</p>"
    )


def _pay_link(ctx: NoticeContext, label: str) -> str:
    return f'<p><a href="{escape(ctx.base_url)}/portal">{escape(label)}</a></p>'


def reminder_message(
    ctx: NoticeContext, first_name: str, amount: Money, due: date, days_until_due: int
) -> Message:
    body = (
        "<h2>Annual Dues Reminder</h2>"
        f"<p>Hi {escape(first_name)},</p>"
        f"<p>This is a friendly reminder that your annual {escape(ctx.club_name)} dues of "
        f"<strong>{amount.format()}</strong> are due by <strong>{_date(due)}</strong>.</p>"
        f"<p>You have <strong>{days_until_due} days</strong> remaining to submit your payment.</p>"
        + _pay_link(ctx, "Pay Now")
        + _footer(ctx)
    )
    return Message(subject=f"Reminder: Annual Dues Due {_date(due)}", html=body)


def overdue_message(
    ctx: NoticeContext,
    first_name: str,
    amount: Money,
    due: date,
    days_overdue: int,
    grace_days: int,
) -> Message:
    body = (
        "<h2>Overdue Dues Notice</h2>"
        f"<p>Hi {escape(first_name)},</p>"
        f"<p>Your annual {escape(ctx.club_name)} dues of <strong>{amount.format()}</strong> "
        f"are now <strong>{days_overdue} days overdue</strong>.</p>"
        f"<p>The payment deadline was <strong>{_date(due)}</strong>.</p>"
        f"<p>Your membership will be automatically inactivated {grace_days} days after "
        "the due date if payment is not received.</p>"
        + _pay_link(ctx, "Pay Now")
        + _footer(ctx)
    )
    return Message(subject="Action Required: Overdue Annual Dues", html=body)


def inactivation_message(
    ctx: NoticeContext, first_name: str, amount: Money, due: date, cycle_code: str
) -> Message:
    body = (
        "<h2>Membership Status Update</h2>"
        f"<p>Hi {escape(first_name)},</p>"
        f"<p>Your {escape(ctx.club_name)} membership has been set to <strong>INACTIVE</strong> "
        "due to unpaid annual dues.</p>"
        f"<p>The grace period for <strong>{escape(cycle_code)}</strong> dues "
        f"(due {_date(due)}) has expired.</p>"
        "<h3>How to reactivate your membership:</h3>"
        f"<ol><li>Pay the outstanding dues of <strong>{amount.format()}</strong></li>"
        "<li>Your membership will be reactivated once payment is confirmed</li></ol>"
        + _pay_link(ctx, "Pay Dues Now")
        + _footer(ctx)
    )
    return Message(subject="Membership Status: Inactive Due to Unpaid Dues", html=body)
