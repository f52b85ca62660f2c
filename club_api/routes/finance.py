"""
Workflow endpoints: activities, expenses, payment confirmations and the
per-role approval queue.

Amounts are integer cents.  Engine errors propagate to the handlers in
``club_api.errors``.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from club_api.dependencies import (
    get_actor,
    get_clock,
    get_config,
    get_session,
    get_ticket_grantor,
)
from club_config.schema import ClubConfig
from club_kernel.domain.clock import Clock
from club_kernel.domain.roles import Actor
from club_kernel.exceptions import ForbiddenError
from club_modules.activities.models import Activity
from club_modules.activities.service import ActivityService
from club_modules.expenses.service import ExpenseLedger
from club_modules.payments.service import PaymentConfirmationService
from club_modules.payments.tickets import TicketGrantor
from club_services.rbac_authority import is_permitted, require_permission

router = APIRouter(tags=["finance"])


def _activity_body(activity: Activity) -> dict[str, Any]:
    body = asdict(activity)
    body["date"] = body.pop("activity_date")
    return jsonable_encoder(body)


def _body(dto: Any) -> dict[str, Any]:
    return jsonable_encoder(asdict(dto))


# =========================================================================
# Request bodies
# =========================================================================


class LineItemIn(BaseModel):
    name: str
    amount: int = Field(..., ge=0)
    notes: Optional[str] = None


class ActivityCreate(BaseModel):
    name: str
    type: str
    activity_date: date = Field(..., alias="date")
    line_items: list[LineItemIn] = []
    custom_type: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    linked_event_id: Optional[str] = None
    allowed_expense_submitters: list[UUID] = []


class BudgetUpdate(BaseModel):
    line_items: list[LineItemIn]


class SubmittersUpdate(BaseModel):
    member_ids: list[UUID]


class DecisionNotes(BaseModel):
    notes: Optional[str] = None


class ExpenseCreate(BaseModel):
    amount: int
    category: str
    payment_method: str
    custom_category: Optional[str] = None
    description: Optional[str] = None
    vendor: Optional[str] = None
    receipt_url: Optional[str] = None
    expense_date: Optional[date] = None


class Review(BaseModel):
    decision: str
    notes: Optional[str] = None


class PaymentCreate(BaseModel):
    member_id: Optional[UUID] = None
    amount: int
    type: str
    method: str
    event_name: Optional[str] = None
    event_id: Optional[str] = None
    proof_url: Optional[str] = None
    notes: Optional[str] = None


# =========================================================================
# Activities
# =========================================================================


def _activities(
    session: Session = Depends(get_session), clock: Clock = Depends(get_clock)
) -> ActivityService:
    return ActivityService(session, clock)


@router.get("/activities")
def list_activities(
    status: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    return [_activity_body(a) for a in service.list_activities(status)]


@router.post("/activities", status_code=201)
def create_activity(
    body: ActivityCreate,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    activity = service.create_activity(
        actor,
        name=body.name,
        activity_type=body.type,
        activity_date=body.activity_date,
        line_items=[item.model_dump() for item in body.line_items],
        custom_type=body.custom_type,
        location=body.location,
        address=body.address,
        description=body.description,
        linked_event_id=body.linked_event_id,
        allowed_expense_submitters=body.allowed_expense_submitters,
    )
    return _activity_body(activity)


@router.get("/activities/{activity_id}")
def get_activity(
    activity_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    return _activity_body(service.get_activity(activity_id))


@router.get("/activities/{activity_id}/summary")
def activity_summary(
    activity_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    return jsonable_encoder(service.budget_summary(activity_id).to_dict())


@router.put("/activities/{activity_id}/budget")
def update_budget(
    activity_id: UUID,
    body: BudgetUpdate,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    activity = service.update_budget(
        actor, activity_id, [item.model_dump() for item in body.line_items]
    )
    return _activity_body(activity)


@router.put("/activities/{activity_id}/submitters")
def update_submitters(
    activity_id: UUID,
    body: SubmittersUpdate,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    return _activity_body(service.set_expense_submitters(actor, activity_id, body.member_ids))


@router.post("/activities/{activity_id}/submit")
def submit_activity(
    activity_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    return _activity_body(service.submit_for_approval(actor, activity_id))


@router.post("/activities/{activity_id}/approve")
def approve_activity(
    activity_id: UUID,
    body: Optional[DecisionNotes] = None,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    return _activity_body(service.approve(actor, activity_id, body.notes if body else None))


@router.post("/activities/{activity_id}/reject")
def reject_activity(
    activity_id: UUID,
    body: Optional[DecisionNotes] = None,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    return _activity_body(service.reject(actor, activity_id, body.notes if body else None))


@router.post("/activities/{activity_id}/cancel")
def cancel_activity(
    activity_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    return _activity_body(service.cancel(actor, activity_id))


@router.post("/activities/{activity_id}/complete")
def complete_activity(
    activity_id: UUID,
    actor: Actor = Depends(get_actor),
    service: ActivityService = Depends(_activities),
):
    return _activity_body(service.complete(actor, activity_id))


# =========================================================================
# Expenses
# =========================================================================


def _ledger(
    session: Session = Depends(get_session), clock: Clock = Depends(get_clock)
) -> ExpenseLedger:
    return ExpenseLedger(session, clock)


@router.get("/activities/{activity_id}/expenses")
def list_expenses(
    activity_id: UUID,
    status: Optional[str] = None,
    actor: Actor = Depends(get_actor),
    ledger: ExpenseLedger = Depends(_ledger),
):
    return [_body(e) for e in ledger.list_expenses(activity_id, status)]


@router.post("/activities/{activity_id}/expenses", status_code=201)
def submit_expense(
    activity_id: UUID,
    body: ExpenseCreate,
    actor: Actor = Depends(get_actor),
    ledger: ExpenseLedger = Depends(_ledger),
):
    expense = ledger.submit_expense(
        actor,
        activity_id,
        amount=body.amount,
        category=body.category,
        payment_method=body.payment_method,
        custom_category=body.custom_category,
        description=body.description,
        vendor=body.vendor,
        receipt_url=body.receipt_url,
        expense_date=body.expense_date,
    )
    return _body(expense)


@router.post("/expenses/{expense_id}/review")
def review_expense(
    expense_id: UUID,
    body: Review,
    actor: Actor = Depends(get_actor),
    ledger: ExpenseLedger = Depends(_ledger),
):
    return _body(ledger.review_expense(actor, expense_id, body.decision, body.notes))


@router.get("/activities/{activity_id}/reconciliation")
def reconcile_activity(
    activity_id: UUID,
    actor: Actor = Depends(get_actor),
    ledger: ExpenseLedger = Depends(_ledger),
):
    require_permission("expense", "reconcile", actor)
    result = ledger.reconcile(activity_id)
    return {
        **_body(result),
        "is_consistent": result.is_consistent,
        "difference": result.difference,
    }


# =========================================================================
# Payment confirmations
# =========================================================================


def _payments(
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
    config: ClubConfig = Depends(get_config),
    grantor: TicketGrantor = Depends(get_ticket_grantor),
) -> PaymentConfirmationService:
    return PaymentConfirmationService(session, clock, grantor, config.dues)


@router.get("/payments")
def list_payments(
    status: Optional[str] = None,
    member_id: Optional[UUID] = None,
    actor: Actor = Depends(get_actor),
    service: PaymentConfirmationService = Depends(_payments),
):
    return [_body(p) for p in service.list_payments(status, member_id)]


@router.post("/payments", status_code=201)
def submit_payment(
    body: PaymentCreate,
    actor: Actor = Depends(get_actor),
    service: PaymentConfirmationService = Depends(_payments),
):
    payment = service.submit_payment(
        actor,
        member_id=body.member_id or actor.member_id,
        amount=body.amount,
        payment_type=body.type,
        method=body.method,
        event_name=body.event_name,
        event_id=body.event_id,
        proof_url=body.proof_url,
        notes=body.notes,
    )
    return _body(payment)


@router.post("/payments/{payment_id}/review")
def review_payment(
    payment_id: UUID,
    body: Review,
    actor: Actor = Depends(get_actor),
    service: PaymentConfirmationService = Depends(_payments),
):
    return _body(service.review_payment(actor, payment_id, body.decision, body.notes))


# =========================================================================
# Approval queue
# =========================================================================


@router.get("/approvals")
def pending_approvals(
    actor: Actor = Depends(get_actor),
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
    config: ClubConfig = Depends(get_config),
    grantor: TicketGrantor = Depends(get_ticket_grantor),
):
    """Items waiting on the caller.

    Budgets go to the president; expenses and payment confirmations go to
    the treasurer.
    """
    reviews_budgets = is_permitted("activity", "approve", actor.role)
    reviews_expenses = is_permitted("expense", "approve", actor.role)
    reviews_payments = is_permitted("payment_confirmation", "approve", actor.role)
    if not (reviews_budgets or reviews_expenses or reviews_payments):
        raise ForbiddenError("view_approvals", actor.role.value)

    budgets = (
        ActivityService(session, clock).list_activities("pending_approval") if reviews_budgets else []
    )
    expenses = ExpenseLedger(session, clock).list_expenses(status="pending") if reviews_expenses else []
    payments = (
        PaymentConfirmationService(session, clock, grantor, config.dues).list_payments("pending")
        if reviews_payments
        else []
    )
    return {
        "pendingBudgets": [_activity_body(a) for a in budgets],
        "pendingExpenses": [_body(e) for e in expenses],
        "pendingPayments": [_body(p) for p in payments],
    }
