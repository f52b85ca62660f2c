"""
Dues administration endpoints: cycles, collection summary and per-member
settlement.  Automation lives in ``club_api.routes.automation``.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from sqlalchemy.orm import Session

from club_api.dependencies import get_actor, get_clock, get_config, get_session
from club_config.schema import ClubConfig
from club_kernel.domain.clock import Clock
from club_kernel.domain.roles import Actor
from club_modules.dues.service import DuesService
from club_services.rbac_authority import require_permission

router = APIRouter(prefix="/dues", tags=["dues"])


def _body(dto: Any) -> dict[str, Any]:
    return jsonable_encoder(asdict(dto))


def _dues(
    session: Session = Depends(get_session),
    clock: Clock = Depends(get_clock),
    config: ClubConfig = Depends(get_config),
) -> DuesService:
    return DuesService(session, clock, config.dues)


class CycleCreate(BaseModel):
    ending_year: int
    amount: Optional[int] = None
    grace_days: Optional[int] = None
    activate: bool = False


class OfflinePayment(BaseModel):
    method: str
    note: Optional[str] = None


class Waiver(BaseModel):
    note: str


@router.get("/cycles")
def list_cycles(
    actor: Actor = Depends(get_actor),
    service: DuesService = Depends(_dues),
):
    require_permission("dues_cycle", "view", actor)
    return [_body(c) for c in service.list_cycles()]


@router.post("/cycles", status_code=201)
def create_cycle(
    body: CycleCreate,
    actor: Actor = Depends(get_actor),
    service: DuesService = Depends(_dues),
):
    cycle = service.create_cycle(
        actor,
        body.ending_year,
        amount=body.amount,
        grace_days=body.grace_days,
        activate=body.activate,
    )
    return _body(cycle)


@router.post("/cycles/{cycle_code}/activate")
def activate_cycle(
    cycle_code: str,
    actor: Actor = Depends(get_actor),
    service: DuesService = Depends(_dues),
):
    return _body(service.activate_cycle(actor, cycle_code))


@router.get("/cycles/{cycle_code}/summary")
def cycle_summary(
    cycle_code: str,
    actor: Actor = Depends(get_actor),
    service: DuesService = Depends(_dues),
):
    require_permission("dues_cycle", "view", actor)
    return _body(service.cycle_summary(cycle_code))


@router.get("/cycles/{cycle_code}/members/{member_id}")
def member_dues(
    cycle_code: str,
    member_id: UUID,
    actor: Actor = Depends(get_actor),
    service: DuesService = Depends(_dues),
):
    # Members may always read their own dues.
    if actor.member_id != member_id:
        require_permission("dues_cycle", "view", actor)
    cycle = service.get_cycle(cycle_code)
    return _body(service.get_member_dues(member_id, cycle.id))


@router.post("/cycles/{cycle_code}/members/{member_id}/mark-paid")
def mark_paid_offline(
    cycle_code: str,
    member_id: UUID,
    body: OfflinePayment,
    actor: Actor = Depends(get_actor),
    service: DuesService = Depends(_dues),
):
    return _body(service.mark_paid_offline(actor, member_id, cycle_code, body.method, body.note))


@router.post("/cycles/{cycle_code}/members/{member_id}/waive")
def waive_dues(
    cycle_code: str,
    member_id: UUID,
    body: Waiver,
    actor: Actor = Depends(get_actor),
    service: DuesService = Depends(_dues),
):
    return _body(service.waive(actor, member_id, cycle_code, body.note))
