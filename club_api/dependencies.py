"""
Request dependencies.

Collaborators (config, session factory, notifier, clock) live on
``app.state`` and are set by ``create_app``.  Tests replace any of them, or
``get_actor`` itself, through ``app.dependency_overrides``.
"""

from __future__ import annotations

from collections.abc import Generator
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from club_config.schema import ClubConfig
from club_kernel.domain.clock import Clock
from club_kernel.domain.roles import Actor, Role
from club_modules.members.orm import MemberModel
from club_modules.payments.tickets import TicketGrantor
from club_services.notifications import Notifier


def get_config(request: Request) -> ClubConfig:
    return request.app.state.config


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_ticket_grantor(request: Request) -> TicketGrantor:
    return request.app.state.ticket_grantor


def get_session(request: Request) -> Generator[Session, None, None]:
    session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


def get_actor(
    x_member_id: str | None = Header(default=None),
    session: Session = Depends(get_session),
) -> Actor:
    """Resolve the caller from the ``X-Member-Id`` header."""
    if not x_member_id:
        raise HTTPException(status_code=401, detail="Missing X-Member-Id header")
    try:
        member_id = UUID(x_member_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-Member-Id header") from None
    member = session.get(MemberModel, member_id)
    if member is None:
        raise HTTPException(status_code=401, detail="Unknown member")
    return Actor(member_id=member_id, role=Role(member.role))
