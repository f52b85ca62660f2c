"""
Member status service (``club_modules.members.service``).

Responsibility
--------------
Owns the member status transitions the financial engine drives:
onboarding completion and inactivation for unpaid dues.

Invariants enforced
-------------------
* Inactivation is a conditional update on ``status = 'ACTIVE'``; a member
  who left ACTIVE in the meantime is reported, not overwritten.
* With ``auto_commit=True`` each public method owns the transaction
  boundary.  The dues automation runs this service with
  ``auto_commit=False`` inside a per-member SAVEPOINT.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from club_kernel.domain.clock import Clock, SystemClock
from club_kernel.domain.roles import Actor, Role
from club_kernel.exceptions import (
    MemberNotFoundError,
    ValidationError,
)
from club_kernel.logging_config import get_logger
from club_modules._transition_helpers import apply_transition
from club_modules.members.models import Member, MemberStatus
from club_modules.members.orm import MemberModel
from club_modules.members.workflows import MEMBER_STATUS_WORKFLOW
from club_services.rbac_authority import require_permission

logger = get_logger("modules.members.service")


class MemberService:
    """Member registration and status transitions."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

    def _finish(self) -> None:
        if self._auto_commit:
            self._session.commit()
        else:
            self._session.flush()

    def _abort(self) -> None:
        if self._auto_commit:
            self._session.rollback()

    def _load(self, member_id: UUID) -> MemberModel:
        row = self._session.get(MemberModel, member_id)
        if row is None:
            raise MemberNotFoundError(member_id)
        return row

    def get_member(self, member_id: UUID) -> Member:
        return self._load(member_id).to_dto()

    def find_by_email(self, email: str) -> Member | None:
        row = self._session.execute(
            select(MemberModel).where(MemberModel.email == email.strip().lower())
        ).scalar_one_or_none()
        return row.to_dto() if row else None

    def register_member(
        self,
        actor: Actor,
        email: str,
        first_name: str,
        last_name: str | None = None,
        role: Role = Role.MEMBER,
        status: MemberStatus = MemberStatus.PENDING_PROFILE,
    ) -> Member:
        """Create a member record (invitation accepted, profile pending)."""
        require_permission("member", "register", actor)
        if not email or "@" not in email:
            raise ValidationError("A valid email address is required", field="email")
        if not first_name or not first_name.strip():
            raise ValidationError("first_name is required", field="first_name")
        try:
            row = MemberModel(
                email=email.strip().lower(),
                first_name=first_name.strip(),
                last_name=last_name,
                role=Role(role).value,
                status=MemberStatus(status).value,
                created_by_id=actor.member_id,
            )
            self._session.add(row)
            self._finish()
            logger.info(
                "member_registered",
                extra={"member_id": str(row.id), "role": row.role, "status": row.status},
            )
            return row.to_dto()
        except Exception:
            self._abort()
            raise

    def complete_onboarding(self, actor: Actor, member_id: UUID) -> Member:
        """PENDING_PROFILE -> ACTIVE. The member themselves or an admin."""
        try:
            row = self._load(member_id)
            if actor.member_id != member_id:
                require_permission("member", "complete_onboarding", actor)
            apply_transition(
                self._session,
                row,
                MEMBER_STATUS_WORKFLOW,
                "complete_onboarding",
                actor,
                entity_type="member",
            )
            self._finish()
            logger.info("member_onboarded", extra={"member_id": str(member_id)})
            return row.to_dto()
        except Exception:
            self._abort()
            raise

    def inactivate_for_unpaid_dues(
        self, actor: Actor, member_id: UUID, cycle_code: str
    ) -> Member:
        """ACTIVE -> INACTIVE after the dues grace period lapsed.

        Raises:
            InvalidTransitionError: member is no longer ACTIVE.
        """
        require_permission("member", "inactivate", actor)
        try:
            row = self._load(member_id)
            apply_transition(
                self._session,
                row,
                MEMBER_STATUS_WORKFLOW,
                "inactivate",
                actor,
                entity_type="member",
            )
            self._finish()
        except Exception:
            self._abort()
            raise
        logger.info(
            "member_inactivated",
            extra={"member_id": str(member_id), "cycle_code": cycle_code, "reason": "unpaid_dues"},
        )
        return row.to_dto()
