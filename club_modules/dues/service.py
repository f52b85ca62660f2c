"""
Dues Service (``club_modules.dues.service``).

Responsibility
--------------
Dues cycle administration (create, activate), per-member dues settlement
(mark paid, waive) and the read models dues automation runs on: the active
cycle, the unpaid ACTIVE members of a cycle and notice markers.

Invariants enforced
-------------------
* At most one active cycle: activation deactivates every other cycle and
  activates the target in one transaction, backed by a partial unique
  index in the database.
* A member with no dues record for a cycle is UNPAID.
* ``mark_paid`` moves UNPAID -> PAID exactly once; already PAID (or
  WAIVED) is a no-op, so a replayed payment approval cannot double-apply.
* With ``auto_commit=False`` (payment review, automation) nothing is
  committed here; the caller owns the transaction.

Failure modes
-------------
* ``DuplicateDuesCycleError``, ``DuesCycleNotFoundError``,
  ``MemberNotFoundError``, ``ForbiddenError``, ``InvalidTransitionError``.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from club_config.schema import DuesSettings
from club_kernel.domain.clock import Clock, SystemClock
from club_kernel.domain.roles import SYSTEM_ACTOR, Actor
from club_kernel.domain.values import require_non_negative_cents
from club_kernel.exceptions import (
    DuesCycleNotFoundError,
    DuplicateDuesCycleError,
    InvalidTransitionError,
    MemberNotFoundError,
    ValidationError,
)
from club_kernel.logging_config import get_logger
from club_modules._transition_helpers import apply_transition
from club_modules.dues.models import (
    DuesCycle,
    DuesCycleSummary,
    DuesPhase,
    MemberDues,
    MemberDuesStatus,
)
from club_modules.dues.orm import DuesCycleModel, DuesNoticeModel, MemberDuesModel
from club_modules.dues.rotary_year import cycle_code, cycle_label, rotary_year_bounds
from club_modules.dues.workflows import MEMBER_DUES_WORKFLOW
from club_modules.members.models import Member, MemberStatus
from club_modules.members.orm import MemberModel
from club_services.rbac_authority import require_permission

logger = get_logger("modules.dues.service")


class DuesService:
    """Dues cycles and per-member dues."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: DuesSettings | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or DuesSettings()
        self._auto_commit = auto_commit

    def _finish(self) -> None:
        if self._auto_commit:
            self._session.commit()
        else:
            self._session.flush()

    def _abort(self) -> None:
        if self._auto_commit:
            self._session.rollback()

    # =========================================================================
    # Cycles
    # =========================================================================

    def _cycle_row(self, code: str) -> DuesCycleModel:
        row = self._session.execute(
            select(DuesCycleModel).where(DuesCycleModel.code == code)
        ).scalar_one_or_none()
        if row is None:
            raise DuesCycleNotFoundError(code)
        return row

    def get_cycle(self, code: str) -> DuesCycle:
        return self._cycle_row(code).to_dto()

    def get_active_cycle(self) -> DuesCycle | None:
        row = self._session.execute(
            select(DuesCycleModel).where(DuesCycleModel.is_active.is_(True))
        ).scalar_one_or_none()
        return row.to_dto() if row else None

    def list_cycles(self) -> list[DuesCycle]:
        rows = self._session.execute(
            select(DuesCycleModel).order_by(DuesCycleModel.end_date.desc())
        ).scalars()
        return [row.to_dto() for row in rows]

    def create_cycle(
        self,
        actor: Actor,
        ending_year: int,
        amount: int | None = None,
        grace_days: int | None = None,
        activate: bool = False,
    ) -> DuesCycle:
        """Create the cycle for the Rotary year ending June 30 of ``ending_year``.

        New cycles start inactive unless ``activate`` is set.
        """
        require_permission("dues_cycle", "create", actor)
        if isinstance(ending_year, bool) or not isinstance(ending_year, int) or ending_year < 2000:
            raise ValidationError(f"Invalid ending year: {ending_year!r}", field="ending_year")
        cents = require_non_negative_cents(
            self._settings.default_amount_cents if amount is None else amount
        )
        grace = self._settings.grace_days if grace_days is None else grace_days
        if isinstance(grace, bool) or not isinstance(grace, int) or grace < 0:
            raise ValidationError("grace_days must be a non-negative integer", field="grace_days")

        code = cycle_code(ending_year)
        try:
            existing = self._session.execute(
                select(DuesCycleModel.id).where(DuesCycleModel.code == code)
            ).scalar_one_or_none()
            if existing is not None:
                raise DuplicateDuesCycleError(code)
            start, end = rotary_year_bounds(ending_year)
            row = DuesCycleModel(
                code=code,
                label=cycle_label(ending_year),
                start_date=start,
                end_date=end,
                amount=cents,
                currency=self._settings.currency,
                is_active=False,
                grace_days=grace,
                created_by_id=actor.member_id,
            )
            self._session.add(row)
            self._session.flush()
            logger.info(
                "dues_cycle_created",
                extra={"cycle_code": code, "amount": cents, "grace_days": grace},
            )
            if activate:
                self._activate(row, actor)
            self._finish()
            return row.to_dto()
        except Exception:
            self._abort()
            raise

    def _activate(self, row: DuesCycleModel, actor: Actor) -> None:
        # Deactivate first so the single-active index never sees two rows.
        self._session.execute(
            update(DuesCycleModel)
            .where(DuesCycleModel.is_active.is_(True), DuesCycleModel.id != row.id)
            .values(is_active=False, updated_by_id=actor.member_id)
            .execution_options(synchronize_session=False)
        )
        self._session.flush()
        row.is_active = True
        row.updated_by_id = actor.member_id
        self._session.flush()
        logger.info("dues_cycle_activated", extra={"cycle_code": row.code})

    def activate_cycle(self, actor: Actor, code: str) -> DuesCycle:
        """Make ``code`` the single active cycle."""
        require_permission("dues_cycle", "activate", actor)
        try:
            row = self._cycle_row(code)
            self._activate(row, actor)
            self._finish()
            self._session.refresh(row)
            return row.to_dto()
        except Exception:
            self._abort()
            raise

    # =========================================================================
    # Member dues
    # =========================================================================

    def _dues_row(self, member_id: UUID, cycle_id: UUID) -> MemberDuesModel | None:
        return self._session.execute(
            select(MemberDuesModel).where(
                MemberDuesModel.member_id == member_id,
                MemberDuesModel.cycle_id == cycle_id,
            )
        ).scalar_one_or_none()

    def get_member_dues(self, member_id: UUID, cycle_id: UUID) -> MemberDues:
        """The member's dues for the cycle; UNPAID when no record exists."""
        row = self._dues_row(member_id, cycle_id)
        if row is None:
            return MemberDues(member_id=member_id, cycle_id=cycle_id)
        return row.to_dto()

    def _settle(
        self,
        actor: Actor,
        member_id: UUID,
        cycle_id: UUID,
        action: str,
        values: dict,
    ) -> tuple[MemberDues, bool]:
        """Apply ``action`` (mark_paid / waive) to UNPAID dues; (dues, changed)."""
        if self._session.get(MemberModel, member_id) is None:
            raise MemberNotFoundError(member_id)
        if self._session.get(DuesCycleModel, cycle_id) is None:
            raise DuesCycleNotFoundError(cycle_id)

        row = self._dues_row(member_id, cycle_id)
        if row is None:
            target = MEMBER_DUES_WORKFLOW.find_transition(
                MEMBER_DUES_WORKFLOW.initial_state, action
            ).to_state
            created = MemberDuesModel(
                member_id=member_id,
                cycle_id=cycle_id,
                status=target,
                created_by_id=actor.member_id,
                **values,
            )
            try:
                with self._session.begin_nested():
                    self._session.add(created)
                    self._session.flush()
            except IntegrityError:
                # Another writer created the record first.
                logger.info(
                    "member_dues_insert_conflict",
                    extra={"member_id": str(member_id), "cycle_id": str(cycle_id)},
                )
                row = self._dues_row(member_id, cycle_id)
            else:
                return created.to_dto(), True

        if row.status != MemberDuesStatus.UNPAID.value:
            return row.to_dto(), False
        try:
            apply_transition(
                self._session,
                row,
                MEMBER_DUES_WORKFLOW,
                action,
                actor,
                entity_type="member_dues",
                values=values,
            )
        except InvalidTransitionError:
            # Settled concurrently; treat as already applied.
            self._session.refresh(row)
            if row.status == MemberDuesStatus.UNPAID.value:
                raise
            return row.to_dto(), False
        return row.to_dto(), True

    def mark_paid(
        self,
        member_id: UUID,
        cycle_id: UUID,
        method: str,
        payment_ref: str | None = None,
        actor: Actor = SYSTEM_ACTOR,
        note: str | None = None,
    ) -> MemberDues:
        """UNPAID -> PAID. Idempotent: settled dues are returned unchanged."""
        try:
            dues, changed = self._settle(
                actor,
                member_id,
                cycle_id,
                "mark_paid",
                {
                    "paid_at": self._clock.now(),
                    "payment_method": method,
                    "payment_ref": payment_ref,
                    "note": note,
                },
            )
            self._finish()
        except Exception:
            self._abort()
            raise
        logger.info(
            "member_dues_paid" if changed else "member_dues_already_settled",
            extra={
                "member_id": str(member_id),
                "cycle_id": str(cycle_id),
                "method": method,
                "status": dues.status.value,
            },
        )
        return dues

    def mark_paid_offline(
        self,
        actor: Actor,
        member_id: UUID,
        cycle_code: str,
        method: str,
        note: str | None = None,
    ) -> MemberDues:
        """Treasurer records a payment received outside any workflow."""
        require_permission("member_dues", "mark_paid", actor)
        cycle = self._cycle_row(cycle_code)
        return self.mark_paid(member_id, cycle.id, method, actor=actor, note=note)

    def mark_paid_online(self, member_id: UUID, cycle_id: UUID, payment_ref: str) -> MemberDues:
        """Entry point for a confirmed card payment (gateway webhook)."""
        if not payment_ref:
            raise ValidationError("payment_ref is required", field="payment_ref")
        return self.mark_paid(member_id, cycle_id, "online", payment_ref=payment_ref)

    def waive(self, actor: Actor, member_id: UUID, cycle_code: str, note: str) -> MemberDues:
        """UNPAID -> WAIVED. Waived members are never chased by automation."""
        require_permission("member_dues", "waive", actor)
        if not note or not note.strip():
            raise ValidationError("A note is required to waive dues", field="note")
        try:
            cycle = self._cycle_row(cycle_code)
            dues, changed = self._settle(actor, member_id, cycle.id, "waive", {"note": note})
            if not changed:
                raise InvalidTransitionError("member_dues", member_id, dues.status.value, "waive")
            self._finish()
        except Exception:
            self._abort()
            raise
        logger.info(
            "member_dues_waived",
            extra={"member_id": str(member_id), "cycle_code": cycle_code},
        )
        return dues

    def cycle_summary(self, cycle_code: str) -> DuesCycleSummary:
        """Paid, waived and unpaid counts for the cycle, with cents collected."""
        cycle = self._cycle_row(cycle_code)
        by_status = dict(
            self._session.execute(
                select(MemberDuesModel.status, func.count(MemberDuesModel.id))
                .where(MemberDuesModel.cycle_id == cycle.id)
                .group_by(MemberDuesModel.status)
            ).all()
        )
        without_record = self._session.execute(
            select(func.count(MemberModel.id))
            .outerjoin(
                MemberDuesModel,
                and_(
                    MemberDuesModel.member_id == MemberModel.id,
                    MemberDuesModel.cycle_id == cycle.id,
                ),
            )
            .where(
                MemberModel.status == MemberStatus.ACTIVE.value,
                MemberDuesModel.id.is_(None),
            )
        ).scalar_one()

        paid = by_status.get(MemberDuesStatus.PAID.value, 0)
        waived = by_status.get(MemberDuesStatus.WAIVED.value, 0)
        unpaid = by_status.get(MemberDuesStatus.UNPAID.value, 0) + without_record
        return DuesCycleSummary(
            cycle_code=cycle.code,
            total=paid + waived + unpaid,
            paid=paid,
            waived=waived,
            unpaid=unpaid,
            collected=paid * cycle.amount,
            currency=cycle.currency,
        )

    # =========================================================================
    # Automation read models
    # =========================================================================

    def unpaid_active_members(self, cycle_id: UUID) -> list[Member]:
        """ACTIVE members whose dues for ``cycle_id`` are absent or UNPAID."""
        stmt = (
            select(MemberModel)
            .outerjoin(
                MemberDuesModel,
                and_(
                    MemberDuesModel.member_id == MemberModel.id,
                    MemberDuesModel.cycle_id == cycle_id,
                ),
            )
            .where(
                MemberModel.status == MemberStatus.ACTIVE.value,
                or_(
                    MemberDuesModel.id.is_(None),
                    MemberDuesModel.status == MemberDuesStatus.UNPAID.value,
                ),
            )
            .order_by(MemberModel.email)
        )
        return [row.to_dto() for row in self._session.execute(stmt).scalars()]

    def notice_sent(self, member_id: UUID, cycle_id: UUID, phase: DuesPhase, on: date) -> bool:
        return (
            self._session.execute(
                select(DuesNoticeModel.id).where(
                    DuesNoticeModel.member_id == member_id,
                    DuesNoticeModel.cycle_id == cycle_id,
                    DuesNoticeModel.phase == phase.value,
                    DuesNoticeModel.sent_on == on,
                )
            ).first()
            is not None
        )

    def record_notice(
        self,
        member_id: UUID,
        cycle_id: UUID,
        phase: DuesPhase,
        on: date,
        message_id: str | None = None,
    ) -> None:
        """Mark a delivered notice. Repeat calls for the same day are no-ops."""
        if self.notice_sent(member_id, cycle_id, phase, on):
            return
        self._session.add(
            DuesNoticeModel(
                member_id=member_id,
                cycle_id=cycle_id,
                phase=phase.value,
                sent_on=on,
                message_id=message_id,
                created_by_id=SYSTEM_ACTOR.member_id,
            )
        )
        self._finish()
