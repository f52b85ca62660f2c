"""
SQLAlchemy ORM persistence for members.

Only the fields the financial engine needs: identity, contact address,
role and membership status.  Profiles, directories and onboarding screens
live outside the engine.
"""

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from club_kernel.db.base import TrackedBase


class MemberModel(TrackedBase):
    """A club member. Maps to the ``Member`` DTO."""

    __tablename__ = "members"

    __table_args__ = (
        UniqueConstraint("email", name="uq_member_email"),
        Index("idx_member_status", "status"),
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING_PROFILE")

    def to_dto(self):
        from club_kernel.domain.roles import Role
        from club_modules.members.models import Member, MemberStatus

        return Member(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            role=Role(self.role),
            status=MemberStatus(self.status),
        )
