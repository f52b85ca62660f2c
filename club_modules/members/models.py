"""Member domain models."""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from club_kernel.domain.roles import Role


class MemberStatus(str, Enum):
    """Membership lifecycle states."""
    PENDING_PROFILE = "PENDING_PROFILE"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


@dataclass(frozen=True)
class Member:
    id: UUID
    email: str
    first_name: str
    last_name: str | None = None
    role: Role = Role.MEMBER
    status: MemberStatus = MemberStatus.PENDING_PROFILE
