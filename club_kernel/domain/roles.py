"""
Caller roles (``club_kernel.domain.roles``).

The engine never authenticates.  An outer layer resolves the caller to an
``Actor`` (member id plus role) and every workflow operation receives it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Club role of the caller."""
    MEMBER = "member"
    TREASURER = "treasurer"
    PRESIDENT = "president"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """The resolved identity performing an operation."""
    member_id: UUID
    role: Role


# Identity recorded on changes made by scheduled automation.
SYSTEM_ACTOR_ID = UUID(int=0)
SYSTEM_ACTOR = Actor(member_id=SYSTEM_ACTOR_ID, role=Role.ADMIN)
