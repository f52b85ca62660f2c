"""Members: status lifecycle (PENDING_PROFILE -> ACTIVE -> INACTIVE)."""

from club_modules.members.models import Member, MemberStatus
from club_modules.members.service import MemberService
from club_modules.members.workflows import MEMBER_STATUS_WORKFLOW

__all__ = ["Member", "MemberService", "MemberStatus", "MEMBER_STATUS_WORKFLOW"]
