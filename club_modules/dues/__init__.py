"""Dues: Rotary-year cycles, per-member dues and the dues automation engine."""

from club_modules.dues.models import DuesCycle, DuesPhase, MemberDues, MemberDuesStatus
from club_modules.dues.service import DuesService

__all__ = ["DuesCycle", "DuesPhase", "DuesService", "MemberDues", "MemberDuesStatus"]
