"""
Configuration schema (``club_config.schema``).

Frozen dataclasses describing every tunable of the engine.  Secrets never
live here: notification and automation credentials are referenced by the
name of the environment variable that holds them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///club_finance.db"
    echo: bool = False


@dataclass(frozen=True)
class DuesSettings:
    """Dues defaults and automation windows.

    The reminder phase fires when the days until the cycle ends fall within
    ``reminder_days_before +/- reminder_tolerance_days`` (13..15 by default).
    Grace enforcement fires ``grace_days`` after the cycle end date unless
    the cycle itself carries a different value.
    """
    default_amount_cents: int = 8500
    currency: str = "USD"
    reminder_days_before: int = 14
    reminder_tolerance_days: int = 1
    grace_days: int = 30
    resend_same_day: bool = False
    timezone: str = "America/New_York"

    @property
    def reminder_window(self) -> tuple[int, int]:
        return (
            self.reminder_days_before - self.reminder_tolerance_days,
            self.reminder_days_before + self.reminder_tolerance_days,
        )


@dataclass(frozen=True)
class NotificationSettings:
    provider: str = "resend"
    api_url: str = "https://api.resend.com/emails"
    api_key_env: str = "RESEND_API_KEY"
    from_address: str = "Rotary Club <noreply@example.org>"
    base_url: str = "http://localhost:3000"
    contact_email: str = "treasurer@example.org"
    timeout_seconds: float = 10.0

    def api_key(self) -> str | None:
        return os.environ.get(self.api_key_env) or None


@dataclass(frozen=True)
class AutomationSettings:
    token_env: str = "AUTOMATION_API_KEY"

    def token(self) -> str | None:
        return os.environ.get(self.token_env) or None


@dataclass(frozen=True)
class ClubConfig:
    """Root configuration object returned by ``get_active_config()``."""
    club_name: str = "Rotary Club"
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    dues: DuesSettings = field(default_factory=DuesSettings)
    notifications: NotificationSettings = field(default_factory=NotificationSettings)
    automation: AutomationSettings = field(default_factory=AutomationSettings)
    checksum: str | None = None
