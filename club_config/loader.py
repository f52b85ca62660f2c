"""
Configuration loader (``club_config.loader``).

Responsibility
--------------
Loads a YAML file and parses it into the typed ``club_config.schema``
dataclasses.  Runtime callers go through ``club_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from club_config.schema import (
    AutomationSettings,
    ClubConfig,
    DatabaseSettings,
    DuesSettings,
    NotificationSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields ``{}``."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed configuration mapping."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _build(cls: type, data: dict[str, Any] | None, section: str):
    data = data or {}
    if not isinstance(data, dict):
        raise ValueError(f"Section '{section}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{section}': {sorted(unknown)}")
    return cls(**data)


def parse_dues(data: dict[str, Any] | None) -> DuesSettings:
    dues = _build(DuesSettings, data, "dues")
    for name in (
        "default_amount_cents",
        "reminder_days_before",
        "reminder_tolerance_days",
        "grace_days",
    ):
        value = getattr(dues, name)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"dues.{name} must be a non-negative integer, got {value!r}")
    if dues.reminder_tolerance_days > dues.reminder_days_before:
        raise ValueError("dues.reminder_tolerance_days exceeds reminder_days_before")
    try:
        ZoneInfo(dues.timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"dues.timezone is not a known zone: {dues.timezone!r}") from exc
    return dues


def parse_config(data: dict[str, Any]) -> ClubConfig:
    """Parse a full configuration mapping into a ``ClubConfig``."""
    known = {"club_name", "database", "dues", "notifications", "automation"}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown top-level configuration keys: {sorted(unknown)}")
    return ClubConfig(
        club_name=data.get("club_name", ClubConfig.club_name),
        database=_build(DatabaseSettings, data.get("database"), "database"),
        dues=parse_dues(data.get("dues")),
        notifications=_build(NotificationSettings, data.get("notifications"), "notifications"),
        automation=_build(AutomationSettings, data.get("automation"), "automation"),
        checksum=compute_checksum(data),
    )


def load_config(path: Path | str) -> ClubConfig:
    return parse_config(load_yaml_file(Path(path)))
