"""
club_config -- single public entrypoint for engine configuration.

``get_active_config()`` reads the YAML file named by ``CLUB_CONFIG_PATH``
or, when unset, the packaged ``defaults.yaml``.  Every successful call emits
a ``club_config_loaded`` trace with the file path and checksum.
"""

from __future__ import annotations

import os
from pathlib import Path

from club_config.loader import load_config
from club_config.schema import (
    AutomationSettings,
    ClubConfig,
    DatabaseSettings,
    DuesSettings,
    NotificationSettings,
)
from club_kernel.logging_config import get_logger

__all__ = [
    "AutomationSettings",
    "ClubConfig",
    "DatabaseSettings",
    "DuesSettings",
    "NotificationSettings",
    "get_active_config",
    "load_config",
]

logger = get_logger("config")

CONFIG_PATH_ENV = "CLUB_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(path: Path | str | None = None) -> ClubConfig:
    """Load the active configuration.

    Resolution order: explicit ``path``, then ``$CLUB_CONFIG_PATH``, then
    the packaged defaults.
    """
    resolved = Path(path or os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    config = load_config(resolved)
    logger.info(
        "club_config_loaded",
        extra={"path": str(resolved), "checksum": config.checksum},
    )
    return config
