#!/usr/bin/env python3
"""
Run one dues automation phase against the configured database.

Usage:
    python scripts/run_dues_automation.py send-reminders
    python scripts/run_dues_automation.py send-overdue --config club.yaml
    python scripts/run_dues_automation.py enforce-grace

Meant for a daily cron.  Prints the phase result as JSON and exits 0, or 1
when any member failed.
"""

import argparse
import json
import sys
from pathlib import Path
from uuid import uuid4

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from club_config import get_active_config
from club_kernel.db.engine import create_tables, init_engine_from_url, session_scope
from club_kernel.logging_config import LogContext, configure_logging
from club_modules.dues.automation import AutomationAction, DuesAutomationEngine
from club_services.notifications import build_notifier


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run a dues automation phase")
    p.add_argument("action", choices=[a.value for a in AutomationAction])
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config YAML (default: $CLUB_CONFIG_PATH or packaged defaults)",
    )
    return p.parse_args()


def main() -> int:
    args = _parse_args()
    configure_logging()
    LogContext.set(correlation_id=uuid4())
    config = get_active_config(args.config)

    engine = init_engine_from_url(config.database.url, echo=config.database.echo)
    create_tables(engine)

    notifier = build_notifier(config.notifications)
    with session_scope() as session:
        result = DuesAutomationEngine(session, notifier, config).run(args.action)

    print(json.dumps(result.to_response(), indent=2))
    return 1 if result.failed else 0


if __name__ == "__main__":
    sys.exit(main())
