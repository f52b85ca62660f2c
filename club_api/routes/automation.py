"""POST /dues/automation -- cron-triggered dues phases, bearer-token guarded."""

from __future__ import annotations

import hmac
from typing import Any

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from club_api.dependencies import get_clock, get_config, get_notifier, get_session
from club_config.schema import ClubConfig
from club_kernel.domain.clock import Clock
from club_kernel.exceptions import ValidationError
from club_kernel.logging_config import get_logger
from club_modules.dues.automation import DuesAutomationEngine
from club_services.notifications import Notifier

logger = get_logger("api.automation")

router = APIRouter(prefix="/dues", tags=["dues"])


def _authorized(config: ClubConfig, authorization: str | None) -> bool:
    secret = config.automation.token()
    if not secret:
        logger.warning("automation_token_not_configured", extra={"env": config.automation.token_env})
        return False
    if not authorization or not authorization.startswith("Bearer "):
        return False
    return hmac.compare_digest(authorization[len("Bearer "):].encode(), secret.encode())


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


@router.post("/automation")
def run_automation(
    body: Any = Depends(_json_body),
    authorization: str | None = Header(default=None),
    config: ClubConfig = Depends(get_config),
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
    clock: Clock = Depends(get_clock),
):
    if not _authorized(config, authorization):
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    action = body.get("action") if isinstance(body, dict) else None
    if not action:
        return JSONResponse(status_code=400, content={"error": "Missing action parameter"})

    engine = DuesAutomationEngine(session, notifier, config, clock)
    try:
        result = engine.run(action)
    except ValidationError:
        return JSONResponse(status_code=400, content={"error": "Invalid action"})
    except Exception as exc:
        logger.error("dues_automation_failed", extra={"action": action}, exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__})

    logger.info(
        "dues_automation_completed",
        extra={"action": action, "count": result.count, "failed": result.failed},
    )
    return result.to_response()
