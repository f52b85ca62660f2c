"""
club_services.notifications -- outbound member notifications.

Responsibility:
    The ``Notifier`` protocol is the single seam through which the engine
    talks to members.  ``ResendNotifier`` delivers over the Resend HTTP API
    with httpx; ``UnconfiguredNotifier`` stands in when no API key is set.

Failure modes:
    A notifier never raises for delivery problems.  Transport errors and
    non-2xx responses come back as ``NotificationResult(success=False)`` so
    a batch caller can count the failure and move on.  Callers that need an
    exception use ``NotificationResult.raise_for_failure``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

from club_config.schema import NotificationSettings
from club_kernel.exceptions import NotificationError
from club_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    error: str | None = None
    message_id: str | None = None

    def raise_for_failure(self, recipient: str) -> None:
        if not self.success:
            raise NotificationError(recipient, self.error or "unknown error")


@runtime_checkable
class Notifier(Protocol):
    """Sends a single HTML message to one recipient."""

    def send(self, to: str, subject: str, html_body: str) -> NotificationResult: ...


class UnconfiguredNotifier:
    """Notifier used when no provider credentials are available."""

    def send(self, to: str, subject: str, html_body: str) -> NotificationResult:
        logger.warning("notification_not_configured", extra={"subject": subject})
        return NotificationResult(success=False, error="Email not configured")


def _json_field(response: httpx.Response, key: str) -> str | None:
    """``key`` from a JSON object body; None for any other body."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return data.get(key)


class ResendNotifier:
    """Delivers mail through the Resend ``/emails`` endpoint."""

    def __init__(
        self,
        api_key: str,
        settings: NotificationSettings,
        client: httpx.Client | None = None,
    ):
        self._api_key = api_key
        self._settings = settings
        self._client = client or httpx.Client(timeout=settings.timeout_seconds)

    def send(self, to: str, subject: str, html_body: str) -> NotificationResult:
        payload = {
            "from": self._settings.from_address,
            "to": [to],
            "subject": subject,
            "html": html_body,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        try:
            response = self._client.post(self._settings.api_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(
                "notification_transport_failed",
                extra={"subject": subject, "error": str(exc)},
            )
            return NotificationResult(success=False, error=str(exc))

        if response.status_code >= 400:
            detail = _json_field(response, "message") or response.text
            logger.error(
                "notification_rejected",
                extra={"subject": subject, "status_code": response.status_code, "detail": detail},
            )
            return NotificationResult(
                success=False, error=f"HTTP {response.status_code}: {detail}"
            )

        message_id = _json_field(response, "id")
        logger.info("notification_sent", extra={"subject": subject, "message_id": message_id})
        return NotificationResult(success=True, message_id=message_id)

    def close(self) -> None:
        self._client.close()


def build_notifier(settings: NotificationSettings) -> Notifier:
    """Resend notifier when the API key env var is set, otherwise a no-op one."""
    api_key = settings.api_key()
    if not api_key:
        return UnconfiguredNotifier()
    return ResendNotifier(api_key, settings)
