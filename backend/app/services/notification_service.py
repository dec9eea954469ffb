# backend/app/services/notification_service.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from app.config import settings
from app.utils.errors import NotificationFailure
from app.utils.helpers import format_duration
from app.utils.logger import logger


@dataclass
class CallAlert:
    cei_score: int
    cei_band: str
    outcome: str
    caller_phone: Optional[str] = None
    duration_seconds: Optional[int] = None
    handoff_requested: bool = False
    lead_created: bool = False
    session_id: Optional[int] = None


def build_alert_message(alert: CallAlert) -> str:
    lines = [f"AI Call | CEI: {alert.cei_score} ({alert.cei_band})", f"Outcome: {alert.outcome}"]
    if alert.caller_phone:
        lines.append(f"From: {alert.caller_phone}")
    if alert.duration_seconds:
        lines.append(f"Duration: {format_duration(alert.duration_seconds)}")
    if alert.handoff_requested:
        lines.append("Handoff requested")
    if alert.lead_created:
        lines.append("Lead created")
    return "\n".join(lines)


class CallAlertNotifier:
    """
    Post-call SMS to the fixed operations number.

    Best effort: notify() never raises. Delivery runs off the event loop and
    is bounded by OUTBOUND_TIMEOUT_SECONDS.
    """

    def __init__(self, client: Optional[Client] = None):
        self.account_sid = getattr(settings, "TWILIO_ACCOUNT_SID", None)
        self.auth_token = getattr(settings, "TWILIO_AUTH_TOKEN", None)
        self.from_number = getattr(settings, "TWILIO_PHONE_NUMBER", None)
        self.to_number = getattr(settings, "OPS_ALERT_PHONE", None)
        self.timeout = float(getattr(settings, "OUTBOUND_TIMEOUT_SECONDS", 10.0) or 10.0)
        self._client = client

    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number and self.to_number)

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(
                self.account_sid,
                self.auth_token,
                http_client=TwilioHttpClient(timeout=self.timeout),
            )
        return self._client

    def _send_sync(self, body: str) -> str:
        try:
            message = self._get_client().messages.create(to=self.to_number, from_=self.from_number, body=body)
        except TwilioRestException as e:
            raise NotificationFailure(f"Twilio rejected SMS: {e.msg}") from e
        except Exception as e:
            raise NotificationFailure(f"SMS send error: {type(e).__name__}: {e}") from e
        return getattr(message, "sid", "") or ""

    async def send(self, alert: CallAlert) -> str:
        """
        Raises:
            NotificationFailure: not configured, rejected, failed, or timed out
        """
        if not self.is_configured():
            raise NotificationFailure("SMS alerts not configured")

        body = build_alert_message(alert)
        try:
            return await asyncio.wait_for(asyncio.to_thread(self._send_sync, body), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise NotificationFailure(f"SMS send timed out after {self.timeout:.0f}s") from e

    async def notify(self, alert: CallAlert) -> bool:
        if not self.is_configured():
            logger.warning("[Notifier] Twilio credentials or OPS_ALERT_PHONE not set; skipping call alert SMS.")
            return False

        try:
            sid = await self.send(alert)
            logger.info(f"[Notifier] call alert SMS sent (session={alert.session_id}, sid={sid})")
            return True
        except NotificationFailure as e:
            logger.error(f"[Notifier] call alert SMS failed (non-blocking): {e}")
            return False
        except Exception as e:
            logger.error(f"[Notifier] unexpected call alert error (non-blocking): {type(e).__name__}: {e}")
            return False
