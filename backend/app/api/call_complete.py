# backend/app/api/call_complete.py
from __future__ import annotations

from typing import AsyncIterator, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.pipelines.call_pipeline import process_call_complete
from app.services.elevenlabs_service import ElevenLabsService
from app.services.notification_service import CallAlertNotifier
from app.utils.errors import AuthenticationFailure
from app.utils.logger import logger
from app.utils.webhook_signature import get_signature_header, verify_webhook_signature

router = APIRouter(prefix="/api/calls", tags=["calls"])

DELIVERY_ID_HEADERS = ("elevenlabs-delivery-id", "x-delivery-id")


class CallCompleteResponse(BaseModel):
    ok: bool
    success: bool
    message: str
    session_id: Optional[int] = None
    score_record_id: Optional[int] = None
    error: Optional[str] = None


async def get_elevenlabs_service() -> AsyncIterator[ElevenLabsService]:
    svc = ElevenLabsService()
    try:
        yield svc
    finally:
        await svc.aclose()


def get_call_alert_notifier() -> CallAlertNotifier:
    return CallAlertNotifier()


def _delivery_id(request: Request) -> Optional[str]:
    for name in DELIVERY_ID_HEADERS:
        value = (request.headers.get(name) or "").strip()
        if value:
            return value
    return None


@router.post("/complete", response_model=CallCompleteResponse)
async def call_complete_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    enrichment: ElevenLabsService = Depends(get_elevenlabs_service),
    notifier: CallAlertNotifier = Depends(get_call_alert_notifier),
) -> CallCompleteResponse:
    """
    Post-call webhook from the voice provider.

    - 401 only when the signature check fails (nothing is written).
    - 200 otherwise, including partial failures, so the provider does not
      keep redelivering an event that was substantively processed.
    """
    raw_body = await request.body()

    if not verify_webhook_signature(raw_body, get_signature_header(request.headers), settings.ELEVENLABS_WEBHOOK_SECRET):
        raise AuthenticationFailure("Invalid webhook signature")

    try:
        outcome = await process_call_complete(
            db,
            raw_body,
            delivery_id=_delivery_id(request),
            enrichment=enrichment,
        )
    except Exception as e:
        logger.error(f"Call complete webhook error: {type(e).__name__}: {e}")
        error = f"{type(e).__name__}: {str(e)[:200]}"
        return CallCompleteResponse(
            ok=False,
            success=False,
            message=f"Call logged with error: {error}",
            error=error,
        )

    if outcome.alert is not None:
        background_tasks.add_task(notifier.notify, outcome.alert)

    return CallCompleteResponse(
        ok=outcome.ok,
        success=outcome.ok,
        message=(
            "Call logged successfully with CEI scoring"
            if outcome.ok
            else f"Call logged with error: {outcome.error}"
        ),
        session_id=outcome.session_id,
        score_record_id=outcome.score_record_id,
        error=outcome.error,
    )
