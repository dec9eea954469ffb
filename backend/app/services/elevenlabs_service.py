# backend/app/services/elevenlabs_service.py
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.utils.errors import EnrichmentFailure
from app.utils.logger import logger


class ElevenLabsService:
    """
    Conversation-detail lookups against the ElevenLabs Conversational AI API.

    Used only to enrich a post-call webhook that arrived without a summary or
    transcript. One request per call, bounded by OUTBOUND_TIMEOUT_SECONDS;
    retries are left to the provider's webhook redelivery.
    """

    def __init__(self, http: Optional[httpx.AsyncClient] = None):
        self.api_key = (getattr(settings, "ELEVENLABS_API_KEY", "") or "").strip()
        self.base_url = (getattr(settings, "ELEVENLABS_BASE_URL", "") or "https://api.elevenlabs.io").rstrip("/")
        self._http = http or httpx.AsyncClient(timeout=settings.OUTBOUND_TIMEOUT_SECONDS)

    def can_enrich(self) -> bool:
        return bool(self.api_key)

    async def get_conversation(self, conversation_id: str) -> Dict[str, Any]:
        """
        GET /v1/convai/conversations/{conversation_id}

        Raises:
            EnrichmentFailure: not configured, transport error, non-2xx, or non-JSON body
        """
        if not self.api_key:
            raise EnrichmentFailure("ELEVENLABS_API_KEY missing")
        if not conversation_id:
            raise EnrichmentFailure("conversation_id is required")

        url = f"{self.base_url}/v1/convai/conversations/{conversation_id}"
        headers = {"xi-api-key": self.api_key}

        try:
            resp = await self._http.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise EnrichmentFailure(f"conversation lookup failed: {type(e).__name__}: {e}") from e

        if resp.status_code >= 400:
            logger.error(f"ElevenLabs conversation lookup error {resp.status_code}: {resp.text[:500]}")
            raise EnrichmentFailure(f"conversation lookup returned HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise EnrichmentFailure("conversation lookup returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise EnrichmentFailure("conversation lookup returned an unexpected shape")

        logger.info(f"ElevenLabs conversation detail fetched: conversation_id={conversation_id}")
        return data

    async def aclose(self) -> None:
        try:
            await self._http.aclose()
        except Exception as e:
            logger.debug(f"ElevenLabs http client close failed: {e}")
