# backend/app/utils/webhook_signature.py
"""
Post-call webhook signature verification.

The provider signs the raw request body with HMAC-SHA256 using the shared
webhook secret and sends the hex digest in `elevenlabs-signature` (or
`x-elevenlabs-signature`), optionally prefixed with `sha256=`.

Security Note:
- With no secret configured the service runs in UNSIGNED mode and accepts
  every webhook. This is logged as a warning on every request.
- Comparison is constant-time.
"""

import hmac
import hashlib
from typing import Mapping, Optional

from app.utils.logger import logger

SIGNATURE_HEADERS = ("elevenlabs-signature", "x-elevenlabs-signature")
SIGNATURE_PREFIX = "sha256="


def compute_webhook_signature(raw_body: bytes, secret: str) -> str:
    """Hex-encoded HMAC-SHA256 of the raw body."""
    mac = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256)
    return mac.hexdigest()


def get_signature_header(headers: Mapping[str, str]) -> Optional[str]:
    """
    First signature header present. Starlette headers are already
    case-insensitive; plain dicts are scanned by lowercased key.
    """
    for name in SIGNATURE_HEADERS:
        value = headers.get(name)
        if value:
            return value

    lowered = {str(k).lower(): v for k, v in headers.items()}
    for name in SIGNATURE_HEADERS:
        value = lowered.get(name)
        if value:
            return value
    return None


def verify_webhook_signature(
    raw_body: bytes,
    signature_header: Optional[str],
    shared_secret: Optional[str],
) -> bool:
    """
    Args:
        raw_body: Request body exactly as received
        signature_header: Signature header value, or None if absent
        shared_secret: Configured webhook secret, or None/empty for UNSIGNED mode

    Returns:
        bool: True if the request may be processed
    """
    secret = (shared_secret or "").strip()
    if not secret:
        logger.warning("[Webhook Security] UNSIGNED MODE - no webhook secret configured, accepting request unverified")
        return True

    if not signature_header or not signature_header.strip():
        logger.warning("[Webhook Security] Signature header missing while a secret is configured")
        return False

    supplied = signature_header.strip()
    if supplied.lower().startswith(SIGNATURE_PREFIX):
        supplied = supplied[len(SIGNATURE_PREFIX):]

    expected = compute_webhook_signature(raw_body, secret)

    is_valid = hmac.compare_digest(supplied.lower().encode("utf-8"), expected.encode("utf-8"))
    if not is_valid:
        logger.warning("[Webhook Security] Invalid webhook signature")
    return is_valid
