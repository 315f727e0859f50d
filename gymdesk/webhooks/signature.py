"""HMAC-SHA256 webhook signature checks."""

import base64
import hashlib
import hmac
from typing import Optional

from gymdesk.utils import Logger

logger = Logger("webhooks.signature")


def _digest(raw_body: bytes, secret: str) -> bytes:
    return hmac.new(secret.encode(), raw_body, hashlib.sha256).digest()


def sign_hex(raw_body: bytes, secret: str) -> str:
    return _digest(raw_body, secret).hex()


def sign_base64(raw_body: bytes, secret: str) -> str:
    return base64.b64encode(_digest(raw_body, secret)).decode()


def verify_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """
    Check a hex HMAC-SHA256 signature of the raw body.

    Without a configured secret every event is accepted and a warning is
    logged (development mode).
    """
    if not secret:
        logger.warning("Webhook secret not configured, accepting unsigned event")
        return True
    if not signature:
        return False
    expected = sign_hex(raw_body, secret)
    provided = signature.strip().lower()
    if provided.startswith("sha256="):
        provided = provided[len("sha256="):]
    return hmac.compare_digest(provided.encode(), expected.encode())


def verify_monday_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """Same HMAC, base64-encoded, as sent in monday's ``authorization`` header."""
    if not secret:
        logger.warning("MONDAY_WEBHOOK_SECRET not configured, skipping signature verification")
        return True
    if not signature:
        return False
    return hmac.compare_digest(signature.strip().encode(), sign_base64(raw_body, secret).encode())
