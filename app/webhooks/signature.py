"""Webhook authentication for Replicate callbacks.

Replicate signs ``{webhook-id}.{webhook-timestamp}.{raw body}`` with
HMAC-SHA256 keyed by the base64-decoded signing secret, and sends one or
more ``v1,<base64 signature>`` tokens separated by spaces.
"""

import base64
import binascii
import hashlib
import hmac
import logging
import math
import time
from typing import Mapping, Optional, Union

from app.errors import (
    InvalidWebhookSignatureError,
    MissingWebhookHeadersError,
    SigningSecretUnavailableError,
    StaleWebhookTimestampError,
)
from app.webhooks.secret_cache import SigningSecretCache

logger = logging.getLogger(__name__)

WEBHOOK_ID_HEADER = "webhook-id"
WEBHOOK_TIMESTAMP_HEADER = "webhook-timestamp"
WEBHOOK_SIGNATURE_HEADER = "webhook-signature"

DEFAULT_TOLERANCE_SECONDS = 300


def is_timestamp_valid(
    timestamp: str,
    now: Optional[float] = None,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
) -> bool:
    """True if ``timestamp`` (epoch seconds, fractions allowed) is within ``tolerance`` of now.

    Non-numeric values are never valid.
    """
    try:
        sent_at = float(str(timestamp).strip())
    except ValueError:
        return False
    if not math.isfinite(sent_at):
        return False
    current = now if now is not None else time.time()
    return abs(current - sent_at) <= tolerance


def compute_signature(
    webhook_id: str, timestamp: str, body: Union[bytes, str], secret: str
) -> str:
    """Base64 HMAC-SHA256 of the canonical signed content."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    signed_content = f"{webhook_id}.{timestamp}.".encode("utf-8") + body
    key = base64.b64decode(secret)
    digest = hmac.new(key, signed_content, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(
    webhook_id: str,
    timestamp: str,
    body: Union[bytes, str],
    signature_header: str,
    secret: str,
) -> bool:
    """True if any candidate in ``signature_header`` matches the expected signature."""
    expected = compute_signature(webhook_id, timestamp, body, secret).encode("ascii")
    for candidate in signature_header.split(" "):
        if not candidate:
            continue
        value = candidate.split(",", 1)[1] if "," in candidate else candidate
        # compare_digest returns False on length mismatch
        if hmac.compare_digest(value.encode("utf-8"), expected):
            return True
    return False


class WebhookVerifier:
    """Authenticates an inbound webhook request before any business logic runs."""

    def __init__(
        self,
        secret_cache: SigningSecretCache,
        tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
        clock=time.time,
    ):
        self._secrets = secret_cache
        self._tolerance = tolerance_seconds
        self._clock = clock

    async def verify(self, headers: Mapping[str, str], body: bytes) -> str:
        """Raise a WebhookRejectedError subclass unless the request is authentic.

        Returns the webhook id on success.
        """
        webhook_id = headers.get(WEBHOOK_ID_HEADER)
        timestamp = headers.get(WEBHOOK_TIMESTAMP_HEADER)
        signature = headers.get(WEBHOOK_SIGNATURE_HEADER)
        if not webhook_id or not timestamp or not signature:
            logger.warning("Webhook rejected: missing signature headers")
            raise MissingWebhookHeadersError("Missing webhook headers")

        if not is_timestamp_valid(timestamp, now=self._clock(), tolerance=self._tolerance):
            logger.warning("Webhook %s rejected: timestamp %s outside tolerance", webhook_id, timestamp)
            raise StaleWebhookTimestampError("Webhook timestamp too old or invalid")

        secret = await self._secrets.get()
        try:
            valid = verify_signature(webhook_id, timestamp, body, signature, secret)
        except binascii.Error as e:
            raise SigningSecretUnavailableError("Signing secret is not valid base64") from e

        if not valid:
            logger.warning("Webhook %s rejected: signature mismatch", webhook_id)
            raise InvalidWebhookSignatureError("Invalid webhook signature")
        return webhook_id
