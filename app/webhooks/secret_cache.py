"""Process-wide, single-slot cache for the webhook signing secret."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from app.errors import SigningSecretUnavailableError

logger = logging.getLogger(__name__)


class SigningSecretCache:
    """Fetches the signing secret once and keeps it for the process lifetime.

    The provider manages and rarely rotates the secret, so there is no TTL;
    ``reset()`` forces a refetch on the next access and ``seed()`` installs a
    known value.
    """

    def __init__(self, fetcher: Callable[[], Awaitable[str]], prefix: str = "whsec_"):
        self._fetcher = fetcher
        self._prefix = prefix
        self._secret: Optional[str] = None
        self._lock = asyncio.Lock()

    async def get(self) -> str:
        """Base64 signing secret with the textual prefix stripped."""
        if self._secret is not None:
            return self._secret
        async with self._lock:
            if self._secret is None:
                try:
                    raw = await self._fetcher()
                except Exception as e:
                    logger.error("Failed to fetch webhook signing secret: %s", e)
                    raise SigningSecretUnavailableError(
                        f"Failed to fetch webhook secret: {e}"
                    ) from e
                self._secret = self._strip_prefix(raw)
        return self._secret

    def _strip_prefix(self, raw: str) -> str:
        if self._prefix and raw.startswith(self._prefix):
            return raw[len(self._prefix):]
        return raw

    def seed(self, secret: str) -> None:
        self._secret = self._strip_prefix(secret)

    def reset(self) -> None:
        self._secret = None

    @property
    def is_cached(self) -> bool:
        return self._secret is not None
