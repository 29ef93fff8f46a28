"""Thin async client for the Replicate predictions API."""

import logging
from json import dumps as json_dumps
from typing import Any, Dict, List, Optional

import httpx

from app.errors import (
    PredictionNotFoundError,
    ProviderError,
    ProviderModelNotFoundError,
    ProviderUnavailableError,
)
from app.generations.models import PredictionView

logger = logging.getLogger(__name__)

_GATEWAY_STATUSES = {502, 503, 504}


class ReplicateClient:
    """Replicate predictions, input file uploads and the webhook signing secret."""

    def __init__(
        self,
        api_token: str,
        base_url: str = "https://api.replicate.com/v1",
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)
        self._base_url = base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {api_token}"}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        not_found: type = ProviderError,
        json: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            response = await self._http.request(
                method, url, headers=self._headers, json=json, **kwargs
            )
        except (httpx.TimeoutException, httpx.TransportError) as e:
            raise ProviderUnavailableError(f"Replicate unreachable: {e}") from e

        if response.status_code == 404:
            raise not_found(f"{method} {path} returned 404", upstream_status=404)
        if response.status_code in _GATEWAY_STATUSES:
            raise ProviderUnavailableError(
                f"Replicate gateway unavailable ({response.status_code})",
                upstream_status=response.status_code,
            )
        if response.is_error:
            raise ProviderError(
                f"Replicate request failed ({response.status_code}): {response.text[:200]}",
                upstream_status=response.status_code,
            )
        return response.json()

    async def create_prediction(
        self,
        model_ref: str,
        input: Dict[str, Any],
        webhook: Optional[str] = None,
        webhook_events_filter: Optional[List[str]] = None,
    ) -> PredictionView:
        """Create a prediction against the latest version of ``owner/name``."""
        payload: Dict[str, Any] = {"input": input}
        if webhook:
            payload["webhook"] = webhook
            if webhook_events_filter:
                payload["webhook_events_filter"] = list(webhook_events_filter)
        data = await self._request(
            "POST",
            f"/models/{model_ref}/predictions",
            not_found=ProviderModelNotFoundError,
            json=payload,
        )
        logger.info("Created prediction %s on %s", data.get("id"), model_ref)
        return PredictionView.model_validate(data)

    async def get_prediction(self, prediction_id: str) -> PredictionView:
        data = await self._request(
            "GET", f"/predictions/{prediction_id}", not_found=PredictionNotFoundError
        )
        return PredictionView.model_validate(data)

    async def upload_file(
        self,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Upload a file to Replicate's files API and return its ``urls.get`` URL."""
        form = {"metadata": json_dumps(metadata)} if metadata else None
        data = await self._request(
            "POST",
            "/files",
            files={"content": (filename, content, content_type)},
            data=form,
        )
        url = (data.get("urls") or {}).get("get")
        if not url:
            raise ProviderError("File upload response carried no URL")
        logger.info("Uploaded %s (%d bytes) as %s", filename, len(content), data.get("id"))
        return url

    async def fetch_webhook_secret(self) -> str:
        """Raw signing secret for the default webhook, still carrying its prefix."""
        data = await self._request("GET", "/webhooks/default/secret")
        key = data.get("key")
        if not key:
            raise ProviderError("Webhook secret response carried no key")
        return key
