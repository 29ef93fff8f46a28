"""Copies expiring provider outputs into owned object storage."""

import logging
import posixpath
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple
from urllib.parse import urlparse

import httpx

from app.generations.models import PersistedAsset
from app.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "mp4": "video/mp4",
    "webm": "video/webm",
}
DEFAULT_EXTENSION = "jpg"
DEFAULT_MIME_TYPE = "image/jpeg"
UNKNOWN_MIME_TYPE = "application/octet-stream"

_EXTENSION_RE = re.compile(r"^[a-z]{3,4}$", re.IGNORECASE)


class AssetDownloadError(Exception):
    """The provider asset could not be fetched."""

    def __init__(self, url: str, status_code: Optional[int] = None, reason: str = ""):
        detail = f"{status_code} {reason}".strip() if status_code else reason
        super().__init__(f"Failed to download asset from {url}: {detail}")
        self.url = url
        self.status_code = status_code


class FailureReason(str, Enum):
    INVALID_OUTPUT = "invalid_output"
    DOWNLOAD_FAILED = "download_failed"
    UPLOAD_FAILED = "upload_failed"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class MaterializeResult:
    """Outcome of one materialization attempt."""
    ok: bool
    asset: Optional[PersistedAsset] = None
    source_url: Optional[str] = None
    reason: Optional[FailureReason] = None
    message: str = ""

    @classmethod
    def success(cls, asset: PersistedAsset, source_url: str) -> "MaterializeResult":
        return cls(ok=True, asset=asset, source_url=source_url)

    @classmethod
    def failure(
        cls, reason: FailureReason, message: str, source_url: Optional[str] = None
    ) -> "MaterializeResult":
        return cls(ok=False, reason=reason, message=message, source_url=source_url)


def storage_path_for(owner_id: str, prediction_id: str, extension: str) -> str:
    """Deterministic object path, so redelivery overwrites instead of duplicating."""
    return f"generations/{owner_id}/{prediction_id}.{extension}"


def resolve_mime_type(url: str, format_hint: Optional[str] = None) -> Tuple[str, str]:
    """(extension, mime type) from the URL suffix, then the format hint, then JPEG.

    Extensions without a known mapping are kept but stored as JPEG.
    """
    path = urlparse(url).path if url else ""
    suffix = posixpath.splitext(path)[1].lstrip(".")
    if suffix and _EXTENSION_RE.match(suffix):
        ext = suffix.lower()
        return ext, MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)

    if format_hint:
        ext = format_hint.strip().lstrip(".").lower()
        if ext:
            return ext, MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)

    return DEFAULT_EXTENSION, DEFAULT_MIME_TYPE


def first_output_url(output: Any) -> Optional[str]:
    """The asset URL of a prediction output, or None if unusable."""
    if isinstance(output, list):
        output = output[0] if output else None
    if isinstance(output, str) and output.strip():
        return output.strip()
    return None


class AssetMaterializer:
    """Download, type, and persist one provider output.

    Never touches the ledger; the reconciler records the result.
    """

    def __init__(self, object_store: ObjectStore, http_client: httpx.AsyncClient):
        self._store = object_store
        self._http = http_client

    async def download_asset(self, url: str) -> Tuple[bytes, str]:
        try:
            response = await self._http.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise AssetDownloadError(url, reason=str(e) or type(e).__name__) from e
        if not response.is_success:
            raise AssetDownloadError(url, response.status_code, response.reason_phrase)
        content_type = response.headers.get("content-type", UNKNOWN_MIME_TYPE)
        return response.content, content_type

    async def persist(
        self,
        data: bytes,
        owner_id: str,
        prediction_id: str,
        extension: str,
        mime_type: str,
    ) -> PersistedAsset:
        path = storage_path_for(owner_id, prediction_id, extension)
        await self._store.upload(path, data, mime_type, upsert=True)
        return PersistedAsset(
            storage_path=path,
            public_url=self._store.public_url(path),
            byte_size=len(data),
            mime_type=mime_type,
        )

    async def materialize(
        self,
        output: Any,
        owner_id: str,
        prediction_id: str,
        format_hint: Optional[str] = None,
    ) -> MaterializeResult:
        url = first_output_url(output)
        if url is None:
            return MaterializeResult.failure(FailureReason.INVALID_OUTPUT, "Invalid output")

        try:
            data, _ = await self.download_asset(url)
        except AssetDownloadError as e:
            return MaterializeResult.failure(FailureReason.DOWNLOAD_FAILED, str(e), url)
        except Exception as e:
            # Malformed URLs fail inside httpx outside its HTTPError hierarchy.
            logger.exception("Download of %s for prediction %s failed", url, prediction_id)
            error = AssetDownloadError(url, reason=str(e) or type(e).__name__)
            return MaterializeResult.failure(FailureReason.DOWNLOAD_FAILED, str(error), url)

        extension, mime_type = resolve_mime_type(url, format_hint)
        try:
            asset = await self.persist(data, owner_id, prediction_id, extension, mime_type)
        except Exception as e:
            logger.exception("Upload of %s for prediction %s failed", url, prediction_id)
            return MaterializeResult.failure(
                FailureReason.UPLOAD_FAILED, f"Failed to upload to storage: {e}", url
            )
        return MaterializeResult.success(asset, url)
