"""Uploads API — turn a local reference or start-frame image into a provider URL.

The returned URL can be passed as a reference image or as a model setting
such as ``image`` or ``last_frame_image`` when submitting a generation.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from app.auth.supabase_auth import current_owner_id
from app.errors import UploadRejectedError

logger = logging.getLogger(__name__)

router = APIRouter()

# Wired in during lifespan (same pattern as generations.py)
_provider = None

# Max upload size: 100 MB
_MAX_FILE_BYTES = 100 * 1024 * 1024


def set_provider(provider):
    global _provider
    _provider = provider


def _parse_metadata(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        metadata = json.loads(raw)
    except ValueError as e:
        raise UploadRejectedError("Invalid metadata JSON format") from e
    if not isinstance(metadata, dict):
        raise UploadRejectedError("Metadata must be a JSON object")
    return metadata


@router.post("/uploads")
async def upload_file(
    file: Optional[UploadFile] = File(None),
    metadata: Optional[str] = Form(None),
    owner_id: str = Depends(current_owner_id),
):
    """Upload a file to the provider's file store.

    Returns:
        {url}
    """
    if _provider is None:
        raise HTTPException(status_code=503, detail="Provider not ready")
    if file is None:
        raise UploadRejectedError("File is required")
    parsed = _parse_metadata(metadata)

    content = await file.read()
    if not content:
        raise UploadRejectedError("File is empty")
    if len(content) > _MAX_FILE_BYTES:
        raise UploadRejectedError(f"File exceeds {_MAX_FILE_BYTES // (1024 * 1024)} MB")

    url = await _provider.upload_file(
        file.filename or "upload",
        content,
        content_type=file.content_type or "application/octet-stream",
        metadata=parsed,
    )
    logger.info("Owner %s uploaded %s (%d bytes)", owner_id, file.filename, len(content))
    return {"url": url}
