"""Generation API — submit jobs, poll status, list, retry and delete records."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Any, Dict, List

from app.auth.supabase_auth import current_owner_id
from app.errors import LedgerRecordNotFoundError
from app.generations.models import GenerationKind, GenerationRecord, GenerationRequest

logger = logging.getLogger(__name__)

router = APIRouter()

# These will be set by main.py during lifespan
_submitter = None
_poller = None
_ledger = None
_object_store = None


def set_submitter(submitter):
    global _submitter
    _submitter = submitter


def set_poller(poller):
    global _poller
    _poller = poller


def set_ledger(ledger):
    global _ledger
    _ledger = ledger


def set_object_store(store):
    global _object_store
    _object_store = store


def _require(component, name: str):
    if component is None:
        raise HTTPException(status_code=503, detail=f"{name} not initialized")
    return component


class GenerationSubmitRequest(BaseModel):
    model: str
    prompt: str = ""
    reference_images: List[str] = Field(default_factory=list)
    model_settings: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"protected_namespaces": ()}


class GenerationSubmitResponse(BaseModel):
    prediction_id: str
    ledger_id: str
    status: str


def record_view(record: GenerationRecord) -> Dict[str, Any]:
    asset = record.asset
    return {
        "ledger_id": record.id,
        "prediction_id": record.prediction_id,
        "kind": record.kind.value,
        "status": record.status.value,
        "public_url": asset.public_url if asset else None,
        "storage_path": asset.storage_path if asset else None,
        "file_size": asset.byte_size if asset else None,
        "mime_type": asset.mime_type if asset else None,
        "error": record.error,
        "metadata": record.metadata,
        "created_at": record.created_at.isoformat(),
        "started_at": record.started_at.isoformat() if record.started_at else None,
        "completed_at": record.completed_at.isoformat() if record.completed_at else None,
    }


async def _owned_record(ledger_id: str, owner_id: str) -> GenerationRecord:
    record = await _require(_ledger, "Ledger").get(ledger_id)
    # Foreign records are reported as missing.
    if record is None or record.owner_id != owner_id:
        raise LedgerRecordNotFoundError(f"Generation {ledger_id} not found")
    return record


async def _submit(kind: GenerationKind, body: GenerationSubmitRequest, owner_id: str):
    submitter = _require(_submitter, "Job submitter")
    request = GenerationRequest(kind=kind, **body.model_dump())
    submission = await submitter.submit(request, owner_id)
    return GenerationSubmitResponse(
        prediction_id=submission.prediction_id,
        ledger_id=submission.ledger_id,
        status=submission.status.value,
    )


@router.post("/generations/image", response_model=GenerationSubmitResponse)
async def submit_image(
    body: GenerationSubmitRequest, owner_id: str = Depends(current_owner_id)
):
    """Submit an image generation. The result arrives by webhook."""
    return await _submit(GenerationKind.IMAGE, body, owner_id)


@router.post("/generations/video", response_model=GenerationSubmitResponse)
async def submit_video(
    body: GenerationSubmitRequest, owner_id: str = Depends(current_owner_id)
):
    """Submit an image-to-video generation. The result arrives by webhook."""
    return await _submit(GenerationKind.VIDEO, body, owner_id)


@router.get("/generations")
async def list_generations(limit: int = 50, owner_id: str = Depends(current_owner_id)):
    records = await _require(_ledger, "Ledger").list_for_owner(owner_id, limit=min(limit, 200))
    return {"generations": [record_view(r) for r in records], "count": len(records)}


@router.get("/generations/{ledger_id}")
async def get_generation(ledger_id: str, owner_id: str = Depends(current_owner_id)):
    return record_view(await _owned_record(ledger_id, owner_id))


@router.delete("/generations/{ledger_id}")
async def delete_generation(ledger_id: str, owner_id: str = Depends(current_owner_id)):
    """Delete a generation record and its stored asset."""
    record = await _owned_record(ledger_id, owner_id)
    if record.asset is not None:
        await _require(_object_store, "Object store").remove([record.asset.storage_path])
    await _ledger.delete(record.id)
    logger.info("Deleted generation %s (prediction %s)", record.id, record.prediction_id)
    return {"deleted": True, "ledger_id": record.id}


@router.post("/generations/{ledger_id}/retry", response_model=GenerationSubmitResponse)
async def retry_generation(ledger_id: str, owner_id: str = Depends(current_owner_id)):
    """Resubmit a previous request as a new job with its own ledger record."""
    record = await _owned_record(ledger_id, owner_id)
    submission = await _require(_submitter, "Job submitter").retry(record, owner_id)
    return GenerationSubmitResponse(
        prediction_id=submission.prediction_id,
        ledger_id=submission.ledger_id,
        status=submission.status.value,
    )


@router.get("/predictions/{prediction_id}")
async def get_prediction_status(
    prediction_id: str, owner_id: str = Depends(current_owner_id)
):
    """Current provider status of a prediction the caller owns.

    A succeeded prediction is materialized on the way through if the
    webhook has not done so yet.
    """
    ledger = _require(_ledger, "Ledger")
    poller = _require(_poller, "Poller")
    record = await ledger.get_by_prediction_id(prediction_id)
    if record is None or record.owner_id != owner_id:
        raise LedgerRecordNotFoundError(f"Prediction {prediction_id} not found")
    prediction = await poller.get_status(prediction_id)
    return prediction.public_dict()
