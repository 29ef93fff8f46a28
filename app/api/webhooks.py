"""Inbound Replicate webhook.

The raw body is read before parsing because the signature covers the exact
bytes. Once a request is authenticated it is always acknowledged with 200:
reconciliation problems are recorded on the ledger or logged, never handed
back to the provider as a failure to retry.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.generations.models import PredictionView

logger = logging.getLogger(__name__)

router = APIRouter()

# Wired in during lifespan (same pattern as api/v1/generations.py)
_verifier = None
_reconciler = None


def set_verifier(verifier):
    global _verifier
    _verifier = verifier


def set_reconciler(reconciler):
    global _reconciler
    _reconciler = reconciler


@router.post("/webhooks/replicate")
async def replicate_webhook(request: Request):
    if _verifier is None or _reconciler is None:
        return JSONResponse(status_code=503, content={"error": "Webhook handler not ready"})

    body = await request.body()
    webhook_id = await _verifier.verify(request.headers, body)

    try:
        event = PredictionView.model_validate_json(body)
    except ValidationError as e:
        logger.error("Webhook %s carried an unreadable prediction body: %s", webhook_id, e)
        return JSONResponse(status_code=500, content={"error": "Failed to process webhook"})

    logger.info("Webhook %s received for prediction %s: %s", webhook_id, event.id, event.status)
    try:
        outcome = await _reconciler.reconcile(event)
        logger.info("Prediction %s reconciled: %s", event.id, outcome.value)
    except Exception:
        logger.exception("Reconciliation of prediction %s failed", event.id)

    return {"received": True}
