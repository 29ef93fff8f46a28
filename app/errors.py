"""Service exceptions and FastAPI error handler registration."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for errors rendered as a JSON error body."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def extra(self) -> Dict[str, Any]:
        return {}


# ── Submission ───────────────────────────────────────────────────────


class GenerationValidationError(ServiceError):
    """Request violates one or more model constraints. Nothing was submitted."""

    status_code = 400
    code = "validation_failed"

    def __init__(self, violations: List[str]):
        super().__init__("; ".join(violations))
        self.violations = list(violations)

    def extra(self) -> Dict[str, Any]:
        return {"violations": self.violations}


class UploadRejectedError(ServiceError):
    """Upload request is missing its file or carries unreadable metadata."""

    status_code = 400
    code = "invalid_upload"


class ProviderError(ServiceError):
    """Generic upstream provider failure."""

    status_code = 502
    code = "provider_error"

    def __init__(self, message: str = "", upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status

    def extra(self) -> Dict[str, Any]:
        if self.upstream_status is None:
            return {}
        return {"upstream_status": self.upstream_status}


class ProviderModelNotFoundError(ProviderError):
    status_code = 404
    code = "model_not_found"


class ProviderUnavailableError(ProviderError):
    status_code = 503
    code = "provider_unavailable"


class PredictionNotFoundError(ProviderError):
    status_code = 404
    code = "prediction_not_found"


class LedgerInconsistencyError(ServiceError):
    """Provider accepted the job but no ledger record could be written for it."""

    status_code = 500
    code = "ledger_inconsistency"

    def __init__(self, prediction_id: str, message: str = ""):
        super().__init__(
            message or f"Prediction {prediction_id} was submitted but is not tracked"
        )
        self.prediction_id = prediction_id

    def extra(self) -> Dict[str, Any]:
        return {"prediction_id": self.prediction_id}


# ── Ledger ───────────────────────────────────────────────────────────


class LedgerRecordNotFoundError(ServiceError):
    status_code = 404
    code = "generation_not_found"


class DuplicatePredictionError(ServiceError):
    """A ledger record already exists for this prediction id."""

    status_code = 409
    code = "duplicate_prediction"


# ── Webhook authentication ───────────────────────────────────────────


class WebhookRejectedError(ServiceError):
    """Inbound webhook failed authentication; nothing job-specific was attempted."""

    status_code = 400
    code = "webhook_rejected"


class MissingWebhookHeadersError(WebhookRejectedError):
    status_code = 400
    code = "missing_webhook_headers"


class StaleWebhookTimestampError(WebhookRejectedError):
    status_code = 400
    code = "stale_webhook_timestamp"


class InvalidWebhookSignatureError(WebhookRejectedError):
    status_code = 401
    code = "invalid_webhook_signature"


class SigningSecretUnavailableError(WebhookRejectedError):
    """The signing secret could not be obtained. Infrastructure fault, not an auth failure."""

    status_code = 500
    code = "signing_secret_unavailable"


# ── Registration ─────────────────────────────────────────────────────


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.code, request.url.path, exc.message)
    body = {"error": exc.code, "detail": exc.message}
    body.update(exc.extra())
    return JSONResponse(status_code=exc.status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Render every ServiceError subclass with its own status and code."""
    app.add_exception_handler(ServiceError, _service_error_handler)
