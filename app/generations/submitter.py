"""Validates generation requests, submits them to the provider, and opens ledger records."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.errors import GenerationValidationError, LedgerInconsistencyError
from app.generations.ledger import LedgerStore
from app.generations.models import (
    GenerationKind,
    GenerationRecord,
    GenerationRequest,
    GenerationStatus,
)
from app.models.registry import ModelRegistry
from app.provider.replicate_client import ReplicateClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Submission:
    prediction_id: str
    ledger_id: str
    status: GenerationStatus


class JobSubmitter:
    def __init__(
        self,
        registry: ModelRegistry,
        provider: ReplicateClient,
        ledger: LedgerStore,
        webhook_url: str,
        webhook_events_filter: Optional[List[str]] = None,
    ):
        self._registry = registry
        self._provider = provider
        self._ledger = ledger
        self._webhook_url = webhook_url
        self._events_filter = list(webhook_events_filter or ["completed"])

    def validate(self, request: GenerationRequest) -> List[str]:
        model = self._registry.get(request.model)
        if model is None:
            return [f"Unknown model '{request.model}'"]
        return model.validate(request)

    async def submit(self, request: GenerationRequest, owner_id: str) -> Submission:
        """Submit a generation job and create its pending ledger record.

        Raises GenerationValidationError before any provider call, provider
        errors as raised by the client (no record is created), and
        LedgerInconsistencyError if the job was accepted upstream but could
        not be recorded.
        """
        violations = self.validate(request)
        if violations:
            raise GenerationValidationError(violations)

        model = self._registry.get(request.model)
        spec = model.spec()
        provider_input = model.build_input(request)

        prediction = await self._provider.create_prediction(
            spec.provider_model,
            provider_input,
            webhook=self._webhook_url,
            webhook_events_filter=self._events_filter,
        )

        record = GenerationRecord(
            prediction_id=prediction.id,
            owner_id=owner_id,
            kind=spec.kind,
            status=GenerationStatus.PENDING,
            input_descriptor=_input_descriptor(request, spec.provider_model, provider_input),
            metadata=model.build_metadata(request),
        )
        try:
            record = await self._ledger.create(record)
        except Exception as e:
            logger.error(
                "Prediction %s accepted by provider but ledger record creation failed: %s",
                prediction.id, e,
            )
            raise LedgerInconsistencyError(prediction.id) from e

        logger.info(
            "Submitted %s prediction %s for owner %s (ledger %s)",
            spec.model_id, prediction.id, owner_id, record.id,
        )
        return Submission(
            prediction_id=prediction.id, ledger_id=record.id, status=record.status
        )

    async def retry(self, record: GenerationRecord, owner_id: str) -> Submission:
        """Resubmit a recorded request as a new job; the original record is untouched."""
        return await self.submit(request_from_descriptor(record), owner_id)


def _input_descriptor(
    request: GenerationRequest, provider_model: str, provider_input: Dict[str, Any]
) -> Dict[str, Any]:
    return {
        "request": request.model_dump(mode="json"),
        "provider_model": provider_model,
        "provider_input": provider_input,
    }


def request_from_descriptor(record: GenerationRecord) -> GenerationRequest:
    saved = record.input_descriptor.get("request")
    if not saved:
        raise GenerationValidationError(
            [f"Generation {record.id} has no recorded request to retry"]
        )
    return GenerationRequest.model_validate({**saved, "kind": GenerationKind(record.kind)})
