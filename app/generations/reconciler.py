"""Applies provider prediction events to ledger records.

State machine::

    pending -> processing -> completed | failed | canceled

The first terminal transition wins. Events for a record that is already
terminal (duplicates, or anything arriving out of order) are logged and
ignored before any download or upload is attempted. Every write goes
through the store's conditional ``transition``, so a concurrent writer that
got there first turns our write into a no-op rather than an overwrite.

A ``succeeded`` event claims the record and moves it to ``processing``
before downloading, and always ends in ``completed`` or ``failed``.
"""

import logging
import uuid
from datetime import timedelta
from enum import Enum
from typing import Optional

from app.generations.ledger import LedgerStore
from app.generations.materializer import AssetMaterializer, FailureReason, MaterializeResult
from app.generations.models import (
    GenerationRecord,
    GenerationStatus,
    LedgerTransition,
    PredictionView,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Prediction failed"


class ReconcileOutcome(str, Enum):
    UNKNOWN_PREDICTION = "unknown_prediction"
    ALREADY_TERMINAL = "already_terminal"
    IN_FLIGHT = "in_flight"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"


_OUTCOME_BY_STATUS = {
    GenerationStatus.PROCESSING: ReconcileOutcome.PROCESSING,
    GenerationStatus.COMPLETED: ReconcileOutcome.COMPLETED,
    GenerationStatus.FAILED: ReconcileOutcome.FAILED,
    GenerationStatus.CANCELED: ReconcileOutcome.CANCELED,
}


class LedgerReconciler:
    def __init__(
        self,
        ledger: LedgerStore,
        materializer: AssetMaterializer,
        claim_ttl_seconds: int = 900,
    ):
        self._ledger = ledger
        self._materializer = materializer
        self._claim_ttl = timedelta(seconds=claim_ttl_seconds)

    async def reconcile(self, event: PredictionView) -> ReconcileOutcome:
        record = await self._ledger.get_by_prediction_id(event.id)
        if record is None:
            logger.warning(
                "No ledger record for prediction %s (status %s); ignoring",
                event.id, event.status,
            )
            return ReconcileOutcome.UNKNOWN_PREDICTION

        if record.status.is_terminal:
            logger.info(
                "Ignoring %s event for prediction %s: record already %s",
                event.status, event.id, record.status.value,
            )
            return ReconcileOutcome.ALREADY_TERMINAL

        if event.status == "succeeded":
            return await self._complete(record, event)
        if event.status == "failed":
            return await self._apply(record, LedgerTransition(
                status=GenerationStatus.FAILED,
                error=event.error or DEFAULT_FAILURE_MESSAGE,
                completed_at=utcnow(),
            ))
        if event.status == "canceled":
            return await self._apply(record, LedgerTransition(
                status=GenerationStatus.CANCELED,
                completed_at=utcnow(),
            ))
        # starting, processing, or anything else non-terminal
        return await self._apply(record, LedgerTransition(
            status=GenerationStatus.PROCESSING,
            started_at=record.started_at or utcnow(),
        ))

    async def _complete(
        self, record: GenerationRecord, event: PredictionView
    ) -> ReconcileOutcome:
        token = uuid.uuid4().hex
        claimed = await self._ledger.claim_for_materialization(
            record.id, token, stale_before=utcnow() - self._claim_ttl
        )
        if not claimed:
            logger.info(
                "Prediction %s is already being materialized or finished; skipping",
                event.id,
            )
            return ReconcileOutcome.IN_FLIGHT

        started = await self._ledger.transition(record.id, LedgerTransition(
            status=GenerationStatus.PROCESSING,
            started_at=record.started_at or utcnow(),
        ))
        if started is None:
            return ReconcileOutcome.ALREADY_TERMINAL

        try:
            result = await self._materializer.materialize(
                event.output,
                owner_id=record.owner_id,
                prediction_id=event.id,
                format_hint=event.input.get("output_format"),
            )
        except Exception as e:
            logger.exception("Materialization of prediction %s raised", event.id)
            result = MaterializeResult.failure(
                FailureReason.UNEXPECTED, f"Materialization failed: {e}"
            )
        now = utcnow()
        if result.ok:
            metadata = dict(record.metadata)
            metadata.update({"source_url": result.source_url, "completed_at": now.isoformat()})
            change = LedgerTransition(
                status=GenerationStatus.COMPLETED,
                asset=result.asset,
                metadata=metadata,
                completed_at=now,
            )
        else:
            logger.warning(
                "Materialization of prediction %s failed (%s): %s",
                event.id, result.reason.value, result.message,
            )
            change = LedgerTransition(
                status=GenerationStatus.FAILED,
                error=result.message,
                completed_at=now,
            )
        return await self._apply(record, change)

    async def _apply(
        self, record: GenerationRecord, change: LedgerTransition
    ) -> ReconcileOutcome:
        updated: Optional[GenerationRecord] = await self._ledger.transition(record.id, change)
        if updated is None:
            logger.info(
                "Transition of prediction %s to %s lost to a concurrent terminal write",
                record.prediction_id, change.status.value,
            )
            return ReconcileOutcome.ALREADY_TERMINAL
        return _OUTCOME_BY_STATUS[change.status]
