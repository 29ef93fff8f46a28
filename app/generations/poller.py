"""Synchronous status query with opportunistic reconciliation.

Used when the webhook is late or never arrives, and by clients that need an
answer right away. Safe to call after the webhook already finished the job.
"""

import logging

from app.generations.models import PredictionView
from app.generations.reconciler import LedgerReconciler
from app.provider.replicate_client import ReplicateClient

logger = logging.getLogger(__name__)


class PredictionPoller:
    def __init__(self, provider: ReplicateClient, reconciler: LedgerReconciler):
        self._provider = provider
        self._reconciler = reconciler

    async def get_status(self, prediction_id: str) -> PredictionView:
        """Provider view of the prediction; reconciles first if it succeeded."""
        prediction = await self._provider.get_prediction(prediction_id)

        if prediction.status == "succeeded" and prediction.output:
            try:
                outcome = await self._reconciler.reconcile(prediction)
                logger.debug("Poll reconcile of %s: %s", prediction_id, outcome.value)
            except Exception:
                logger.exception("Error reconciling polled prediction %s", prediction_id)

        return prediction
