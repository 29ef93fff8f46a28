"""In-process ledger store for local development and tests.

Keeps records in a dict guarded by a lock, so check-and-write sequences
behave like the conditional updates of the Supabase store.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional

from app.errors import DuplicatePredictionError
from app.generations.ledger import LedgerStore
from app.generations.models import (
    GenerationRecord,
    LedgerTransition,
    utcnow,
)


class InMemoryLedgerStore(LedgerStore):
    """Local ledger. Records are lost on restart."""

    def __init__(self):
        self._records: Dict[str, GenerationRecord] = {}
        self._by_prediction: Dict[str, str] = {}
        self._lock = threading.Lock()

    async def create(self, record: GenerationRecord) -> GenerationRecord:
        with self._lock:
            if record.prediction_id in self._by_prediction:
                raise DuplicatePredictionError(
                    f"Prediction {record.prediction_id} already has a ledger record"
                )
            self._records[record.id] = record.model_copy(deep=True)
            self._by_prediction[record.prediction_id] = record.id
        return record

    async def get(self, ledger_id: str) -> Optional[GenerationRecord]:
        record = self._records.get(ledger_id)
        return record.model_copy(deep=True) if record else None

    async def get_by_prediction_id(self, prediction_id: str) -> Optional[GenerationRecord]:
        ledger_id = self._by_prediction.get(prediction_id)
        if ledger_id is None:
            return None
        return await self.get(ledger_id)

    async def list_for_owner(self, owner_id: str, limit: int = 50) -> List[GenerationRecord]:
        owned = [r for r in self._records.values() if r.owner_id == owner_id]
        owned.sort(key=lambda r: r.created_at, reverse=True)
        return [r.model_copy(deep=True) for r in owned[:limit]]

    async def claim_for_materialization(
        self, ledger_id: str, token: str, stale_before: datetime
    ) -> bool:
        with self._lock:
            record = self._records.get(ledger_id)
            if record is None or record.status.is_terminal:
                return False
            if record.claim_token is not None and record.claimed_at is not None:
                if record.claimed_at >= stale_before:
                    return False
            record.claim_token = token
            record.claimed_at = utcnow()
            return True

    async def transition(
        self, ledger_id: str, change: LedgerTransition
    ) -> Optional[GenerationRecord]:
        with self._lock:
            record = self._records.get(ledger_id)
            if record is None or record.status.is_terminal:
                return None
            updates = change.model_dump(exclude_none=True, exclude={"asset"})
            if change.asset is not None:
                updates["asset"] = change.asset
            # Validate the full row before swapping it in.
            updated = GenerationRecord.model_validate(
                {**record.model_dump(), **updates}
            )
            self._records[ledger_id] = updated
            return updated.model_copy(deep=True)

    async def delete(self, ledger_id: str) -> bool:
        with self._lock:
            record = self._records.pop(ledger_id, None)
            if record is None:
                return False
            self._by_prediction.pop(record.prediction_id, None)
            return True

    def __len__(self) -> int:
        return len(self._records)
