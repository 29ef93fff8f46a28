"""Ledger store interface (in-memory or Supabase)."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from app.generations.models import GenerationRecord, LedgerTransition


class LedgerStore(ABC):
    """Abstract Record Store holding one ledger record per prediction."""

    @abstractmethod
    async def create(self, record: GenerationRecord) -> GenerationRecord:
        """Insert a new record. Raises DuplicatePredictionError if the
        prediction id is already tracked."""
        ...

    @abstractmethod
    async def get(self, ledger_id: str) -> Optional[GenerationRecord]:
        ...

    @abstractmethod
    async def get_by_prediction_id(self, prediction_id: str) -> Optional[GenerationRecord]:
        ...

    @abstractmethod
    async def list_for_owner(self, owner_id: str, limit: int = 50) -> List[GenerationRecord]:
        """Owner's records, newest first."""
        ...

    @abstractmethod
    async def claim_for_materialization(
        self, ledger_id: str, token: str, stale_before: datetime
    ) -> bool:
        """Atomically mark a non-terminal record as being materialized.

        Succeeds only if the record has no claim, or its claim was taken
        before ``stale_before``.
        """
        ...

    @abstractmethod
    async def transition(
        self, ledger_id: str, change: LedgerTransition
    ) -> Optional[GenerationRecord]:
        """Apply ``change`` only while the stored status is non-terminal.

        Returns the updated record, or None if the guard rejected the write
        (record missing or already terminal).
        """
        ...

    @abstractmethod
    async def delete(self, ledger_id: str) -> bool:
        ...
