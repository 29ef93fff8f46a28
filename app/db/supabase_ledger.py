"""Supabase-backed ledger store.

Terminal-state and claim guards are expressed as postgrest filters on the
UPDATE itself, so two concurrent writers cannot both pass the check.
Expects a unique index on ``prediction_id``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import Client

from app.errors import DuplicatePredictionError
from app.generations.ledger import LedgerStore
from app.generations.models import (
    ACTIVE_STATUSES,
    GenerationRecord,
    LedgerTransition,
    PersistedAsset,
    utcnow,
)

logger = logging.getLogger(__name__)

_ACTIVE = [s.value for s in ACTIVE_STATUSES]
_UNIQUE_VIOLATION = "23505"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def record_to_row(record: GenerationRecord) -> Dict[str, Any]:
    asset = record.asset
    return {
        "id": record.id,
        "prediction_id": record.prediction_id,
        "user_id": record.owner_id,
        "generation_type": record.kind.value,
        "status": record.status.value,
        "input_descriptor": record.input_descriptor,
        "metadata": record.metadata,
        "storage_path": asset.storage_path if asset else None,
        "public_url": asset.public_url if asset else None,
        "file_size": asset.byte_size if asset else None,
        "mime_type": asset.mime_type if asset else None,
        "error_message": record.error,
        "claim_token": record.claim_token,
        "claimed_at": _iso(record.claimed_at),
        "created_at": _iso(record.created_at),
        "started_at": _iso(record.started_at),
        "completed_at": _iso(record.completed_at),
    }


def row_to_record(row: Dict[str, Any]) -> GenerationRecord:
    asset = None
    if row.get("storage_path") and row.get("public_url"):
        asset = PersistedAsset(
            storage_path=row["storage_path"],
            public_url=row["public_url"],
            byte_size=row.get("file_size") or 0,
            mime_type=row.get("mime_type") or "application/octet-stream",
        )
    return GenerationRecord(
        id=row["id"],
        prediction_id=row["prediction_id"],
        owner_id=row["user_id"],
        kind=row["generation_type"],
        status=row["status"],
        input_descriptor=row.get("input_descriptor") or {},
        metadata=row.get("metadata") or {},
        asset=asset,
        error=row.get("error_message"),
        claim_token=row.get("claim_token"),
        claimed_at=row.get("claimed_at"),
        created_at=row.get("created_at") or utcnow(),
        started_at=row.get("started_at"),
        completed_at=row.get("completed_at"),
    )


def transition_to_row(change: LedgerTransition) -> Dict[str, Any]:
    row: Dict[str, Any] = {"status": change.status.value}
    if change.asset is not None:
        row.update({
            "storage_path": change.asset.storage_path,
            "public_url": change.asset.public_url,
            "file_size": change.asset.byte_size,
            "mime_type": change.asset.mime_type,
        })
    if change.error is not None:
        row["error_message"] = change.error
    if change.metadata is not None:
        row["metadata"] = change.metadata
    if change.started_at is not None:
        row["started_at"] = _iso(change.started_at)
    if change.completed_at is not None:
        row["completed_at"] = _iso(change.completed_at)
    return row


class SupabaseLedgerStore(LedgerStore):
    """Ledger records in a Supabase (PostgREST) table."""

    def __init__(self, client: Client, table: str = "gallery"):
        self._client = client
        self._table = table

    def _query(self):
        return self._client.table(self._table)

    async def create(self, record: GenerationRecord) -> GenerationRecord:
        try:
            response = self._query().insert(record_to_row(record)).execute()
        except Exception as e:
            if getattr(e, "code", None) == _UNIQUE_VIOLATION:
                raise DuplicatePredictionError(
                    f"Prediction {record.prediction_id} already has a ledger record"
                ) from e
            raise
        if response.data:
            return row_to_record(response.data[0])
        return record

    async def get(self, ledger_id: str) -> Optional[GenerationRecord]:
        response = self._query().select("*").eq("id", ledger_id).limit(1).execute()
        if not response.data:
            return None
        return row_to_record(response.data[0])

    async def get_by_prediction_id(self, prediction_id: str) -> Optional[GenerationRecord]:
        response = (
            self._query()
            .select("*")
            .eq("prediction_id", prediction_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return row_to_record(response.data[0])

    async def list_for_owner(self, owner_id: str, limit: int = 50) -> List[GenerationRecord]:
        response = (
            self._query()
            .select("*")
            .eq("user_id", owner_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [row_to_record(row) for row in response.data or []]

    async def claim_for_materialization(
        self, ledger_id: str, token: str, stale_before: datetime
    ) -> bool:
        cutoff = stale_before.strftime("%Y-%m-%dT%H:%M:%SZ")
        response = (
            self._query()
            .update({"claim_token": token, "claimed_at": utcnow().isoformat()})
            .eq("id", ledger_id)
            .in_("status", _ACTIVE)
            .or_(f'claim_token.is.null,claimed_at.lt."{cutoff}"')
            .execute()
        )
        return bool(response.data)

    async def transition(
        self, ledger_id: str, change: LedgerTransition
    ) -> Optional[GenerationRecord]:
        response = (
            self._query()
            .update(transition_to_row(change))
            .eq("id", ledger_id)
            .in_("status", _ACTIVE)
            .execute()
        )
        if not response.data:
            return None
        return row_to_record(response.data[0])

    async def delete(self, ledger_id: str) -> bool:
        response = self._query().delete().eq("id", ledger_id).execute()
        return bool(response.data)
