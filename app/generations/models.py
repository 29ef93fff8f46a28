"""Ledger record and provider prediction data models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class GenerationStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {GenerationStatus.COMPLETED, GenerationStatus.FAILED, GenerationStatus.CANCELED}
)
ACTIVE_STATUSES = frozenset({GenerationStatus.PENDING, GenerationStatus.PROCESSING})


class PersistedAsset(BaseModel):
    """A materialized copy of a provider output in owned storage."""
    storage_path: str
    public_url: str
    byte_size: int
    mime_type: str


class GenerationRecord(BaseModel):
    """Durable ledger row tracking one provider prediction.

    ``asset`` is present exactly when the record is completed and ``error``
    exactly when it failed.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    prediction_id: str
    owner_id: str
    kind: GenerationKind
    status: GenerationStatus = GenerationStatus.PENDING
    input_descriptor: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    asset: Optional[PersistedAsset] = None
    error: Optional[str] = None
    claim_token: Optional[str] = None
    claimed_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_terminal_fields(self) -> "GenerationRecord":
        if (self.asset is not None) != (self.status == GenerationStatus.COMPLETED):
            raise ValueError("asset must be set if and only if status is completed")
        if (self.error is not None) != (self.status == GenerationStatus.FAILED):
            raise ValueError("error must be set if and only if status is failed")
        return self


class LedgerTransition(BaseModel):
    """Changes applied to a record by a single reconciliation step."""
    status: GenerationStatus
    asset: Optional[PersistedAsset] = None
    error: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class PredictionView(BaseModel):
    """Provider-side view of a prediction, from a webhook body or a status query."""
    id: str
    status: str
    output: Any = None
    error: Optional[str] = None
    input: Dict[str, Any] = Field(default_factory=dict)
    metrics: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    model_config = {"extra": "ignore"}

    @field_validator("error", mode="before")
    @classmethod
    def _stringify_error(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("input", mode="before")
    @classmethod
    def _default_input(cls, value: Any) -> Dict[str, Any]:
        return value if isinstance(value, dict) else {}

    def public_dict(self) -> Dict[str, Any]:
        """Normalized shape returned by the synchronous status query."""
        return {
            "id": self.id,
            "status": self.status,
            "output": self.output,
            "error": self.error,
            "metrics": self.metrics,
            "input": self.input,
            "created_at": self.created_at,
            "completed_at": self.completed_at,
        }


class GenerationRequest(BaseModel):
    """A user's generation request before validation against a model."""
    model_config = {"protected_namespaces": ()}

    model: str
    prompt: str = ""
    kind: GenerationKind
    reference_images: List[str] = Field(default_factory=list)
    model_settings: Dict[str, Any] = Field(default_factory=dict)
