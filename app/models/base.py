"""Base generation-model interface and data types for the model registry."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel as Schema
from pydantic import ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from app.generations.models import GenerationKind, GenerationRequest


@dataclass
class ModelSpec:
    """Metadata describing a registered generation model."""
    model_id: str
    name: str
    kind: GenerationKind
    provider_model: str
    description: str = ""
    max_reference_images: int = 0
    supports_last_frame: bool = False
    default_resolution: Optional[str] = None
    restrictions: List[str] = field(default_factory=list)


class ModelSettings(Schema):
    """Per-model settings. Accepts snake_case or camelCase keys, rejects unknown ones."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )


class ProviderInput(Schema):
    """Provider payload for one model; serialized without unset optionals."""

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


def format_validation_error(exc: ValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "model_settings"
        messages.append(f"{loc}: {err.get('msg')}")
    return messages


class GenerationModel(ABC):
    """Abstract base class for every model in the generation catalog.

    To add a model:
    1. Create a new .py file in app/models/
    2. Subclass GenerationModel with a settings_cls and spec()
    3. Implement map_input() and, if needed, check_constraints()
    4. The registry auto-discovers it at startup
    """

    settings_cls: Type[ModelSettings] = ModelSettings

    @abstractmethod
    def spec(self) -> ModelSpec:
        """Return model metadata."""
        ...

    @abstractmethod
    def map_input(self, request: GenerationRequest, settings: Any) -> ProviderInput:
        """Shape a validated request into this model's provider payload."""
        ...

    def check_constraints(self, request: GenerationRequest, settings: Any) -> List[str]:
        """Model-specific rules over request and parsed settings."""
        return []

    def parse_settings(self, request: GenerationRequest) -> Tuple[Optional[ModelSettings], List[str]]:
        try:
            return self.settings_cls.model_validate(request.model_settings), []
        except ValidationError as e:
            return None, format_validation_error(e)

    def validate(self, request: GenerationRequest) -> List[str]:
        """Human-readable violations; empty when the request may be submitted."""
        spec = self.spec()
        errors: List[str] = []

        if not request.prompt or not request.prompt.strip():
            errors.append("Prompt is required")
        if request.kind != spec.kind:
            errors.append(f"{spec.name} generates {spec.kind.value}, not {request.kind.value}")

        refs = request.reference_images
        if refs:
            if spec.max_reference_images == 0:
                errors.append(f"{spec.name} does not support reference images")
            elif len(refs) > spec.max_reference_images:
                errors.append(
                    f"{spec.name} supports maximum {spec.max_reference_images} reference images"
                )

        settings, setting_errors = self.parse_settings(request)
        if settings is None:
            return errors + setting_errors
        return errors + self.check_constraints(request, settings)

    def build_input(self, request: GenerationRequest) -> Dict[str, Any]:
        settings, setting_errors = self.parse_settings(request)
        if settings is None:
            raise ValueError("; ".join(setting_errors))
        return self.map_input(request, settings).to_payload()

    def build_metadata(self, request: GenerationRequest) -> Dict[str, Any]:
        """Audit snapshot stored on the ledger record at submission."""
        settings, _ = self.parse_settings(request)
        return {
            "prompt": request.prompt,
            "model": self.spec().provider_model,
            "model_id": self.spec().model_id,
            "settings": settings.model_dump(exclude_none=True) if settings else {},
            "reference_images_count": len(request.reference_images),
        }
