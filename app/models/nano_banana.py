"""Google Nano Banana image model."""

from typing import List, Literal, Optional

from app.generations.models import GenerationKind, GenerationRequest
from app.models.base import GenerationModel, ModelSettings, ModelSpec, ProviderInput


class NanoBananaSettings(ModelSettings):
    aspect_ratio: Optional[str] = None
    output_format: Literal["jpg", "png"] = "jpg"


class NanoBananaInput(ProviderInput):
    prompt: str
    image_input: Optional[List[str]] = None
    aspect_ratio: Optional[str] = None
    output_format: Optional[str] = None


class NanoBanana(GenerationModel):
    settings_cls = NanoBananaSettings

    def spec(self) -> ModelSpec:
        return ModelSpec(
            model_id="nano-banana",
            name="Nano Banana",
            kind=GenerationKind.IMAGE,
            provider_model="google/nano-banana",
            description="Fast image generation and editing from text and reference images",
            max_reference_images=10,
        )

    def map_input(self, request: GenerationRequest, settings: NanoBananaSettings) -> NanoBananaInput:
        return NanoBananaInput(
            prompt=request.prompt,
            image_input=list(request.reference_images) or None,
            aspect_ratio=settings.aspect_ratio,
            output_format=settings.output_format,
        )
