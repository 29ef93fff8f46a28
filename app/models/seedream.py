"""ByteDance Seedream 4 image model."""

from typing import List, Literal, Optional

from pydantic import Field

from app.generations.models import GenerationKind, GenerationRequest
from app.models.base import GenerationModel, ModelSettings, ModelSpec, ProviderInput


class SeedreamSettings(ModelSettings):
    size: Literal["1K", "2K", "4K", "custom"] = "2K"
    aspect_ratio: Optional[str] = None
    width: Optional[int] = Field(None, ge=1024, le=4096)
    height: Optional[int] = Field(None, ge=1024, le=4096)
    sequential_image_generation: Literal["disabled", "auto"] = "disabled"
    max_images: int = Field(1, ge=1, le=15)


class SeedreamInput(ProviderInput):
    prompt: str
    image_input: Optional[List[str]] = None
    size: str
    aspect_ratio: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    sequential_image_generation: str
    max_images: int


class Seedream4(GenerationModel):
    settings_cls = SeedreamSettings

    def spec(self) -> ModelSpec:
        return ModelSpec(
            model_id="seedream-4",
            name="Seedream 4",
            kind=GenerationKind.IMAGE,
            provider_model="bytedance/seedream-4",
            description="High-resolution image generation up to 4K",
            max_reference_images=10,
            restrictions=["Custom size requires width and height"],
        )

    def check_constraints(self, request: GenerationRequest, settings: SeedreamSettings) -> List[str]:
        errors = []
        if settings.size == "custom" and (settings.width is None or settings.height is None):
            errors.append("Seedream 4 custom size requires both width and height")
        if settings.size != "custom" and (settings.width or settings.height):
            errors.append("Seedream 4 width and height only apply to custom size")
        return errors

    def map_input(self, request: GenerationRequest, settings: SeedreamSettings) -> SeedreamInput:
        custom = settings.size == "custom"
        return SeedreamInput(
            prompt=request.prompt,
            image_input=list(request.reference_images) or None,
            size=settings.size,
            aspect_ratio=settings.aspect_ratio,
            width=settings.width if custom else None,
            height=settings.height if custom else None,
            sequential_image_generation=settings.sequential_image_generation,
            max_images=settings.max_images,
        )
