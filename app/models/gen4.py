"""Runway Gen-4 image models."""

from typing import List, Literal, Optional

from pydantic import Field

from app.generations.models import GenerationKind, GenerationRequest
from app.models.base import GenerationModel, ModelSettings, ModelSpec, ProviderInput


class Gen4Settings(ModelSettings):
    seed: Optional[int] = None
    resolution: Literal["720p", "1080p"] = "1080p"
    aspect_ratio: Optional[str] = "16:9"
    reference_tags: List[str] = Field(default_factory=list)


class Gen4Input(ProviderInput):
    prompt: str
    reference_images: Optional[List[str]] = None
    reference_tags: Optional[List[str]] = None
    seed: Optional[int] = None
    resolution: Optional[str] = None
    aspect_ratio: Optional[str] = None


class Gen4Image(GenerationModel):
    settings_cls = Gen4Settings

    def spec(self) -> ModelSpec:
        return ModelSpec(
            model_id="gen4-image",
            name="Gen-4 Image",
            kind=GenerationKind.IMAGE,
            provider_model="runwayml/gen4-image",
            description="Consistent characters and locations from tagged references",
            max_reference_images=3,
            restrictions=["Each reference tag needs a matching reference image"],
        )

    def check_constraints(self, request: GenerationRequest, settings: Gen4Settings) -> List[str]:
        errors = []
        tags = settings.reference_tags
        if tags and len(tags) != len(request.reference_images):
            errors.append(
                f"{self.spec().name} needs exactly one reference tag per reference image"
            )
        return errors

    def map_input(self, request: GenerationRequest, settings: Gen4Settings) -> Gen4Input:
        return Gen4Input(
            prompt=request.prompt,
            reference_images=list(request.reference_images) or None,
            reference_tags=list(settings.reference_tags) or None,
            seed=settings.seed,
            resolution=settings.resolution,
            aspect_ratio=settings.aspect_ratio,
        )


class Gen4ImageTurbo(Gen4Image):
    def spec(self) -> ModelSpec:
        return ModelSpec(
            model_id="gen4-image-turbo",
            name="Gen-4 Image Turbo",
            kind=GenerationKind.IMAGE,
            provider_model="runwayml/gen4-image-turbo",
            description="Faster Gen-4 variant; always works from reference images",
            max_reference_images=3,
            restrictions=[
                "At least one reference image is required",
                "Each reference tag needs a matching reference image",
            ],
        )

    def check_constraints(self, request: GenerationRequest, settings: Gen4Settings) -> List[str]:
        errors = super().check_constraints(request, settings)
        if not request.reference_images:
            errors.append("Gen-4 Image Turbo requires at least one reference image")
        return errors
