"""ByteDance Seedance image-to-video models."""

from typing import List, Literal, Optional

from pydantic import Field

from app.generations.models import GenerationKind, GenerationRequest
from app.models.base import GenerationModel, ModelSettings, ModelSpec, ProviderInput

Resolution = Literal["480p", "720p", "1080p"]
AspectRatio = Literal["16:9", "4:3", "1:1", "3:4", "9:16", "21:9", "9:21"]


class SeedanceSettings(ModelSettings):
    duration: int = Field(5, ge=3, le=12)
    resolution: Resolution = "720p"
    aspect_ratio: AspectRatio = "16:9"
    fps: int = 24
    camera_fixed: bool = False
    seed: Optional[int] = None
    image: Optional[str] = None
    last_frame_image: Optional[str] = None


class SeedanceProSettings(SeedanceSettings):
    resolution: Resolution = "1080p"


class SeedanceInput(ProviderInput):
    prompt: str
    image: Optional[str] = None
    duration: int
    resolution: str
    aspect_ratio: str
    fps: int
    camera_fixed: bool
    seed: Optional[int] = None
    reference_images: Optional[List[str]] = None
    last_frame_image: Optional[str] = None


class _Seedance(GenerationModel):
    def check_constraints(self, request: GenerationRequest, settings: SeedanceSettings) -> List[str]:
        errors = []
        if settings.last_frame_image and not settings.image:
            errors.append(
                f"Last frame image only works when a start frame image is provided in {self.spec().name}"
            )
        return errors

    def map_input(self, request: GenerationRequest, settings: SeedanceSettings) -> SeedanceInput:
        return SeedanceInput(
            prompt=request.prompt,
            image=settings.image,
            duration=settings.duration,
            resolution=settings.resolution,
            aspect_ratio=settings.aspect_ratio,
            fps=settings.fps,
            camera_fixed=settings.camera_fixed,
            seed=settings.seed,
            reference_images=list(request.reference_images) or None,
            last_frame_image=settings.last_frame_image,
        )

    def build_metadata(self, request: GenerationRequest):
        metadata = super().build_metadata(request)
        settings, _ = self.parse_settings(request)
        metadata["has_reference_images"] = bool(request.reference_images)
        metadata["has_last_frame"] = bool(settings and settings.last_frame_image)
        return metadata


class SeedanceLite(_Seedance):
    settings_cls = SeedanceSettings

    def spec(self) -> ModelSpec:
        return ModelSpec(
            model_id="seedance-lite",
            name="Seedance Lite",
            kind=GenerationKind.VIDEO,
            provider_model="bytedance/seedance-1-lite",
            description="Fast video generation with reference image support",
            max_reference_images=4,
            supports_last_frame=True,
            default_resolution="720p",
            restrictions=[
                "Reference images cannot be used with 1080p resolution",
                "Reference images cannot be used with a last frame image",
                "Last frame image only works if a start frame image is provided",
            ],
        )

    def check_constraints(self, request: GenerationRequest, settings: SeedanceSettings) -> List[str]:
        errors = []
        if request.reference_images:
            if settings.resolution == "1080p":
                errors.append(
                    "Reference images cannot be used with 1080p resolution in Seedance Lite"
                )
            if settings.last_frame_image:
                errors.append(
                    "Reference images cannot be used with last frame image in Seedance Lite"
                )
        return errors + super().check_constraints(request, settings)


class SeedancePro(_Seedance):
    settings_cls = SeedanceProSettings

    def spec(self) -> ModelSpec:
        return ModelSpec(
            model_id="seedance-pro",
            name="Seedance Pro",
            kind=GenerationKind.VIDEO,
            provider_model="bytedance/seedance-1-pro",
            description="High-quality video generation with better results",
            max_reference_images=0,
            supports_last_frame=True,
            default_resolution="1080p",
            restrictions=[
                "Reference images are not supported",
                "Last frame image only works if a start frame image is provided",
            ],
        )
