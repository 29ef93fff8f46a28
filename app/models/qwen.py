"""Qwen image generation and editing models."""

from typing import List, Literal, Optional

from pydantic import Field

from app.generations.models import GenerationKind, GenerationRequest
from app.models.base import GenerationModel, ModelSettings, ModelSpec, ProviderInput

OutputFormat = Literal["webp", "jpg", "png"]


class QwenImageSettings(ModelSettings):
    seed: Optional[int] = None
    image: Optional[str] = None
    guidance: Optional[float] = Field(None, ge=0, le=10)
    strength: Optional[float] = Field(None, ge=0, le=1)
    aspect_ratio: Optional[str] = None
    num_inference_steps: Optional[int] = Field(None, ge=1, le=50)
    output_format: OutputFormat = "webp"
    go_fast: bool = True


class QwenImageInput(ProviderInput):
    prompt: str
    image: Optional[str] = None
    seed: Optional[int] = None
    guidance: Optional[float] = None
    strength: Optional[float] = None
    aspect_ratio: Optional[str] = None
    num_inference_steps: Optional[int] = None
    output_format: Optional[str] = None
    go_fast: Optional[bool] = None


class QwenImageEditSettings(ModelSettings):
    image: Optional[str] = None
    aspect_ratio: Optional[str] = None
    seed: Optional[int] = None
    output_format: OutputFormat = "webp"
    output_quality: int = Field(95, ge=0, le=100)
    go_fast: bool = True


class QwenImageEditInput(ProviderInput):
    prompt: str
    image: str
    aspect_ratio: Optional[str] = None
    seed: Optional[int] = None
    output_format: Optional[str] = None
    output_quality: Optional[int] = None
    go_fast: Optional[bool] = None


class QwenImage(GenerationModel):
    settings_cls = QwenImageSettings

    def spec(self) -> ModelSpec:
        return ModelSpec(
            model_id="qwen-image",
            name="Qwen Image",
            kind=GenerationKind.IMAGE,
            provider_model="qwen/qwen-image",
            description="Text-to-image with optional image-to-image source",
            restrictions=["Reference images are not supported; use a source image instead"],
        )

    def check_constraints(self, request: GenerationRequest, settings: QwenImageSettings) -> List[str]:
        if settings.strength is not None and not settings.image:
            return ["Qwen Image strength only applies when a source image is provided"]
        return []

    def map_input(self, request: GenerationRequest, settings: QwenImageSettings) -> QwenImageInput:
        return QwenImageInput(prompt=request.prompt, **settings.model_dump())


class QwenImageEdit(GenerationModel):
    settings_cls = QwenImageEditSettings

    def spec(self) -> ModelSpec:
        return ModelSpec(
            model_id="qwen-image-edit",
            name="Qwen Image Edit",
            kind=GenerationKind.IMAGE,
            provider_model="qwen/qwen-image-edit",
            description="Instruction-based editing of a source image",
            restrictions=["A source image is required", "Reference images are not supported"],
        )

    def check_constraints(self, request: GenerationRequest, settings: QwenImageEditSettings) -> List[str]:
        if not settings.image:
            return ["Qwen Image Edit requires a source image"]
        return []

    def map_input(self, request: GenerationRequest, settings: QwenImageEditSettings) -> QwenImageEditInput:
        return QwenImageEditInput(prompt=request.prompt, **settings.model_dump())
