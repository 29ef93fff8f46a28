"""Models API — list the generation model catalog."""

from fastapi import APIRouter
from typing import Optional

from app.generations.models import GenerationKind
from app.models.registry import registry

router = APIRouter()


@router.get("/models")
async def list_models(kind: Optional[GenerationKind] = None):
    """List all registered generation models, optionally by kind."""
    specs = registry.list_models(kind=kind)
    return {
        "models": [
            {
                "model_id": s.model_id,
                "name": s.name,
                "kind": s.kind.value,
                "provider_model": s.provider_model,
                "description": s.description,
                "max_reference_images": s.max_reference_images,
                "supports_last_frame": s.supports_last_frame,
                "default_resolution": s.default_resolution,
                "restrictions": s.restrictions,
            }
            for s in specs
        ],
        "count": len(specs),
    }
