"""Health check endpoint."""

from fastapi import APIRouter
import platform
import sys

from app.config import settings
from app.models.registry import registry

router = APIRouter()


@router.get("/health")
async def health_check():
    """Service health and configuration summary."""
    return {
        "status": "healthy",
        "store_backend": settings.store_backend,
        "models_registered": len(registry),
        "webhook_url": settings.webhook_url,
        "python_version": sys.version,
        "platform": platform.platform(),
    }
