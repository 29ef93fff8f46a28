"""Aggregate all API routers."""

from fastapi import APIRouter
from app.api.v1.health import router as health_router
from app.api.v1.models_api import router as models_router
from app.api.v1.generations import router as generations_router
from app.api.v1.uploads import router as uploads_router
from app.api.webhooks import router as webhooks_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(health_router, tags=["health"])
v1_router.include_router(models_router, tags=["models"])
v1_router.include_router(generations_router, tags=["generations"])
v1_router.include_router(uploads_router, tags=["uploads"])

# Provider callbacks live outside the versioned API: the path is registered
# with every prediction and must stay stable.
webhook_router = APIRouter(prefix="/api")
webhook_router.include_router(webhooks_router, tags=["webhooks"])
