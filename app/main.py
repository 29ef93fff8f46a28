"""Director's Palette generation backend - FastAPI application."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import Settings, settings
from app.api.v1.router import v1_router, webhook_router
from app.api.v1.health import router as health_root_router
from app.api.v1 import generations as generations_api
from app.api.v1 import uploads as uploads_api
from app.api import webhooks as webhooks_api
from app.db.supabase_client import get_supabase, reset_supabase
from app.db.supabase_ledger import SupabaseLedgerStore
from app.errors import register_error_handlers
from app.generations.in_memory_ledger import InMemoryLedgerStore
from app.generations.materializer import AssetMaterializer
from app.generations.poller import PredictionPoller
from app.generations.reconciler import LedgerReconciler
from app.generations.submitter import JobSubmitter
from app.models.registry import registry
from app.provider.replicate_client import ReplicateClient
from app.storage.object_store import InMemoryObjectStore
from app.storage.supabase_storage import SupabaseObjectStore
from app.webhooks.secret_cache import SigningSecretCache
from app.webhooks.signature import WebhookVerifier

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_stores(cfg: Settings):
    """Ledger and object store for the configured backend."""
    if cfg.store_backend == "memory":
        return InMemoryLedgerStore(), InMemoryObjectStore()
    if cfg.store_backend != "supabase":
        raise ValueError(f"Unknown STORE_BACKEND '{cfg.store_backend}'")
    client = get_supabase()
    return (
        SupabaseLedgerStore(client, table=cfg.ledger_table),
        SupabaseObjectStore(client, bucket=cfg.storage_bucket),
    )


def wire_pipeline(
    cfg: Settings,
    ledger,
    object_store,
    provider: ReplicateClient,
    download_client: httpx.AsyncClient,
    secret_cache: SigningSecretCache,
) -> None:
    """Build the prediction pipeline and hand it to the routers."""
    materializer = AssetMaterializer(object_store, download_client)
    reconciler = LedgerReconciler(
        ledger, materializer, claim_ttl_seconds=cfg.materialization_claim_ttl_seconds
    )
    submitter = JobSubmitter(
        registry,
        provider,
        ledger,
        webhook_url=cfg.webhook_url,
        webhook_events_filter=cfg.webhook_events_filter,
    )
    verifier = WebhookVerifier(
        secret_cache, tolerance_seconds=cfg.webhook_timestamp_tolerance_seconds
    )

    generations_api.set_submitter(submitter)
    generations_api.set_poller(PredictionPoller(provider, reconciler))
    generations_api.set_ledger(ledger)
    generations_api.set_object_store(object_store)
    uploads_api.set_provider(provider)
    webhooks_api.set_verifier(verifier)
    webhooks_api.set_reconciler(reconciler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic."""
    logger.info("Starting generation backend on port %s", settings.port)
    logger.info("Store backend: %s", settings.store_backend)
    logger.info("Webhook callback: %s", settings.webhook_url)

    registry.discover()
    logger.info("Found %d generation model(s)", len(registry))

    ledger, object_store = build_stores(settings)
    provider = ReplicateClient(
        settings.replicate_api_token,
        base_url=settings.replicate_api_base,
        timeout=settings.http_timeout_seconds,
    )
    download_client = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    secret_cache = SigningSecretCache(
        provider.fetch_webhook_secret, prefix=settings.webhook_secret_prefix
    )
    wire_pipeline(settings, ledger, object_store, provider, download_client, secret_cache)

    yield

    logger.info("Shutting down generation backend")
    await download_client.aclose()
    await provider.aclose()
    reset_supabase()


app = FastAPI(
    title="Director's Palette Generation Service",
    description="Asynchronous image/video prediction lifecycle and webhook reconciliation",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Mount routers
app.include_router(health_root_router, tags=["health"])  # GET /health at root
app.include_router(v1_router)  # All /api/v1/* endpoints
app.include_router(webhook_router)  # POST /api/webhooks/replicate
