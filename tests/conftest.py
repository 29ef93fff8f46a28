"""Shared fixtures: in-memory stores and a fake Replicate / asset host over httpx.MockTransport."""

import base64
import json
import time

import httpx
import pytest

from app.generations.in_memory_ledger import InMemoryLedgerStore
from app.generations.materializer import AssetMaterializer
from app.generations.reconciler import LedgerReconciler
from app.models.registry import registry
from app.provider.replicate_client import ReplicateClient
from app.storage.object_store import InMemoryObjectStore
from app.webhooks.signature import compute_signature

SIGNING_SECRET = base64.b64encode(b"directors-palette-test-signing-key").decode("ascii")
PROVIDER_BASE = "https://api.replicate.test/v1"


class FakeReplicate:
    """Enough of the Replicate HTTP API for submission, polling and secret fetch."""

    def __init__(self):
        self.created = []
        self.predictions = {}
        self.missing_models = set()
        self.unavailable = False
        self.secret_fails = False
        self.secret_requests = 0
        self.uploads = []
        self.upload_status = None
        self._counter = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/v1/webhooks/default/secret":
            self.secret_requests += 1
            if self.secret_fails:
                return httpx.Response(500, json={"detail": "boom"})
            return httpx.Response(200, json={"key": "whsec_" + SIGNING_SECRET})

        if self.unavailable:
            return httpx.Response(503, text="Service Unavailable")

        if request.method == "POST" and path == "/v1/files":
            if self.upload_status is not None:
                return httpx.Response(self.upload_status, json={"detail": "upload rejected"})
            self.uploads.append(request.content)
            file_id = f"file-{len(self.uploads)}"
            return httpx.Response(201, json={
                "id": file_id,
                "urls": {"get": f"https://api.replicate.test/v1/files/{file_id}"},
            })

        if request.method == "POST" and path.startswith("/v1/models/"):
            model_ref = path[len("/v1/models/"):-len("/predictions")]
            if model_ref in self.missing_models:
                return httpx.Response(404, json={"detail": "Model not found"})
            payload = json.loads(request.content)
            self._counter += 1
            prediction = {
                "id": f"pred-{self._counter}",
                "status": "starting",
                "input": payload["input"],
                "output": None,
                "error": None,
            }
            self.created.append({"model": model_ref, **payload})
            self.predictions[prediction["id"]] = prediction
            return httpx.Response(201, json=prediction)

        if request.method == "GET" and path.startswith("/v1/predictions/"):
            prediction = self.predictions.get(path.rsplit("/", 1)[1])
            if prediction is None:
                return httpx.Response(404, json={"detail": "Not found"})
            return httpx.Response(200, json=prediction)

        return httpx.Response(400, json={"detail": f"unexpected {request.method} {path}"})


class FakeAssetHost:
    """Serves provider output files and records every download."""

    def __init__(self):
        self.assets = {}
        self.requests = []

    def add(self, url: str, content: bytes, content_type: str, status: int = 200):
        self.assets[url] = (status, content, content_type)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        status, content, content_type = self.assets.get(url, (404, b"", "text/plain"))
        return httpx.Response(status, content=content, headers={"content-type": content_type})


def signed_headers(body: bytes, webhook_id: str = "msg_test", timestamp=None, secret=SIGNING_SECRET):
    ts = str(int(time.time())) if timestamp is None else str(timestamp)
    signature = compute_signature(webhook_id, ts, body, secret)
    return {
        "webhook-id": webhook_id,
        "webhook-timestamp": ts,
        "webhook-signature": f"v1,{signature}",
    }


@pytest.fixture(scope="session", autouse=True)
def discovered_models():
    registry.discover()
    return registry


@pytest.fixture
def fake_replicate():
    return FakeReplicate()


@pytest.fixture
def provider(fake_replicate):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_replicate.handler))
    return ReplicateClient("test-token", base_url=PROVIDER_BASE, http_client=client)


@pytest.fixture
def asset_host():
    host = FakeAssetHost()
    host.add("https://replicate.delivery/out/img.png", b"\x89PNG-fake-image", "image/png")
    host.add("https://replicate.delivery/out/clip.mp4?token=abc", b"fake-mp4", "video/mp4")
    return host


@pytest.fixture
def download_client(asset_host):
    return httpx.AsyncClient(transport=httpx.MockTransport(asset_host.handler))


@pytest.fixture
def ledger():
    return InMemoryLedgerStore()


@pytest.fixture
def object_store():
    return InMemoryObjectStore(base_url="https://storage.test/public/directors-palette")


@pytest.fixture
def materializer(object_store, download_client):
    return AssetMaterializer(object_store, download_client)


@pytest.fixture
def reconciler(ledger, materializer):
    return LedgerReconciler(ledger, materializer, claim_ttl_seconds=900)


@pytest.fixture
def api(provider, ledger, object_store, download_client):
    """TestClient over the real app with in-memory stores and a seeded signing secret.

    The caller is ``user-1`` unless an ``X-Test-User`` header says otherwise.
    """
    from fastapi import Header
    from fastapi.testclient import TestClient

    from app.auth.supabase_auth import current_owner_id
    from app.config import Settings
    from app.main import app, wire_pipeline
    from app.webhooks.secret_cache import SigningSecretCache

    async def fake_owner(x_test_user: str = Header("user-1")) -> str:
        return x_test_user

    cfg = Settings(public_base_url="https://palette.test", store_backend="memory")
    secret_cache = SigningSecretCache(provider.fetch_webhook_secret)
    secret_cache.seed("whsec_" + SIGNING_SECRET)
    wire_pipeline(cfg, ledger, object_store, provider, download_client, secret_cache)
    app.dependency_overrides[current_owner_id] = fake_owner
    # Lifespan is not entered, so the wiring above is kept.
    yield TestClient(app)
    app.dependency_overrides.clear()
