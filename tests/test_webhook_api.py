"""End-to-end tests for the Replicate webhook endpoint."""

import json
import time

from conftest import signed_headers

from app.api import webhooks as webhooks_api
from app.webhooks.secret_cache import SigningSecretCache
from app.webhooks.signature import WebhookVerifier

WEBHOOK = "/api/webhooks/replicate"
IMG_URL = "https://replicate.delivery/out/img.png"


def _submit(api, prompt="a red bicycle"):
    resp = api.post("/api/v1/generations/image", json={
        "model": "nano-banana", "prompt": prompt, "model_settings": {"output_format": "png"},
    })
    assert resp.status_code == 200, resp.text
    return resp.json()


def _deliver(api, event, **header_kwargs):
    body = json.dumps(event).encode("utf-8")
    return api.post(WEBHOOK, content=body, headers=signed_headers(body, **header_kwargs))


def test_submit_then_webhook_completes_generation(api, fake_replicate, object_store):
    submitted = _submit(api)
    assert submitted["status"] == "pending"
    assert fake_replicate.created[0]["webhook"] == "https://palette.test/api/webhooks/replicate"

    resp = _deliver(api, {
        "id": submitted["prediction_id"],
        "status": "succeeded",
        "output": IMG_URL,
        "input": {"prompt": "a red bicycle", "output_format": "png"},
    })
    assert resp.status_code == 200
    assert resp.json() == {"received": True}

    record = api.get(f"/api/v1/generations/{submitted['ledger_id']}").json()
    assert record["status"] == "completed"
    assert record["storage_path"] == f"generations/user-1/{submitted['prediction_id']}.png"
    assert record["public_url"] == (
        "https://storage.test/public/directors-palette/" + record["storage_path"]
    )
    assert record["mime_type"] == "image/png"
    assert record["error"] is None
    assert object_store.get(record["storage_path"])[0] == b"\x89PNG-fake-image"


def test_failed_prediction_is_recorded(api, object_store):
    submitted = _submit(api)
    resp = _deliver(api, {
        "id": submitted["prediction_id"], "status": "failed", "error": "NSFW content detected",
    })
    assert resp.status_code == 200

    record = api.get(f"/api/v1/generations/{submitted['ledger_id']}").json()
    assert record["status"] == "failed"
    assert record["error"] == "NSFW content detected"
    assert record["public_url"] is None
    assert object_store.upload_count == 0


def test_duplicate_delivery_uploads_once(api, object_store, asset_host):
    submitted = _submit(api)
    event = {"id": submitted["prediction_id"], "status": "succeeded", "output": IMG_URL}

    assert _deliver(api, event, webhook_id="msg_1").status_code == 200
    assert _deliver(api, event, webhook_id="msg_1").status_code == 200

    assert object_store.upload_count == 1
    assert asset_host.requests == [IMG_URL]


def test_unknown_prediction_is_acknowledged(api, ledger, object_store):
    resp = _deliver(api, {"id": "never-submitted", "status": "succeeded", "output": IMG_URL})
    assert resp.status_code == 200
    assert len(ledger) == 0
    assert object_store.upload_count == 0


def test_missing_headers_rejected(api):
    resp = api.post(WEBHOOK, content=b'{"id": "p", "status": "succeeded"}')
    assert resp.status_code == 400
    assert resp.json()["error"] == "missing_webhook_headers"


def test_stale_timestamp_rejected(api, ledger):
    submitted = _submit(api)
    resp = _deliver(
        api,
        {"id": submitted["prediction_id"], "status": "failed", "error": "late"},
        timestamp=int(time.time()) - 600,
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "stale_webhook_timestamp"


def test_bad_signature_rejected_without_touching_ledger(api):
    submitted = _submit(api)
    body = json.dumps({"id": submitted["prediction_id"], "status": "failed"}).encode()
    headers = signed_headers(body)
    headers["webhook-signature"] = "v1,bm90LXRoZS1yaWdodC1zaWduYXR1cmU="

    resp = api.post(WEBHOOK, content=body, headers=headers)

    assert resp.status_code == 401
    assert resp.json()["error"] == "invalid_webhook_signature"
    record = api.get(f"/api/v1/generations/{submitted['ledger_id']}").json()
    assert record["status"] == "pending"


def test_tampered_body_rejected(api):
    body = json.dumps({"id": "p", "status": "succeeded"}).encode()
    headers = signed_headers(body)
    resp = api.post(WEBHOOK, content=body.replace(b"succeeded", b"failed"), headers=headers)
    assert resp.status_code == 401


def test_secret_fetched_from_provider_once(api, provider, fake_replicate):
    webhooks_api.set_verifier(WebhookVerifier(SigningSecretCache(provider.fetch_webhook_secret)))

    for n in range(2):
        resp = _deliver(api, {"id": f"ghost-{n}", "status": "processing"}, webhook_id=f"msg_{n}")
        assert resp.status_code == 200

    assert fake_replicate.secret_requests == 1


def test_secret_unavailable_is_server_error(api, provider, fake_replicate):
    fake_replicate.secret_fails = True
    webhooks_api.set_verifier(WebhookVerifier(SigningSecretCache(provider.fetch_webhook_secret)))

    resp = _deliver(api, {"id": "p", "status": "succeeded", "output": IMG_URL})

    assert resp.status_code == 500
    assert resp.json()["error"] == "signing_secret_unavailable"


def test_unreadable_body_after_verification(api):
    body = b"not json at all"
    resp = api.post(WEBHOOK, content=body, headers=signed_headers(body))
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to process webhook"}


def test_reconcile_error_still_acknowledged(api):
    class ExplodingReconciler:
        async def reconcile(self, event):
            raise RuntimeError("ledger offline")

    webhooks_api.set_reconciler(ExplodingReconciler())
    resp = _deliver(api, {"id": "p", "status": "succeeded", "output": IMG_URL})
    assert resp.status_code == 200
    assert resp.json() == {"received": True}
