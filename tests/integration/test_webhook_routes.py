import base64
import json
import time
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.routes import webhooks
from app.security.hashing import sign_webhook

SECRET = "whsec_" + base64.b64encode(b"resend-webhook-test-secret").decode()
MSG_ID = "msg_test_1"


@pytest.fixture
def event_service():
    service = AsyncMock()
    service.process.return_value = True
    return service


@pytest.fixture
def client(make_app, event_service, monkeypatch):
    monkeypatch.setattr("app.routes.webhooks.settings.RESEND_WEBHOOK_SECRET", SECRET)
    app = make_app(webhooks.router, authenticated=False)
    app.dependency_overrides[webhooks.get_email_event_service] = lambda: event_service
    return TestClient(app)


def _signed_headers(raw: bytes, timestamp: int | None = None, secret: str = SECRET) -> dict:
    timestamp = int(time.time()) if timestamp is None else timestamp
    return {
        webhooks.ID_HEADER: MSG_ID,
        webhooks.TIMESTAMP_HEADER: str(timestamp),
        webhooks.SIGNATURE_HEADER: sign_webhook(secret, MSG_ID, timestamp, raw),
        "Content-Type": "application/json",
    }


def _post(client, raw: bytes, headers: dict):
    return client.post("/api/webhooks/resend", content=raw, headers=headers)


def test_valid_signature_is_processed(client, event_service):
    raw = json.dumps({"type": "email.delivered", "data": {"email_id": "re-1"}}).encode("utf-8")

    response = _post(client, raw, _signed_headers(raw))

    assert response.status_code == 200
    assert response.json() == {"received": True, "processed": True}
    event_service.process.assert_awaited_once_with("email.delivered", {"email_id": "re-1"})


def test_bad_signature_is_rejected(client, event_service):
    raw = b'{"type": "email.opened"}'
    headers = _signed_headers(raw)
    headers[webhooks.SIGNATURE_HEADER] = "v1,ZGVhZGJlZWY="

    response = _post(client, raw, headers)

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"
    event_service.process.assert_not_awaited()


@pytest.mark.parametrize(
    "header", [webhooks.ID_HEADER, webhooks.TIMESTAMP_HEADER, webhooks.SIGNATURE_HEADER]
)
def test_missing_svix_header_is_rejected(client, event_service, header):
    raw = b'{"type": "email.opened"}'
    headers = _signed_headers(raw)
    del headers[header]

    response = _post(client, raw, headers)

    assert response.status_code == 401
    event_service.process.assert_not_awaited()


def test_stale_signature_is_rejected(client):
    raw = json.dumps({"type": "email.opened", "data": {"email_id": "re-1"}}).encode("utf-8")

    response = _post(client, raw, _signed_headers(raw, timestamp=int(time.time()) - 3600))

    assert response.status_code == 401


def test_missing_secret_rejects_everything(client, monkeypatch):
    monkeypatch.setattr("app.routes.webhooks.settings.RESEND_WEBHOOK_SECRET", None)
    raw = b'{"type": "email.opened"}'

    response = _post(client, raw, _signed_headers(raw))

    assert response.status_code == 401


@pytest.mark.parametrize("raw", [b"[]", b'"email.opened"', b"42", b'{"type": "email.opened", "data": []}'])
def test_signed_non_object_payload_is_bad_request(client, event_service, raw):
    response = _post(client, raw, _signed_headers(raw))

    assert response.status_code == 400
    assert response.json()["code"] == "BAD_REQUEST"
    event_service.process.assert_not_awaited()


def test_signed_invalid_json_is_bad_request(client, event_service):
    raw = b"{not json"

    response = _post(client, raw, _signed_headers(raw))

    assert response.status_code == 400
    event_service.process.assert_not_awaited()


def test_status_endpoint(client):
    response = client.get("/api/webhooks/resend")

    assert response.status_code == 200
    assert response.json()["signature_verification"] is True
