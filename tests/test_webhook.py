# tests/test_webhook.py
"""HTTP-level tests for the webhook routes."""

import hashlib
import hmac
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from dukabot.api.deps import conversation_service, signature_is_valid
from dukabot.core.config import settings
from dukabot.main import app

SECRET = "app-secret"


def _sign(raw: bytes, secret: str = SECRET) -> str:
    return "sha256=" + hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()


@pytest.fixture
def service():
    svc = MagicMock()
    svc.handle_webhook = AsyncMock(return_value=1)
    app.dependency_overrides[conversation_service] = lambda: svc
    yield svc
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_verify_echoes_challenge(client, monkeypatch):
    monkeypatch.setattr(settings, "WHATSAPP_VERIFY_TOKEN", "tok")
    resp = client.get("/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "tok", "hub.challenge": "42"})
    assert resp.status_code == 200
    assert resp.text == "42"


@pytest.mark.parametrize(
    "params",
    [
        {"hub.mode": "subscribe", "hub.verify_token": "wrong", "hub.challenge": "42"},
        {"hub.mode": "unsubscribe", "hub.verify_token": "tok", "hub.challenge": "42"},
        {},
    ],
)
def test_verify_rejects(client, monkeypatch, params):
    monkeypatch.setattr(settings, "WHATSAPP_VERIFY_TOKEN", "tok")
    resp = client.get("/webhook", params=params)
    assert resp.status_code == 403
    assert resp.text == "Forbidden"


def test_verify_rejects_when_token_unset(client, monkeypatch):
    monkeypatch.setattr(settings, "WHATSAPP_VERIFY_TOKEN", "")
    resp = client.get("/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "", "hub.challenge": "1"})
    assert resp.status_code == 403


def test_signed_post_is_dispatched(client, service, monkeypatch):
    monkeypatch.setattr(settings, "WHATSAPP_APP_SECRET", SECRET)
    body = {"entry": [{"changes": [{"value": {"messages": []}}]}]}
    raw = json.dumps(body).encode()
    resp = client.post("/webhook", content=raw, headers={"X-Hub-Signature-256": _sign(raw)})
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    service.handle_webhook.assert_awaited_once_with(body)


@pytest.mark.parametrize("header", [None, "sha256=deadbeef", "garbage"])
def test_bad_signature_is_rejected(client, service, monkeypatch, header):
    monkeypatch.setattr(settings, "WHATSAPP_APP_SECRET", SECRET)
    headers = {"X-Hub-Signature-256": header} if header else {}
    resp = client.post("/webhook", content=b'{"entry": []}', headers=headers)
    assert resp.status_code == 401
    service.handle_webhook.assert_not_awaited()


def test_unsigned_post_accepted_without_secret(client, service, monkeypatch):
    monkeypatch.setattr(settings, "WHATSAPP_APP_SECRET", "")
    resp = client.post("/webhook", content=b'{"entry": []}')
    assert resp.status_code == 200
    service.handle_webhook.assert_awaited_once()


def test_invalid_json_still_acknowledged(client, service, monkeypatch):
    monkeypatch.setattr(settings, "WHATSAPP_APP_SECRET", "")
    resp = client.post("/webhook", content=b"{not json")
    assert resp.status_code == 200
    service.handle_webhook.assert_not_awaited()


def test_processing_errors_still_acknowledged(client, service, monkeypatch):
    monkeypatch.setattr(settings, "WHATSAPP_APP_SECRET", "")
    service.handle_webhook.side_effect = RuntimeError("boom")
    resp = client.post("/webhook", content=b'{"entry": []}')
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_signature_helper():
    raw = b'{"a": 1}'
    assert signature_is_valid(raw, _sign(raw), SECRET)
    assert signature_is_valid(raw, _sign(raw)[len("sha256="):], SECRET)
    assert not signature_is_valid(raw, _sign(raw, "other"), SECRET)
    assert not signature_is_valid(raw, "", SECRET)
