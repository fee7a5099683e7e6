"""Tests for the Meta WhatsApp webhook endpoint."""

import hashlib
import hmac
import json

import pytest
from fastapi.testclient import TestClient

from civicline.api.factory import create_app
from civicline.services import engine

from helpers import PHONE

_TEST_APP_SECRET = "test-meta-secret"
_VERIFY_TOKEN = "test-verify-token"


def _payload(*messages):
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "WABA_ID",
                "changes": [
                    {
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"display_phone_number": "15550000000", "phone_number_id": "123456789"},
                            "messages": list(messages),
                        },
                        "field": "messages",
                    }
                ],
            }
        ],
    }


def _text(body, message_id):
    return {"from": PHONE, "id": message_id, "timestamp": "1700000000", "type": "text", "text": {"body": body}}


def _button(selected_id, message_id):
    return {
        "from": PHONE,
        "id": message_id,
        "timestamp": "1700000000",
        "type": "interactive",
        "interactive": {"type": "button_reply", "button_reply": {"id": selected_id, "title": selected_id}},
    }


def _signed_post(client, payload, secret=_TEST_APP_SECRET):
    payload_bytes = json.dumps(payload).encode()
    sig = hmac.new(secret.encode(), payload_bytes, hashlib.sha256).hexdigest()
    return client.post(
        "/webhooks/whatsapp/meta",
        content=payload_bytes,
        headers={"Content-Type": "application/json", "X-Hub-Signature-256": f"sha256={sig}"},
    )


@pytest.fixture
def client(dispatcher):
    engine.set_dispatcher(dispatcher)
    return TestClient(create_app(role="public"))


@pytest.fixture
def signed(monkeypatch):
    monkeypatch.setenv("META_APP_SECRET", _TEST_APP_SECRET)


class TestVerification:
    def test_handshake_echoes_challenge(self, client, monkeypatch):
        monkeypatch.setenv("META_VERIFY_TOKEN", _VERIFY_TOKEN)
        response = client.get(
            "/webhooks/whatsapp/meta",
            params={"hub.mode": "subscribe", "hub.verify_token": _VERIFY_TOKEN, "hub.challenge": "12345"},
        )
        assert response.status_code == 200
        assert response.text == "12345"

    def test_wrong_token(self, client, monkeypatch):
        monkeypatch.setenv("META_VERIFY_TOKEN", _VERIFY_TOKEN)
        response = client.get(
            "/webhooks/whatsapp/meta",
            params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "12345"},
        )
        assert response.status_code == 403

    def test_no_token_configured(self, client, monkeypatch):
        monkeypatch.delenv("META_VERIFY_TOKEN", raising=False)
        response = client.get(
            "/webhooks/whatsapp/meta",
            params={"hub.mode": "subscribe", "hub.verify_token": "", "hub.challenge": "12345"},
        )
        assert response.status_code == 403


class TestInbound:
    def test_signed_message_is_dispatched(self, client, signed, messenger):
        response = _signed_post(client, _payload(_text("Hi", "wamid.W1")))
        assert response.status_code == 200
        assert response.text == "ok"
        assert messenger.last()["type"] == "buttons"
        assert messenger.last()["to"] == PHONE

    def test_bad_signature_is_acknowledged_but_ignored(self, client, signed, messenger):
        response = _signed_post(client, _payload(_text("Hi", "wamid.W2")), secret="wrong")
        assert response.status_code == 200
        assert messenger.sent == []

    def test_missing_signature_is_ignored(self, client, signed, messenger):
        response = client.post("/webhooks/whatsapp/meta", json=_payload(_text("Hi", "wamid.W3")))
        assert response.status_code == 200
        assert messenger.sent == []

    def test_unsigned_when_no_secret_configured(self, client, monkeypatch, messenger):
        monkeypatch.delenv("META_APP_SECRET", raising=False)
        response = client.post("/webhooks/whatsapp/meta", json=_payload(_text("Hi", "wamid.W4")))
        assert response.status_code == 200
        assert len(messenger.sent) == 1

    def test_invalid_json(self, client, monkeypatch, messenger):
        monkeypatch.delenv("META_APP_SECRET", raising=False)
        response = client.post(
            "/webhooks/whatsapp/meta", content=b"not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 200
        assert messenger.sent == []

    def test_non_whatsapp_payload(self, client, monkeypatch, messenger):
        monkeypatch.delenv("META_APP_SECRET", raising=False)
        response = client.post("/webhooks/whatsapp/meta", json={"object": "page", "entry": []})
        assert response.status_code == 200
        assert messenger.sent == []

    def test_redelivery_is_processed_once(self, client, signed, messenger):
        payload = _payload(_text("Hi", "wamid.DUP"))
        _signed_post(client, payload)
        _signed_post(client, payload)
        assert len(messenger.sent) == 1

    def test_batched_messages_apply_in_order(self, client, signed, session_store):
        _signed_post(client, _payload(_text("Hi", "wamid.B1"), _button("lang_hi", "wamid.B2")))
        session = session_store.get(f"zp-test:{PHONE}")
        assert session.language == "hi"
        assert session.flow.value == "MAIN_MENU"
