# tests/test_whatsapp_delivery.py
"""Tests for the Cloud API gateway, the arq send job and the message log."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from dukabot.infrastructure.cache.realtime import INBOX_CHANNEL, InboxNotifier
from dukabot.infrastructure.db import message_log as message_log_module
from dukabot.infrastructure.db.message_log import PostgresMessageLog
from dukabot.infrastructure.db.models import WhatsAppDeadLetter
from dukabot.infrastructure.external.whatsapp_api import WhatsAppCloudGateway
from dukabot.infrastructure.queue.whatsapp_jobs import MAX_WHATSAPP_RETRIES, send_whatsapp_job
from dukabot.infrastructure.queue.whatsapp_queue import SEND_JOB_NAME, QueuedWhatsAppGateway

PAYLOAD = {"messaging_product": "whatsapp", "to": "255700000001", "type": "text", "text": {"body": "hi"}}


def _response(status_code: int) -> httpx.Response:
    request = httpx.Request("POST", "https://graph.example/123/messages")
    return httpx.Response(status_code, json={"ok": status_code < 400}, request=request)


def _session_factory(db):
    def factory():
        cm = MagicMock()
        cm.__aenter__ = AsyncMock(return_value=db)
        cm.__aexit__ = AsyncMock(return_value=False)
        return cm

    return factory


# ── Cloud API gateway ────────────────────────────────────


def test_gateway_builds_url_and_headers():
    gw = WhatsAppCloudGateway(api_base="https://graph.example/v20.0/", phone_number_id="123", access_token="tok")
    assert gw.messages_url == "https://graph.example/v20.0/123/messages"
    assert gw._headers()["Authorization"] == "Bearer tok"


def test_gateway_send_posts_payload(event_loop):
    gw = WhatsAppCloudGateway(api_base="https://graph.example", phone_number_id="123", access_token="tok")
    gw._post = AsyncMock(return_value=_response(200))
    event_loop.run_until_complete(gw.send_message(PAYLOAD))
    gw._post.assert_awaited_once_with(PAYLOAD)


def test_gateway_send_raises_on_error_status(event_loop):
    gw = WhatsAppCloudGateway(api_base="https://graph.example", phone_number_id="123", access_token="tok")
    gw._post = AsyncMock(return_value=_response(500))
    with pytest.raises(httpx.HTTPStatusError):
        event_loop.run_until_complete(gw.send_message(PAYLOAD))


def test_gateway_mark_as_read(event_loop):
    gw = WhatsAppCloudGateway(api_base="https://graph.example", phone_number_id="123", access_token="tok")
    gw._post = AsyncMock(return_value=_response(200))
    event_loop.run_until_complete(gw.mark_as_read("wamid.9"))
    sent = gw._post.await_args.args[0]
    assert sent == {"messaging_product": "whatsapp", "status": "read", "message_id": "wamid.9"}


def test_gateway_without_credentials_refuses(event_loop, monkeypatch):
    from dukabot.core.config import settings

    monkeypatch.setattr(settings, "WHATSAPP_ACCESS_TOKEN", "")
    monkeypatch.setattr(settings, "WHATSAPP_PHONE_NUMBER_ID", "")
    gw = WhatsAppCloudGateway(api_base="https://graph.example")
    with pytest.raises(RuntimeError):
        event_loop.run_until_complete(gw.send_message(PAYLOAD))


def test_queued_gateway_enqueues_and_reads_directly(event_loop, monkeypatch):
    from dukabot.infrastructure.queue import whatsapp_queue

    enqueue = AsyncMock()
    monkeypatch.setattr(whatsapp_queue, "enqueue_whatsapp_message", enqueue)
    direct = MagicMock()
    direct.mark_as_read = AsyncMock()
    gw = QueuedWhatsAppGateway(direct)

    event_loop.run_until_complete(gw.send_message(PAYLOAD))
    event_loop.run_until_complete(gw.mark_as_read("wamid.1"))
    enqueue.assert_awaited_once_with(PAYLOAD)
    direct.mark_as_read.assert_awaited_once_with("wamid.1")


# ── arq send job ─────────────────────────────────────────


def test_job_success(event_loop):
    gateway = MagicMock()
    gateway.send_message = AsyncMock()
    redis = MagicMock()
    redis.enqueue_job = AsyncMock()
    event_loop.run_until_complete(send_whatsapp_job({"gateway": gateway, "redis": redis}, PAYLOAD))
    gateway.send_message.assert_awaited_once_with(PAYLOAD)
    redis.enqueue_job.assert_not_awaited()


def test_job_failure_is_retried(event_loop):
    gateway = MagicMock()
    gateway.send_message = AsyncMock(side_effect=RuntimeError("graph api 500"))
    redis = MagicMock()
    redis.enqueue_job = AsyncMock()
    event_loop.run_until_complete(send_whatsapp_job({"gateway": gateway, "redis": redis}, PAYLOAD, 1))
    redis.enqueue_job.assert_awaited_once_with(SEND_JOB_NAME, PAYLOAD, 2)


def test_job_dead_letters_after_last_attempt(event_loop):
    gateway = MagicMock()
    gateway.send_message = AsyncMock(side_effect=RuntimeError("graph api 500"))
    redis = MagicMock()
    redis.enqueue_job = AsyncMock()
    db = MagicMock()
    db.commit = AsyncMock()
    ctx = {"gateway": gateway, "redis": redis, "session_factory": _session_factory(db)}

    event_loop.run_until_complete(send_whatsapp_job(ctx, PAYLOAD, MAX_WHATSAPP_RETRIES))

    redis.enqueue_job.assert_not_awaited()
    [dead] = db.add.call_args.args
    assert isinstance(dead, WhatsAppDeadLetter)
    assert dead.to_number == "255700000001"
    assert dead.retry_count == MAX_WHATSAPP_RETRIES
    assert dead.last_error == "graph api 500"
    db.commit.assert_awaited_once()


# ── Inbox notifier & message log ─────────────────────────


def test_notifier_publishes_json(event_loop):
    client = MagicMock()
    client.publish = AsyncMock(return_value=1)
    event_loop.run_until_complete(InboxNotifier(client).conversation_updated(5, unread=True))
    channel, raw = client.publish.await_args.args
    assert channel == INBOX_CHANNEL
    message = json.loads(raw)
    assert message["event"] == "conversation.updated"
    assert message["data"] == {"id": 5, "unread": True}


def _fake_repositories(monkeypatch, inserted_id):
    customers = MagicMock()
    customers.get_or_create = AsyncMock(return_value=SimpleNamespace(id=1))
    conversations = MagicMock()
    conversations.get_or_create = AsyncMock(return_value=SimpleNamespace(id=10))
    conversations.touch_inbound = AsyncMock()
    messages = MagicMock()
    messages.insert_if_new = AsyncMock(return_value=inserted_id)
    monkeypatch.setattr(message_log_module, "CustomerRepository", lambda db: customers)
    monkeypatch.setattr(message_log_module, "ConversationRepository", lambda db: conversations)
    monkeypatch.setattr(message_log_module, "MessageRepository", lambda db: messages)
    return customers, conversations, messages


def test_message_log_stores_then_notifies(event_loop, monkeypatch):
    _, conversations, messages = _fake_repositories(monkeypatch, inserted_id=99)
    db = MagicMock()
    db.commit = AsyncMock()
    notifier = MagicMock()
    notifier.message_created = AsyncMock()
    notifier.conversation_updated = AsyncMock()
    log = PostgresMessageLog(session_factory=_session_factory(db), notifier=notifier)

    result = event_loop.run_until_complete(
        log.record("255700000001", direction="inbound", type="text", body="hi", wa_message_id="wamid.1", profile_name="Asha")
    )

    assert result == 99
    conversations.touch_inbound.assert_awaited_once()
    assert messages.insert_if_new.await_args.kwargs["status"] == "received"
    db.commit.assert_awaited_once()
    conversation_id, message = notifier.message_created.await_args.args
    assert conversation_id == 10
    assert message["id"] == 99 and message["body"] == "hi"
    notifier.conversation_updated.assert_awaited_once()


def test_message_log_skips_notify_for_duplicates(event_loop, monkeypatch):
    _, conversations, _ = _fake_repositories(monkeypatch, inserted_id=None)
    db = MagicMock()
    db.commit = AsyncMock()
    notifier = MagicMock()
    notifier.message_created = AsyncMock()
    log = PostgresMessageLog(session_factory=_session_factory(db), notifier=notifier)

    result = event_loop.run_until_complete(log.record("255700000001", direction="outbound", type="text", body="hi"))
    assert result is None
    conversations.touch_inbound.assert_not_awaited()
    notifier.message_created.assert_not_awaited()
