# tests/test_inbound_parser.py
"""Tests for turning webhook envelopes into parsed messages."""

from dukabot.domain.models.events import EventKind, InteractiveReply, LocationPin, TextMessage
from dukabot.domain.services.inbound_parser import parse_webhook

WA_ID = "255700000001"


def _envelope(*messages, contacts=None):
    value = {"messaging_product": "whatsapp", "messages": list(messages)}
    if contacts is not None:
        value["contacts"] = contacts
    return {"object": "whatsapp_business_account", "entry": [{"id": "1", "changes": [{"value": value, "field": "messages"}]}]}


def _msg(msg_type, body, msg_id="wamid.1", sender=WA_ID):
    return {"from": sender, "id": msg_id, "timestamp": "1700000000", "type": msg_type, msg_type: body}


def test_text_message():
    body = _envelope(
        _msg("text", {"body": "Habari"}),
        contacts=[{"wa_id": WA_ID, "profile": {"name": "Asha"}}],
    )
    [parsed] = list(parse_webhook(body))
    assert parsed.customer_id == WA_ID
    assert parsed.message_id == "wamid.1"
    assert parsed.message_type == "text"
    assert parsed.log_body == "Habari"
    assert parsed.profile_name == "Asha"
    assert parsed.event.payload == TextMessage("Habari")
    assert parsed.event.kind is EventKind.TEXT


def test_button_and_list_replies():
    body = _envelope(
        _msg("interactive", {"type": "button_reply", "button_reply": {"id": "AREA_INSIDE", "title": "Dar"}}, "wamid.a"),
        _msg("interactive", {"type": "list_reply", "list_reply": {"id": "STREET_3", "title": "4. Bora"}}, "wamid.b"),
    )
    first, second = parse_webhook(body)
    assert first.event.payload == InteractiveReply("AREA_INSIDE", "Dar")
    assert second.event.payload == InteractiveReply("STREET_3", "4. Bora")
    assert second.log_body == "4. Bora"


def test_template_quick_reply_uses_payload():
    body = _envelope(_msg("button", {"payload": "ACTION_CHECKOUT", "text": "Lipa"}))
    [parsed] = parse_webhook(body)
    assert parsed.event.payload == InteractiveReply("ACTION_CHECKOUT", "Lipa")


def test_location_pin():
    body = _envelope(_msg("location", {"latitude": "-6.8357", "longitude": 39.2724, "name": "Keko"}))
    [parsed] = parse_webhook(body)
    assert parsed.event.payload == LocationPin(-6.8357, 39.2724)
    assert parsed.log_body == "LOCATION -6.8357,39.2724"


def test_media_is_logged_but_not_dispatched():
    body = _envelope(_msg("image", {"id": "MEDIA123", "mime_type": "image/jpeg"}))
    [parsed] = parse_webhook(body)
    assert parsed.event is None
    assert parsed.log_body == "MEDIA:image:MEDIA123"


def test_unknown_type_has_placeholder_body():
    [parsed] = parse_webhook(_envelope(_msg("reaction", {"emoji": "👍"})))
    assert parsed.event is None
    assert parsed.log_body == "[reaction]"


def test_interactive_without_id_is_not_dispatched():
    [parsed] = parse_webhook(_envelope(_msg("interactive", {"type": "button_reply", "button_reply": {"title": "x"}})))
    assert parsed.event is None


def test_message_without_sender_is_skipped():
    assert list(parse_webhook(_envelope(_msg("text", {"body": "x"}, sender="")))) == []


def test_status_updates_yield_nothing():
    body = {"entry": [{"changes": [{"value": {"statuses": [{"id": "wamid.1", "status": "delivered"}]}}]}]}
    assert list(parse_webhook(body)) == []


def test_malformed_entry_does_not_block_the_rest():
    good = _envelope(_msg("text", {"body": "ok"}))["entry"][0]
    body = {"entry": ["not-a-dict", {"changes": "nope"}, good]}
    parsed = list(parse_webhook(body))
    assert [p.log_body for p in parsed] == ["ok"]


def test_non_object_body():
    assert list(parse_webhook(["entry"])) == []
    assert list(parse_webhook(None)) == []
