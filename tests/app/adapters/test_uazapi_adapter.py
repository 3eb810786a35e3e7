"""Tests for UazapiAdapter envelope derivation, auth and content extraction."""

import pytest

from app.adapters.uazapi import (
    UazapiAdapter,
    extract_message_content,
    is_relayable_jid,
)
from app.exceptions import MalformedPayloadError
from app.schemas.uazapi import GatewayEnvelope


@pytest.fixture
def adapter():
    return UazapiAdapter(global_secret="global-secret")


def test_parse_event_type_fallbacks(adapter):
    assert adapter.parse_webhook({"event": "messages.upsert"}).event_type == "messages.upsert"
    assert adapter.parse_webhook({"event": "", "type": "qrcode"}).event_type == "qrcode"
    assert adapter.parse_webhook({"action": "connection"}).event_type == "connection"
    assert adapter.parse_webhook({"foo": 1}).event_type == ""


def test_parse_event_data_fallbacks(adapter):
    assert adapter.parse_webhook({"data": {"a": 1}}).event_data == {"a": 1}
    assert adapter.parse_webhook({"data": {}, "payload": {"b": 2}}).event_data == {"b": 2}
    body = {"event": "connection", "state": "open"}
    assert adapter.parse_webhook(body).event_data == body


def test_parse_rejects_non_object(adapter):
    with pytest.raises(MalformedPayloadError):
        adapter.parse_webhook(["not", "an", "object"])


def test_extract_token_order(adapter):
    assert adapter.extract_token({"X-Uazapi-Token": "h"}, {"token": "q"}) == "h"
    assert adapter.extract_token({"Authorization": "Bearer b"}, {"token": "q"}) == "b"
    assert adapter.extract_token({}, {"token": "q"}) == "q"
    assert adapter.extract_token({}, {}) is None


def test_is_authorized(adapter, setup_instance):
    assert adapter.is_authorized(setup_instance, setup_instance.uazapi_token)
    assert adapter.is_authorized(setup_instance, "global-secret")
    assert not adapter.is_authorized(setup_instance, "wrong")
    assert not adapter.is_authorized(setup_instance, None)
    assert not UazapiAdapter().is_authorized(setup_instance, "global-secret")


def test_event_classification():
    assert UazapiAdapter.is_connection_event(GatewayEnvelope(event_type="connection.update"))
    assert UazapiAdapter.is_connection_event(
        GatewayEnvelope(event_type="", event_data={"state": "open"})
    )
    assert UazapiAdapter.is_qr_event(GatewayEnvelope(event_type="qrcode.updated"))
    assert UazapiAdapter.is_message_event(GatewayEnvelope(event_type="messages"))
    assert not UazapiAdapter.is_message_event(GatewayEnvelope(event_type="presence"))


def _raw_message(text="Oi", jid="5511999998888@s.whatsapp.net", from_me=False):
    return {
        "key": {"remoteJid": jid, "fromMe": from_me, "id": "ABC"},
        "message": {"conversation": text},
        "pushName": "Maria",
    }


def test_extract_messages_from_list():
    envelope = GatewayEnvelope(
        event_type="messages.upsert",
        event_data={"messages": [_raw_message("a"), _raw_message("b"), "junk"]},
    )
    messages = UazapiAdapter.extract_messages(envelope)
    assert [m.message["conversation"] for m in messages] == ["a", "b"]
    assert messages[0].key.remote_jid == "5511999998888@s.whatsapp.net"
    assert messages[0].push_name == "Maria"


def test_extract_messages_nested_message_with_key():
    envelope = GatewayEnvelope(
        event_type="message", event_data={"message": _raw_message("nested")}
    )
    messages = UazapiAdapter.extract_messages(envelope)
    assert len(messages) == 1
    assert messages[0].message["conversation"] == "nested"


def test_extract_messages_single_message():
    envelope = GatewayEnvelope(event_type="message", event_data=_raw_message("solo"))
    messages = UazapiAdapter.extract_messages(envelope)
    assert len(messages) == 1
    assert messages[0].message["conversation"] == "solo"


@pytest.mark.parametrize(
    "message,expected",
    [
        ({"conversation": "Oi"}, ("Oi", "text")),
        ({"extendedTextMessage": {"text": "Link"}}, ("Link", "text")),
        ({"imageMessage": {"caption": "Foto"}}, ("Foto", "image")),
        ({"imageMessage": {}}, ("[Imagem]", "image")),
        ({"videoMessage": {}}, ("[Video]", "video")),
        ({"audioMessage": {}}, ("[Audio]", "audio")),
        ({"documentMessage": {"fileName": "a.pdf"}}, ("[Documento: a.pdf]", "file")),
        ({"documentMessage": {}}, ("[Documento: arquivo]", "file")),
        ({"stickerMessage": {}}, ("[Sticker]", "sticker")),
        ({"reactionMessage": {}}, ("[Mensagem]", "unknown")),
    ],
)
def test_extract_message_content(message, expected):
    content = extract_message_content(message)
    assert (content.content, content.type) == expected


def test_extract_message_content_empty():
    assert extract_message_content(None).content == ""


def test_is_relayable_jid():
    assert is_relayable_jid("5511999998888@s.whatsapp.net")
    assert not is_relayable_jid("status@broadcast")
    assert not is_relayable_jid("120363025@g.us")
    assert not is_relayable_jid(None)
