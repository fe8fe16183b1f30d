import json

import pytest

from eddclient.channel import Channel
from eddclient.ws_client import ConnectionState
from eddwire.codec import JsonCodec
from eddwire.envelope import Envelope
from eddwire.errors import NotConnectedError


@pytest.mark.parametrize("message", [
    Envelope("chat", "chat:message", {"text": "hi"}),
    {"channel": "chat", "name": "x", "body": None},
    {},
])
def test_send_while_idle_reports_and_fails(manager, transport, errors, message):
    assert manager.send(message) is False

    assert transport.sent == []
    assert len(errors) == 1
    assert isinstance(errors[0], NotConnectedError)
    assert errors[0].state == "idle"


@pytest.mark.parametrize("raw", ["{}", b"\x00\x01", ""])
def test_send_raw_while_idle_reports_and_fails(manager, transport, errors, raw):
    assert manager.send_raw(raw) is False

    assert transport.sent == []
    assert isinstance(errors[0], NotConnectedError)


@pytest.mark.asyncio
async def test_send_while_connecting_fails(manager, transport, errors):
    manager.start()

    assert manager.send(Envelope("chat", "x")) is False
    assert manager.send_raw("x") is False

    assert manager.state is ConnectionState.CONNECTING
    assert [type(e) for e in errors] == [NotConnectedError, NotConnectedError]


@pytest.mark.asyncio
async def test_send_after_disconnect_fails(manager, transport, errors):
    manager.start()
    transport.fire_open()
    transport.fire_close()

    assert manager.send(Envelope("chat", "x")) is False
    assert errors[0].state == "disconnected"


@pytest.mark.asyncio
async def test_send_encodes_with_default_codec(manager, transport, errors):
    manager.start()
    transport.fire_open()

    assert manager.send(Envelope("chat", "chat:message", {"text": "hi"})) is True

    assert transport.sent == ['{"body":{"text":"hi"},"channel":"chat","name":"chat:message"}']
    assert errors == []


@pytest.mark.asyncio
async def test_send_accepts_mappings(manager, transport):
    manager.start()
    transport.fire_open()

    manager.send({"channel": "chat", "name": "ping", "body": 1})

    assert json.loads(transport.sent[0]) == {"channel": "chat", "name": "ping", "body": 1}


@pytest.mark.asyncio
async def test_send_raw_writes_verbatim(manager, transport):
    manager.start()
    transport.fire_open()

    assert manager.send_raw(b"\x01\x02") is True
    assert manager.send_raw("not even json") is True

    assert transport.sent == [b"\x01\x02", "not even json"]


@pytest.mark.asyncio
async def test_send_uses_configured_codec(manager, transport):
    manager.set_codec(JsonCodec(binary=True))
    manager.start()
    transport.fire_open()

    manager.send(Envelope("chat", "ping"))

    assert transport.sent == [b'{"body":null,"channel":"chat","name":"ping"}']


@pytest.mark.asyncio
async def test_unencodable_body_is_reported(manager, transport, errors):
    manager.start()
    transport.fire_open()

    assert manager.send(Envelope("chat", "x", {"bad": object()})) is False

    assert transport.sent == []
    assert len(errors) == 1


@pytest.mark.asyncio
async def test_send_auth_basic_envelope(manager, transport):
    auth = manager.register(Channel("auth"))
    passed = []
    original_send = manager.send

    def spy(message):
        passed.append(message)
        return original_send(message)

    manager.send = spy
    manager.start()
    transport.fire_open()

    assert auth.send_auth_basic("u", "p") is True

    assert len(passed) == 1
    assert passed[0].to_dict() == {
        "channel": "auth",
        "name": "edd:auth:basic",
        "body": {"username": "u", "password": "p"},
    }
    assert json.loads(transport.sent[0]) == passed[0].to_dict()


def test_send_auth_basic_while_disconnected(manager, errors):
    auth = manager.register(Channel("auth"))

    assert auth.send_auth_basic("u", "p") is False
    assert isinstance(errors[0], NotConnectedError)


def test_channel_send_without_manager():
    assert Channel("orphan").send("ping") is False
