import pytest

from eddwire.codec import JsonCodec
from eddwire.envelope import Envelope, create_envelope
from eddwire.errors import CodecError, EnvelopeError
from eddwire.utils import is_valid_alias, is_ws_url
from eddwire.vocabulary import (
    INBOUND_NAMES,
    CloseCode,
    MessageName,
    describe_close_code,
)


def test_envelope_from_dict_defaults_body():
    env = Envelope.from_dict({"channel": "chat", "name": "edd:user:join"})

    assert env == Envelope("chat", "edd:user:join", None)
    assert env.to_dict() == {"channel": "chat", "name": "edd:user:join", "body": None}


def test_envelope_rejects_empty_channel():
    with pytest.raises(EnvelopeError):
        Envelope.from_dict({"channel": "", "name": "x"})


def test_errors_envelope():
    assert create_envelope("errors", "error", "boom").is_error() is True
    assert create_envelope("chat", "error").is_error() is False


def test_errors_envelope_does_not_need_a_name():
    env = Envelope.from_dict({"channel": "errors", "body": "X"})

    assert env.is_error() is True
    assert env.body == "X"
    assert env.name == ""


def test_routed_envelope_still_needs_a_name():
    with pytest.raises(EnvelopeError, match="name"):
        Envelope.from_dict({"channel": "chat", "body": "X"})


def test_default_codec_round_trip():
    codec = JsonCodec()
    envelope = {
        "channel": "chat",
        "name": "edd:auth:challenge",
        "body": {"methods": ["basic", "token"], "nested": {"n": 1.5, "ok": True, "none": None}},
    }

    assert codec.decode(codec.encode(envelope)) == envelope


def test_default_codec_is_compact_and_sorted():
    assert JsonCodec().encode({"name": "n", "channel": "c", "body": {"b": 1, "a": 2}}) == \
        '{"body":{"a":2,"b":1},"channel":"c","name":"n"}'


def test_binary_codec_emits_bytes():
    codec = JsonCodec(binary=True)
    wire = codec.encode({"channel": "c", "name": "é"})

    assert isinstance(wire, bytes)
    assert codec.decode(wire) == {"channel": "c", "name": "é"}
    assert codec.decode(memoryview(wire)) == {"channel": "c", "name": "é"}


@pytest.mark.parametrize("wire", ["{", b"\xff\xfe", ""])
def test_codec_decode_errors(wire):
    with pytest.raises(CodecError):
        JsonCodec().decode(wire)


def test_message_names():
    assert MessageName.from_string("edd:user:join") is MessageName.USER_JOIN
    assert MessageName.is_valid("edd:auth:basic") is True
    assert MessageName.is_valid("edd:user:kick") is False
    with pytest.raises(ValueError):
        MessageName.from_string("edd:user:kick")
    assert MessageName.AUTH_BASIC not in INBOUND_NAMES
    assert len(INBOUND_NAMES) == 4


@pytest.mark.parametrize("code,reason", [
    (1000, "normal closure, the connection fulfilled its purpose"),
    (1001, "going away, the endpoint is shutting down or navigating away"),
    (1002, "protocol error"),
    (1003, "unsupported data, the endpoint cannot accept this data type"),
    (1008, "policy violation"),
    (1009, "message too big to process"),
    (1015, "TLS handshake failure"),
])
def test_close_code_reasons(code, reason):
    assert describe_close_code(code) == reason


@pytest.mark.parametrize("code", [None, 999, 1016, 4000])
def test_unknown_close_codes(code):
    assert describe_close_code(code) == "unknown reason"


def test_every_close_code_has_a_reason():
    for code in CloseCode:
        assert describe_close_code(code) != "unknown reason"


@pytest.mark.parametrize("url,ok", [
    ("ws://localhost:8080/edd", True),
    ("wss://example.com/ws", True),
    ("WS://LOCALHOST", True),
    ("http://localhost:8080", False),
    ("ws://", False),
    ("ws://host:99999", False),
    ("localhost:8080", False),
    (None, False),
])
def test_is_ws_url(url, ok):
    assert is_ws_url(url) is ok


def test_is_valid_alias():
    assert is_valid_alias("chat") is True
    assert is_valid_alias("") is False
    assert is_valid_alias("chat ") is False
    assert is_valid_alias(3) is False
