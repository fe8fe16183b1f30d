"""Wire-level pieces of the EDD protocol: envelope, codec, reserved vocabulary and logging."""

from eddwire.codec import Codec, JsonCodec
from eddwire.envelope import Envelope, create_envelope
from eddwire.vocabulary import ERRORS_CHANNEL, CloseCode, MessageName, describe_close_code

__all__ = [
    "Codec",
    "JsonCodec",
    "Envelope",
    "create_envelope",
    "ERRORS_CHANNEL",
    "CloseCode",
    "MessageName",
    "describe_close_code",
]
