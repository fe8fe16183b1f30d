from __future__ import annotations
import json
from abc import ABC, abstractmethod
from typing import Any, Union

from eddwire.errors import CodecError

WireData = Union[str, bytes]


class Codec(ABC):
    """
    Encode/decode pair between structured envelopes and the wire form.

    A codec is picked once, before the connection starts, and used for every
    frame of that connection.
    """

    #: True when encode() produces bytes (binary frames)
    binary: bool = False

    @abstractmethod
    def encode(self, value: Any) -> WireData:
        """Serialize a structured value for the wire"""

    @abstractmethod
    def decode(self, data: Union[str, bytes, bytearray, memoryview]) -> Any:
        """Deserialize wire data into a structured value"""


class JsonCodec(Codec):
    """Default codec: compact, key-sorted JSON text (or UTF-8 bytes)."""

    def __init__(self, binary: bool = False, encoding: str = "utf-8") -> None:
        self.binary = binary
        self.encoding = encoding

    def encode(self, value: Any) -> WireData:
        try:
            text = json.dumps(value, separators=(',', ':'), sort_keys=True)
        except (TypeError, ValueError) as e:
            raise CodecError(f"Cannot encode value: {e}") from e
        return text.encode(self.encoding) if self.binary else text

    def decode(self, data: Union[str, bytes, bytearray, memoryview]) -> Any:
        if isinstance(data, memoryview):
            data = data.tobytes()
        if isinstance(data, (bytes, bytearray)):
            try:
                data = bytes(data).decode(self.encoding)
            except UnicodeDecodeError as e:
                raise CodecError(f"Invalid {self.encoding} payload: {e}") from e
        try:
            return json.loads(data)
        except json.JSONDecodeError as e:
            raise CodecError(f"Invalid JSON: {e}") from e

    def __repr__(self) -> str:
        return f"JsonCodec(binary={self.binary})"
