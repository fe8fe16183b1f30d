from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from eddwire.errors import EnvelopeError
from eddwire.vocabulary import ERRORS_CHANNEL


@dataclass
class Envelope:
    """
    Every frame on the wire, once decoded, is one envelope:
    {
    "channel": "STRING",
    "name":    "STRING",
    "body":    any
    }

    Special cases:
    - channel "errors" carries a diagnostic body for the error callback and
      is never routed to a channel.
    - body shape is defined by name; it may be absent (None).
    """
    channel: str        # Target channel alias, or "errors"
    name: str           # Message name within the channel, case-sensitive
    body: Any = None    # Opaque payload

    @classmethod
    def from_dict(cls, data: Any) -> 'Envelope':
        """Create Envelope from decoded wire data, validating required fields"""
        if not isinstance(data, Mapping):
            raise EnvelopeError(f"Envelope must be an object, got {type(data).__name__}")

        if 'channel' not in data:
            raise EnvelopeError("Missing required fields: ['channel']")
        channel = data['channel']
        if not isinstance(channel, str):
            raise EnvelopeError("'channel' must be a string")
        if not channel:
            raise EnvelopeError("'channel' must not be empty")

        # An "errors" envelope only needs its body
        if channel == ERRORS_CHANNEL:
            name = data.get('name')
            return cls(channel=channel, name=name if isinstance(name, str) else "", body=data.get('body'))

        if 'name' not in data:
            raise EnvelopeError("Missing required fields: ['name']")
        if not isinstance(data['name'], str):
            raise EnvelopeError("'name' must be a string")

        return cls(
            channel=channel,
            name=data['name'],
            body=data.get('body'),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert Envelope back to dictionary"""
        return {
            'channel': self.channel,
            'name': self.name,
            'body': self.body,
        }

    def is_error(self) -> bool:
        return self.channel == ERRORS_CHANNEL


def create_envelope(channel: str, name: str, body: Any = None) -> Envelope:
    """Helper to create a new outbound envelope"""
    return Envelope(channel=channel, name=name, body=body)
