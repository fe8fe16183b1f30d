from __future__ import annotations

from enum import Enum, IntEnum
from typing import Dict, Optional, Set


# Reserved channel: its body goes straight to the error callback
ERRORS_CHANNEL = "errors"


class MessageName(str, Enum):
    """Reserved EDD message names understood by every channel."""

    AUTH_CHALLENGE = "edd:auth:challenge"    # inbound  {methods: [str]}
    AUTH_PASS = "edd:auth:pass"              # inbound  {id: str}
    AUTH_BASIC = "edd:auth:basic"            # outbound {username: str, password: str}
    USER_JOIN = "edd:user:join"              # inbound  {id: str}
    USER_LEFT = "edd:user:left"              # inbound  {id: str}

    @classmethod
    def from_string(cls, value: str) -> MessageName:
        """Convert string to MessageName enum, raise ValueError if unknown."""
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown message name: {value}")

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if string is a reserved message name."""
        try:
            cls(value)
            return True
        except ValueError:
            return False


# Names the base channel routes; edd:auth:basic only ever goes out
INBOUND_NAMES: Set[MessageName] = {
    MessageName.AUTH_CHALLENGE,
    MessageName.AUTH_PASS,
    MessageName.USER_JOIN,
    MessageName.USER_LEFT,
}


class CloseCode(IntEnum):
    """WebSocket close codes (RFC 6455 §7.4 and the IANA registry)."""

    NORMAL_CLOSURE = 1000
    GOING_AWAY = 1001
    PROTOCOL_ERROR = 1002
    UNSUPPORTED_DATA = 1003
    RESERVED = 1004
    NO_STATUS_RECEIVED = 1005
    ABNORMAL_CLOSURE = 1006
    INVALID_FRAME_PAYLOAD_DATA = 1007
    POLICY_VIOLATION = 1008
    MESSAGE_TOO_BIG = 1009
    MANDATORY_EXTENSION = 1010
    INTERNAL_ERROR = 1011
    SERVICE_RESTART = 1012
    TRY_AGAIN_LATER = 1013
    BAD_GATEWAY = 1014
    TLS_HANDSHAKE = 1015


UNKNOWN_REASON = "unknown reason"

CLOSE_REASONS: Dict[CloseCode, str] = {
    CloseCode.NORMAL_CLOSURE: "normal closure, the connection fulfilled its purpose",
    CloseCode.GOING_AWAY: "going away, the endpoint is shutting down or navigating away",
    CloseCode.PROTOCOL_ERROR: "protocol error",
    CloseCode.UNSUPPORTED_DATA: "unsupported data, the endpoint cannot accept this data type",
    CloseCode.RESERVED: "reserved",
    CloseCode.NO_STATUS_RECEIVED: "no status code was provided",
    CloseCode.ABNORMAL_CLOSURE: "abnormal closure, the connection was closed without a close frame",
    CloseCode.INVALID_FRAME_PAYLOAD_DATA: "invalid frame payload data, the message was inconsistent with its type",
    CloseCode.POLICY_VIOLATION: "policy violation",
    CloseCode.MESSAGE_TOO_BIG: "message too big to process",
    CloseCode.MANDATORY_EXTENSION: "the server did not negotiate a required extension",
    CloseCode.INTERNAL_ERROR: "internal server error",
    CloseCode.SERVICE_RESTART: "service restart",
    CloseCode.TRY_AGAIN_LATER: "try again later",
    CloseCode.BAD_GATEWAY: "bad gateway",
    CloseCode.TLS_HANDSHAKE: "TLS handshake failure",
}


def describe_close_code(code: Optional[int]) -> str:
    """Human-readable reason for a close code, or "unknown reason"."""
    if code is None:
        return UNKNOWN_REASON
    try:
        return CLOSE_REASONS[CloseCode(code)]
    except ValueError:
        return UNKNOWN_REASON
