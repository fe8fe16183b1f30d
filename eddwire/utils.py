from __future__ import annotations
from urllib.parse import urlsplit

# ========================================
#           INPUT VALIDATION HELPERS
# ========================================
"""
Helpers the client calls to decide whether configuration values
(addresses, channel aliases) are usable before anything is dialed.
"""

_WS_SCHEMES = {"ws", "wss"}


def is_ws_url(s: str) -> bool:
    """
    Accepts 'ws://host[:port][/path]' or 'wss://...'.

    - Scheme must be ws or wss.
    - Host must be non-empty.
    - Port, if present, must be between 1 and 65535.

    Examples: "ws://localhost:8080/edd", "wss://example.com/ws"
    """
    if not isinstance(s, str):
        return False
    try:
        parts = urlsplit(s)
        if parts.scheme.lower() not in _WS_SCHEMES:
            return False
        if not parts.hostname:
            return False
        port = parts.port
        return port is None or 0 < port <= 65535
    except ValueError:
        return False


def is_valid_alias(s: str) -> bool:
    """
    A channel alias is a non-empty string without surrounding whitespace.
    The reserved "errors" alias is rejected by the channel itself.
    """
    return isinstance(s, str) and bool(s) and s == s.strip()
