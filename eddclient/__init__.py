"""Client that multiplexes named EDD channels over a single WebSocket connection."""

from eddclient.channel import Channel, PresenceChannel
from eddclient.transport import Transport, TransportErrorInfo, WebsocketsTransport
from eddclient.ws_client import DEFAULT_CONNECT_TIMEOUT, ConnectionManager, ConnectionState

__all__ = [
    "Channel",
    "PresenceChannel",
    "Transport",
    "TransportErrorInfo",
    "WebsocketsTransport",
    "DEFAULT_CONNECT_TIMEOUT",
    "ConnectionManager",
    "ConnectionState",
]
