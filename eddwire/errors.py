from __future__ import annotations
from typing import Optional


class EddError(Exception):
    """Base class for every failure reported by the client."""
    pass


class EnvelopeError(EddError):
    """Raised when an inbound frame is not a valid channel/name/body envelope."""
    pass


class CodecError(EddError):
    """Raised when the active codec cannot encode or decode a value."""
    pass


class ConnectError(EddError):
    """Raised when the transport refuses to dial the target address."""
    pass


class ConnectTimeoutError(EddError):
    """Raised when the transport does not open before the connect timeout."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        super().__init__("ws connection timeout")
        self.timeout = timeout


class TransportError(EddError):
    """Raised when the underlying connection signals an error."""

    def __init__(self, reason: str, code: Optional[int] = None, detail: str = "") -> None:
        message = f"ws error: {reason}" if code is None else f"ws error: {reason} ({code})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.reason = reason
        self.code = code
        self.detail = detail


class UnknownChannelError(EddError):
    """Raised when an inbound envelope names a channel that is not registered."""

    def __init__(self, channel: str, name: str = "") -> None:
        super().__init__(f"unknown channel '{channel}' for event '{name}'")
        self.channel = channel
        self.name = name


class UnhandledMessageError(EddError):
    """Raised when a registered channel does not route an inbound name."""

    def __init__(self, alias: str, name: str) -> None:
        super().__init__(f"event '{name}' on channel '{alias}' was not handled")
        self.alias = alias
        self.name = name


class ChannelCallbackError(EddError):
    """Raised when a channel callback or event handler fails."""

    def __init__(self, alias: str, where: str) -> None:
        super().__init__(f"channel '{alias}' failed in {where}")
        self.alias = alias
        self.where = where


class NotConnectedError(EddError):
    """Raised when a send is attempted while the connection is not open."""

    def __init__(self, state: str) -> None:
        super().__init__(f"cannot send while {state}")
        self.state = state


class DuplicateChannelError(EddError, ValueError):
    """Raised when a channel alias is registered twice."""

    def __init__(self, alias: str) -> None:
        super().__init__(f"channel '{alias}' is already registered")
        self.alias = alias


class CodecLockedError(EddError, RuntimeError):
    """Raised when the codec is swapped while a connection is live."""
    pass
