from __future__ import annotations
import asyncio
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from eddwire.codec import Codec, JsonCodec
from eddwire.envelope import Envelope
from eddwire.errors import (
    ChannelCallbackError,
    CodecLockedError,
    ConnectError,
    ConnectTimeoutError,
    DuplicateChannelError,
    EddError,
    NotConnectedError,
    TransportError,
    UnhandledMessageError,
    UnknownChannelError,
)
from eddwire.log import get_logger, log_edd_message
from eddwire.utils import is_ws_url
from eddwire.vocabulary import describe_close_code
from eddclient.channel import Channel
from eddclient.transport import FrameData, Transport, TransportErrorInfo, WebsocketsTransport

logger = get_logger(__name__)

# Seconds to wait for the transport to open
DEFAULT_CONNECT_TIMEOUT = 5.0

ErrorCallback = Callable[[Any], None]


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class _Binding:
    """
    Listener handed to the transport for one start().

    Signals from a binding the manager no longer holds are dropped, so a late
    open/close from an abandoned dial never touches the current connection.
    Signals a transport emits from inside open() are held until the handle
    it returns has been recorded.
    """

    def __init__(self, manager: ConnectionManager) -> None:
        self.manager = manager
        self.handle: Any = None
        self._held: Optional[List[Tuple[Callable[..., None], tuple]]] = []

    @property
    def current(self) -> bool:
        return self.manager._binding is self

    def bind(self, handle: Any) -> None:
        """Record the transport handle and replay anything held back"""
        self.handle = handle
        held, self._held = self._held, None
        for signal, args in held or ():
            signal(*args)

    def _deliver(self, signal: Callable[..., None], *args: Any) -> None:
        if self._held is not None:
            self._held.append((signal, args))
        else:
            signal(*args)

    def on_open(self) -> None:
        self._deliver(self._open)

    def on_message(self, data: FrameData) -> None:
        self._deliver(self._message, data)

    def on_close(self, code: Optional[int], reason: str) -> None:
        self._deliver(self._close, code, reason)

    def on_error(self, info: TransportErrorInfo) -> None:
        self._deliver(self._error, info)

    def _open(self) -> None:
        if self.current:
            self.manager._handle_open()
        elif self.handle is not None:
            logger.debug("Closing stale connection that opened after being abandoned")
            self.manager.transport.close(self.handle)

    def _message(self, data: FrameData) -> None:
        if self.current:
            self.manager._handle_message(data)

    def _close(self, code: Optional[int], reason: str) -> None:
        if self.current:
            self.manager._handle_close(code, reason)

    def _error(self, info: TransportErrorInfo) -> None:
        if self.current:
            self.manager._handle_transport_error(info)


class ConnectionManager:
    """
    Owns the single connection to an EDD server and multiplexes channels over it.

    Lifecycle: idle -> connecting -> connected -> disconnected. Every failure
    (timeout, transport error, unknown channel, send while disconnected, ...)
    is handed to one error callback instead of being raised; see on_error().
    All methods are expected to run on the event loop thread.
    """

    def __init__(
        self,
        address: str,
        *,
        transport: Optional[Transport] = None,
        codec: Optional[Codec] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> None:
        if not is_ws_url(address):
            raise ValueError(f"Invalid WebSocket address: {address!r}")
        self.address = address
        self.transport: Transport = transport or WebsocketsTransport()
        self.connect_timeout = connect_timeout
        self._codec: Codec = codec or JsonCodec()
        self._state = ConnectionState.IDLE
        self._channels: Dict[str, Channel] = {}
        self._binding: Optional[_Binding] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._error_cb: ErrorCallback = self._default_error_handler

    # ---- configuration -------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def codec(self) -> Codec:
        return self._codec

    def set_codec(self, codec: Codec) -> None:
        """Swap the wire codec; only allowed while no connection is live"""
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            raise CodecLockedError(f"Cannot change codec while {self._state.value}; stop() first")
        self._codec = codec

    def on_error(self, callback: Optional[ErrorCallback]) -> None:
        """
        Set the single error callback.

        It receives EddError instances for failures detected by the client,
        and the raw body of envelopes sent on the "errors" channel.
        Passing None restores the default, which logs.
        """
        self._error_cb = callback or self._default_error_handler

    @staticmethod
    def _default_error_handler(error: Any) -> None:
        logger.error("EDD client error: %s", error)

    def _report(self, error: Any) -> None:
        try:
            self._error_cb(error)
        except Exception:
            logger.exception("Error callback failed while handling: %s", error)

    # ---- registry ------------------------------------------------------

    @property
    def channels(self) -> Mapping[str, Channel]:
        return MappingProxyType(self._channels)

    def get_channel(self, alias: str) -> Optional[Channel]:
        return self._channels.get(alias)

    def register(self, channel: Channel) -> Channel:
        """
        Add channel to the registry and bind it to this manager.

        Aliases are unique: registering a second channel with a taken alias
        raises DuplicateChannelError. A channel registered while connected
        gets its connected callback right away.
        """
        alias = channel.get_alias()
        if alias in self._channels:
            raise DuplicateChannelError(alias)
        channel.set_client(self)
        self._channels[alias] = channel
        logger.debug("Registered channel", extra={"alias": alias})
        if self._state is ConnectionState.CONNECTED:
            self._notify(channel, "connected")
        return channel

    # ---- lifecycle -----------------------------------------------------

    def start(self, timeout: Optional[float] = None) -> None:
        """
        Open the connection; no-op while connecting or connected.

        Must be called from a running event loop. The outcome arrives through
        the channels' callbacks and the error callback.
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            logger.debug("start() ignored", extra={"state": self._state.value})
            return

        for channel in self._channels.values():
            channel.set_client(self)

        timeout = self.connect_timeout if timeout is None else timeout
        binding = _Binding(self)
        self._binding = binding
        self._state = ConnectionState.CONNECTING
        logger.info("Connecting to %s", self.address)

        try:
            loop = asyncio.get_running_loop()
            handle = self.transport.open(self.address, binding)
        except Exception as e:
            logger.warning("Failed to dial %s: %s", self.address, e)
            self._binding = None
            self._state = ConnectionState.DISCONNECTED
            error = ConnectError(f"cannot connect to {self.address}: {e}")
            error.__cause__ = e
            self._report(error)
            return

        binding.bind(handle)
        # Signals held during open() may already have settled the dial
        if self._binding is binding and self._state is ConnectionState.CONNECTING:
            self._timer = loop.call_later(timeout, self._handle_connect_timeout, binding, timeout)

    def stop(self) -> None:
        """Close the connection; no-op unless connected"""
        if self._state is not ConnectionState.CONNECTED:
            logger.debug("stop() ignored", extra={"state": self._state.value})
            return
        binding = self._binding
        self._binding = None
        self._state = ConnectionState.DISCONNECTED
        logger.info("Disconnecting from %s", self.address)
        if binding is not None and binding.handle is not None:
            self.transport.close(binding.handle)
        self._notify_all("disconnected")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _handle_open(self) -> None:
        if self._state is not ConnectionState.CONNECTING:
            return
        self._cancel_timer()
        self._state = ConnectionState.CONNECTED
        logger.info("Connected to %s", self.address)
        self._notify_all("connected")

    def _handle_connect_timeout(self, binding: _Binding, timeout: float) -> None:
        self._timer = None
        if self._binding is not binding or self._state is not ConnectionState.CONNECTING:
            return
        logger.warning("Timed out after %ss connecting to %s", timeout, self.address)
        self._binding = None
        self._state = ConnectionState.DISCONNECTED
        if binding.handle is not None:
            self.transport.close(binding.handle)
        self._report(ConnectTimeoutError(timeout))

    def _handle_close(self, code: Optional[int], reason: str) -> None:
        self._cancel_timer()
        was_connected = self._state is ConnectionState.CONNECTED
        self._binding = None
        self._state = ConnectionState.DISCONNECTED
        logger.info("Connection to %s closed (%s: %s)", self.address, code, describe_close_code(code))
        if was_connected:
            self._notify_all("disconnected")

    def _handle_transport_error(self, info: TransportErrorInfo) -> None:
        self._report(TransportError(describe_close_code(info.code), info.code, info.detail))

    def _notify_all(self, event: str) -> None:
        # Iterate over a snapshot: a callback may register further channels
        for channel in list(self._channels.values()):
            self._notify(channel, event)

    def _notify(self, channel: Channel, event: str) -> None:
        try:
            getattr(channel, event)()
        except Exception as e:
            logger.exception("Channel %s callback failed", event, extra={"alias": channel.get_alias()})
            error = ChannelCallbackError(channel.get_alias(), event)
            error.__cause__ = e
            self._report(error)

    # ---- inbound -------------------------------------------------------

    def _handle_message(self, data: FrameData) -> None:
        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        try:
            envelope = Envelope.from_dict(self._codec.decode(data))
        except EddError as e:
            logger.warning("Dropping undecodable frame: %s", e)
            self._report(e)
            return
        self.dispatch(envelope)

    def dispatch(self, envelope: Envelope) -> None:
        """Route one decoded envelope to the "errors" callback or its channel"""
        if envelope.is_error():
            self._report(envelope.body)
            return

        channel = self._channels.get(envelope.channel)
        if channel is None:
            log_edd_message(logger, "error", "Unknown channel, dropping message",
                            envelope=envelope, state=self._state.value)
            self._report(UnknownChannelError(envelope.channel, envelope.name))
            return

        try:
            handled = channel.route(envelope.name, envelope.body)
        except Exception as e:
            logger.exception("Handler failed", extra={"alias": channel.get_alias(), "msg_name": envelope.name})
            error = ChannelCallbackError(channel.get_alias(), envelope.name)
            error.__cause__ = e
            self._report(error)
            return

        if not handled:
            log_edd_message(logger, "warning", "Message not handled by channel", envelope=envelope)
            self._report(UnhandledMessageError(channel.get_alias(), envelope.name))

    # ---- outbound ------------------------------------------------------

    def send(self, message: Union[Envelope, Mapping[str, Any]]) -> bool:
        """
        Encode message with the active codec and write it.

        Returns False (after reporting NotConnectedError or the codec error)
        instead of raising when the frame cannot be sent.
        """
        if not self._ensure_connected():
            return False
        if isinstance(message, Envelope):
            message = message.to_dict()
        try:
            data = self._codec.encode(dict(message))
        except EddError as e:
            self._report(e)
            return False
        return self._write(data)

    def send_raw(self, raw: FrameData) -> bool:
        """Write pre-encoded data verbatim"""
        if not self._ensure_connected():
            return False
        return self._write(raw)

    def _ensure_connected(self) -> bool:
        if self._state is ConnectionState.CONNECTED and self._binding is not None:
            return True
        self._report(NotConnectedError(self._state.value))
        return False

    def _write(self, data: FrameData) -> bool:
        assert self._binding is not None
        try:
            self.transport.send(self._binding.handle, data)
        except Exception as e:
            logger.error("Error sending message: %s", e)
            error = TransportError(describe_close_code(None), None, str(e))
            error.__cause__ = e
            self._report(error)
            return False
        return True
