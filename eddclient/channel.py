from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from eddwire.envelope import create_envelope
from eddwire.log import get_logger
from eddwire.utils import is_valid_alias
from eddwire.vocabulary import ERRORS_CHANNEL, INBOUND_NAMES, MessageName
from eddclient.state import Presence

if TYPE_CHECKING:
    from eddclient.ws_client import ConnectionManager

logger = get_logger(__name__)

EventHandler = Callable[[Any], None]
LifecycleCallback = Callable[[], None]


class Channel:
    """
    One logical topic multiplexed over the manager's connection.

    The base class routes the reserved EDD names to handlers installed with
    auth_challenged / auth_passed / user_join / user_left. Subclasses that own
    more names override route() and fall back to super().route() for the rest.
    """

    def __init__(self, alias: str) -> None:
        if not is_valid_alias(alias):
            raise ValueError(f"Invalid channel alias: {alias!r}")
        if alias == ERRORS_CHANNEL:
            raise ValueError(f"'{ERRORS_CHANNEL}' is reserved and cannot be a channel alias")
        self._alias = alias
        self.client: Optional[ConnectionManager] = None
        self._connected_cb: Optional[LifecycleCallback] = None
        self._disconnected_cb: Optional[LifecycleCallback] = None
        self._handlers: Dict[MessageName, Optional[EventHandler]] = {name: None for name in INBOUND_NAMES}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._alias!r})"

    def get_alias(self) -> str:
        return self._alias

    def set_client(self, client: ConnectionManager) -> None:
        """Bind the manager this channel sends through"""
        self.client = client

    # ---- lifecycle callbacks -------------------------------------------

    def on_connected(self, callback: Optional[LifecycleCallback]) -> None:
        self._connected_cb = callback

    def on_disconnected(self, callback: Optional[LifecycleCallback]) -> None:
        self._disconnected_cb = callback

    def connected(self) -> None:
        """Called by the manager once the connection is open"""
        if self._connected_cb is not None:
            self._connected_cb()

    def disconnected(self) -> None:
        """Called by the manager once the connection is gone"""
        if self._disconnected_cb is not None:
            self._disconnected_cb()

    # ---- reserved event handlers ---------------------------------------

    def auth_challenged(self, handler: Optional[EventHandler]) -> None:
        """Body: {"methods": [str, ...]}"""
        self._handlers[MessageName.AUTH_CHALLENGE] = handler

    def auth_passed(self, handler: Optional[EventHandler]) -> None:
        """Body: {"id": str}"""
        self._handlers[MessageName.AUTH_PASS] = handler

    def user_join(self, handler: Optional[EventHandler]) -> None:
        """Body: {"id": str}"""
        self._handlers[MessageName.USER_JOIN] = handler

    def user_left(self, handler: Optional[EventHandler]) -> None:
        """Body: {"id": str}"""
        self._handlers[MessageName.USER_LEFT] = handler

    def route(self, name: str, body: Any) -> bool:
        """
        Dispatch a reserved name to its handler.

        Returns False when name is not one of the inbound reserved names;
        what to do with such names is up to the subclass.
        """
        if not MessageName.is_valid(name):
            return False
        message_name = MessageName.from_string(name)
        if message_name not in INBOUND_NAMES:
            return False

        handler = self._handlers.get(message_name) or self._missing_handler(message_name)
        handler(body)
        return True

    def _missing_handler(self, name: MessageName) -> EventHandler:
        def _log_missing(body: Any) -> None:
            logger.warning("No handler configured for %s", name.value,
                           extra={"alias": self._alias, "msg_name": name.value})
        return _log_missing

    # ---- outbound ------------------------------------------------------

    def send(self, name: str, body: Any = None) -> bool:
        """Send name/body on this channel through the bound manager"""
        if self.client is None:
            logger.error("Cannot send %s: channel is not registered", name, extra={"alias": self._alias})
            return False
        return self.client.send(create_envelope(self._alias, name, body))

    def send_auth_basic(self, username: str, password: str) -> bool:
        return self.send(MessageName.AUTH_BASIC.value, {"username": username, "password": password})


class PresenceChannel(Channel):
    """Channel that keeps a roster of the users that joined and left."""

    def __init__(self, alias: str) -> None:
        super().__init__(alias)
        self.presence = Presence()
        self.user_id: Optional[str] = None

    def route(self, name: str, body: Any) -> bool:
        user_id = body.get("id") if isinstance(body, dict) else None
        if name == MessageName.USER_JOIN.value and user_id is not None:
            self.presence.add(str(user_id))
        elif name == MessageName.USER_LEFT.value and user_id is not None:
            self.presence.remove(str(user_id))
        elif name == MessageName.AUTH_PASS.value and user_id is not None:
            self.user_id = str(user_id)
        return super().route(name, body)

    def connected(self) -> None:
        # Roster belongs to one connection; keep the last one readable after close
        self.presence.clear()
        self.user_id = None
        super().connected()
