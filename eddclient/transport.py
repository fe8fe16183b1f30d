from __future__ import annotations
import asyncio
from abc import ABC, abstractmethod
from contextlib import suppress
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Set, Union

import websockets

from eddwire.log import get_logger
from eddwire.vocabulary import CloseCode

logger = get_logger(__name__)

FrameData = Union[str, bytes, bytearray, memoryview]


@dataclass
class TransportErrorInfo:
    """What the transport knows about an error: a close code if any, and a detail string."""
    code: Optional[int] = None
    detail: str = ""


class TransportListener(Protocol):
    """The four signals a transport emits for one handle."""

    def on_open(self) -> None: ...

    def on_message(self, data: FrameData) -> None: ...

    def on_close(self, code: Optional[int], reason: str) -> None: ...

    def on_error(self, info: TransportErrorInfo) -> None: ...


class Transport(ABC):
    """
    Physical connection boundary.

    open() returns an opaque handle immediately; the outcome arrives later as
    signals on the listener, one at a time, on the event loop thread.
    """

    @abstractmethod
    def open(self, address: str, listener: TransportListener) -> Any:
        """Start dialing address; return a handle for send/close"""

    @abstractmethod
    def send(self, handle: Any, data: FrameData) -> None:
        """Write one frame; fire-and-forget"""

    @abstractmethod
    def close(self, handle: Any) -> None:
        """Close the connection behind handle (or abort the dial)"""


@dataclass(eq=False)
class WebsocketHandle:
    address: str
    listener: TransportListener
    task: Optional[asyncio.Task] = None
    websocket: Optional[websockets.ClientConnection] = None
    closing: bool = False


class WebsocketsTransport(Transport):
    """Transport backed by the `websockets` asyncio client."""

    def __init__(self, *, ping_interval: Optional[float] = 15, ping_timeout: Optional[float] = 45,
                 max_size: Optional[int] = 2 ** 20) -> None:
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self.max_size = max_size
        self._background_tasks: Set[asyncio.Task] = set()

    def _track_background_task(self, task: asyncio.Task) -> None:
        """Keep a strong reference to background tasks until completion."""
        self._background_tasks.add(task)

        def _discard(_task: asyncio.Task) -> None:
            self._background_tasks.discard(_task)

        task.add_done_callback(_discard)

    def open(self, address: str, listener: TransportListener) -> WebsocketHandle:
        loop = asyncio.get_running_loop()
        handle = WebsocketHandle(address=address, listener=listener)
        handle.task = loop.create_task(self._run(handle))
        self._track_background_task(handle.task)
        return handle

    async def _run(self, handle: WebsocketHandle) -> None:
        """Dial, then pump frames into the listener until the connection ends"""
        try:
            websocket = await websockets.connect(
                handle.address,
                open_timeout=None,  # the connection manager owns the connect timeout
                ping_interval=self.ping_interval,
                ping_timeout=self.ping_timeout,
                max_size=self.max_size,
            )
        except (OSError, websockets.exceptions.WebSocketException) as e:
            logger.warning("Failed to connect to %s: %s", handle.address, e)
            handle.listener.on_error(TransportErrorInfo(code=CloseCode.ABNORMAL_CLOSURE, detail=str(e)))
            handle.listener.on_close(CloseCode.ABNORMAL_CLOSURE, str(e))
            return

        handle.websocket = websocket
        if handle.closing:
            await websocket.close(code=CloseCode.NORMAL_CLOSURE)
            return

        logger.debug("Connected to %s", handle.address)
        handle.listener.on_open()

        try:
            async for raw in websocket:
                handle.listener.on_message(raw)
        except websockets.exceptions.ConnectionClosedError as e:
            code = e.rcvd.code if e.rcvd is not None else CloseCode.ABNORMAL_CLOSURE
            logger.info("Connection to %s closed abnormally: %s", handle.address, e)
            handle.listener.on_error(TransportErrorInfo(code=code, detail=str(e)))

        code = websocket.close_code
        reason = websocket.close_reason or ""
        logger.debug("Connection to %s closed with code %s", handle.address, code)
        handle.listener.on_close(code, reason)

    def send(self, handle: WebsocketHandle, data: FrameData) -> None:
        if handle.websocket is None:
            raise RuntimeError(f"Connection to {handle.address} is not open")
        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        task = asyncio.get_running_loop().create_task(self._send(handle, data))
        self._track_background_task(task)

    async def _send(self, handle: WebsocketHandle, data: Union[str, bytes]) -> None:
        assert handle.websocket is not None
        try:
            await handle.websocket.send(data)
        except websockets.exceptions.ConnectionClosed:
            logger.warning("Connection to %s closed while sending", handle.address)
        except Exception as e:
            logger.error("Error sending frame to %s: %s", handle.address, e)

    def close(self, handle: WebsocketHandle) -> None:
        if handle.closing:
            return
        handle.closing = True
        if handle.websocket is None:
            # Still dialing: abort the dial
            if handle.task is not None:
                handle.task.cancel()
            return
        task = asyncio.get_running_loop().create_task(self._close(handle))
        self._track_background_task(task)

    async def _close(self, handle: WebsocketHandle) -> None:
        assert handle.websocket is not None
        try:
            await handle.websocket.close(code=CloseCode.NORMAL_CLOSURE)
        except Exception as e:
            logger.error("Error closing connection to %s: %s", handle.address, e)

    async def aclose(self, timeout: float = 1.0) -> None:
        """Give pending sends and closes a moment to finish, then cancel the rest"""
        tasks = list(self._background_tasks)
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
