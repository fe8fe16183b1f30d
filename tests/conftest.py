from typing import Any, List, Optional

import pytest

from eddclient.transport import Transport, TransportErrorInfo


class FakeHandle:
    def __init__(self, address: str, listener: Any) -> None:
        self.address = address
        self.listener = listener
        self.closed = False


class FakeTransport(Transport):
    """In-memory transport: records calls, and lets tests fire the four signals."""

    def __init__(self) -> None:
        self.handles: List[FakeHandle] = []
        self.sent: List[Any] = []
        self.close_calls: List[FakeHandle] = []
        self.fail_open: Optional[Exception] = None

    def open(self, address: str, listener: Any) -> FakeHandle:
        if self.fail_open is not None:
            raise self.fail_open
        handle = FakeHandle(address, listener)
        self.handles.append(handle)
        return handle

    def send(self, handle: FakeHandle, data: Any) -> None:
        self.sent.append(data)

    def close(self, handle: FakeHandle) -> None:
        handle.closed = True
        self.close_calls.append(handle)

    @property
    def handle(self) -> FakeHandle:
        return self.handles[-1]

    def fire_open(self) -> None:
        self.handle.listener.on_open()

    def fire_message(self, data: Any) -> None:
        self.handle.listener.on_message(data)

    def fire_close(self, code: Optional[int] = 1000, reason: str = "") -> None:
        self.handle.listener.on_close(code, reason)

    def fire_error(self, code: Optional[int] = None, detail: str = "") -> None:
        self.handle.listener.on_error(TransportErrorInfo(code=code, detail=detail))


class InlineOpenTransport(FakeTransport):
    """Emits its signals from inside open(), before the handle is returned."""

    def __init__(self, *signals):
        super().__init__()
        self.signals = signals
        self.writes = []

    def open(self, address, listener):
        handle = FakeHandle(address, listener)
        self.handles.append(handle)
        for signal in self.signals:
            signal(listener)
        return handle

    def send(self, handle, data):
        self.writes.append((handle, data))


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def errors() -> List[Any]:
    return []


@pytest.fixture
def manager(transport, errors):
    from eddclient.ws_client import ConnectionManager

    mgr = ConnectionManager("ws://localhost:8080/edd", transport=transport)
    mgr.on_error(errors.append)
    return mgr


@pytest.fixture
def inline_transport():
    return InlineOpenTransport
