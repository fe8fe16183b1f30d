import asyncio
import json
import socket

import pytest
import websockets

from eddclient.channel import PresenceChannel
from eddclient.transport import WebsocketsTransport
from eddclient.ws_client import ConnectionManager, ConnectionState
from eddwire.errors import TransportError


async def wait_for(predicate, timeout=3.0):
    loop = asyncio.get_running_loop()
    end = loop.time() + timeout
    while loop.time() < end:
        if predicate():
            return True
        await asyncio.sleep(0.02)
    return False


def _port(server) -> int:
    return server.sockets[0].getsockname()[1]


@pytest.mark.asyncio
async def test_auth_and_presence_over_real_socket():
    received = []

    async def handler(ws):
        await ws.send(json.dumps({"channel": "chat", "name": "edd:auth:challenge", "body": {"methods": ["basic"]}}))
        received.append(json.loads(await ws.recv()))
        # binary frame on purpose
        await ws.send(json.dumps({"channel": "chat", "name": "edd:auth:pass", "body": {"id": "u1"}}).encode())
        await ws.send(json.dumps({"channel": "chat", "name": "edd:user:join", "body": {"id": "u2"}}))
        await ws.send(json.dumps({"channel": "errors", "name": "error", "body": "bad thing"}))
        await ws.wait_closed()

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        transport = WebsocketsTransport()
        manager = ConnectionManager(f"ws://127.0.0.1:{_port(server)}/edd", transport=transport)
        errors = []
        manager.on_error(errors.append)
        chat = PresenceChannel("chat")
        chat.auth_challenged(lambda body: chat.send_auth_basic("alice", "pw"))
        manager.register(chat)

        manager.start()

        assert await wait_for(lambda: errors == ["bad thing"])
        assert manager.state is ConnectionState.CONNECTED
        assert received == [{
            "channel": "chat",
            "name": "edd:auth:basic",
            "body": {"username": "alice", "password": "pw"},
        }]
        assert chat.user_id == "u1"
        assert chat.presence.list_sorted() == ["u2"]

        manager.stop()
        await transport.aclose()

    assert manager.state is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_server_close_reports_reason_then_disconnects():
    async def handler(ws):
        await ws.close(code=1008, reason="go away")

    async with websockets.serve(handler, "127.0.0.1", 0) as server:
        transport = WebsocketsTransport()
        manager = ConnectionManager(f"ws://127.0.0.1:{_port(server)}", transport=transport)
        errors = []
        events = []
        manager.on_error(errors.append)
        chat = PresenceChannel("chat")
        chat.on_connected(lambda: events.append("connected"))
        chat.on_disconnected(lambda: events.append("disconnected"))
        manager.register(chat)

        manager.start()

        assert await wait_for(lambda: "disconnected" in events)
        await transport.aclose()

    assert events == ["connected", "disconnected"]
    assert manager.state is ConnectionState.DISCONNECTED
    assert len(errors) == 1
    assert isinstance(errors[0], TransportError)
    assert errors[0].code == 1008
    assert errors[0].reason == "policy violation"


@pytest.mark.asyncio
async def test_refused_connection_reports_abnormal_closure():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]

    transport = WebsocketsTransport()
    manager = ConnectionManager(f"ws://127.0.0.1:{port}", transport=transport)
    errors = []
    manager.on_error(errors.append)

    manager.start()

    assert await wait_for(lambda: manager.state is ConnectionState.DISCONNECTED)
    await transport.aclose()
    assert len(errors) == 1
    assert isinstance(errors[0], TransportError)
    assert errors[0].code == 1006
