"""Tests for the request channel against a fake server."""
import asyncio
import socket
import pytest
from client.rpc import call
from shared.protocol import Disconnected, Response, ServiceConnectionError, UnexpectedMessage
from fakes import ack, fake_server, msg, reply_with


def _free_port() -> int:
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_call_returns_response():
    received = []

    async def handler(reader, writer):
        received.append(await reader.readline())
        writer.write(ack(b'{"state": "paused"}'))
        await writer.drain()

    async def go():
        async with fake_server(handler) as port:
            return await call("status --format=json", "127.0.0.1", port)

    resp = asyncio.run(go())
    assert resp == Response(ok=True, body=b'{"state": "paused"}')
    assert received == [b"status --format=json\n"]


def test_call_returns_non_ok_response():
    async def go():
        async with fake_server(reply_with(ack(b"no such command", ok=False))) as port:
            return await call("bogus", "127.0.0.1", port)

    resp = asyncio.run(go())
    assert not resp.ok
    assert resp.body == b"no such command"


def test_each_call_uses_new_connection():
    connections = []

    async def handler(reader, writer):
        connections.append(writer)
        await reader.readline()
        writer.write(ack(b"ok"))
        await writer.drain()

    async def go():
        async with fake_server(handler) as port:
            await call("a", "127.0.0.1", port)
            await call("b", "127.0.0.1", port)

    asyncio.run(go())
    assert len(connections) == 2


def test_push_message_on_control_channel():
    async def go():
        async with fake_server(reply_with(msg("player.seeked", b"[1.0]"))) as port:
            return await call("status --format=json", "127.0.0.1", port)

    with pytest.raises(UnexpectedMessage):
        asyncio.run(go())


def test_peer_closes_without_reply():
    async def handler(reader, writer):
        await reader.readline()

    async def go():
        async with fake_server(handler) as port:
            return await call("status --format=json", "127.0.0.1", port)

    with pytest.raises(Disconnected):
        asyncio.run(go())


def test_connect_refused():
    port = _free_port()
    with pytest.raises(ServiceConnectionError):
        asyncio.run(call("status --format=json", "127.0.0.1", port))
