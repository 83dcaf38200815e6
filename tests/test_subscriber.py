"""Tests for the push subscription loop against a fake server."""
import asyncio
import socket
import pytest
from client.subscriber import Subscriber
from shared.protocol import Disconnected, MalformedFrame, Message, ServiceConnectionError
from fakes import ack, fake_server, msg


def pubsub_handler(frames: list[bytes], commands: list[bytes], acks: int = 3):
    async def handler(reader, writer):
        for _ in range(acks):
            commands.append(await reader.readline())
        for _ in range(acks):
            writer.write(ack())
        for frame in frames:
            writer.write(frame)
        await writer.drain()
    return handler


def run_subscriber(frames, handler, topics=("player.*", "live_lyric.*")):
    commands: list[bytes] = []
    sub_holder = []

    async def go():
        async with fake_server(pubsub_handler(frames, commands, acks=1 + len(topics))) as port:
            sub = Subscriber("127.0.0.1", port, handler, topics)
            sub_holder.append(sub)
            await sub.run()

    return go, commands, sub_holder


def test_subscribe_commands_and_dispatch_order():
    received = []
    frames = [
        msg("player.seeked", b"[1.0]"),
        ack(b"stray"),
        msg("player.duration_changed", b"[200.0]"),
        msg("live_lyric.sentence_changed", b'["la la"]'),
    ]
    go, commands, subs = run_subscriber(frames, received.append)
    with pytest.raises(Disconnected):
        asyncio.run(go())

    assert commands == [b"set --pubsub-version 2.0\n", b"sub player.*\n", b"sub live_lyric.*\n"]
    assert received == [
        Message("player.seeked", b"[1.0]"),
        Message("player.duration_changed", b"[200.0]"),
        Message("live_lyric.sentence_changed", b'["la la"]'),
    ]
    assert subs[0].messages_received == 3


def test_custom_topics():
    go, commands, _ = run_subscriber([], lambda m: None, topics=("player.*",))
    with pytest.raises(Disconnected):
        asyncio.run(go())
    assert commands == [b"set --pubsub-version 2.0\n", b"sub player.*\n"]


def test_rejected_subscription_is_not_fatal():
    received = []
    commands: list[bytes] = []

    async def handler(reader, writer):
        for _ in range(3):
            commands.append(await reader.readline())
        writer.write(ack() + ack(b"bad topic", ok=False) + ack())
        writer.write(msg("player.seeked", b"[3.0]"))
        await writer.drain()

    async def go():
        async with fake_server(handler) as port:
            await Subscriber("127.0.0.1", port, received.append).run()

    with pytest.raises(Disconnected):
        asyncio.run(go())
    assert received == [Message("player.seeked", b"[3.0]")]


def test_handler_error_does_not_stop_loop():
    received = []

    def handler(m):
        if m.topic == "boom":
            raise RuntimeError("handler failed")
        received.append(m.topic)

    frames = [msg("boom", b"[]"), msg("player.seeked", b"[2.0]")]
    go, _, _ = run_subscriber(frames, handler)
    with pytest.raises(Disconnected):
        asyncio.run(go())
    assert received == ["player.seeked"]


def test_malformed_frame_ends_subscription():
    received = []
    frames = [msg("player.seeked", b"[2.0]"), b"GARBAGE here\r\n"]
    go, _, _ = run_subscriber(frames, received.append)
    with pytest.raises(MalformedFrame):
        asyncio.run(go())
    assert received == [Message("player.seeked", b"[2.0]")]


def test_connect_refused():
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]

    async def go():
        sub = Subscriber("127.0.0.1", port, lambda m: None)
        with pytest.raises(ServiceConnectionError):
            await sub.run()
        assert asyncio.all_tasks() == {asyncio.current_task()}

    asyncio.run(go())
