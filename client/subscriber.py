"""FuoTerm subscription multiplexer for the push connection."""
from __future__ import annotations
import asyncio
import logging
from typing import Callable, Iterable, Optional

from client.rpc import close_quietly, open_service
from shared.protocol import (
    CMD_PUBSUB_VERSION, DEFAULT_TOPICS, Message, ProtocolError, Response,
    encode_command, read_frame, sub_command,
)

logger = logging.getLogger("fuoterm.client.subscriber")


class Subscriber:
    """
    Owns the long-lived push connection.
    Decoded messages go through a queue to a dispatcher task that calls the
    handler in arrival order. There is no reconnect: run() returns (by
    raising) once the connection fails.
    """

    def __init__(
        self,
        host: str,
        port: int,
        handler: Callable[[Message], None],
        topics: Iterable[str] = DEFAULT_TOPICS,
    ):
        self.host = host
        self.port = port
        self.handler = handler
        self.topics = list(topics)
        self.messages_received = 0
        self._queue: asyncio.Queue[Optional[Message]] = asyncio.Queue()

    def _commands(self) -> list[str]:
        return [CMD_PUBSUB_VERSION] + [sub_command(t) for t in self.topics]

    async def run(self) -> None:
        reader, writer = await open_service(self.host, self.port)
        dispatcher = asyncio.create_task(self._dispatch_loop())
        try:
            await self._subscribe(reader, writer)
            await self._read_loop(reader)
        except (ProtocolError, OSError) as e:
            logger.warning("Subscription ended: %s", e)
            raise
        finally:
            # Let already-decoded messages through before stopping.
            await self._queue.put(None)
            await dispatcher
            await close_quietly(writer)

    async def _subscribe(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        commands = self._commands()
        for cmd in commands:
            writer.write(encode_command(cmd))
        await writer.drain()

        # One ACK per command; assumed successful.
        for cmd in commands:
            frame = await read_frame(reader)
            if isinstance(frame, Response) and not frame.ok:
                logger.warning("Server rejected %r: %s", cmd, frame.body.decode("utf-8", "replace"))
        logger.info("Subscribed to %s", ", ".join(self.topics))

    async def _read_loop(self, reader: asyncio.StreamReader) -> None:
        while True:
            frame = await read_frame(reader)
            if isinstance(frame, Message):
                self.messages_received += 1
                await self._queue.put(frame)
            else:
                logger.debug("Ignoring stray ACK on push connection (ok=%s)", frame.ok)

    async def _dispatch_loop(self) -> None:
        while True:
            msg = await self._queue.get()
            if msg is None:
                break
            try:
                self.handler(msg)
            except Exception as e:
                logger.error("Handler error for %s: %s", msg.topic, e)
