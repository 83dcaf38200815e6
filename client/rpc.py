"""FuoTerm request channel: one command per control connection."""
from __future__ import annotations
import asyncio
import logging

from shared.protocol import (
    Message, Response, ServiceConnectionError, UnexpectedMessage,
    encode_command, read_frame,
)

logger = logging.getLogger("fuoterm.client.rpc")


async def open_service(host: str, port: int) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Connect and consume the greeting line the service sends first."""
    try:
        reader, writer = await asyncio.open_connection(host, port)
    except OSError as e:
        logger.error("Failed to connect to %s:%d: %s", host, port, e)
        raise ServiceConnectionError(f"Failed to connect to {host}:{port}: {e}") from e
    logger.info("Connected to fuo server at %s:%d", host, port)
    greeting = await reader.readline()
    if greeting:
        logger.info("%s", greeting.decode("utf-8", "replace").strip())
    return reader, writer


async def close_quietly(writer: asyncio.StreamWriter) -> None:
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        logger.debug("Error while closing connection: %s", e)


async def call(command: str, host: str = "127.0.0.1", port: int = 23333) -> Response:
    """Send one command on a fresh connection and return its response."""
    reader, writer = await open_service(host, port)
    try:
        writer.write(encode_command(command))
        await writer.drain()
        frame = await read_frame(reader)
    finally:
        await close_quietly(writer)
    if isinstance(frame, Message):
        raise UnexpectedMessage(f"Got push message {frame.topic!r} in reply to {command!r}")
    logger.debug("%r -> ok=%s (%d bytes)", command, frame.ok, len(frame.body))
    return frame
