"""FuoTerm wire protocol: line-framed ACK/MSG frames shared by both sockets."""
from __future__ import annotations
import asyncio
from dataclasses import dataclass
from typing import Union


class FuoError(Exception):
    """Base class for all FuoTerm errors."""


class ServiceConnectionError(FuoError):
    """Could not open a connection to the player service."""


class ProtocolError(FuoError):
    pass


class Disconnected(ProtocolError):
    """Peer closed the connection where a frame was expected."""


class MalformedFrame(ProtocolError):
    pass


class UnexpectedMessage(ProtocolError):
    """A push message arrived on the request/response channel."""


class RequestFailed(ProtocolError):
    def __init__(self, command: str, body: bytes):
        super().__init__(f"{command!r} failed: {body.decode('utf-8', 'replace')}")
        self.command = command
        self.body = body


@dataclass(frozen=True)
class Response:
    ok: bool
    body: bytes


@dataclass(frozen=True)
class Message:
    topic: str
    body: bytes


Frame = Union[Response, Message]

TAG_ACK = "ack"
TAG_MSG = "msg"

# ---- Commands ----
CMD_STATUS = "status --format=json"
CMD_PLAYLIST = "list --format=json"
CMD_PUBSUB_VERSION = "set --pubsub-version 2.0"

# ---- Topics ----
TOPIC_STATE_CHANGED = "player.state_changed"
TOPIC_METADATA_CHANGED = "player.metadata_changed"
TOPIC_DURATION_CHANGED = "player.duration_changed"
TOPIC_SEEKED = "player.seeked"
TOPIC_LYRIC_CHANGED = "live_lyric.sentence_changed"

DEFAULT_TOPICS = ("player.*", "live_lyric.*")


def sub_command(topic: str) -> str:
    return f"sub {topic}"


def encode_command(cmd: str) -> bytes:
    return f"{cmd}\n".encode()


def encode_frame(frame: Frame) -> bytes:
    """Serialize a frame the way the server writes it.

    Response looks like::
        ACK OK 5\\r\\nhello\\r\\n
    While message looks like::
        MSG topic_name 5\\r\\nhello\\r\\n
    """
    if isinstance(frame, Response):
        header = f"ACK {'OK' if frame.ok else 'ERR'} {len(frame.body)}"
    else:
        header = f"MSG {frame.topic} {len(frame.body)}"
    return header.encode() + b"\r\n" + frame.body + b"\r\n"


def parse_header(line: bytes) -> tuple[str, str, int]:
    """Split a status line into (tag, second token, body length).

    Only the first and last tokens are structural; anything between the
    second token and the length is ignored.
    """
    words = line.decode("utf-8", "replace").split()
    if len(words) < 3:
        raise MalformedFrame(f"Short frame header: {line!r}")
    tag = words[0].lower()
    if tag not in (TAG_ACK, TAG_MSG):
        raise MalformedFrame(f"Unknown frame tag: {words[0]!r}")
    try:
        body_len = int(words[-1])
    except ValueError:
        raise MalformedFrame(f"Invalid body length: {words[-1]!r}") from None
    if body_len < 0:
        raise MalformedFrame(f"Negative body length: {body_len}")
    return tag, words[1], body_len


async def read_frame(reader: asyncio.StreamReader) -> Frame:
    """Decode exactly one frame from the stream."""
    line = await reader.readline()
    if not line:
        raise Disconnected("disconnected")
    tag, word, body_len = parse_header(line)

    # Body is followed by \r\n, which is consumed but not checked.
    try:
        body = await reader.readexactly(body_len + 2)
    except asyncio.IncompleteReadError as e:
        raise Disconnected(f"disconnected after {len(e.partial)} of {body_len + 2} body bytes") from e
    body = body[:body_len]

    if tag == TAG_ACK:
        return Response(ok=word.lower() == "ok", body=body)
    return Message(topic=word, body=body)
