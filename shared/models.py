"""FuoTerm player data models and payload decoding."""
from __future__ import annotations
import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Optional

from shared.protocol import FuoError


class PayloadDecodeError(FuoError):
    """A message or response body did not have the expected shape."""


class UnknownState(PayloadDecodeError):
    pass


class PlayerState(IntEnum):
    STOPPED = 0
    PAUSED = 1
    PLAYING = 2

    @classmethod
    def from_code(cls, code: Any) -> "PlayerState":
        # bool is an int subclass; reject it explicitly.
        if isinstance(code, bool) or not isinstance(code, int):
            raise UnknownState(f"Player state code must be an integer, got {code!r}")
        try:
            return cls(code)
        except ValueError:
            raise UnknownState(f"Unknown player state code: {code}") from None


STATUS_STATES = {
    "paused": PlayerState.PAUSED,
    "stopped": PlayerState.STOPPED,
    "playing": PlayerState.PLAYING,
}


@dataclass(frozen=True)
class TrackMetadata:
    title: str = ""
    artists: tuple[str, ...] = ()
    album: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Any) -> "TrackMetadata":
        if not isinstance(raw, dict):
            raise PayloadDecodeError(f"Metadata must be an object, got {type(raw).__name__}")
        missing = [k for k in ("title", "artists") if k not in raw]
        if missing:
            raise PayloadDecodeError(f"Metadata missing {', '.join(missing)}")
        title = raw["title"]
        artists = raw["artists"]
        album = raw.get("album")
        if not isinstance(title, str):
            raise PayloadDecodeError("Metadata 'title' must be a string")
        if not isinstance(artists, list) or not all(isinstance(a, str) for a in artists):
            raise PayloadDecodeError("Metadata 'artists' must be a list of strings")
        if album is not None and not isinstance(album, str):
            raise PayloadDecodeError("Metadata 'album' must be a string or null")
        return cls(title=title, artists=tuple(artists), album=album)


@dataclass(frozen=True)
class BriefSong:
    """One row of the current playlist as reported by the service."""
    provider: str = ""
    identifier: str = ""
    title: str = ""
    album_name: str = ""
    artists_name: str = ""
    duration_ms: str = ""

    @classmethod
    def from_dict(cls, raw: Any) -> "BriefSong":
        if not isinstance(raw, dict):
            raise PayloadDecodeError(f"Song must be an object, got {type(raw).__name__}")
        return cls(**{name: str(raw.get(name) or "") for name in cls.__dataclass_fields__})


@dataclass(frozen=True)
class PlayerStatus:
    """Decoded body of a `status --format=json` response."""
    metadata: TrackMetadata = field(default_factory=TrackMetadata)
    duration: float = 0.0
    position: float = 0.0
    state_name: str = "stopped"


def _load_json(body: bytes) -> Any:
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise PayloadDecodeError(f"Invalid JSON payload: {e}") from e


def _seconds(value: Any, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PayloadDecodeError(f"{what} must be a number, got {value!r}")
    return float(value)


def decode_args(body: bytes, arity: int) -> list[Any]:
    """Decode a positional argument tuple (a JSON array of fixed length)."""
    args = _load_json(body)
    if not isinstance(args, list) or len(args) != arity:
        raise PayloadDecodeError(f"Expected a {arity}-element array, got {args!r}")
    return args


def decode_state(body: bytes) -> PlayerState:
    return PlayerState.from_code(decode_args(body, 1)[0])


def decode_metadata(body: bytes) -> TrackMetadata:
    return TrackMetadata.from_dict(decode_args(body, 1)[0])


def decode_seconds(body: bytes) -> float:
    return _seconds(decode_args(body, 1)[0], "Time value")


def decode_lyric(body: bytes) -> str:
    line = decode_args(body, 1)[0]
    if not isinstance(line, str):
        raise PayloadDecodeError(f"Lyric line must be a string, got {line!r}")
    return line


def decode_status(body: bytes) -> PlayerStatus:
    data = _load_json(body)
    if not isinstance(data, dict):
        raise PayloadDecodeError("Status must be an object")
    song = data.get("song")
    if song is None:
        metadata = TrackMetadata()
    elif isinstance(song, dict):
        missing = [k for k in ("title", "album_name", "artists_name") if k not in song]
        if missing:
            raise PayloadDecodeError(f"Status song missing {', '.join(missing)}")
        # Status reports artists as one pre-joined string.
        artists = song["artists_name"] or ""
        album = song["album_name"]
        metadata = TrackMetadata(
            title=str(song["title"] or ""),
            artists=(str(artists),) if artists else (),
            album=str(album) if album is not None else None,
        )
    else:
        raise PayloadDecodeError("Status 'song' must be an object or null")
    state_name = data.get("state", "stopped")
    if not isinstance(state_name, str):
        raise PayloadDecodeError("Status 'state' must be a string")
    return PlayerStatus(
        metadata=metadata,
        duration=_seconds(data.get("duration") or 0.0, "Status 'duration'"),
        position=_seconds(data.get("position") or 0.0, "Status 'position'"),
        state_name=state_name,
    )


def decode_playlist(body: bytes) -> list[BriefSong]:
    data = _load_json(body)
    if not isinstance(data, list):
        raise PayloadDecodeError("Playlist must be an array")
    return [BriefSong.from_dict(raw) for raw in data]
