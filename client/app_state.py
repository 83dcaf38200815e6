"""FuoTerm playback state store."""
from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from client.rpc import call
from shared.config import Config
from shared.models import (
    STATUS_STATES, BriefSong, PayloadDecodeError, PlayerState, TrackMetadata,
    decode_lyric, decode_metadata, decode_playlist, decode_seconds,
    decode_state, decode_status,
)
from shared.progress import Progress
from shared.protocol import (
    CMD_PLAYLIST, CMD_STATUS, Message, RequestFailed, Response,
    TOPIC_DURATION_CHANGED, TOPIC_LYRIC_CHANGED, TOPIC_METADATA_CHANGED,
    TOPIC_SEEKED, TOPIC_STATE_CHANGED,
)

logger = logging.getLogger("fuoterm.client.state")


@dataclass(frozen=True)
class PlaybackSnapshot:
    """Copy of the playback state, with position resolved at snapshot time."""
    metadata: TrackMetadata
    lyric: str
    position: float
    duration: float
    state: PlayerState
    playlist: tuple[BriefSong, ...] = ()


@dataclass
class PlaybackState:
    metadata: TrackMetadata = field(default_factory=TrackMetadata)
    lyric: str = ""
    progress: Progress = field(default_factory=Progress)
    duration: float = 0.0
    state: PlayerState = PlayerState.STOPPED
    playlist: list[BriefSong] = field(default_factory=list)


class AppState:
    """
    Single shared playback state.
    Written by push messages (on_message) and by full syncs (sync_now);
    read through snapshot(). Every access holds the lock, which is never
    held across network I/O.
    """

    def __init__(self, config: Optional[Config] = None, now: Optional[Callable[[], float]] = None):
        self.config = config or Config()
        progress = Progress(now) if now is not None else Progress()
        self._state = PlaybackState(lyric=self.config.client.lyric_placeholder, progress=progress)
        self._lock = threading.Lock()
        self.last_sync_ok = False

    # ---- push messages ----

    def on_message(self, msg: Message) -> None:
        """Apply one push message; a malformed payload drops only that message."""
        try:
            self._apply_message(msg)
        except PayloadDecodeError as e:
            logger.warning("Dropping malformed %s message: %s", msg.topic, e)

    def _apply_message(self, msg: Message) -> None:
        # Payloads are decoded before taking the lock so a bad one changes nothing.
        topic = msg.topic
        if topic == TOPIC_STATE_CHANGED:
            state = decode_state(msg.body)
            with self._lock:
                self._state.state = state
                if state == PlayerState.PAUSED:
                    self._state.progress.pause()
                elif state == PlayerState.STOPPED:
                    self._state.progress.on_seeked(0.0)
                else:
                    self._state.progress.resume()
            logger.debug("State -> %s", state.name)

        elif topic == TOPIC_METADATA_CHANGED:
            metadata = decode_metadata(msg.body)
            with self._lock:
                self._state.metadata = metadata
                self._state.progress.on_seeked(0.0)
            logger.info("Now playing: %s", metadata.title)

        elif topic == TOPIC_DURATION_CHANGED:
            duration = decode_seconds(msg.body)
            with self._lock:
                self._state.duration = duration

        elif topic == TOPIC_SEEKED:
            position = decode_seconds(msg.body)
            with self._lock:
                self._state.progress.on_seeked(position)

        elif topic == TOPIC_LYRIC_CHANGED:
            if msg.body:
                line = decode_lyric(msg.body)
                with self._lock:
                    self._state.lyric = line

        else:
            logger.debug("Ignoring message on %s", topic)

    # ---- full sync ----

    async def _request(self, command: str) -> Response:
        server = self.config.server
        resp = await call(command, server.host, server.rpc_port)
        if not resp.ok:
            raise RequestFailed(command, resp.body)
        return resp

    async def sync_now(self) -> PlaybackSnapshot:
        """Replace the state with the service's full status.

        Raises on any failure, leaving the previous state in place.
        """
        try:
            resp = await self._request(CMD_STATUS)
            status = decode_status(resp.body)
        except Exception:
            self.last_sync_ok = False
            raise

        state = STATUS_STATES.get(status.state_name)
        if state is None:
            logger.warning("Unknown player state %r, treating as stopped", status.state_name)
            state = PlayerState.STOPPED

        with self._lock:
            self._state.metadata = status.metadata
            # Seek first so the clock is re-anchored at the reported position
            # before being frozen or released.
            self._state.progress.on_seeked(status.position)
            self._state.duration = status.duration
            self._state.state = state
            if state == PlayerState.PLAYING:
                self._state.progress.resume()
            else:
                self._state.progress.pause()
        self.last_sync_ok = True
        logger.debug("Synced: %s at %.1fs (%s)", status.metadata.title, status.position, state.name)
        return self.snapshot()

    async def refresh_playlist(self) -> list[BriefSong]:
        resp = await self._request(CMD_PLAYLIST)
        songs = decode_playlist(resp.body)
        with self._lock:
            self._state.playlist = songs
        logger.info("Playlist has %d songs", len(songs))
        return list(songs)

    # ---- readers ----

    def snapshot(self) -> PlaybackSnapshot:
        with self._lock:
            s = self._state
            return PlaybackSnapshot(
                metadata=s.metadata,
                lyric=s.lyric,
                position=s.progress.current(),
                duration=s.duration,
                state=s.state,
                playlist=tuple(s.playlist),
            )
