"""FuoTerm one-line now-playing display."""
from __future__ import annotations

from client.app_state import PlaybackSnapshot
from shared.models import PlayerState
from shared.timefmt import fmt_duration, progress_ratio

DOT = "·"
BAR_WIDTH = 20
STATE_MARKERS = {
    PlayerState.PLAYING: "▶",
    PlayerState.PAUSED: "⏸",
    PlayerState.STOPPED: "■",
}


def progress_bar(position: float, duration: float, width: int = BAR_WIDTH) -> str:
    filled = int(round(progress_ratio(position, duration) * width))
    return "━" * filled + "─" * (width - filled)


def format_status_line(snap: PlaybackSnapshot) -> str:
    parts = ["♫ ", snap.metadata.title or "-"]
    if snap.metadata.artists:
        parts.append(f" {DOT} {','.join(snap.metadata.artists)}")
    marker = STATE_MARKERS[snap.state]
    parts.append(
        f"  {marker} {progress_bar(snap.position, snap.duration)} "
        f"[{fmt_duration(snap.position)}/{fmt_duration(snap.duration)}]"
    )
    if snap.lyric:
        parts.append(f"  {snap.lyric}")
    return "".join(parts)
