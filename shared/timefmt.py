"""Time display helpers for the status line."""
from __future__ import annotations


def fmt_duration(seconds: float) -> str:
    """Format seconds as MM:SS, or HH:MM:SS from one hour up."""
    total = int(max(0.0, seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def progress_ratio(position: float, duration: float) -> float:
    if duration <= 0:
        return 0.0
    return min(1.0, max(0.0, position / duration))
