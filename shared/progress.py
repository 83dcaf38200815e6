"""FuoTerm playback progress clock.

Position is extrapolated from an anchor (time, position) pair only when read,
so push events never have to poll a real clock.
"""
from __future__ import annotations
import time
from typing import Callable


class Progress:
    """Tracks playback position as a function of wall-clock time."""

    def __init__(self, now: Callable[[], float] = time.monotonic) -> None:
        self._now = now
        self._anchor_time: float = now()
        self._anchor_position: float = 0.0
        self._paused: bool = False

    @property
    def paused(self) -> bool:
        return self._paused

    def on_seeked(self, position: float) -> None:
        """Re-anchor at `position`; paused/playing mode is left unchanged."""
        self._anchor_time = self._now()
        self._anchor_position = max(0.0, position)

    def pause(self) -> None:
        # current() must be taken before the anchor time moves.
        self._anchor_position = self.current()
        self._anchor_time = self._now()
        self._paused = True

    def resume(self) -> None:
        self._anchor_position = self.current()
        self._anchor_time = self._now()
        self._paused = False

    def current(self) -> float:
        """Current position in seconds."""
        if self._paused:
            return self._anchor_position
        return self._anchor_position + max(0.0, self._now() - self._anchor_time)
