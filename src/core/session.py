# core/session.py
"""
Per-track playback session and the single mutable holder every event
handler reads from.

Transport signals are connected once and outlive any particular track, so
handlers never keep session fields around: they call ``store.snapshot()``
when they run and re-check ``store.is_current(generation)`` before any
deferred follow-up touches the transport.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.models import PlaybackConfig, Region


@dataclass
class PlaybackSession:
    track_id: Optional[str] = None
    current_loop: int = 0
    is_loop_locked: bool = False
    active_region: Optional[Region] = None
    region_loop: int = 0
    is_playing: bool = False
    is_restart_pending: bool = False
    exhausted: bool = False


@dataclass(frozen=True)
class SessionSnapshot:
    generation: int
    load_token: int
    track_id: Optional[str]
    current_loop: int
    is_loop_locked: bool
    active_region: Optional[Region]
    region_loop: int
    is_playing: bool
    is_restart_pending: bool
    exhausted: bool
    loop_count: int
    playback_speeds: tuple[float, ...]

    @property
    def speed(self) -> float:
        return PlaybackConfig(self.loop_count, list(self.playback_speeds)).speed_for_pass(self.current_loop)


class SessionStore:
    def __init__(self, config: PlaybackConfig | None = None):
        self.config = config or PlaybackConfig()
        self.session = PlaybackSession()
        self.generation = 0
        self.load_token = 0

    def snapshot(self) -> SessionSnapshot:
        s = self.session
        return SessionSnapshot(
            generation=self.generation,
            load_token=self.load_token,
            track_id=s.track_id,
            current_loop=s.current_loop,
            is_loop_locked=s.is_loop_locked,
            active_region=s.active_region,
            region_loop=s.region_loop,
            is_playing=s.is_playing,
            is_restart_pending=s.is_restart_pending,
            exhausted=s.exhausted,
            loop_count=self.config.loop_count,
            playback_speeds=tuple(self.config.playback_speeds),
        )

    def begin_track(self, track_id: Optional[str]) -> int:
        """Replace the session for a new current track. Returns the new generation."""
        self.generation += 1
        self.session = PlaybackSession(track_id=track_id, is_playing=self.session.is_playing)
        return self.generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def current_speed(self) -> float:
        return self.config.speed_for_pass(self.session.current_loop)
