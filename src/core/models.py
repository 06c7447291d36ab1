# core/models.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

PRIORITY_LOW = 1
PRIORITY_MEDIUM = 2
PRIORITY_HIGH = 3
PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)

DEFAULT_LOOP_COUNT = 2
MAX_LOOP_COUNT = 3
DEFAULT_PLAYBACK_SPEEDS = (1.0, 1.1, 1.2)
MIN_SPEED = 0.5
MAX_SPEED = 2.0


@dataclass(frozen=True)
class Track:
    id: str
    source: Any          # SourceHandle (opaque to the core)
    name: str
    priority: Optional[int] = PRIORITY_MEDIUM


@dataclass(frozen=True)
class Region:
    id: str
    start: float
    end: float

    def contains(self, t: float) -> bool:
        return self.start <= t < self.end


@dataclass
class PlaybackConfig:
    loop_count: int = DEFAULT_LOOP_COUNT
    playback_speeds: list[float] = field(default_factory=lambda: list(DEFAULT_PLAYBACK_SPEEDS))

    def __post_init__(self):
        self.loop_count = int(self.loop_count)
        if self.loop_count < 1:
            raise ValueError(f"loop_count must be >= 1, got {self.loop_count}")
        self.playback_speeds = [float(s) for s in self.playback_speeds]

    def speed_for_pass(self, pass_index: int) -> float:
        """Rate for a pass; passes past the budget reuse the last pass's slot."""
        idx = min(int(pass_index), self.loop_count - 1)
        if 0 <= idx < len(self.playback_speeds):
            speed = self.playback_speeds[idx]
            if speed and speed > 0:
                return speed
        return 1.0

    def with_loop_count(self, loop_count: int) -> "PlaybackConfig":
        return replace(self, loop_count=loop_count, playback_speeds=list(self.playback_speeds))

    def with_speed(self, index: int, value: float) -> "PlaybackConfig":
        if index < 0:
            raise IndexError(index)
        speeds = list(self.playback_speeds)
        while len(speeds) <= index:
            speeds.append(1.0)
        speeds[index] = min(MAX_SPEED, max(MIN_SPEED, float(value)))
        return replace(self, playback_speeds=speeds)


@dataclass(frozen=True)
class AddFilesResult:
    added: list[Track]
    failed: list[tuple[str, str]]   # (file name, reason)
    skipped: list[str]              # not audio

    @property
    def ok(self) -> bool:
        return not self.failed
