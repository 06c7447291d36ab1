# core/timers.py
from __future__ import annotations

import logging

from PySide6.QtCore import QObject, QTimer, Signal

from core.utils import format_clock

logger = logging.getLogger(__name__)

SLEEP_MIN_MINUTES = 1
SLEEP_MAX_MINUTES = 180
TICK_MS = 1000


class SessionClock(QObject):
    """Counts whole seconds of playback in this session."""

    elapsedChanged = Signal(int)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.elapsed = 0
        self._playing = False
        self._timer = QTimer(self)
        self._timer.setInterval(TICK_MS)
        self._timer.timeout.connect(self.tick)

    def set_playing(self, playing: bool) -> None:
        self._playing = bool(playing)
        if self._playing:
            self._timer.start()
        else:
            self._timer.stop()

    def tick(self) -> None:
        if not self._playing:
            return
        self.elapsed += 1
        self.elapsedChanged.emit(self.elapsed)

    def reset(self) -> None:
        self.elapsed = 0
        self.elapsedChanged.emit(0)

    def text(self) -> str:
        return format_clock(self.elapsed)


class SleepTimer(QObject):
    """
    Pauses the session after a number of minutes of playback.

    The countdown only runs while playing. When it reaches zero the timer
    stops and ``expired`` fires once; it never rearms on its own.
    """

    remainingChanged = Signal(int)   # seconds left
    expired = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.remaining = 0
        self.active = False
        self._playing = False
        self._timer = QTimer(self)
        self._timer.setInterval(TICK_MS)
        self._timer.timeout.connect(self.tick)

    def start(self, minutes: int) -> None:
        minutes = int(minutes)
        if not SLEEP_MIN_MINUTES <= minutes <= SLEEP_MAX_MINUTES:
            raise ValueError(
                f"sleep timer must be {SLEEP_MIN_MINUTES}-{SLEEP_MAX_MINUTES} minutes, got {minutes}"
            )
        self.remaining = minutes * 60
        self.active = True
        logger.info("Sleep timer set for %d min", minutes)
        self.remainingChanged.emit(self.remaining)
        self._sync_timer()

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self.remaining = 0
        self._timer.stop()
        self.remainingChanged.emit(0)

    def set_playing(self, playing: bool) -> None:
        self._playing = bool(playing)
        self._sync_timer()

    def _sync_timer(self) -> None:
        if self.active and self._playing:
            if not self._timer.isActive():
                self._timer.start()
        else:
            self._timer.stop()

    def tick(self) -> None:
        if not (self.active and self._playing):
            return
        self.remaining = max(0, self.remaining - 1)
        self.remainingChanged.emit(self.remaining)
        if self.remaining == 0:
            self.active = False
            self._timer.stop()
            logger.info("Sleep timer expired")
            self.expired.emit()

    def text(self) -> str:
        return format_clock(self.remaining)
