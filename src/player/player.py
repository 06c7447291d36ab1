# src/player/player.py
from __future__ import annotations

import logging

from PySide6.QtCore import QObject, QUrl, Signal
from PySide6.QtMultimedia import QAudioOutput, QMediaPlayer

from core.errors import PlaybackCancelled, PlaybackError
from player.regions import RegionBoard

logger = logging.getLogger(__name__)

MIN_RATE = 0.25
MAX_RATE = 2.0


class Player(QObject):
    """
    QtMultimedia transport.

    ``ready`` and ``finished`` carry the token of the load the backend is
    reporting on, so listeners can tell a late signal for a previous source
    from one for the source that is loaded now.
    """

    timeUpdated = Signal(float)         # seconds
    durationChanged = Signal(float)     # seconds
    ready = Signal(int)                 # load token
    finished = Signal(int)              # load token
    errorOccurred = Signal(object)      # PlaybackError

    def __init__(self, parent=None):
        super().__init__(parent)

        self.regions = RegionBoard(self)

        self._token = 0         # last load() issued
        self._media_token = 0   # load the backend's status events belong to
        self._play_token = 0
        self._source = None

        self.audio = QAudioOutput()
        self.media = QMediaPlayer()
        self.media.setAudioOutput(self.audio)

        self.media.positionChanged.connect(self._on_position)
        self.media.durationChanged.connect(self._on_duration)
        self.media.mediaStatusChanged.connect(self._on_media_status)
        self.media.errorOccurred.connect(self._on_error)

    # ----------------------------
    # Qt backend handlers
    # ----------------------------

    def _on_position(self, ms: int) -> None:
        seconds = ms / 1000.0
        self.timeUpdated.emit(seconds)
        self.regions.on_position(seconds)

    def _on_duration(self, ms: int) -> None:
        self.durationChanged.emit(ms / 1000.0)

    def _on_media_status(self, status: QMediaPlayer.MediaStatus) -> None:
        # status events before the backend starts on the new source still
        # belong to the previous one
        if status in (QMediaPlayer.MediaStatus.LoadingMedia, QMediaPlayer.MediaStatus.LoadedMedia):
            self._media_token = self._token

        if status == QMediaPlayer.MediaStatus.LoadedMedia:
            self.ready.emit(self._media_token)
        elif status == QMediaPlayer.MediaStatus.EndOfMedia:
            if self._media_token != self._token:
                logger.debug("end of media for load %d, current is %d", self._media_token, self._token)
            self.finished.emit(self._media_token)

    def _on_error(self, error: QMediaPlayer.Error, message: str = "") -> None:
        if error == QMediaPlayer.Error.NoError:
            return
        text = message or self.media.errorString() or str(error)
        if self._play_token != self._token:
            # play() was asked for a source that has since been replaced
            self.errorOccurred.emit(PlaybackCancelled(text))
        else:
            self.errorOccurred.emit(PlaybackError(text))

    # ----------------------------
    # Transport commands
    # ----------------------------

    def load(self, source) -> int:
        self._token += 1
        self._source = source
        self.media.setSource(QUrl.fromLocalFile(source.path))
        return self._token

    def play(self) -> None:
        if self._source is None:
            raise PlaybackError("no source loaded")
        if getattr(self._source, "released", False):
            raise PlaybackCancelled("source was released")
        self._play_token = self._token
        self.media.play()

    def pause(self) -> None:
        self.media.pause()

    def seek(self, seconds: float) -> None:
        self.media.setPosition(max(0, int(round(seconds * 1000))))

    def set_rate(self, rate: float) -> None:
        rate = max(MIN_RATE, min(MAX_RATE, float(rate)))
        if abs(self.media.playbackRate() - rate) > 1e-6:
            self.media.setPlaybackRate(rate)

    # convenient getters
    def is_paused(self) -> bool:
        return self.media.playbackState() != QMediaPlayer.PlaybackState.PlayingState

    def position(self) -> float:
        return self.media.position() / 1000.0

    def duration(self) -> float:
        return self.media.duration() / 1000.0
