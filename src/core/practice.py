# core/practice.py
from __future__ import annotations

import logging
import random
import time
from typing import Callable

from PySide6.QtCore import QObject

from core.errors import StorageError
from core.models import PlaybackConfig
from core.playlist_controller import PlaylistController
from core.reconciler import PlaybackEventReconciler
from core.timers import SessionClock, SleepTimer
from db.database import get_config, set_config

logger = logging.getLogger(__name__)


class PracticeSession(QObject):
    """
    Wires the playlist side to the playback side:

    - a new current track goes to the reconciler
    - a finished track (all passes done) advances the playlist
    - loading another playlist stops playback
    - the sleep timer pauses playback when it runs out
    """

    def __init__(
        self,
        app_state,
        transport,
        defer: Callable | None = None,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
        loader: Callable[[str, int], None] | None = None,
        parent=None,
    ):
        super().__init__(parent)
        self.app_state = app_state

        config = PlaybackConfig()
        if app_state.db is not None:
            try:
                config = get_config(app_state.db)
            except StorageError as e:
                logger.warning("Using default playback settings: %s", e)

        self.playlists = PlaylistController(app_state, rng=rng, loader=loader, parent=self)
        self.reconciler = PlaybackEventReconciler(
            transport, config=config, defer=defer, clock=clock, parent=self
        )
        self.clock = SessionClock(self)
        self.sleep_timer = SleepTimer(self)

        self.playlists.playlistLoaded.connect(self._on_playlist_loaded)
        self.playlists.currentTrackChanged.connect(self._on_current_track_changed)
        self.reconciler.trackEnded.connect(self.playlists.on_track_end)
        self.reconciler.playingChanged.connect(self.clock.set_playing)
        self.reconciler.playingChanged.connect(self.sleep_timer.set_playing)
        self.reconciler.sessionChanged.connect(self._on_session_changed)
        self.sleep_timer.expired.connect(self._on_sleep_expired)

    def start(self) -> None:
        self.playlists.load_playlists()

    def _on_playlist_loaded(self, playlist_id: str) -> None:
        logger.debug("playlist %s loaded, stopping playback", playlist_id)
        self.reconciler.pause()

    def _on_current_track_changed(self, track, force: bool) -> None:
        self.reconciler.set_track(track, force=force)

    def _on_session_changed(self, _snap) -> None:
        self.app_state.status_changed.emit(self.reconciler.status_text())

    def _on_sleep_expired(self) -> None:
        self.reconciler.pause()
        self.app_state.notify("Sleep timer finished, playback paused.", "info")

    @property
    def config(self) -> PlaybackConfig:
        return self.reconciler.store.config

    def update_config(self, config: PlaybackConfig) -> None:
        """Apply new loop settings and persist them."""
        self.reconciler.update_config(config)
        if self.app_state.db is None:
            return
        try:
            set_config(self.app_state.db, config)
        except StorageError as e:
            logger.error("Failed to save settings: %s", e)
            self.app_state.notify("Failed to save settings", "error")

    def shutdown(self) -> None:
        self.sleep_timer.cancel()
        self.reconciler.pause()
        self.playlists.release_sources()
