# core/reconciler.py
from __future__ import annotations

import functools
import logging
import time
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from core.errors import PlaybackCancelled, PlaybackError, StateInconsistency
from core.loop_controller import LoopController
from core.models import PlaybackConfig, Region, Track
from core.region_drill import RegionDrillEngine
from core.session import SessionSnapshot, SessionStore

logger = logging.getLogger(__name__)

SKIP_SECONDS = 5.0


def _qt_defer(ms: int, fn: Callable[[], None]) -> None:
    QTimer.singleShot(ms, fn)


def event_handler(fn):
    """Keep handler failures out of the Qt event loop."""
    @functools.wraps(fn)
    def wrapper(self, *args):
        try:
            return fn(self, *args)
        except StateInconsistency as e:
            logger.debug("%s: stale event ignored (%s)", fn.__name__, e)
        except Exception:
            logger.exception("%s failed", fn.__name__)
        return None
    return wrapper


class PlaybackEventReconciler(QObject):
    """
    Single entry point for everything the transport emits.

    The transport (see player.player.Player) is connected once; its
    ``ready``/``finished`` signals carry the load token of the source they
    belong to, and the region board hangs off ``transport.regions``.
    """

    trackEnded = Signal()
    positionChanged = Signal(float)     # seconds
    playingChanged = Signal(bool)
    sessionChanged = Signal(object)     # SessionSnapshot

    def __init__(
        self,
        transport,
        config: PlaybackConfig | None = None,
        defer: Callable[[int, Callable[[], None]], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        parent=None,
    ):
        super().__init__(parent)
        self.transport = transport
        self.store = SessionStore(config)
        self._defer = defer or _qt_defer

        self.loop = LoopController(self.store, transport, self._defer, self._signal_track_end)
        self.drill = RegionDrillEngine(self.store, transport, self._defer, clock)

        self.track: Optional[Track] = None
        self.position: float = 0.0

        transport.ready.connect(self._on_ready)
        transport.finished.connect(self._on_finish)
        transport.timeUpdated.connect(self._on_time_update)
        transport.errorOccurred.connect(self._on_error)

        regions = transport.regions
        regions.enable_drag_to_create()
        regions.regionCreated.connect(self._on_region_created)
        regions.regionUpdated.connect(self._on_region_updated)
        regions.regionRemoved.connect(self._on_region_removed)
        regions.regionOut.connect(self._on_region_out)

    # ----------------------------
    # Snapshot helpers
    # ----------------------------

    def snapshot(self) -> SessionSnapshot:
        return self.store.snapshot()

    def _require_load(self, token: int) -> SessionSnapshot:
        snap = self.store.snapshot()
        if snap.track_id is None:
            raise StateInconsistency("no current track")
        if token != snap.load_token:
            raise StateInconsistency(f"load token {token} is not current ({snap.load_token})")
        return snap

    def _changed(self) -> None:
        self.sessionChanged.emit(self.store.snapshot())

    def _signal_track_end(self) -> None:
        self._changed()
        self.trackEnded.emit()

    # ----------------------------
    # Transport events
    # ----------------------------

    @event_handler
    def _on_ready(self, token: int) -> None:
        snap = self._require_load(token)
        self.transport.set_rate(self.store.config.speed_for_pass(snap.current_loop))
        if snap.is_playing:
            self._safe_play("ready")

    @event_handler
    def _on_finish(self, token: int) -> None:
        snap = self._require_load(token)
        self.loop.on_finish(snap)
        self._changed()

    @event_handler
    def _on_time_update(self, seconds: float) -> None:
        self.position = float(seconds)
        self.positionChanged.emit(self.position)

    @event_handler
    def _on_error(self, error) -> None:
        if isinstance(error, PlaybackCancelled):
            logger.debug("transport cancelled a request: %s", error)
            return
        logger.error("Playback error: %s", error)

    @event_handler
    def _on_region_created(self, region: Region) -> None:
        snap = self.store.snapshot()
        if snap.track_id is None:
            raise StateInconsistency("region created without a track")
        self.drill.on_region_created(region, snap)
        self._changed()

    @event_handler
    def _on_region_updated(self, region: Region) -> None:
        self.drill.on_region_updated(region, self.store.snapshot())
        self._changed()

    @event_handler
    def _on_region_removed(self, region: Region) -> None:
        self.drill.on_region_removed(region)
        self._changed()

    @event_handler
    def _on_region_out(self, region: Region) -> None:
        self.drill.on_region_out(region, self.store.snapshot())
        self._changed()

    # ----------------------------
    # Commands
    # ----------------------------

    def _safe_play(self, origin: str) -> None:
        try:
            self.transport.play()
        except PlaybackCancelled as e:
            logger.debug("[%s] play cancelled: %s", origin, e)
        except PlaybackError as e:
            logger.error("[%s] play failed: %s", origin, e)

    def set_track(self, track: Optional[Track], force: bool = False) -> None:
        """
        Make ``track`` current. Re-selecting the current track is a no-op
        unless ``force`` is set (e.g. the only track of a playlist ended).
        """
        if not force and track is not None and track.id == self.store.session.track_id:
            return

        same_source = track is not None and self.track is not None and track.source is self.track.source

        self.loop.reset()
        self.drill.reset()
        self.store.begin_track(track.id if track else None)
        self.transport.regions.clear_regions()
        self.track = track
        self.position = 0.0

        if track is None:
            self.transport.pause()
            self._changed()
            return

        logger.info("Now playing: %s", track.name)
        if same_source:
            self.transport.pause()
            self.transport.set_rate(self.store.current_speed())
            self.transport.seek(0.0)
            if self.store.session.is_playing:
                self._safe_play("replay")
        else:
            self.store.load_token = self.transport.load(track.source)
        self._changed()

    def play(self) -> None:
        if not self.store.session.is_playing:
            self.store.session.is_playing = True
            self.playingChanged.emit(True)
        if self.track is not None:
            self._safe_play("play")
        self._changed()

    def pause(self) -> None:
        """
        Pause playback. A restart scheduled by the loop controller is
        cancelled; the track is left rewound at the next pass's speed.
        """
        was_playing = self.store.session.is_playing
        self.store.session.is_playing = False
        rate = self.loop.cancel_restart()
        self.transport.pause()
        if rate is not None:
            self.transport.set_rate(rate)
            self.transport.seek(0.0)
        if was_playing:
            self.playingChanged.emit(False)
        self._changed()

    def toggle_play(self) -> None:
        if self.store.session.is_playing:
            self.pause()
        else:
            self.play()

    def set_loop_locked(self, locked: bool) -> None:
        self.loop.set_locked(locked)
        self._changed()

    def toggle_loop_lock(self) -> None:
        self.set_loop_locked(not self.store.session.is_loop_locked)

    def clear_region(self) -> None:
        self.drill.clear(self.transport.regions)
        self._changed()

    def update_config(self, config: PlaybackConfig) -> None:
        self.store.config = config
        self.loop.clamp_to_config()
        if self.track is not None:
            self.transport.set_rate(self.store.current_speed())
        self._changed()

    def rewind(self, seconds: float = SKIP_SECONDS) -> None:
        self.transport.seek(max(0.0, self.transport.position() - seconds))

    def fast_forward(self, seconds: float = SKIP_SECONDS) -> None:
        duration = self.transport.duration() or 0.0
        self.transport.seek(min(duration, self.transport.position() + seconds))

    # ----------------------------
    # Display helpers
    # ----------------------------

    def status_text(self) -> str:
        snap = self.store.snapshot()
        if snap.track_id is None:
            return "Select a track to start"
        speed = snap.speed
        if snap.active_region is not None:
            return f"Region Loop {snap.region_loop + 1} (Infinite) • {speed:.2f}x Speed"
        return f"Loop {snap.current_loop + 1} of {snap.loop_count} • {speed:.2f}x Speed"
