# core/loop_controller.py
from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Callable, Optional

from core.errors import PlaybackCancelled, PlaybackError
from core.session import SessionSnapshot, SessionStore

logger = logging.getLogger(__name__)


class LoopState(Enum):
    PLAYING = auto()
    RESTART_PENDING = auto()
    EXHAUSTED = auto()


class LoopController:
    """
    Multi-pass looping for the current track.

    Every ``finish`` either restarts the track at the next pass speed or,
    once the pass budget is spent, reports the track as ended. The restart
    runs on the next event-loop turn; ``is_restart_pending`` stays set until
    it settles so a second ``finish`` in between is dropped.
    """

    def __init__(
        self,
        store: SessionStore,
        transport,
        defer: Callable[[int, Callable[[], None]], None],
        on_exhausted: Callable[[], None],
    ):
        self.store = store
        self.transport = transport
        self._defer = defer
        self._on_exhausted = on_exhausted

        self._restart_token = 0
        self._pending_rate: Optional[float] = None

    def state(self) -> LoopState:
        session = self.store.session
        if session.exhausted:
            return LoopState.EXHAUSTED
        if session.is_restart_pending:
            return LoopState.RESTART_PENDING
        return LoopState.PLAYING

    def on_finish(self, snap: SessionSnapshot) -> None:
        if snap.active_region is not None:
            logger.debug("finish ignored: region drill is active")
            return
        if snap.is_restart_pending:
            logger.debug("duplicate finish suppressed (restart in flight)")
            return
        if snap.exhausted:
            logger.debug("finish ignored: pass budget already spent")
            return

        session = self.store.session
        session.is_restart_pending = True

        should_continue = snap.is_loop_locked or snap.current_loop < snap.loop_count - 1
        if not should_continue:
            session.is_restart_pending = False
            session.exhausted = True
            logger.info("Track %s finished all %d passes", snap.track_id, snap.loop_count)
            self._on_exhausted()
            return

        next_pass = snap.current_loop if snap.is_loop_locked else snap.current_loop + 1
        rate = self.store.config.speed_for_pass(next_pass)
        if not snap.is_loop_locked:
            session.current_loop = next_pass

        self._restart_token += 1
        token = self._restart_token
        self._pending_rate = rate
        logger.info("Pass %d of track %s at %.2fx", next_pass + 1, snap.track_id, rate)
        self._defer(0, lambda: self._restart(snap.generation, token, rate))

    def _is_live(self, generation: int, token: int) -> bool:
        return self.store.is_current(generation) and token == self._restart_token

    def _restart(self, generation: int, token: int, rate: float) -> None:
        if not self._is_live(generation, token) or not self.store.session.is_restart_pending:
            logger.debug("scheduled restart dropped: session moved on")
            return

        try:
            self.transport.pause()
            self.transport.set_rate(rate)
            self.transport.seek(0.0)
            self.transport.play()
        except PlaybackCancelled as e:
            logger.debug("restart play cancelled: %s", e)
        except PlaybackError as e:
            logger.warning("Pass restart failed: %s", e)
        finally:
            if self._is_live(generation, token):
                self.store.session.is_restart_pending = False
                self._pending_rate = None

    def cancel_restart(self) -> Optional[float]:
        """
        Drop a scheduled restart. Returns the rate the restart would have
        used, or None when nothing was pending.
        """
        session = self.store.session
        if not session.is_restart_pending:
            return None
        rate = self._pending_rate
        self._restart_token += 1
        self._pending_rate = None
        session.is_restart_pending = False
        logger.debug("pending restart cancelled")
        return rate

    def set_locked(self, locked: bool) -> None:
        self.store.session.is_loop_locked = bool(locked)

    def reset(self) -> None:
        # session fields themselves are replaced by SessionStore.begin_track
        self._restart_token += 1
        self._pending_rate = None

    def clamp_to_config(self) -> None:
        session = self.store.session
        last = self.store.config.loop_count - 1
        if not session.is_loop_locked and session.current_loop > last:
            session.current_loop = last
