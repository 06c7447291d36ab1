# core/region_drill.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from core.errors import PlaybackCancelled, PlaybackError
from core.models import Region
from core.session import SessionSnapshot, SessionStore

logger = logging.getLogger(__name__)

REGION_OUT_DEBOUNCE_S = 0.100
REGION_FOLLOWUP_DELAY_MS = 10


class RegionDrillEngine:
    """
    Infinite A-B looping over the user's selected region ("drill mode").

    Runs beside the pass budget: while a region is active, ``finish`` is
    ignored by the loop controller and the speed stays the one of the
    current pass.
    """

    def __init__(
        self,
        store: SessionStore,
        transport,
        defer: Callable[[int, Callable[[], None]], None],
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.transport = transport
        self._defer = defer
        self._clock = clock

        self._last_out: Optional[tuple[str, float]] = None   # (region id, time)

    # --- collaborator events ---

    def on_region_created(self, region: Region, snap: SessionSnapshot) -> None:
        session = self.store.session
        session.active_region = region
        session.region_loop = 0
        self._last_out = None
        logger.info("Drill region %.2f-%.2f", region.start, region.end)

        if snap.is_playing:
            generation = snap.generation
            self._defer(REGION_FOLLOWUP_DELAY_MS, lambda: self._keep_playing(generation))

    def on_region_updated(self, region: Region, snap: SessionSnapshot) -> None:
        active = snap.active_region
        if active is None or active.id != region.id:
            logger.debug("update for inactive region %s ignored", region.id)
            return
        self.store.session.active_region = region

    def on_region_removed(self, region: Optional[Region] = None) -> None:
        session = self.store.session
        if region is not None and session.active_region is not None and session.active_region.id != region.id:
            return
        session.active_region = None
        session.region_loop = 0
        self._last_out = None

    def on_region_out(self, region: Region, snap: SessionSnapshot) -> None:
        now = self._clock()
        if self._last_out is not None:
            last_id, last_at = self._last_out
            if last_id == region.id and now - last_at < REGION_OUT_DEBOUNCE_S:
                logger.debug("region-out debounced (%.0f ms)", (now - last_at) * 1000)
                return
        self._last_out = (region.id, now)

        active = snap.active_region
        if active is None or active.id != region.id:
            logger.debug("region-out for cleared region ignored")
            return

        self.store.session.region_loop += 1
        generation = snap.generation
        self._defer(REGION_FOLLOWUP_DELAY_MS, lambda: self._seek_to_start(generation, region.id))

    # --- user actions ---

    def clear(self, regions=None) -> None:
        """Drop the active region before the collaborator is told to clear."""
        session = self.store.session
        session.active_region = None
        session.region_loop = 0
        self._last_out = None
        if regions is not None:
            regions.clear_regions()

    def reset(self) -> None:
        self._last_out = None

    # --- deferred follow-ups ---

    def _seek_to_start(self, generation: int, region_id: str) -> None:
        if not self.store.is_current(generation):
            return
        active = self.store.session.active_region
        if active is None or active.id != region_id:
            logger.debug("region cleared before loop-back; no seek")
            return
        self.transport.seek(active.start)
        # a pause that landed after the crossing wins
        if self.store.session.is_playing and self.transport.is_paused():
            self._play("region-out")

    def _keep_playing(self, generation: int) -> None:
        if not self.store.is_current(generation) or not self.store.session.is_playing:
            return
        if self.transport.is_paused():
            self._play("region-created")

    def _play(self, origin: str) -> None:
        try:
            self.transport.play()
        except PlaybackCancelled as e:
            logger.debug("[%s] play cancelled: %s", origin, e)
        except PlaybackError as e:
            logger.error("[%s] play failed: %s", origin, e)
