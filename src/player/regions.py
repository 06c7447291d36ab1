# player/regions.py
from __future__ import annotations

import uuid
from typing import Optional

from PySide6.QtCore import QObject, Signal

from core.models import Region

MIN_REGION_SECONDS = 0.05


class RegionBoard(QObject):
    """
    The waveform's region layer, minus the drawing: holds at most one
    region and reports when playback runs past its end.
    """

    regionCreated = Signal(object)   # Region
    regionUpdated = Signal(object)   # Region
    regionRemoved = Signal(object)   # Region
    regionOut = Signal(object)       # Region

    def __init__(self, parent=None):
        super().__init__(parent)
        self._region: Optional[Region] = None
        self._drag_enabled = False
        self._inside = False

    @property
    def region(self) -> Optional[Region]:
        return self._region

    def enable_drag_to_create(self) -> None:
        self._drag_enabled = True

    def drag_select(self, start: float, end: float) -> Optional[Region]:
        """A drag gesture on the waveform; ignored until dragging is enabled."""
        if not self._drag_enabled:
            return None
        return self.create_region(start, end)

    def create_region(self, start: float, end: float) -> Optional[Region]:
        start, end = sorted((max(0.0, float(start)), max(0.0, float(end))))
        if end - start < MIN_REGION_SECONDS:
            return None
        # single A-B region: the previous one is replaced, not removed
        region = Region(id=uuid.uuid4().hex, start=start, end=end)
        self._region = region
        self._inside = False
        self.regionCreated.emit(region)
        return region

    def update_region(self, start: float, end: float) -> Optional[Region]:
        if self._region is None:
            return None
        start, end = sorted((max(0.0, float(start)), max(0.0, float(end))))
        self._region = Region(id=self._region.id, start=start, end=end)
        self.regionUpdated.emit(self._region)
        return self._region

    def clear_regions(self) -> None:
        region, self._region = self._region, None
        self._inside = False
        if region is not None:
            self.regionRemoved.emit(region)

    def on_position(self, seconds: float) -> None:
        region = self._region
        if region is None:
            return
        if region.contains(seconds):
            self._inside = True
        elif self._inside and seconds >= region.end:
            self._inside = False
            self.regionOut.emit(region)
        else:
            self._inside = False
