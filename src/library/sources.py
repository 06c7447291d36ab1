# src/library/sources.py
from __future__ import annotations

import logging
import os
import tempfile

logger = logging.getLogger(__name__)

_SOURCE_DIR: str | None = None


def _source_dir() -> str:
    global _SOURCE_DIR
    if _SOURCE_DIR is None or not os.path.isdir(_SOURCE_DIR):
        _SOURCE_DIR = tempfile.mkdtemp(prefix="loopdrill-")
    return _SOURCE_DIR


class SourceHandle:
    """
    Decodable audio for one track: a temporary file written from the stored
    bytes. The owner releases it exactly once, when the track is removed or
    its playlist is reloaded.
    """

    def __init__(self, path: str):
        self.path = path
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            logger.warning("Source %s released twice", self.path)
            return
        self._released = True
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass

    def __repr__(self) -> str:
        state = "released" if self._released else "live"
        return f"SourceHandle({self.path!r}, {state})"


def materialize(name: str, data: bytes, directory: str | None = None) -> SourceHandle:
    ext = os.path.splitext(name)[1].lower()
    fd, path = tempfile.mkstemp(suffix=ext, dir=directory or _source_dir())
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    return SourceHandle(path)


def release_all(handles) -> int:
    count = 0
    for handle in handles:
        if handle is not None and not handle.released:
            handle.release()
            count += 1
    return count
