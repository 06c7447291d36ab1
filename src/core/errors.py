# core/errors.py
from __future__ import annotations


class LoopDrillError(Exception):
    """Base class for every error raised by this package."""


class StorageError(LoopDrillError):
    """A persistence call failed (quota exhausted, I/O failure, ...)."""

    def __init__(self, message: str, item: str | None = None):
        super().__init__(message)
        self.item = item


class PlaybackError(LoopDrillError):
    """The transport rejected a play/decode request."""


class PlaybackCancelled(PlaybackError):
    """
    A play request was interrupted on purpose (pause, seek or a new source).
    Callers treat it as expected and do not report it as a failure.
    """


class StateInconsistency(LoopDrillError):
    """An event arrived for a session, load or region that is no longer current."""
