# core/playlist_controller.py
from __future__ import annotations

import logging
import os
import random
import time
import uuid
from typing import Callable, Iterable, Optional

from PySide6.QtCore import QObject, Signal

from core.errors import StorageError
from core.history import RecentHistory
from core.models import PRIORITIES, PRIORITY_MEDIUM, AddFilesResult, Track
from core.shuffle import pick_next_index
from db.database import (
    add_track,
    create_playlist,
    delete_playlist,
    delete_track,
    list_playlists,
    list_tracks_for_playlist,
    update_track_priority,
)
from db.models import StoredPlaylist, StoredTrack
from library.scan_library import iter_audio_paths, read_audio_file
from library.sources import materialize, release_all

logger = logging.getLogger(__name__)

SORT_ADDED = "added"
SORT_RECENT = "recent"
FIRST_PLAYLIST_NAME = "My Playlist"


class PlaylistController(QObject):
    """
    The playlist side of a practice session: which playlist and track are
    current, and where to go when a track ends.
    """

    currentTrackChanged = Signal(object, bool)   # Track | None, force reload
    tracksChanged = Signal(object)               # list[Track]
    playlistsChanged = Signal(object)            # list[StoredPlaylist]
    playlistLoaded = Signal(str)                 # playlist id

    def __init__(
        self,
        app_state,
        rng: random.Random | None = None,
        loader: Callable[[str, int], None] | None = None,
        parent=None,
    ):
        super().__init__(parent)
        self.app_state = app_state
        self.history = RecentHistory()

        self.playlists: list[StoredPlaylist] = []
        self.current_playlist_id: Optional[str] = None
        self.tracks: list[Track] = []
        self.current_index: int = 0

        self.shuffle_on = True
        self.sort_order = SORT_ADDED

        self._rng = rng or random.Random()
        self._loader = loader or self._load_now
        self._load_token = 0

    @property
    def db(self):
        return self.app_state.db

    @property
    def current_track(self) -> Optional[Track]:
        if 0 <= self.current_index < len(self.tracks):
            return self.tracks[self.current_index]
        return None

    def _index_of(self, track_id: str | None) -> Optional[int]:
        for i, t in enumerate(self.tracks):
            if t.id == track_id:
                return i
        return None

    # ----------------------------
    # Playlists
    # ----------------------------

    def load_playlists(self) -> None:
        try:
            lists = list_playlists(self.db)
            if not lists:
                lists = [create_playlist(self.db, FIRST_PLAYLIST_NAME)]
        except StorageError as e:
            logger.error("Failed to load application data: %s", e)
            self.app_state.notify("Failed to load playlists", "error")
            return

        self.playlists = lists
        self.playlistsChanged.emit(list(self.playlists))
        self.select_playlist(lists[0].id)

    def select_playlist(self, playlist_id: str) -> int:
        """Start loading a playlist's tracks. Returns the load token."""
        self._load_token += 1
        token = self._load_token
        self.current_playlist_id = playlist_id
        self._loader(playlist_id, token)
        return token

    def set_loader(self, loader: Callable[[str, int], None]) -> None:
        self._loader = loader

    def is_current_load(self, token: int) -> bool:
        return token == self._load_token

    def _load_now(self, playlist_id: str, token: int) -> None:
        try:
            stored = list_tracks_for_playlist(self.db, playlist_id)
        except StorageError as e:
            self.fail_load(token, str(e))
            return
        self.apply_loaded_tracks(token, stored)

    def apply_loaded_tracks(self, token: int, stored: Iterable[StoredTrack]) -> bool:
        """
        Install the result of a playlist load. Results of superseded loads
        are dropped before any source is created or released.
        """
        if not self.is_current_load(token):
            logger.debug("stale playlist load %d dropped (current %d)", token, self._load_token)
            return False

        released = release_all(t.source for t in self.tracks)
        if released:
            logger.debug("released %d sources of the previous playlist", released)

        tracks: list[Track] = []
        unplayable: list[str] = []
        for s in stored:
            try:
                source = materialize(s.name, s.data)
            except OSError as e:
                logger.warning("Error writing source for %s: %s", s.name, e)
                unplayable.append(s.name)
                continue
            tracks.append(Track(id=s.id, source=source, name=s.name, priority=s.priority))
        if unplayable:
            self.app_state.notify(f"{len(unplayable)} track(s) could not be prepared for playback.", "error")

        self.tracks = tracks
        self.current_index = 0

        self.playlistLoaded.emit(self.current_playlist_id or "")
        self.tracksChanged.emit(list(self.tracks))
        self.currentTrackChanged.emit(self.current_track, True)
        return True

    def fail_load(self, token: int, message: str) -> None:
        if not self.is_current_load(token):
            return
        logger.error("Failed to load tracks: %s", message)
        self.app_state.notify("Failed to load tracks", "error")

    def create_playlist(self, name: str) -> Optional[StoredPlaylist]:
        name = (name or "").strip()
        if not name:
            return None

        # auto-rename duplicates: "Name (1)", "Name (2)", ...
        existing = {p.name for p in self.playlists}
        final_name = name
        counter = 1
        while final_name in existing:
            final_name = f"{name} ({counter})"
            counter += 1

        try:
            playlist = create_playlist(self.db, final_name)
        except StorageError as e:
            logger.error("Failed to create playlist %r: %s", final_name, e)
            self.app_state.notify("Failed to create playlist", "error")
            return None

        self.playlists.append(playlist)
        self.playlistsChanged.emit(list(self.playlists))
        self.select_playlist(playlist.id)
        return playlist

    def delete_playlist(self) -> bool:
        playlist_id = self.current_playlist_id
        if playlist_id is None:
            return False
        if len(self.playlists) <= 1:
            self.app_state.notify("You must have at least one playlist.", "warn")
            return False

        ids = [p.id for p in self.playlists]
        idx = ids.index(playlist_id) if playlist_id in ids else 0
        next_playlist = self.playlists[1 if idx == 0 else idx - 1]

        try:
            delete_playlist(self.db, playlist_id)
        except StorageError as e:
            logger.error("Failed to delete playlist %s: %s", playlist_id, e)
            self.app_state.notify("Failed to delete playlist", "error")
            return False

        self.playlists = [p for p in self.playlists if p.id != playlist_id]
        self.playlistsChanged.emit(list(self.playlists))
        self.select_playlist(next_playlist.id)
        return True

    # ----------------------------
    # Tracks
    # ----------------------------

    def add_files(self, paths: Iterable[str]) -> AddFilesResult:
        """
        Store each audio file independently; one failure never aborts the
        others. Non-audio files are skipped.
        """
        if self.current_playlist_id is None:
            return AddFilesResult(added=[], failed=[], skipped=[])

        base_time = int(time.time() * 1000)
        was_empty = not self.tracks
        added: list[Track] = []
        failed: list[tuple[str, str]] = []
        skipped: list[str] = []

        for index, path in enumerate(iter_audio_paths(paths)):
            file_name = os.path.basename(path)
            try:
                audio = read_audio_file(path)
            except OSError as e:
                failed.append((file_name, str(e)))
                continue
            if audio is None:
                skipped.append(file_name)
                continue

            record = StoredTrack(
                id=str(uuid.uuid4()),
                playlist_id=self.current_playlist_id,
                name=audio.file_name,
                data=audio.data,
                priority=PRIORITY_MEDIUM,
                added_at=base_time + index,
            )
            # the playable copy first, so a stored row always has one
            try:
                source = materialize(record.name, record.data)
            except OSError as e:
                logger.warning("Error writing source for %s: %s", record.name, e)
                failed.append((record.name, str(e)))
                self.app_state.notify(f'Could not prepare "{record.name}" for playback.', "error")
                continue

            try:
                add_track(self.db, record)
            except StorageError as e:
                source.release()
                logger.warning("Error saving track %s: %s", record.name, e)
                failed.append((record.name, str(e)))
                if "full" in str(e).lower():
                    self.app_state.notify(f'Storage quota exceeded! Could not save "{record.name}".', "error")
                else:
                    self.app_state.notify(f'Could not save "{record.name}".', "error")
                continue

            added.append(Track(
                id=record.id,
                source=source,
                name=record.name,
                priority=record.priority,
            ))

        if added:
            self.tracks.extend(added)
            self.tracksChanged.emit(list(self.tracks))
            if was_empty:
                self.currentTrackChanged.emit(self.current_track, False)

        return AddFilesResult(added=added, failed=failed, skipped=skipped)

    def remove_track(self, track_id: str) -> bool:
        idx = self._index_of(track_id)
        if idx is None:
            return False
        current = self.current_track
        current_id = current.id if current else None

        try:
            delete_track(self.db, track_id)
        except StorageError as e:
            logger.error("Failed to delete track %s: %s", track_id, e)

        removed = self.tracks.pop(idx)
        removed.source.release()

        if track_id == current_id:
            if not self.tracks:
                self.current_index = 0
            else:
                self.current_index = min(self.current_index, len(self.tracks) - 1)
            self.tracksChanged.emit(list(self.tracks))
            self.currentTrackChanged.emit(self.current_track, True)
        else:
            new_index = self._index_of(current_id)
            if new_index is not None:
                self.current_index = new_index
            self.tracksChanged.emit(list(self.tracks))
        return True

    def set_priority(self, track_id: str, priority: int) -> None:
        if priority not in PRIORITIES:
            raise ValueError(f"priority must be one of {PRIORITIES}, got {priority!r}")
        idx = self._index_of(track_id)
        if idx is None:
            return

        try:
            update_track_priority(self.db, track_id, priority)
        except StorageError as e:
            logger.error("Failed to update priority of %s: %s", track_id, e)

        old = self.tracks[idx]
        self.tracks[idx] = Track(id=old.id, source=old.source, name=old.name, priority=priority)
        self.tracksChanged.emit(list(self.tracks))

    # ----------------------------
    # Navigation
    # ----------------------------

    def _set_current(self, index: int, force: bool) -> None:
        self.current_index = index
        self.currentTrackChanged.emit(self.current_track, force)

    def _record_current(self) -> Optional[str]:
        current = self.current_track
        if current is None:
            return None
        self.history.record(current.id)
        return current.id

    def _advance(self) -> None:
        current_id = self._record_current()
        if self.shuffle_on:
            index = pick_next_index(self.tracks, current_id, self._rng)
        else:
            index = (self.current_index + 1) % len(self.tracks)
        self._set_current(index, force=True)

    def on_track_end(self) -> None:
        if not self.tracks:
            return
        self._advance()

    def next_track(self) -> None:
        if not self.tracks:
            return
        self._advance()

    def previous_track(self) -> None:
        if not self.tracks:
            return
        current_id = self._record_current()
        self._set_current(self.history.previous(current_id, self.tracks), force=True)

    def select_track(self, index: int) -> None:
        if not 0 <= index < len(self.tracks):
            raise IndexError(index)
        self.history.record(self.tracks[index].id)
        self._set_current(index, force=False)

    def toggle_shuffle(self) -> bool:
        self.shuffle_on = not self.shuffle_on
        return self.shuffle_on

    # ----------------------------
    # Sort order (display only)
    # ----------------------------

    def set_sort_order(self, order: str) -> None:
        if order not in (SORT_ADDED, SORT_RECENT):
            raise ValueError(f"unknown sort order {order!r}")
        self.sort_order = order

    def sorted_tracks(self) -> list[Track]:
        if self.sort_order == SORT_RECENT:
            return self.history.sort_by_recency(self.tracks)
        return list(self.tracks)

    def current_index_in_sorted(self) -> int:
        current = self.current_track
        if current is None:
            return 0
        for i, t in enumerate(self.sorted_tracks()):
            if t.id == current.id:
                return i
        return 0

    def select_sorted(self, sorted_index: int) -> None:
        track = self.sorted_tracks()[sorted_index]
        self.select_track(self._index_of(track.id))

    def release_sources(self) -> None:
        release_all(t.source for t in self.tracks)
