import json
import sqlite3
import time
import uuid
from contextlib import contextmanager
from typing import List

from core.errors import StorageError
from core.models import PlaybackConfig
from db.models import StoredPlaylist, StoredTrack


@contextmanager
def _storage(db: sqlite3.Connection, item: str | None = None):
    """Run a write and commit it; sqlite failures surface as StorageError."""
    try:
        yield
        db.commit()
    except sqlite3.Error as e:
        db.rollback()
        raise StorageError(str(e), item=item) from e


@contextmanager
def _reading(item: str | None = None):
    """Reads do not commit; sqlite failures still surface as StorageError."""
    try:
        yield
    except sqlite3.Error as e:
        raise StorageError(str(e), item=item) from e


def _now_ms() -> int:
    return int(time.time() * 1000)

# -------------------------------
# PLAYLISTS
# -------------------------------
def list_playlists(db: sqlite3.Connection) -> List[StoredPlaylist]:
    with _reading("playlists"):
        rows = db.execute("SELECT id, name, created_at FROM playlists ORDER BY created_at ASC").fetchall()
    return [StoredPlaylist.from_row(row) for row in rows]


def create_playlist(db: sqlite3.Connection, name: str) -> StoredPlaylist:
    playlist = StoredPlaylist(id=str(uuid.uuid4()), name=name, created_at=_now_ms())
    with _storage(db, name):
        db.execute(
            "INSERT INTO playlists (id, name, created_at) VALUES (?, ?, ?)",
            (playlist.id, playlist.name, playlist.created_at),
        )
    return playlist


def delete_playlist(db: sqlite3.Connection, playlist_id: str) -> None:
    # playlist and its tracks go in one transaction
    with _storage(db, playlist_id):
        db.execute("DELETE FROM playlists WHERE id = ?", (playlist_id,))
        db.execute("DELETE FROM tracks WHERE playlist_id = ?", (playlist_id,))

# -------------------------------
# TRACKS
# -------------------------------
def add_track(db: sqlite3.Connection, track: StoredTrack) -> None:
    with _storage(db, track.name):
        db.execute("""
            INSERT OR REPLACE INTO tracks (id, playlist_id, name, data, priority, added_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            track.id,
            track.playlist_id,
            track.name,
            sqlite3.Binary(track.data),
            track.priority,
            track.added_at,
        ))


def list_tracks_for_playlist(db: sqlite3.Connection, playlist_id: str) -> List[StoredTrack]:
    with _reading(playlist_id):
        rows = db.execute("""
            SELECT id, playlist_id, name, data, priority, added_at
            FROM tracks
            WHERE playlist_id = ?
            ORDER BY added_at ASC, name ASC
        """, (playlist_id,)).fetchall()
    return [StoredTrack.from_row(row) for row in rows]


def delete_track(db: sqlite3.Connection, track_id: str) -> None:
    with _storage(db, track_id):
        db.execute("DELETE FROM tracks WHERE id = ?", (track_id,))


def update_track_priority(db: sqlite3.Connection, track_id: str, priority: int) -> None:
    with _storage(db, track_id):
        db.execute("UPDATE tracks SET priority = ? WHERE id = ?", (priority, track_id))

# -------------------------------
# CONFIG
# -------------------------------
def get_config(db: sqlite3.Connection) -> PlaybackConfig:
    with _reading("config"):
        row = db.execute("SELECT loop_count, playback_speeds FROM config_data LIMIT 1").fetchone()
    if row is None:
        return PlaybackConfig()

    try:
        speeds = json.loads(row["playback_speeds"] or "[]")
    except ValueError:
        speeds = []
    if not isinstance(speeds, list) or not speeds:
        return PlaybackConfig(loop_count=max(1, int(row["loop_count"] or 1)))

    return PlaybackConfig(
        loop_count=max(1, int(row["loop_count"] or 1)),
        playback_speeds=[float(s) for s in speeds],
    )


def set_config(db: sqlite3.Connection, config: PlaybackConfig) -> None:
    with _storage(db, "config"):
        db.execute("""
            UPDATE config_data
            SET loop_count = ?,
                playback_speeds = ?
            WHERE 1
        """, (
            config.loop_count,
            json.dumps(config.playback_speeds),
        ))
