import sqlite3

import pytest

from core.errors import StorageError
from core.models import PlaybackConfig
from db.database import (
    add_track,
    create_playlist,
    delete_playlist,
    delete_track,
    get_config,
    list_playlists,
    list_tracks_for_playlist,
    set_config,
    update_track_priority,
)
from db.migrations import open_database, upgrade_database_if_needed
from db.models import StoredTrack
from db.schema import CURRENT_DB_VERSION, SCHEMA_V1_SQL


def record(track_id, playlist_id, name="t.mp3", added_at=1, data=b"abc"):
    return StoredTrack(id=track_id, playlist_id=playlist_id, name=name, data=data, priority=2, added_at=added_at)


def default_playlist(db):
    return list_playlists(db)[0]


def test_fresh_database_is_current(tmp_path):
    path = str(tmp_path / "db.sqlite3")
    db = open_database(path)
    assert db.execute("PRAGMA user_version").fetchone()[0] == CURRENT_DB_VERSION
    assert [p.name for p in list_playlists(db)] == ["Default Playlist"]
    db.close()

    db = open_database(path)
    assert len(list_playlists(db)) == 1
    db.close()


def test_v1_tracks_move_into_default_playlist():
    db = sqlite3.connect(":memory:")
    db.row_factory = sqlite3.Row
    db.executescript(SCHEMA_V1_SQL)
    db.execute("PRAGMA user_version=1")
    db.execute(
        "INSERT INTO tracks (id, name, data, priority, added_at) VALUES ('old', 'old.mp3', x'00', 3, 5)"
    )
    db.commit()

    upgrade_database_if_needed(db, 1)

    playlist = default_playlist(db)
    tracks = list_tracks_for_playlist(db, playlist.id)
    assert [(t.id, t.priority) for t in tracks] == [("old", 3)]


def test_tracks_sorted_by_added_then_name(db):
    pid = default_playlist(db).id
    add_track(db, record("1", pid, "b.mp3", added_at=10))
    add_track(db, record("2", pid, "a.mp3", added_at=10))
    add_track(db, record("3", pid, "z.mp3", added_at=5))
    assert [t.name for t in list_tracks_for_playlist(db, pid)] == ["z.mp3", "a.mp3", "b.mp3"]


def test_track_updates(db):
    pid = default_playlist(db).id
    add_track(db, record("1", pid, data=b"\x00\x01"))
    update_track_priority(db, "1", 1)
    (track,) = list_tracks_for_playlist(db, pid)
    assert track.priority == 1
    assert track.data == b"\x00\x01"

    delete_track(db, "1")
    assert list_tracks_for_playlist(db, pid) == []


def test_delete_playlist_removes_its_tracks(db):
    keep = default_playlist(db)
    gone = create_playlist(db, "Gone")
    add_track(db, record("k", keep.id))
    add_track(db, record("g", gone.id))

    delete_playlist(db, gone.id)

    assert [p.id for p in list_playlists(db)] == [keep.id]
    assert db.execute("SELECT COUNT(*) FROM tracks WHERE playlist_id = ?", (gone.id,)).fetchone()[0] == 0
    assert len(list_tracks_for_playlist(db, keep.id)) == 1


def test_config_round_trip(db):
    assert get_config(db) == PlaybackConfig(loop_count=2, playback_speeds=[1.0, 1.1, 1.2])
    set_config(db, PlaybackConfig(loop_count=3, playback_speeds=[0.8, 1.0, 1.25]))
    assert get_config(db) == PlaybackConfig(loop_count=3, playback_speeds=[0.8, 1.0, 1.25])


def test_malformed_speeds_fall_back_to_defaults(db):
    db.execute("UPDATE config_data SET playback_speeds = 'not json', loop_count = 3")
    db.commit()
    config = get_config(db)
    assert config.loop_count == 3
    assert config.playback_speeds == [1.0, 1.1, 1.2]


def test_full_database_fails_one_track_only(db):
    pid = default_playlist(db).id
    pages = db.execute("PRAGMA page_count").fetchone()[0]
    db.execute(f"PRAGMA max_page_count = {pages + 8}")

    add_track(db, record("small1", pid, "small1.mp3", added_at=1, data=b"x" * 100))
    with pytest.raises(StorageError) as excinfo:
        add_track(db, record("big", pid, "big.mp3", added_at=2, data=b"x" * 256 * 1024))
    add_track(db, record("small2", pid, "small2.mp3", added_at=3, data=b"x" * 100))

    assert excinfo.value.item == "big.mp3"
    assert "full" in str(excinfo.value)
    assert [t.id for t in list_tracks_for_playlist(db, pid)] == ["small1", "small2"]


def test_read_failures_surface_as_storage_errors(db):
    db.execute("DROP TABLE tracks")
    db.execute("DROP TABLE playlists")
    db.execute("DROP TABLE config_data")
    with pytest.raises(StorageError):
        list_playlists(db)
    with pytest.raises(StorageError) as excinfo:
        list_tracks_for_playlist(db, "p1")
    assert excinfo.value.item == "p1"
    with pytest.raises(StorageError):
        get_config(db)
