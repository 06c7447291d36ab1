from __future__ import annotations

CURRENT_DB_VERSION = 2

# v1: single implicit playlist
SCHEMA_V1_SQL = """
CREATE TABLE tracks (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    data BLOB NOT NULL,
    priority INTEGER DEFAULT 2,
    added_at INTEGER NOT NULL
);

CREATE INDEX idx_tracks_added_at ON tracks(added_at);

CREATE TABLE config_data (
    id INTEGER PRIMARY KEY,
    loop_count INTEGER DEFAULT 2,
    playback_speeds TEXT DEFAULT '[1.0, 1.1, 1.2]'
);

INSERT INTO config_data (loop_count, playback_speeds) VALUES (2, '[1.0, 1.1, 1.2]');
"""

# v2: multiple playlists
SCHEMA_V2_SQL = """
CREATE TABLE playlists (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    created_at INTEGER NOT NULL
);

CREATE INDEX idx_playlists_created_at ON playlists(created_at);

ALTER TABLE tracks ADD COLUMN playlist_id TEXT REFERENCES playlists(id);

CREATE INDEX idx_tracks_playlist_id ON tracks(playlist_id);
"""

DEFAULT_PLAYLIST_NAME = "Default Playlist"
