from __future__ import annotations

import logging
import os
import sqlite3
import time
import uuid

from db.schema import CURRENT_DB_VERSION, DEFAULT_PLAYLIST_NAME, SCHEMA_V1_SQL, SCHEMA_V2_SQL

logger = logging.getLogger(__name__)


def initialize_database(app_data_dir: str) -> sqlite3.Connection:
    os.makedirs(app_data_dir, exist_ok=True)
    sqlite_path = os.path.join(app_data_dir, "db.sqlite3")
    logger.info("Database file path: %s", sqlite_path)
    return open_database(sqlite_path)


def open_database(sqlite_path: str) -> sqlite3.Connection:
    db = sqlite3.connect(sqlite_path)
    db.row_factory = sqlite3.Row

    existing_version = int(db.execute("PRAGMA user_version").fetchone()[0])
    upgrade_database_if_needed(db, existing_version)

    return db


def upgrade_database_if_needed(db: sqlite3.Connection, existing_version: int) -> None:
    logger.debug("Existing database version: %s", existing_version)

    if existing_version >= CURRENT_DB_VERSION:
        return

    # v1
    if existing_version <= 0:
        logger.info("Migrate database version 1...")
        db.execute("PRAGMA journal_mode=WAL")
        db.execute("PRAGMA user_version=1")
        db.executescript(SCHEMA_V1_SQL)
        db.commit()

    # v2: playlists; tracks from v1 move into a default playlist
    if existing_version <= 1:
        logger.info("Migrate database version 2...")
        db.execute("PRAGMA user_version=2")
        db.executescript(SCHEMA_V2_SQL)
        default_id = str(uuid.uuid4())
        db.execute(
            "INSERT INTO playlists (id, name, created_at) VALUES (?, ?, ?)",
            (default_id, DEFAULT_PLAYLIST_NAME, int(time.time() * 1000)),
        )
        db.execute("UPDATE tracks SET playlist_id = ? WHERE playlist_id IS NULL", (default_id,))
        db.commit()
