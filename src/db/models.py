from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import sqlite3


@dataclass
class StoredPlaylist:
    id: str
    name: str
    created_at: int

    @staticmethod
    def from_row(row: sqlite3.Row) -> "StoredPlaylist":
        return StoredPlaylist(
            id=row["id"],
            name=row["name"],
            created_at=int(row["created_at"]),
        )


@dataclass
class StoredTrack:
    id: str
    playlist_id: str
    name: str
    data: bytes
    priority: Optional[int]
    added_at: int

    @staticmethod
    def from_row(row: sqlite3.Row) -> "StoredTrack":
        return StoredTrack(
            id=row["id"],
            playlist_id=row["playlist_id"],
            name=row["name"],
            data=bytes(row["data"]),
            priority=row["priority"],
            added_at=int(row["added_at"]),
        )
